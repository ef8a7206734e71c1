import logging
import threading
import time
from typing import Any, Dict, List, Optional

import httpx

from facegate.services.verification_system.face_verification.face_client_error import FaceClientError

logger = logging.getLogger(__name__)

# Envelope codes signalling that the cached access token is no longer accepted
TOKEN_ERROR_CODES = (110, 111)

class BaiduFaceManager:
    """Synchronous adapter over the Baidu AI Face v3 REST API.

    Each call is a single round trip returning the decoded JSON envelope.
    Validation of the envelope is left to the caller.
    """

    token_path = "/oauth/2.0/token"
    search_path = "/rest/2.0/face/v3/search"
    match_path = "/rest/2.0/face/v3/match"
    add_user_path = "/rest/2.0/face/v3/faceset/user/add"

    # Refresh the token this many seconds before it expires
    token_expiry_margin = 60

    def __init__(
        self,
        app_id: str,
        api_key: str,
        secret_key: str,
        base_url: str = "https://aip.baidubce.com",
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        if not all([app_id, api_key, secret_key]):
            raise ValueError("Baidu face API credentials not configured")

        self.app_id = app_id
        self.api_key = api_key
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")

        # httpx.Client is safe to share between threads
        self._http = http_client or httpx.Client(timeout=timeout)
        self._token_lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def _get_access_token(self) -> str:
        """Return a cached access token, fetching a new one when needed"""
        with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            logger.info(f"Requesting Baidu access token for app {self.app_id}")
            try:
                response = self._http.post(
                    f"{self.base_url}{self.token_path}",
                    params={
                        "grant_type": "client_credentials",
                        "client_id": self.api_key,
                        "client_secret": self.secret_key,
                    },
                )
            except httpx.HTTPError as e:
                raise FaceClientError.transport(f"Access token request failed: {str(e)}") from e

            result = self._decode(response, "access_token")
            if "error" in result or not result.get("access_token"):
                detail = result.get("error_description") or result.get("error") or "no access_token returned"
                logger.error(f"Access token request rejected: {detail}")
                raise FaceClientError.transport(f"Access token request rejected: {detail}")

            expires_in = float(result.get("expires_in", 0))
            self._access_token = result["access_token"]
            self._token_expires_at = time.monotonic() + max(expires_in - self.token_expiry_margin, 0)
            return self._access_token

    def _invalidate_token(self, token: str) -> None:
        """Drop the cached token unless another thread already replaced it"""
        with self._token_lock:
            if self._access_token != token:
                return
            self._access_token = None
            self._token_expires_at = 0.0

    def _decode(self, response: httpx.Response, operation: str) -> Dict[str, Any]:
        if response.status_code != 200:
            logger.error(f"{operation} failed with HTTP {response.status_code}")
            raise FaceClientError.transport(f"{operation} failed with HTTP status {response.status_code}")
        try:
            result = response.json()
        except ValueError as e:
            raise FaceClientError.malformed(f"Invalid response from Baidu face API in {operation}") from e
        if not isinstance(result, dict):
            raise FaceClientError.malformed(f"Invalid response from Baidu face API in {operation}")
        return result

    def _make_request(self, path: str, body: Any, operation: str) -> Dict[str, Any]:
        """Post a JSON body to a face endpoint and return the envelope"""
        if self._http.is_closed:
            raise FaceClientError.transport(f"Connection to Baidu face API closed before {operation}")
        token = self._get_access_token()
        logger.info(f"Making {operation} request to Baidu face API")
        try:
            response = self._http.post(
                f"{self.base_url}{path}",
                params={"access_token": token},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"API request failed in {operation}: {str(e)}")
            raise FaceClientError.transport(f"API request failed in {operation}: {str(e)}") from e

        result = self._decode(response, operation)
        if result.get("error_code") in TOKEN_ERROR_CODES:
            logger.warning(f"Access token rejected during {operation}, it will be refreshed on the next call")
            self._invalidate_token(token)
        return result

    def search(self, image: str, image_type: str, group_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = {
            **(options or {}),
            "image": image,
            "image_type": image_type,
            "group_id_list": group_id,
        }
        return self._make_request(self.search_path, body, operation="search")

    def match(self, images: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._make_request(self.match_path, images, operation="match")

    def add_user(
        self,
        image: str,
        image_type: str,
        group_id: str,
        user_id: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body = {
            **(options or {}),
            "image": image,
            "image_type": image_type,
            "group_id": group_id,
            "user_id": user_id,
        }
        return self._make_request(self.add_user_path, body, operation="add_user")

    def close(self) -> None:
        """Release the underlying HTTP connection pool"""
        self._http.close()
