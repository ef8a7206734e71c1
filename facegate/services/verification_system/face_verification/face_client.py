"""
Client for face login and registration against the Baidu AI Face service.

Every reply from the remote service goes through ``check`` before any of its
payload is read, and nested fields are pulled out with ``get_field`` so a
partial reply becomes a ``FaceClientError`` naming the missing field.
"""

import logging
import math
import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from facegate.models.models import FaceSample, MatchCandidate
from facegate.services.verification_system.api_manager.baidu_face_manager import BaiduFaceManager
from facegate.services.verification_system.face_verification.face_client_error import FaceClientError

logger = logging.getLogger(__name__)

# Fields of the Baidu face API replies
ERROR_CODE = "error_code"
ERROR_MSG = "error_msg"
RESULT = "result"
USER_LIST = "user_list"
USER_ID = "user_id"
FACE_TOKEN = "face_token"
SCORE = "score"

# Two faces scoring at least this much are treated as the same person
DEFAULT_THRESHOLD = 92.0


class FaceTransport(Protocol):
    def search(self, image: str, image_type: str, group_id: str, options: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]: ...

    def match(self, images: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]: ...

    def add_user(self, image: str, image_type: str, group_id: str, user_id: str, options: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]: ...


def get_field(payload: Any, field: str) -> Any:
    """Return ``payload[field]``, failing with a MALFORMED_RESPONSE error naming the field"""
    if not isinstance(payload, Mapping):
        raise FaceClientError.missing_field(field)
    value = payload.get(field)
    if value is None:
        raise FaceClientError.missing_field(field)
    return value


def _parse_error_code(raw_code: Any) -> int:
    """Read a status code, accepting only integral values"""
    if isinstance(raw_code, bool):
        raise FaceClientError.malformed(f"Invalid error_code in face service response: {raw_code!r}", field=ERROR_CODE)
    if isinstance(raw_code, int):
        return raw_code
    try:
        value = float(raw_code)
    except (TypeError, ValueError, OverflowError):
        raise FaceClientError.malformed(f"Invalid error_code in face service response: {raw_code!r}", field=ERROR_CODE)
    if not math.isfinite(value) or not value.is_integer():
        raise FaceClientError.malformed(f"Invalid error_code in face service response: {raw_code!r}", field=ERROR_CODE)
    return int(value)


def check(envelope: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate a remote reply and return it unchanged when it reports success"""
    if envelope is None:
        raise FaceClientError.malformed("Empty response from the face service")

    error_code = _parse_error_code(get_field(envelope, ERROR_CODE))
    if error_code != 0:
        error = FaceClientError.remote_service(error_code, envelope.get(ERROR_MSG))
        logger.warning(f"{error.message} (remote message: {error.remote_message})")
        raise error

    return envelope


def parse_score(payload: Any) -> float:
    """Read the similarity score of a result payload as a float"""
    raw_score = get_field(payload, SCORE)
    if isinstance(raw_score, bool):
        raise FaceClientError.malformed(f"Score is not numeric: {raw_score!r}", field=SCORE)
    try:
        score = float(raw_score)
    except (TypeError, ValueError, OverflowError):
        raise FaceClientError.malformed(f"Score is not numeric: {raw_score!r}", field=SCORE)
    if not math.isfinite(score):
        raise FaceClientError.malformed(f"Score is not numeric: {raw_score!r}", field=SCORE)
    return score


class BiometricClient:
    """Face search, comparison and enrollment over one remote connection handle.

    Operations keep no per-call state, so one client can be shared between
    threads. ``configure`` swaps the connection handle under a lock.
    """

    def __init__(
        self,
        app_id: str = "",
        api_key: str = "",
        secret_key: str = "",
        default_threshold: float = DEFAULT_THRESHOLD,
        transport: Optional[FaceTransport] = None,
        **transport_options,
    ):
        self.default_threshold = float(default_threshold)
        self._lock = threading.Lock()
        self._transport: Optional[FaceTransport] = None
        self._owns_transport = False

        if transport is not None:
            self._transport = transport
        else:
            self.configure(app_id, api_key, secret_key, **transport_options)

    @classmethod
    def from_settings(cls, settings) -> "BiometricClient":
        return cls(
            app_id=settings.baidu_app_id,
            api_key=settings.baidu_api_key,
            secret_key=settings.baidu_secret_key,
            default_threshold=settings.confidence_threshold,
            base_url=settings.baidu_api_base_url,
            timeout=settings.baidu_request_timeout,
        )

    def configure(self, app_id: str, api_key: str, secret_key: str, **transport_options) -> "BiometricClient":
        """Replace the connection handle with one built from new credentials.

        No network I/O happens here. A previous handle built by this client is
        closed once replaced; calls still in flight on it fail with a
        TRANSPORT error. Injected transports are left to their owner.
        """
        transport = BaiduFaceManager(app_id, api_key, secret_key, **transport_options)
        with self._lock:
            previous = self._transport if self._owns_transport else None
            self._transport = transport
            self._owns_transport = True
        if previous is not None:
            previous.close()
        logger.info(f"Face client configured for Baidu app {app_id}")
        return self

    def _connection(self) -> FaceTransport:
        with self._lock:
            return self._transport

    def _threshold(self, threshold: Optional[float]) -> float:
        return self.default_threshold if threshold is None else float(threshold)

    def search(self, sample: FaceSample, group_id: str, options: Optional[Dict[str, Any]] = None) -> MatchCandidate:
        """Search a gallery group and return the best ranked candidate.

        Args:
            sample: Face image to look up
            group_id: Gallery group, or a comma separated list of groups
            options: Extra service parameters passed through as-is

        Raises:
            FaceClientError: NO_MATCH when the service returns no candidate
        """
        logger.info(f"Searching face in group {group_id}")
        envelope = self._connection().search(sample.image, sample.image_type.value, group_id, dict(options or {}))
        result = check(envelope).get(RESULT)
        if result is None:
            raise FaceClientError.no_match()
        if not isinstance(result, Mapping) or USER_LIST not in result:
            raise FaceClientError.missing_field(USER_LIST)

        user_list = result[USER_LIST]
        if not user_list:
            logger.info(f"No candidate returned for group {group_id}")
            raise FaceClientError.no_match()
        if not isinstance(user_list, list) or not isinstance(user_list[0], Mapping):
            raise FaceClientError.malformed("Unexpected user_list format in search response", field=USER_LIST)

        first = user_list[0]
        user_id = str(get_field(first, USER_ID))
        score = parse_score(first)
        try:
            candidate = MatchCandidate(
                user_id=user_id,
                score=score,
                face_token=first.get(FACE_TOKEN) or result.get(FACE_TOKEN),
                group_id=first.get("group_id"),
                user_info=first.get("user_info"),
            )
        except ValidationError as e:
            loc = e.errors()[0]["loc"] if e.errors() else ()
            field = str(loc[0]) if loc else None
            raise FaceClientError.malformed(f"Invalid candidate field in search response: {field}", field=field) from e
        logger.info(f"Best candidate in group {group_id}: {candidate.user_id} (score {candidate.score:.2f})")
        return candidate

    def verify(self, response: Union[Mapping[str, Any], MatchCandidate], threshold: Optional[float] = None) -> bool:
        """Decide whether a score reaches the confidence threshold.

        ``response`` is either a full envelope, the result payload of a
        successful reply, or a candidate from ``search``. Equality counts as
        a match.
        """
        if isinstance(response, MatchCandidate):
            score = response.score
        else:
            payload = response
            if isinstance(payload, Mapping) and ERROR_CODE in payload:
                payload = get_field(check(payload), RESULT)
            score = parse_score(payload)
        return score - self._threshold(threshold) >= 0

    def _compare_envelope(self, sample_a: FaceSample, sample_b: FaceSample, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if sample_a.image_type != sample_b.image_type:
            raise ValueError(
                f"Both samples must share an image type, got {sample_a.image_type.value} and {sample_b.image_type.value}"
            )
        images = [
            {**(options or {}), "image": sample.image, "image_type": sample.image_type.value}
            for sample in (sample_a, sample_b)
        ]
        logger.info("Comparing two face images")
        return check(self._connection().match(images))

    def compare(self, sample_a: FaceSample, sample_b: FaceSample, options: Optional[Dict[str, Any]] = None) -> float:
        """Return the similarity score of two face images"""
        envelope = self._compare_envelope(sample_a, sample_b, options)
        return parse_score(get_field(envelope, RESULT))

    def match(
        self,
        sample_a: FaceSample,
        sample_b: FaceSample,
        threshold: Optional[float] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Compare two face images and apply the confidence threshold"""
        envelope = self._compare_envelope(sample_a, sample_b, options)
        return self.verify(envelope, threshold)

    def enroll(self, user_id: int, sample: FaceSample, group_id: str, options: Optional[Dict[str, Any]] = None) -> str:
        """Register a face under ``user_id`` and return the face token the service issued"""
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise TypeError(f"user_id must be an integer, got {type(user_id).__name__}")

        logger.info(f"Enrolling user {user_id} in group {group_id}")
        envelope = self._connection().add_user(
            sample.image, sample.image_type.value, group_id, str(user_id), dict(options or {})
        )
        face_token = str(get_field(get_field(check(envelope), RESULT), FACE_TOKEN))
        logger.info(f"Enrolled user {user_id} in group {group_id}")
        return face_token

    def close(self) -> None:
        transport = self._connection()
        if hasattr(transport, "close"):
            transport.close()
