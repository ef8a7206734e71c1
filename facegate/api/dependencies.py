import logging
import threading
from typing import Optional

from fastapi import HTTPException

from facegate.core.config import settings
from facegate.services.verification_system.face_verification.face_client import BiometricClient
from facegate.services.verification_system.face_verification.face_verification_schema import ErrorResponse

logger = logging.getLogger(__name__)

# Shared client, built once on first use
_biometric_client: Optional[BiometricClient] = None
_client_lock = threading.Lock()

def get_biometric_client() -> BiometricClient:
    """Dependency to get the configured face client"""
    global _biometric_client
    if _biometric_client is None:
        with _client_lock:
            if _biometric_client is None:
                try:
                    # Published only once fully configured
                    _biometric_client = BiometricClient.from_settings(settings)
                except ValueError as e:
                    logger.error(f"Face client could not be configured: {str(e)}")
                    error = ErrorResponse(status_code=500, detail=str(e), kind="configuration_error")
                    raise HTTPException(status_code=error.status_code, detail=error.model_dump())
    return _biometric_client
