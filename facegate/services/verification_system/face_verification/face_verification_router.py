import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from facegate.api.dependencies import get_biometric_client
from facegate.core.config import settings
from facegate.models.models import FaceSample
from facegate.services.verification_system.face_verification.face_client import BiometricClient
from facegate.services.verification_system.face_verification.face_client_error import ErrorKind, FaceClientError
from facegate.services.verification_system.face_verification.face_verification_schema import (
    CompareResponse,
    ErrorResponse,
    LoginResponse,
    RegisterResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/face",
    tags=["face-login"],
    responses={
        404: {"model": ErrorResponse, "description": "No enrolled face matched"},
        400: {"model": ErrorResponse, "description": "Bad request"},
        422: {"model": ErrorResponse, "description": "Rejected by the face service"},
        502: {"model": ErrorResponse, "description": "Invalid reply from the face service"},
        503: {"model": ErrorResponse, "description": "Face service unreachable"},
    }
)

# Constants for file validation
ALLOWED_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/bmp"]

STATUS_BY_KIND = {
    ErrorKind.NO_MATCH: 404,
    ErrorKind.REMOTE_SERVICE: 422,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.TRANSPORT: 503,
}

def to_http_exception(error: FaceClientError) -> HTTPException:
    """Translate a face client failure into an HTTP error response"""
    response = ErrorResponse(
        status_code=STATUS_BY_KIND.get(error.kind, 500),
        detail=error.message,
        kind=error.kind.value,
    )
    return HTTPException(status_code=response.status_code, detail=response.model_dump())

def validate_file_upload(file: UploadFile, file_name: str) -> None:
    """Validate uploaded file type"""
    if not file.content_type or not file.content_type.startswith('image/'):
        raise HTTPException(status_code=400, detail=f"{file_name} must be an image file")

    if file.content_type not in ALLOWED_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"{file_name} must be one of: {', '.join(ALLOWED_TYPES)}"
        )

async def read_face_sample(file: UploadFile, file_name: str) -> FaceSample:
    """Validate an uploaded image and wrap it as a BASE64 face sample"""
    validate_file_upload(file, file_name)
    data = await file.read()

    if not data:
        raise HTTPException(status_code=400, detail=f"{file_name} is empty")
    if len(data) > settings.max_upload_size:
        raise HTTPException(
            status_code=413,
            detail=f"{file_name} is too large. Maximum size is {settings.max_upload_size // (1024*1024)}MB"
        )
    return FaceSample.from_bytes(data)

@router.post("/login",
    response_model=LoginResponse,
    summary="Log in with a face image",
    description="Search the gallery for the face and accept it if the best match reaches the threshold"
)
async def login(
    image: UploadFile = File(..., description="Face image of the user logging in"),
    group_id: Optional[str] = Form(None),
    threshold: Optional[float] = Form(None),
    client: BiometricClient = Depends(get_biometric_client),
) -> LoginResponse:
    sample = await read_face_sample(image, "Image")
    group = group_id or settings.face_group_id
    limit = client.default_threshold if threshold is None else threshold

    try:
        candidate = await run_in_threadpool(client.search, sample, group)
        authenticated = client.verify(candidate, limit)
    except FaceClientError as e:
        logger.warning(f"Face login failed: {e.message}")
        raise to_http_exception(e)

    if authenticated:
        message = f"Welcome back, user {candidate.user_id}"
    else:
        message = f"Face not recognised with enough confidence (score: {candidate.score:.2f})"
    logger.info(f"Face login for {candidate.user_id}: authenticated={authenticated}, score={candidate.score:.2f}")

    return LoginResponse(
        authenticated=authenticated,
        user_id=candidate.user_id,
        score=candidate.score,
        threshold=limit,
        message=message,
    )

@router.post("/register",
    response_model=RegisterResponse,
    summary="Register a face",
    description="Add a face image to the gallery under the given user id"
)
async def register(
    image: UploadFile = File(..., description="Face image to enroll"),
    user_id: int = Form(...),
    group_id: Optional[str] = Form(None),
    client: BiometricClient = Depends(get_biometric_client),
) -> RegisterResponse:
    sample = await read_face_sample(image, "Image")
    group = group_id or settings.face_group_id

    try:
        face_token = await run_in_threadpool(client.enroll, user_id, sample, group)
    except FaceClientError as e:
        logger.warning(f"Face registration failed for user {user_id}: {e.message}")
        raise to_http_exception(e)

    return RegisterResponse(
        user_id=user_id,
        group_id=group,
        face_token=face_token,
        message="Face registered successfully",
    )

@router.post("/compare",
    response_model=CompareResponse,
    summary="Compare two face images",
    description="Compare two face images to check if they belong to the same person"
)
async def compare_face_images(
    image1: UploadFile = File(..., description="First image for comparison"),
    image2: UploadFile = File(..., description="Second image for comparison"),
    threshold: Optional[float] = Form(None),
    client: BiometricClient = Depends(get_biometric_client),
) -> CompareResponse:
    sample1 = await read_face_sample(image1, "First image")
    sample2 = await read_face_sample(image2, "Second image")
    limit = client.default_threshold if threshold is None else threshold

    try:
        score = await run_in_threadpool(client.compare, sample1, sample2)
        is_match = client.verify({"score": score}, limit)
    except FaceClientError as e:
        logger.warning(f"Face comparison failed: {e.message}")
        raise to_http_exception(e)

    message = f"Faces match (score: {score:.2f})" if is_match else f"Faces do not match (score: {score:.2f})"
    logger.info(f"Face comparison completed. Match: {is_match}, Score: {score:.2f}")

    return CompareResponse(is_match=is_match, score=score, threshold=limit, message=message)
