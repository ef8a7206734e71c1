import base64
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

class ImageType(str, Enum):
    """Image encodings understood by the remote face service"""
    BASE64 = "BASE64"
    URL = "URL"
    FACE_TOKEN = "FACE_TOKEN"

class FaceSample(BaseModel):
    """An encoded face image for a single request"""
    model_config = ConfigDict(frozen=True)

    image: str
    image_type: ImageType = ImageType.BASE64

    @field_validator("image")
    @classmethod
    def image_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("image payload must not be empty")
        return value

    @classmethod
    def from_bytes(cls, data: bytes) -> "FaceSample":
        """Build a BASE64 sample from raw image bytes"""
        return cls(image=base64.b64encode(data).decode("utf-8"), image_type=ImageType.BASE64)

    @classmethod
    def from_url(cls, url: str) -> "FaceSample":
        return cls(image=url, image_type=ImageType.URL)

    @classmethod
    def from_face_token(cls, face_token: str) -> "FaceSample":
        return cls(image=face_token, image_type=ImageType.FACE_TOKEN)

class MatchCandidate(BaseModel):
    """Best gallery hit returned by a face search"""
    user_id: str
    score: float
    face_token: Optional[str] = None
    group_id: Optional[str] = None
    user_info: Optional[str] = None
