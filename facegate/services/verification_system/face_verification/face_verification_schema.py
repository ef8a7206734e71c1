from typing import Optional

from pydantic import BaseModel

class ErrorResponse(BaseModel):
    status_code: int
    detail: str
    kind: Optional[str] = None

class LoginResponse(BaseModel):
    authenticated: bool
    user_id: str
    score: float
    threshold: float
    message: str

class RegisterResponse(BaseModel):
    user_id: int
    group_id: str
    face_token: str
    message: str

class CompareResponse(BaseModel):
    is_match: bool
    score: float
    threshold: float
    message: str
