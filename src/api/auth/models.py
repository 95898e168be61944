from typing import Optional

from pydantic import BaseModel

from src.config.constants import UserRole


class DecodedToken(BaseModel):
    """Claims of a verified Firebase ID token."""

    iss: Optional[str] = None
    aud: Optional[str] = None
    auth_time: Optional[int] = None
    user_id: Optional[str] = None
    sub: Optional[str] = None
    iat: Optional[int] = None
    exp: Optional[int] = None
    email: Optional[str] = None
    email_verified: Optional[bool] = None
    phone_number: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    firebase: dict = {}
    uid: str
    role: Optional[UserRole] = None
