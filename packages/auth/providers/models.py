from typing import Optional
from enum import Enum
from pydantic import BaseModel, EmailStr


class SSOProvider(str, Enum):
    """Supported SSO providers"""

    GOOGLE = "google"


class SSOUserInfo(BaseModel):
    """Standardized user info from SSO providers"""

    email: EmailStr
    full_name: Optional[str] = None
    picture: Optional[str] = None
    provider: SSOProvider
    provider_user_id: str  # Provider's unique user ID


class GoogleIdTokenClaims(BaseModel):
    """Google ID token claims"""

    sub: str  # Subject (user ID)
    email: EmailStr
    email_verified: bool = False
    name: Optional[str] = None
    picture: Optional[str] = None
    iss: str  # Issuer
    aud: str  # Audience
    exp: int  # Expiration time
    iat: int  # Issued at time
