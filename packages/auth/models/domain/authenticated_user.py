from pydantic import BaseModel, ConfigDict, EmailStr


class AuthenticatedUser(BaseModel):
    """User context passed through authentication dependencies"""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    email: EmailStr
