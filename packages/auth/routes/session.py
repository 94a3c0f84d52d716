from fastapi import APIRouter, Depends

from packages.auth.dependencies import get_bearer_token, get_sso_auth_service
from packages.auth.services.sso_auth_service import SSOAuthService
from packages.users.models.schemas.user import UserResponse
from common.core.otel_axiom_exporter import trace_span

router = APIRouter()


@router.post("/session", response_model=UserResponse)
@trace_span
async def create_session(
    token: str = Depends(get_bearer_token),
    sso_auth_service: SSOAuthService = Depends(get_sso_auth_service),
):
    """
    Sign-in callback.

    Verifies the Google ID token, creates the user on first sign-in and
    records the login.
    """
    user = await sso_auth_service.sign_in(token)
    return UserResponse.from_user(user)
