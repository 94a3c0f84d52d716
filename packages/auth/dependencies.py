from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status, Header

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.providers.models import SSOProvider
from packages.auth.services.sso_auth_service import SSOAuthService
from packages.users.services.user_service import UserService

logger = get_logger(__name__)


def get_sso_auth_service() -> SSOAuthService:
    """Get SSOAuthService instance."""
    return SSOAuthService(SSOProvider.GOOGLE)


def get_user_service() -> UserService:
    """Get UserService instance."""
    return UserService()


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return authorization.split(" ", 1)[1]


@trace_span
async def get_bearer_token(
    authorization: Annotated[Optional[str], Header()] = None,
) -> str:
    return _bearer_token(authorization)


@trace_span
async def get_current_user(
    authorization: Annotated[Optional[str], Header()] = None,
    sso_auth_service: SSOAuthService = Depends(get_sso_auth_service),
) -> AuthenticatedUser:
    """Get current authenticated user from the Google ID token."""
    token = _bearer_token(authorization)
    return await sso_auth_service.authenticate_user_from_token(token)


@trace_span
async def get_current_active_user(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Get current active user."""
    logger.debug(f"Authenticated user_id={current_user.user_id}")
    return current_user


@trace_span
async def require_api_key(
    x_api_key: Annotated[Optional[str], Header()] = None,
) -> str:
    """The raw X-API-Key header; 401 when absent."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required",
        )
    return x_api_key
