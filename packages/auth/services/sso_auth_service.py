from fastapi import HTTPException, status

from packages.auth.providers.models import SSOProvider
from packages.auth.providers.factory import get_sso_provider
from packages.users.services.user_service import UserService
from packages.users.models.domain.user import User
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from common.core.otel_axiom_exporter import trace_span, get_logger


logger = get_logger(__name__)


class SSOAuthService:
    """Unified service for handling SSO authentication with any provider"""

    def __init__(self, provider: SSOProvider):
        self.user_service = UserService()

        # Get singleton provider instance from factory
        self.sso_provider = get_sso_provider(provider)

    @trace_span
    async def authenticate_user_from_token(self, token: str) -> AuthenticatedUser:
        """Resolve a provider token to the local user, creating it on first sight."""
        if not await self.sso_provider.validate_token(token):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid {self.sso_provider.get_provider_name().value} token",
            )

        sso_user_info = await self.sso_provider.get_user_info(token)
        user = await self.user_service.get_by_sso(
            sso_user_info.provider.value, sso_user_info.provider_user_id
        )

        if not user:
            logger.info("Creating new user")
            user = await self.user_service.create_or_update_from_sso(sso_user_info)

        return AuthenticatedUser(user_id=user.id, email=user.email)

    @trace_span
    async def sign_in(self, token: str) -> User:
        """
        Sign-in callback: verify the token and upsert the user with login
        bookkeeping.

        A failure to persist is logged and does not reject the sign-in; the
        caller gets the stored record when one exists.
        """
        sso_user_info = await self.sso_provider.get_user_info(token)

        try:
            return await self.user_service.create_or_update_from_sso(sso_user_info)
        except Exception as e:
            logger.error(
                f"Failed to record sign-in for {sso_user_info.email}: {e}",
                extra={"email": sso_user_info.email, "error": str(e)},
            )

        user = await self.user_service.get_by_sso(
            sso_user_info.provider.value, sso_user_info.provider_user_id
        )
        if not user:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Signed in, but the account could not be saved. Please retry.",
            )
        return user
