import json
import time
import jwt
from jwt.algorithms import RSAAlgorithm
import httpx
from typing import Any, Dict, Optional
from fastapi import HTTPException, status

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.core.config import settings
from packages.auth.providers.interface import SSOProviderInterface
from packages.auth.providers.models import (
    GoogleIdTokenClaims,
    SSOUserInfo,
    SSOProvider,
)

logger = get_logger(__name__)

GOOGLE_ISSUERS = ["accounts.google.com", "https://accounts.google.com"]
JWKS_CACHE_SECONDS = 3600


class GoogleAuthProvider(SSOProviderInterface):
    """Verifies Google ID tokens (RS256) against Google's published keys."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        jwks_uri: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id or settings.google_client_id

        self.jwks_uri = jwks_uri or settings.google_jwks_uri
        self._http_client = http_client
        self._jwks: Optional[Dict[str, Any]] = None
        self._jwks_fetched_at = 0.0

    @trace_span
    async def validate_token(self, token: str) -> bool:
        try:
            await self._verify_token(token)
            return True
        except HTTPException as e:
            if e.status_code != status.HTTP_401_UNAUTHORIZED:
                raise
            logger.info(f"Token validation failed: {e.detail}")
            return False

    @trace_span
    async def get_user_info(self, token: str) -> SSOUserInfo:
        """Verify the token and map its claims onto SSOUserInfo."""
        claims = GoogleIdTokenClaims.model_validate(await self._verify_token(token))

        return SSOUserInfo(
            email=claims.email,
            full_name=claims.name or claims.email.split("@")[0],
            picture=claims.picture,
            provider=SSOProvider.GOOGLE,
            provider_user_id=claims.sub,
        )

    def get_provider_name(self) -> SSOProvider:
        return SSOProvider.GOOGLE

    @trace_span
    async def _verify_token(self, token: str) -> Dict[str, Any]:
        """Verify signature, audience, issuer and expiry."""
        if not self.client_id:
            logger.error("google_client_id is not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Google sign-in is not configured",
            )

        try:
            kid = jwt.get_unverified_header(token).get("kid")
            if not kid:
                raise jwt.InvalidTokenError("Token header missing 'kid'")

            signing_key = await self._get_signing_key(kid)

            return jwt.decode(
                token,
                signing_key,
                algorithms=["RS256"],
                audience=self.client_id,
                issuer=GOOGLE_ISSUERS,
                options={"require": ["exp", "iat", "sub", "email"]},
            )

        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
            )
        except jwt.InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid Google token: {str(e)}",
            )

    @trace_span
    async def _fetch_jwks(self) -> Dict[str, Any]:
        try:
            if self._http_client:
                response = await self._http_client.get(self.jwks_uri)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.get(self.jwks_uri)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch Google JWKS: {e!r}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Unable to verify token right now",
            )

    @trace_span
    async def _get_signing_key(self, kid: str):
        """Signing key for kid; refreshes the cached JWKS when stale or the kid is unknown."""
        stale = time.monotonic() - self._jwks_fetched_at > JWKS_CACHE_SECONDS

        for attempt in range(2):
            if self._jwks is None or stale or attempt == 1:
                self._jwks = await self._fetch_jwks()
                self._jwks_fetched_at = time.monotonic()
                stale = False

            for key in self._jwks.get("keys", []):
                if key.get("kid") == kid:
                    return RSAAlgorithm.from_jwk(json.dumps(key))

        raise jwt.InvalidTokenError(f"Unable to find appropriate key for kid: {kid}")
