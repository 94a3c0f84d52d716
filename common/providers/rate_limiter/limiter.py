"""Global rate limiter instance for SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from common.core.config import settings
from common.core.constants import API_KEY_HEADER
from common.core.security import hash_api_key


def get_api_key_or_remote_address(request: Request) -> str:
    """Bucket by API key hash when a key is sent, otherwise by client address."""
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        return f"key:{hash_api_key(api_key)}"
    return get_remote_address(request)


# Redis-backed when configured so limits hold across pods; memory otherwise
# - 10/second: burst guard
# - 300/minute: sustained rate
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["10/second", "300/minute"],
    storage_uri=settings.rate_limit_storage_uri,
)
