from enum import Enum


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


# Header carrying the caller's API key on proxied endpoints
API_KEY_HEADER = "X-API-Key"

# Prefix of every generated API key secret
API_KEY_PREFIX = "sk_"
