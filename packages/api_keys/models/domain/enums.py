from enum import Enum


class ApiKeyType(str, Enum):
    """Environment an API key is meant for."""

    DEV = "dev"
    PROD = "prod"
