import hashlib
import secrets

from common.core.constants import API_KEY_PREFIX


def generate_api_key() -> str:
    """Generate a secure random API key."""
    # Format: sk_<24 random bytes as hex>
    return f"{API_KEY_PREFIX}{secrets.token_hex(24)}"


def hash_api_key(api_key: str) -> str:
    """Hash an API key for storage and lookup."""
    return hashlib.sha256(api_key.encode()).hexdigest()


def api_key_hint(api_key: str) -> str:
    """Masked form of a key that is safe to show in listings."""
    return f"{API_KEY_PREFIX}...{api_key[-4:]}"
