"""Factory for singleton SSO provider instances."""

from typing import Dict, Optional
from packages.auth.providers.interface import SSOProviderInterface
from packages.auth.providers.models import SSOProvider
from packages.auth.providers.google_provider import GoogleAuthProvider


class SSOProviderFactory:
    """Creates and caches one provider instance per SSO provider."""

    _instances: Dict[SSOProvider, SSOProviderInterface] = {}

    @classmethod
    def get_provider(cls, provider: SSOProvider) -> SSOProviderInterface:
        if provider not in cls._instances:
            cls._instances[provider] = cls._create_provider(provider)

        return cls._instances[provider]

    @classmethod
    def _create_provider(cls, provider: SSOProvider) -> SSOProviderInterface:
        if provider == SSOProvider.GOOGLE:
            return GoogleAuthProvider()
        raise ValueError(f"Unsupported SSO provider: {provider}. Supported: GOOGLE.")

    @classmethod
    def clear_cache(cls, provider: Optional[SSOProvider] = None):
        """Clear cached provider instances.

        Args:
            provider: Specific provider to clear, or None to clear all
        """
        if provider:
            cls._instances.pop(provider, None)
        else:
            cls._instances.clear()


def get_sso_provider(provider: SSOProvider) -> SSOProviderInterface:
    return SSOProviderFactory.get_provider(provider)
