from typing import Optional
from .interface import AIProviderInterface
from .openai_provider import OpenAIProvider


def get_ai_provider(model_name: Optional[str] = None) -> AIProviderInterface:
    """
    Get AI provider instance.

    Raises ValueError when the provider's credentials are not configured.
    """
    return OpenAIProvider(model_name=model_name)
