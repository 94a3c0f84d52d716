# Fixtures shared by unit tests
import pytest
from unittest.mock import AsyncMock

from common.providers.ai.interface import AIProviderInterface


@pytest.fixture
def mock_ai_provider():
    """AI provider returning a fixed structured summary."""
    provider = AsyncMock(spec=AIProviderInterface)
    provider.generate_structured.return_value = {
        "summary": "A tiny HTTP library.",
        "cool-facts": ["Zero dependencies", "Ships type hints"],
    }
    return provider
