import json

import httpx
import openai
import pytest
from unittest.mock import AsyncMock, MagicMock

from common.core.exceptions import ExternalServiceError
from common.providers.ai.openai_provider import OpenAIProvider


def _completion(content: str):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


def test_requires_api_key(monkeypatch):
    monkeypatch.setattr(
        "common.providers.ai.openai_provider.settings.openai_api_key", None
    )

    with pytest.raises(ValueError, match="not configured"):
        OpenAIProvider()


@pytest.mark.asyncio
class TestGenerateStructured:
    async def test_returns_parsed_json(self, openai_client):
        openai_client.chat.completions.create.return_value = _completion(
            json.dumps({"summary": "s", "cool-facts": ["f"]})
        )
        provider = OpenAIProvider(model_name="gpt-test", client=openai_client)

        result = await provider.generate_structured(
            system_prompt="system",
            user_message="user",
            schema_name="repository_summary",
            json_schema={"type": "object"},
        )

        assert result == {"summary": "s", "cool-facts": ["f"]}
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["temperature"] == 0.0
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["response_format"]["json_schema"]["strict"] is True

    async def test_api_error(self, openai_client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        openai_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=request
        )
        provider = OpenAIProvider(client=openai_client)

        with pytest.raises(ExternalServiceError):
            await provider.generate_structured("s", "u", "n", {"type": "object"})

    async def test_malformed_json(self, openai_client):
        openai_client.chat.completions.create.return_value = _completion("not json")
        provider = OpenAIProvider(client=openai_client)

        with pytest.raises(ExternalServiceError, match="malformed"):
            await provider.generate_structured("s", "u", "n", {"type": "object"})
