import json
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from .interface import AIProviderInterface
from common.core.config import settings
from common.core.exceptions import ExternalServiceError
from common.core.otel_axiom_exporter import get_logger, trace_span

logger = get_logger(__name__)


class OpenAIProvider(AIProviderInterface):
    """AI provider using the OpenAI chat completions API."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Args:
            model_name: OpenAI model id. If None, uses default from settings.
            api_key: Overrides settings.openai_api_key.
            client: Pre-built client (tests).
        """
        self.model_name = model_name or settings.openai_model
        if client is None:
            api_key = api_key or settings.openai_api_key
            if not api_key:
                raise ValueError("OpenAI API key not configured")
            client = AsyncOpenAI(api_key=api_key)
        self.client = client

    @trace_span
    async def generate_structured(
        self,
        system_prompt: str,
        user_message: str,
        schema_name: str,
        json_schema: Dict[str, Any],
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        logger.info(f"Sending structured request to OpenAI with model: {self.model_name}")

        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "strict": True,
                        "schema": json_schema,
                    },
                },
            )
        except OpenAIError as e:
            logger.error(f"Error sending request to OpenAI: {e}")
            logger.error(f"Request details - Model: {self.model_name}")
            raise ExternalServiceError(f"Failed to get response from OpenAI: {str(e)}")

        content = response.choices[0].message.content
        try:
            return json.loads(content or "")
        except json.JSONDecodeError as e:
            logger.error(f"OpenAI returned invalid JSON: {e}")
            raise ExternalServiceError("OpenAI returned a malformed structured response")
