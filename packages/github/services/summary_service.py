from typing import Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.core.exceptions import ProcessingError
from common.providers.ai.factory import get_ai_provider
from common.providers.ai.interface import AIProviderInterface
from packages.github.models.domain.readme import RepositorySummary

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at analyzing GitHub repositories. "
    "Your task is to summarize repositories based on their README content."
)

USER_PROMPT_TEMPLATE = """Summarize this github repository from *.md main content.

{readme_content}"""

SUMMARY_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {
            "type": "string",
            "description": "A comprehensive summary of the GitHub repository based on the README content",
        },
        "cool-facts": {
            "type": "array",
            "items": {"type": "string"},
            "description": "A list of interesting or noteworthy facts about the repository",
        },
    },
    "required": ["summary", "cool-facts"],
    "additionalProperties": False,
}


class SummaryService:
    """Summarizes READMEs with the configured AI provider."""

    def __init__(self, ai_provider: Optional[AIProviderInterface] = None):
        self._ai_provider = ai_provider

    def _provider(self) -> AIProviderInterface:
        if self._ai_provider is None:
            try:
                self._ai_provider = get_ai_provider()
            except ValueError as e:
                raise ProcessingError(str(e))
        return self._ai_provider

    @trace_span
    async def summarize(self, readme_content: str) -> RepositorySummary:
        result = await self._provider().generate_structured(
            system_prompt=SYSTEM_PROMPT,
            user_message=USER_PROMPT_TEMPLATE.format(readme_content=readme_content),
            schema_name="repository_summary",
            json_schema=SUMMARY_SCHEMA,
            temperature=0,
        )
        logger.info(
            f"Generated summary with {len(result.get('cool-facts', []))} facts"
        )
        return RepositorySummary(
            summary=result.get("summary", ""),
            cool_facts=result.get("cool-facts", []),
        )
