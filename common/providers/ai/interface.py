from abc import ABC, abstractmethod
from typing import Any, Dict


class AIProviderInterface(ABC):
    """Interface for AI providers returning structured (JSON schema) output."""

    @abstractmethod
    async def generate_structured(
        self,
        system_prompt: str,
        user_message: str,
        schema_name: str,
        json_schema: Dict[str, Any],
        temperature: float = 0.0,
    ) -> Dict[str, Any]:
        """
        Send a prompt and get a response that conforms to json_schema.

        Args:
            system_prompt: The system prompt that sets the AI's behavior
            user_message: The user's message
            schema_name: Name of the response schema
            json_schema: JSON schema the response must follow
            temperature: Controls randomness in the response (0.0 to 1.0)

        Returns:
            The parsed JSON object
        """
        pass
