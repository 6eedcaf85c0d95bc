"""
app/services/llm_service.py

Purpose: Chat completion access

- Wraps the OpenAI async client
- Normalizes completions to (content, tokens used, model)
- Maps SDK failures to LLMServiceError
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.core.exceptions import LLMServiceError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Completion:
    content: str
    tokens_used: int
    model: str


class LLMService:
    """
    Service class for chat completions.
    Callers pass either a full message list or a single user prompt.
    """

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self._client = AsyncOpenAI(
            api_key=api_key or settings.OPENAI_API_KEY or "missing-key",
            timeout=timeout or settings.OPENAI_TIMEOUT,
            max_retries=0,
        )

    async def complete(
        self,
        messages: Optional[List[Dict[str, str]]] = None,
        prompt: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 400,
        temperature: float = 0.7
    ) -> Completion:
        """
        Runs one chat completion.

        Args:
            messages: Chat messages ({"role", "content"})
            prompt: Shorthand for a single user message
            model: Model name (defaults to the chat model)
            max_tokens: Completion budget
            temperature: Sampling temperature

        Returns:
            Completion with stripped content and total token usage

        Raises:
            LLMServiceError: On API failure or an empty completion
        """
        if messages is None:
            if prompt is None:
                raise ValueError("Either messages or prompt is required")
            messages = [{"role": "user", "content": prompt}]

        model = model or settings.OPENAI_CHAT_MODEL
        logger.info(f"Calling OpenAI with model: {model}", extra={"model": model})

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}", extra={"model": model})
            raise LLMServiceError("Language model request failed", details=str(e)) from e

        if not response.choices:
            raise LLMServiceError("Language model returned no choices", details=model)

        content = (response.choices[0].message.content or "").strip()
        tokens_used = response.usage.total_tokens if response.usage else 0

        logger.info(
            f"OpenAI usage: model={model}, tokens={tokens_used}, content length: {len(content)}",
            extra={"model": model}
        )
        return Completion(content=content, tokens_used=tokens_used, model=model)

    async def close(self):
        await self._client.close()


# Global LLM service instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get or create the global LLM service instance."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service


async def close_llm_service():
    """Close LLM service and cleanup resources."""
    global _llm_service
    if _llm_service:
        await _llm_service.close()
        _llm_service = None
