"""
LLM Service
Chat completions through LiteLLM so any provider/model string works
"""

from typing import Dict, List, Optional
import logging

from litellm import acompletion

from docshelf.config import settings
from docshelf.core.exceptions import LLMServiceError
from docshelf.utils.retry import retry_on_llm_error

logger = logging.getLogger(__name__)


class LLMService:
    """Thin async client over litellm.acompletion"""

    def __init__(self, model: str = None, api_key: str = None, api_base: str = None, timeout: int = None):
        self.model = model or settings.LLM_MODEL
        self.api_key = api_key or settings.LLM_API_KEY or None
        self.api_base = api_base or settings.LLM_API_BASE or None
        self.timeout = timeout or settings.LLM_TIMEOUT

    @retry_on_llm_error()
    async def _acomplete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int):
        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        return await acompletion(**kwargs)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Run a chat completion and return the assistant text

        Raises:
            LLMServiceError: provider failed after retries or returned nothing
        """
        try:
            response = await self._acomplete(messages, temperature, max_tokens or settings.CHAT_MAX_TOKENS)
        except Exception as e:
            logger.error(f"LLM completion failed ({self.model}): {e}")
            raise LLMServiceError("AI service is temporarily unavailable", details={"model": self.model}) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMServiceError("AI service returned an empty response", details={"model": self.model})
        return content.strip()
