"""LLM service talking to the Hugging Face inference router.

The router exposes an OpenAI-compatible API, so every model is reached
through the ``openai`` async client pointed at ``HF_BASE_URL``.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog
from openai import AsyncOpenAI

from ..config import Settings
from ..domain.depth import DepthProfile
from ..domain.models import Usage
from ..prompts import chat_system_prompt

logger = structlog.get_logger()

MISSING_TOKEN_RESPONSE = (
    "Error: Hugging Face Access Token is missing. Please check your .env file."
)
EMPTY_RESPONSE = (
    "I apologize, but I received an empty response from the AI model. Please try again."
)


class LLMUnavailableError(Exception):
    """Raised when no inference credentials are configured."""


class LLMService:
    """Chat completions over the Hugging Face router."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        """Initialize the LLM service.

        The client is only created when an access token is configured; calls
        made without one fail with a readable message instead.
        """
        self.model = settings.hf_model
        if client is None and settings.hf_api_key:
            client = AsyncOpenAI(base_url=settings.hf_base_url, api_key=settings.hf_api_key)
        self.client = client
        logger.info("llm_service_init", model=self.model, configured=self.client is not None)

    async def generate_response(self, history: List[Dict[str, str]], depth: DepthProfile) -> str:
        """Stream a reply to the conversation history.

        Never raises: provider failures are turned into a message shown to
        the user in place of the answer.
        """
        if self.client is None:
            logger.error("hf_api_key_missing")
            return MISSING_TOKEN_RESPONSE

        logger.info("generation_started", model=self.model, history_length=len(history), depth=depth.label)
        messages = [{"role": "system", "content": chat_system_prompt(depth.instruction)}, *history]
        out = ""
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=depth.max_tokens,
                temperature=0.7,
                stream=True,
            )
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta and chunk.choices[0].delta.content:
                    out += chunk.choices[0].delta.content
        except Exception as e:
            logger.error("llm_api_error", model=self.model, error=str(e))
            return f"Error calling AI Model: {e}. Please check your API key and connection."

        logger.info("generation_complete", response_length=len(out))
        if not out:
            logger.warning("llm_empty_response", model=self.model)
            return EMPTY_RESPONSE
        return out

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
        **kwargs: Any,
    ) -> Tuple[str, Usage]:
        """Run a non-streamed completion and return its text with normalized usage."""
        if self.client is None:
            raise LLMUnavailableError("Hugging Face access token is not configured")

        completion = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )
        content = ""
        if completion.choices and completion.choices[0].message:
            content = completion.choices[0].message.content or ""
        return content, Usage.from_provider(getattr(completion, "usage", None))
