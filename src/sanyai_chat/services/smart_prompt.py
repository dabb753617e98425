"""Smart Prompt: ask a small model to shorten and clarify a draft prompt."""

from typing import Any, Dict

import structlog

from ..prompts import SMART_PROMPT_MODEL, SMART_PROMPT_SYSTEM_PROMPT
from .json_repair import parse_json_object
from .llm import LLMService
from .tokens import count_tokens

logger = structlog.get_logger()

PARSE_ERROR_ISSUE = "Could not analyze prompt structure (JSON Parse Error)"


class SmartPromptService:
    """Prompt analysis and optimization."""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def optimize(self, prompt: str) -> Dict[str, Any]:
        """Return issues found in the prompt and a shorter rewrite with token counts.

        Provider errors propagate to the caller. Output that contains no
        usable JSON keeps the original prompt.
        """
        logger.info("smart_prompt_started", prompt_length=len(prompt))
        raw, _ = await self.llm_service.complete(
            model=SMART_PROMPT_MODEL,
            messages=[
                {"role": "system", "content": SMART_PROMPT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=500,
            temperature=0.3,
            response_format={"type": "json_object"},
        )
        raw = raw or "{}"
        logger.debug("smart_prompt_raw_response", raw=raw)

        result = parse_json_object(raw)
        if result is None:
            logger.error("smart_prompt_parse_error")
            result = {"issues": [PARSE_ERROR_ISSUE], "optimized_prompt": prompt}

        issues = result.get("issues") or []
        if not isinstance(issues, list):
            issues = [str(issues)]
        optimized = result.get("optimized_prompt")
        if not isinstance(optimized, str) or not optimized:
            optimized = prompt

        return {
            "issues": [str(issue) for issue in issues],
            "optimizedPrompt": optimized,
            "originalTokens": count_tokens(prompt),
            "optimizedTokens": count_tokens(optimized),
        }
