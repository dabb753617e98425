"""Token counting helpers."""

import math
from typing import Dict, Iterable

import structlog
import tiktoken

logger = structlog.get_logger()

# gpt-4 encoding is a reasonable approximation for the hosted models
DEFAULT_ENCODING_MODEL = "gpt-4"

_encoders: Dict[str, tiktoken.Encoding] = {}


def _get_encoder(model: str) -> tiktoken.Encoding:
    if model not in _encoders:
        _encoders[model] = tiktoken.encoding_for_model(model)
    return _encoders[model]


def count_tokens(text: str, model: str = DEFAULT_ENCODING_MODEL) -> int:
    """Count tokens in text, estimating one token per four characters on failure."""
    if not text:
        return 0
    try:
        return len(_get_encoder(model).encode(text))
    except Exception as e:
        logger.error("token_counting_error", model=model, error=str(e))
        return math.ceil(len(text) / 4)


def count_tokens_in(texts: Iterable[str], model: str = DEFAULT_ENCODING_MODEL) -> int:
    """Sum token counts over several texts."""
    return sum(count_tokens(text, model) for text in texts)
