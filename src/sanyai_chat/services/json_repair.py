"""Tolerant parsing of JSON objects embedded in model output."""

import json
import re
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()

_FENCE_PATTERN = re.compile(r"```(?:json)?")
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def parse_json_object(raw: str) -> Optional[Dict[str, Any]]:
    """Extract a JSON object from raw model output.

    Tries, in order: the raw text, the text with Markdown code fences
    removed, and the widest ``{...}`` span found in the text. Returns None
    when none of them decodes to an object.
    """
    result = _load_object(raw)
    if result is not None:
        return result

    result = _load_object(_FENCE_PATTERN.sub("", raw).strip())
    if result is not None:
        return result

    match = _OBJECT_PATTERN.search(raw)
    if match:
        result = _load_object(match.group(0))
        if result is not None:
            return result

    logger.warning("json_object_not_found", raw_length=len(raw))
    return None
