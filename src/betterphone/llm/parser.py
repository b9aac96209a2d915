"""
Parsing of JSON-mode model replies.
"""

import json
import re
from typing import Any

from betterphone.llm.models import LLMResponseFormatError

# ```json ... ``` fences some models wrap around JSON replies
_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def parse_json_object(raw: str | None) -> dict[str, Any]:
    """Parse a model reply that should be a single JSON object.

    An empty reply yields an empty dict.

    Raises:
        LLMResponseFormatError: If the reply is not a JSON object.
    """
    if raw is None or not raw.strip():
        return {}

    text = raw
    match = _FENCE_PATTERN.match(text)
    if match:
        text = match.group(1)

    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LLMResponseFormatError(f"Model reply is not valid JSON: {exc.msg}", original_error=exc) from exc

    if not isinstance(value, dict):
        raise LLMResponseFormatError("Model reply is JSON but not an object")
    return value
