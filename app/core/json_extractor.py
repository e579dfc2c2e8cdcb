"""
JSON extraction from raw model output.

Models wrap their answer in code fences, add a sentence before or after
the object, or both. This module finds the first complete JSON object in
such text with a depth-balanced scan and parses it.
"""

import json
import re
from typing import Any

from app.core.exceptions import (
    IncompleteJSONError,
    InvalidJSONError,
    NoJSONFoundError,
)
from app.utils.logger import get_logger, preview

logger = get_logger("json_extractor")

_LEADING_FENCE = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```\s*$")


def strip_fences(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    stripped = _LEADING_FENCE.sub("", text, count=1)
    return _TRAILING_FENCE.sub("", stripped, count=1)


def find_json_object(text: str) -> str:
    """
    Return the first balanced ``{...}`` substring of ``text``.

    Braces inside string literals are ignored, so values such as
    ``"use {dose} as written"`` do not disturb the depth count.

    Raises:
        NoJSONFoundError: no opening brace exists
        IncompleteJSONError: the first object never closes
    """
    start = text.find("{")
    if start == -1:
        raise NoJSONFoundError("No JSON object found in response.", preview(text))

    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise IncompleteJSONError("Incomplete JSON object in response.", preview(text))


def extract_json_object(text: str) -> Any:
    """
    Strip fences, locate the first JSON object and parse it.

    Args:
        text: Raw model output

    Returns:
        The decoded JSON value (normally a dict)

    Raises:
        JSONExtractionError subclasses on failure; never returns partial data
    """
    candidate = find_json_object(strip_fences(text))

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(
            "JSON parse error",
            error=str(e),
            candidate_length=len(candidate)
        )
        raise InvalidJSONError(
            f"Failed to parse JSON response: {e}.",
            preview(text),
            reason=str(e)
        ) from e
