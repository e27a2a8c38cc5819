"""Pull a JSON object or array out of free-form model output."""

import json
import logging
from typing import Any, Optional

from dresscheck.errors import AIResponseInvalid

logger = logging.getLogger(__name__)

_OPENERS = {"{": "}", "[": "]"}


def _strip_fences(text: str) -> str:
    if "```json" in text:
        return text.split("```json", 1)[1].split("```", 1)[0]
    if "```" in text:
        parts = text.split("```")
        if len(parts) >= 3:
            return parts[1]
    return text


def find_balanced(text: str, start: int) -> Optional[str]:
    """Return the balanced bracket block starting at ``text[start]``.

    String literals are honoured, so braces inside quoted values do not
    count towards the nesting depth.
    """
    stack = []
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
        elif char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in ("}", "]"):
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return text[start : index + 1]
    return None


def extract_json(text: Optional[str], expect: Optional[type] = None) -> Any:
    """Parse the first balanced ``{...}`` or ``[...]`` block in ``text``.

    Args:
        text: Raw model reply, possibly wrapped in prose or code fences
        expect: ``dict`` or ``list`` to only accept that kind of block

    Raises:
        AIResponseInvalid: if no parseable block of the expected kind exists
    """
    if not text:
        raise AIResponseInvalid("Empty AI response")

    candidates = [_strip_fences(text), text]
    openers = {dict: "{", list: "["}.get(expect, "{[")

    for candidate in candidates:
        for start, char in enumerate(candidate):
            if char not in openers:
                continue
            block = find_balanced(candidate, start)
            if block is None:
                continue
            try:
                value = json.loads(block)
            except json.JSONDecodeError as e:
                logger.debug(f"Skipping unparseable JSON block at {start}: {e}")
                continue
            if expect is None or isinstance(value, expect):
                return value

    raise AIResponseInvalid("No valid JSON found in AI response", raw=text[:500])
