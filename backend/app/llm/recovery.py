"""Recover JSON values from generative-model text.

Model output is frequently correct-but-decorated (markdown fences, trailing
prose) or correct-but-truncated (the completion hit the token ceiling). The
repair cascade below is ordered least-destructive first:

1. direct parse of the fence-stripped text
2. object text: cut at the offset where brace depth first returns to zero
3. object with a known array key left open: keep the balanced elements of that
   array and close the array and the object
4. object whose array key is absent or null: keep only the reply text
5. array text: keep the balanced top-level elements and close the array

Scanning is string-aware: braces inside JSON string literals are ignored.
"""

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from backend.app.errors import JsonRecoveryError
from backend.app.utils.metrics import llm_json_recovery_total

logger = logging.getLogger(__name__)

FENCE = "```"
REPLY_KEY = "response"
PREFERENCE_KEY = "newPreference"


def strip_code_fence(text: str) -> str:
    """Remove one leading/trailing markdown code fence if present.

    Everything up to the first newline (the opening fence and its language tag)
    and everything from the last fence marker on is dropped.
    """
    stripped = text.strip()
    if not stripped.startswith(FENCE):
        return stripped

    first_newline = stripped.find("\n")
    if first_newline > 0:
        stripped = stripped[first_newline + 1 :]

    last_fence = stripped.rfind(FENCE)
    if last_fence > 0:
        stripped = stripped[:last_fence]

    return stripped.strip()


def _structural_chars(text: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield (offset, char) for every char outside JSON string literals."""
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            continue
        yield i, ch


def _first_balanced_object_end(text: str) -> int | None:
    """Offset of the brace that first brings object depth back to zero."""
    depth = 0
    for i, ch in _structural_chars(text):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _element_end_offsets(text: str, array_start: int) -> list[int]:
    """Offsets where a complete element of the array opened at array_start ends.

    Only container elements (objects/arrays) register. Scanning stops when the
    array itself closes or the depth goes negative (garbage).
    """
    offsets: list[int] = []
    depth = 0
    for i, ch in _structural_chars(text, array_start + 1):
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth < 0:
                break
            if depth == 0:
                offsets.append(i)
    return offsets


def _parse_longest_prefix(text: str, offsets: list[int], closing: str) -> Any | None:
    """Try text[:offset+1] + closing for each offset, longest first."""
    for end in reversed(offsets):
        candidate = text[: end + 1] + closing
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def _record(strategy: str) -> None:
    llm_json_recovery_total.labels(strategy=strategy).inc()
    if strategy != "direct":
        logger.warning(f"Recovered model JSON via '{strategy}' repair")


def _recover_object(text: str, array_key: str | None) -> Any | None:
    end = _first_balanced_object_end(text)
    if end is not None:
        try:
            value = json.loads(text[: end + 1])
            _record("object_balance")
            return value
        except json.JSONDecodeError:
            pass

    if array_key is None:
        return None

    opened = re.search(rf'"{re.escape(array_key)}"\s*:\s*\[', text)
    if opened is not None:
        array_start = opened.end() - 1
        offsets = _element_end_offsets(text, array_start)
        value = _parse_longest_prefix(text, offsets, "]}")
        if value is not None:
            _record("array_key_truncation")
            return value

    key_missing = f'"{array_key}"' not in text
    key_null = re.search(rf'"{re.escape(array_key)}"\s*:\s*null', text) is not None
    if key_missing or key_null:
        reply = _extract_reply(text)
        if reply is not None:
            _record("reply_only")
            return {REPLY_KEY: reply, array_key: None, PREFERENCE_KEY: None}

    return None


def _extract_reply(text: str) -> str | None:
    match = re.search(rf'"{REPLY_KEY}"\s*:\s*"((?:[^"\\]|\\.)*)"', text, re.DOTALL)
    if match is None:
        return None
    raw = match.group(1)
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw.replace('\\"', '"').replace("\\n", "\n")


def _recover_array(text: str) -> Any | None:
    offsets = _element_end_offsets(text, 0)
    value = _parse_longest_prefix(text, offsets, "]")
    if value is not None:
        _record("array_truncation")
    return value


def recover_json(
    text: str,
    *,
    array_key: str | None = None,
    expect: type | None = None,
) -> Any:
    """Extract a JSON value from model text, repairing it if needed.

    Args:
        text: Full text of the model turn
        array_key: Array-valued key of the expected object that may be left
            open by truncation (enables the array-key and reply-only repairs)
        expect: Required top-level type (dict or list); anything else fails

    Returns:
        Parsed JSON value

    Raises:
        JsonRecoveryError: If every strategy fails or the value has the wrong shape
    """
    body = strip_code_fence(text)

    value: Any | None
    try:
        value = json.loads(body)
        _record("direct")
    except json.JSONDecodeError as e:
        logger.info(f"Direct JSON parse failed ({e}); trying repairs")
        value = None
        if body.startswith("{"):
            value = _recover_object(body, array_key)
        elif body.startswith("["):
            value = _recover_array(body)

    if value is None or (expect is not None and not isinstance(value, expect)):
        logger.error(f"All JSON recovery strategies failed (raw length {len(text)})")
        raise JsonRecoveryError(text)

    return value
