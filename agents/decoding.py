"""Best-effort structured decoding of Oracle completions.

Completions arrive as strict JSON, JSON inside markdown fences, or JSON buried
in prose. ``decode_structured`` walks a fixed ladder and raises
``MalformedOracleOutputError`` once every rung has failed:

1. strict ``json.loads`` of the stripped text
2. the body of each fenced block, first to last
3. balanced ``{...}`` / ``[...]`` spans, largest first
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterable, List, Sequence, Tuple

from errors import MalformedOracleOutputError

_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?(.*?)```", re.DOTALL)
WRAPPER_KEYS: Tuple[str, ...] = ("data", "result", "response", "output", "payload")


def strip_fences(text: str) -> List[str]:
    """Return the bodies of fenced code blocks in order of appearance."""

    return [match.group(1).strip() for match in _FENCE_RE.finditer(text)]


def _balanced_spans(text: str) -> List[Tuple[int, int]]:
    spans: List[Tuple[int, int]] = []
    pairs = {"{": "}", "[": "]"}
    for start, char in enumerate(text):
        if char not in pairs:
            continue
        stack = [pairs[char]]
        in_string = False
        escaped = False
        for index in range(start + 1, len(text)):
            current = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif current == "\\":
                    escaped = True
                elif current == '"':
                    in_string = False
                continue
            if current == '"':
                in_string = True
            elif current in pairs:
                stack.append(pairs[current])
            elif current in ("}", "]"):
                if current != stack[-1]:
                    break
                stack.pop()
                if not stack:
                    spans.append((start, index + 1))
                    break
    spans.sort(key=lambda span: span[1] - span[0], reverse=True)
    return spans


def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return False, None


def decode_structured(raw: str) -> Any:
    """Decode a JSON value from ``raw`` following the fallback ladder."""

    if not isinstance(raw, str) or not raw.strip():
        raise MalformedOracleOutputError("empty completion")
    text = raw.strip()

    ok, value = _try_json(text)
    if ok:
        return value

    for body in strip_fences(text):
        ok, value = _try_json(body)
        if ok:
            return value

    for start, end in _balanced_spans(text):
        ok, value = _try_json(text[start:end])
        if ok:
            return value

    raise MalformedOracleOutputError("no JSON value found in completion")


def unwrap(payload: Any, keys: Sequence[str] = WRAPPER_KEYS, *, want: type = dict) -> Any:
    """Peel wrapper objects and one-element lists until a ``want`` value shows up."""

    current = payload
    for _ in range(4):
        if isinstance(current, want) and not _is_wrapper(current, keys):
            return current
        if isinstance(current, list) and len(current) == 1:
            current = current[0]
            continue
        if isinstance(current, dict):
            inner = _wrapped_value(current, keys)
            if inner is not None:
                current = inner
                continue
        break
    if isinstance(current, want):
        return current
    raise MalformedOracleOutputError(f"expected {want.__name__} payload, got {type(current).__name__}")


def _is_wrapper(value: Any, keys: Iterable[str]) -> bool:
    return isinstance(value, dict) and len(value) == 1 and _wrapped_value(value, keys) is not None


def _wrapped_value(value: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        inner = value.get(key)
        if isinstance(inner, (dict, list)):
            return inner
    return None


def pick(payload: dict, *names: str, default: Any = None) -> Any:
    """Read the first present key, tolerating camelCase and snake_case spellings."""

    for name in names:
        if name in payload:
            return payload[name]
    return default


__all__ = ["decode_structured", "pick", "strip_fences", "unwrap", "WRAPPER_KEYS"]
