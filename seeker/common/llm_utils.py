"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class LLMReply:
    """Outcome of parsing a model reply.

    ``ok`` is False when the reply had no usable JSON and ``data`` holds the
    caller's fallback value instead.
    """
    ok: bool
    data: Any
    raw: str = ""


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def _loads_between(raw: str, open_char: str, close_char: str) -> Optional[Any]:
    start = raw.find(open_char)
    end = raw.rfind(close_char) + 1
    if start >= 0 and end > start:
        try:
            return json.loads(raw[start:end])
        except json.JSONDecodeError:
            return None
    return None


def parse_llm_json(raw: str) -> dict:
    """Parse JSON from an LLM response, handling code fences and preamble text.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Extract substring between first '{' and last '}', then json.loads
    3. Return empty dict
    """
    if not raw:
        return {}

    try:
        data = json.loads(_strip_fences(raw))
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    data = _loads_between(raw, "{", "}")
    if isinstance(data, dict):
        return data

    return {}


def parse_llm_list(raw: str) -> list:
    """Like parse_llm_json, but for a top-level JSON array."""
    if not raw:
        return []

    try:
        data = json.loads(_strip_fences(raw))
        if isinstance(data, list):
            return data
    except json.JSONDecodeError:
        pass

    data = _loads_between(raw, "[", "]")
    if isinstance(data, list):
        return data

    return []


def parse_llm_reply(raw: str, fallback: Any) -> LLMReply:
    """Parse a JSON object reply, returning ``fallback`` when none is found."""
    data = parse_llm_json(raw)
    if data:
        return LLMReply(ok=True, data=data, raw=raw or "")
    return LLMReply(ok=False, data=fallback, raw=raw or "")
