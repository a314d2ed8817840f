"""Utilities for parsing structured outputs returned by LLM calls.

Both the audience-overlap batch call (OpenAI) and the competing-event
research call (Perplexity) ask for JSON, and both occasionally wrap it in
prose, code fences, or a reasoning block.  The extraction logic is shared
so every caller degrades the same way.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict

from .text_cleaning import strip_think_blocks

__all__ = ["extract_structured_json"]


def _wrap(parsed: Any, list_key: str) -> Dict[str, Any]:
    if isinstance(parsed, list):
        return {list_key: parsed}
    if isinstance(parsed, dict):
        return parsed
    raise ValueError(f"Expected a JSON object or array, got {type(parsed).__name__}")


def extract_structured_json(response_text: str, *, list_key: str = "events") -> Dict[str, Any]:
    """Robustly extract JSON from an LLM response.

    Parameters
    ----------
    response_text
        The raw message content returned by the model.
    list_key
        Key used to wrap a top-level JSON array, so callers can always
        index the result as a mapping.

    Returns
    -------
    dict[str, Any]
        The parsed JSON object.

    Raises
    ------
    ValueError
        If no valid JSON snippet can be located in *response_text*.
    """
    if not response_text:
        raise ValueError("Empty LLM response")

    cleaned: str = strip_think_blocks(response_text).strip()

    # 1. Try to parse the whole string first (fast path)
    try:
        return _wrap(json.loads(cleaned), list_key)
    except json.JSONDecodeError:
        pass

    # 2. Search for fenced JSON block, with or without explicit `json` label
    fenced = re.search(
        r"```(?:json)?\s*([\[{].*?[\]}])\s*```",
        cleaned,
        flags=re.DOTALL | re.IGNORECASE,
    )
    if fenced:
        snippet = fenced.group(1).strip()
        try:
            return _wrap(json.loads(snippet), list_key)
        except json.JSONDecodeError:
            cleaned = snippet  # Narrow search space.

    # 3. Progressive truncation from first { or [
    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        raise ValueError("Could not locate JSON in LLM response")

    candidate = cleaned[min(starts):]
    closers = [i + 1 for i, ch in enumerate(candidate) if ch in "}]"]
    for end in reversed(closers):
        try:
            return _wrap(json.loads(candidate[:end]), list_key)
        except json.JSONDecodeError:
            continue

    raise ValueError("Could not locate JSON in LLM response")
