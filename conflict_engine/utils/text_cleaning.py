"""Shared text helpers: LLM output cleanup and comparison normalisation."""

from __future__ import annotations

import re
import unicodedata
from typing import Final, Optional

# ---------------------------------------------------------------------------
# LLM output cleanup
# ---------------------------------------------------------------------------

def strip_think_blocks(text: str) -> str:
    """Extract content after the closing </think> tag from an LLM response.

    Handles missing tags and safely removes JSON code fences if present.
    """
    if not text:
        return text.strip()

    marker: Final[str] = "</think>"
    idx: int = text.rfind(marker)

    # Fallback to full text if marker is missing
    after: str = text if idx == -1 else text[idx + len(marker) :]

    cleaned: str = after.strip()

    # Remove JSON code fences if present
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json") :].strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:].strip()
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3].strip()

    return cleaned


def sanitize_llm_text(
    text: str,
    *,
    remove_citations: bool = True,
    remove_markdown: bool = False,
) -> str:
    """Standardise free text returned by an LLM (event descriptions, reasoning).

    Parameters
    ----------
    text : str
        Raw LLM response.
    remove_citations : bool, default True
        Remove numeric (``[1]``) and textual (``[Reuters]``) citations.
    remove_markdown : bool, default False
        Strip headings, list bullets, and emphasis markers.
    """
    cleaned: str = strip_think_blocks(text)

    if remove_citations:
        cleaned = re.sub(r"\[\d+\]", "", cleaned)
        cleaned = re.sub(r"\[[A-Za-z][^\]]+\]", "", cleaned)

    if remove_markdown:
        cleaned = re.sub(r"^#{1,6}\s*", "", cleaned, flags=re.MULTILINE)
        cleaned = re.sub(r"^\s*[-*+]\s+", "", cleaned, flags=re.MULTILINE)
        cleaned = re.sub(r"^\s*\d+\.\s+", "", cleaned, flags=re.MULTILINE)
        cleaned = re.sub(r"(\*\*|__)", "", cleaned)

    return re.sub(r"[ \t]{2,}", " ", cleaned).strip()


# ---------------------------------------------------------------------------
# Comparison normalisation
# ---------------------------------------------------------------------------
_PUNCTUATION = re.compile(r"[^\w\s]", flags=re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Case-fold, strip accents and punctuation, collapse whitespace.

    >>> normalize_text("  Tech  Conference: 2025! ")
    'tech conference 2025'
    >>> normalize_text("Praha – Výstaviště")
    'praha vystaviste'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    no_punct = _PUNCTUATION.sub(" ", ascii_only.casefold())
    return _WHITESPACE.sub(" ", no_punct).strip()


def normalize_key(text: Optional[str]) -> str:
    """Collapse *text* to a bare alphanumeric key ("AI/ML" and "ai-ml" → "aiml")."""
    return normalize_text(text).replace(" ", "").replace("_", "")


__all__ = [
    "strip_think_blocks",
    "sanitize_llm_text",
    "normalize_text",
    "normalize_key",
]
