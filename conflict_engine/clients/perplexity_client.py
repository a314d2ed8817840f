"""Shared HTTP session for Perplexity API calls."""

from __future__ import annotations

import requests

from ..config import PERPLEXITY_API_KEY

_session: requests.Session | None = None


def get_perplexity_session() -> requests.Session:
    """Return a singleton :class:`requests.Session` configured for Perplexity."""
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update(
            {
                "Authorization": f"Bearer {PERPLEXITY_API_KEY}",
                "Content-Type": "application/json",
            }
        )
    return _session


def perplexity_available() -> bool:
    return bool(PERPLEXITY_API_KEY)

__all__ = ["get_perplexity_session", "perplexity_available"]
