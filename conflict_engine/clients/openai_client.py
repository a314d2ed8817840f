"""Singleton accessor for the OpenAI SDK client."""

from __future__ import annotations

from openai import OpenAI as _OpenAIClient

from ..config import AI_TIMEOUT_SECONDS, OPENAI_API_KEY

_client: _OpenAIClient | None = None


def get_openai() -> _OpenAIClient:
    """Return a singleton instance of :class:`openai.OpenAI`.

    Retries are disabled: a failed overlap batch degrades to the rule-based
    strategy instead of being retried inside the engine.
    """
    global _client
    if _client is None:
        if not OPENAI_API_KEY:
            raise EnvironmentError("OPENAI_API_KEY is not set in environment variables")
        _client = _OpenAIClient(api_key=OPENAI_API_KEY, timeout=AI_TIMEOUT_SECONDS, max_retries=0)
    return _client


def openai_available() -> bool:
    return bool(OPENAI_API_KEY)

__all__ = ["get_openai", "openai_available"]
