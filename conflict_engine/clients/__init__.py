"""Convenience re-exports for singleton SDK accessors."""

from .openai_client import get_openai, openai_available  # noqa: F401
from .mongodb_client import get_database, get_mongo_client  # noqa: F401
from .perplexity_client import get_perplexity_session, perplexity_available  # noqa: F401

__all__ = [
    "get_openai",
    "openai_available",
    "get_mongo_client",
    "get_database",
    "get_perplexity_session",
    "perplexity_available",
]
