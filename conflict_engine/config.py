"""Centralised configuration for conflict_engine.

Environment variables are loaded once and all related constants are
grouped by concern for easier maintenance.  Components take these values
as constructor defaults only; every one of them can be overridden by
passing an explicit argument.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Load environment variables from `.env` (if present)
# ---------------------------------------------------------------------------
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


# ---------------------------------------------------------------------------
# Core credentials (from environment)
# ---------------------------------------------------------------------------
OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
PERPLEXITY_API_KEY: str | None = os.getenv("PERPLEXITY_API_KEY")
MONGODB_URI: str | None = os.getenv("MONGODB_URI")

# ---------------------------------------------------------------------------
# Event store and rule tables (MongoDB)
# ---------------------------------------------------------------------------
MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "event_conflicts")
EVENTS_COLLECTION: str = "events"
SEASONAL_RULES_COLLECTION: str = "seasonal_rules"
HOLIDAYS_COLLECTION: str = "holidays"
HOLIDAY_IMPACT_RULES_COLLECTION: str = "holiday_impact_rules"
OVERLAP_CACHE_COLLECTION: str = "audience_overlap_cache"

# ---------------------------------------------------------------------------
# Model settings
# ---------------------------------------------------------------------------
OPENAI_OVERLAP_MODEL: str = os.getenv("OPENAI_OVERLAP_MODEL", "gpt-4o-mini")
PERPLEXITY_MODEL: str = os.getenv("PERPLEXITY_MODEL", "sonar-pro")
PERPLEXITY_API_URL: str = "https://api.perplexity.ai/chat/completions"

# ---------------------------------------------------------------------------
# Engine tuning
# ---------------------------------------------------------------------------
DEDUP_SIMILARITY_THRESHOLD: float = _env_float("DEDUP_SIMILARITY_THRESHOLD", 0.80)
DEDUP_CACHE_SIZE: int = _env_int("DEDUP_CACHE_SIZE", 1000)

MAX_COMPARISONS: int = _env_int("MAX_COMPARISONS", 50)
ADVANCED_MAX_COMPARISONS: int = _env_int("ADVANCED_MAX_COMPARISONS", 100)
PROXIMITY_WINDOW_DAYS: int = _env_int("PROXIMITY_WINDOW_DAYS", 7)

SEASONAL_CACHE_TTL_SECONDS: int = _env_int("SEASONAL_CACHE_TTL_SECONDS", 30 * 60)
SEASONAL_CACHE_MAX_ENTRIES: int = _env_int("SEASONAL_CACHE_MAX_ENTRIES", 1000)
OVERLAP_CACHE_TTL_SECONDS: int = _env_int("OVERLAP_CACHE_TTL_SECONDS", 30 * 24 * 3600)
RESEARCH_CACHE_TTL_SECONDS: int = _env_int("RESEARCH_CACHE_TTL_SECONDS", 24 * 3600)

AI_TIMEOUT_SECONDS: float = _env_float("AI_TIMEOUT_SECONDS", 15.0)
STORE_TIMEOUT_SECONDS: float = _env_float("STORE_TIMEOUT_SECONDS", 10.0)
RULE_TIMEOUT_SECONDS: float = _env_float("RULE_TIMEOUT_SECONDS", 5.0)

MAX_PARALLEL_DATES: int = _env_int("MAX_PARALLEL_DATES", 8)
DEFAULT_REGION: str = os.getenv("DEFAULT_REGION", "CZ")
DEFAULT_EXPECTED_ATTENDEES: int = 100

# ---------------------------------------------------------------------------
# Re-exported names
# ---------------------------------------------------------------------------
__all__ = [
    # credentials
    "OPENAI_API_KEY",
    "PERPLEXITY_API_KEY",
    "MONGODB_URI",
    # store
    "MONGODB_DATABASE",
    "EVENTS_COLLECTION",
    "SEASONAL_RULES_COLLECTION",
    "HOLIDAYS_COLLECTION",
    "HOLIDAY_IMPACT_RULES_COLLECTION",
    "OVERLAP_CACHE_COLLECTION",
    # models
    "OPENAI_OVERLAP_MODEL",
    "PERPLEXITY_MODEL",
    "PERPLEXITY_API_URL",
    # tuning
    "DEDUP_SIMILARITY_THRESHOLD",
    "DEDUP_CACHE_SIZE",
    "MAX_COMPARISONS",
    "ADVANCED_MAX_COMPARISONS",
    "PROXIMITY_WINDOW_DAYS",
    "SEASONAL_CACHE_TTL_SECONDS",
    "SEASONAL_CACHE_MAX_ENTRIES",
    "OVERLAP_CACHE_TTL_SECONDS",
    "RESEARCH_CACHE_TTL_SECONDS",
    "AI_TIMEOUT_SECONDS",
    "STORE_TIMEOUT_SECONDS",
    "RULE_TIMEOUT_SECONDS",
    "MAX_PARALLEL_DATES",
    "DEFAULT_REGION",
    "DEFAULT_EXPECTED_ATTENDEES",
]
