"""Service layer modules grouping the engine's components by concern.

This module provides convenience re-exports so that callers can simply do for
example `from conflict_engine.services import EventDeduplicator` without having
to know which underlying module provides the symbol.
"""

from .audience_overlap import (  # noqa: F401
    AudienceOverlapEstimator,
    OpenAIOverlapStrategy,
    RuleBasedOverlapStrategy,
)
from .deduplication import EventDeduplicator, dedup_metrics  # noqa: F401
from .event_store import EventStore, InMemoryEventStore, MongoEventStore  # noqa: F401
from .recommendations import assemble, build_summary, recommendation_text  # noqa: F401
from .relevance import EventRelevanceFilter  # noqa: F401
from .research import PerplexityResearchService  # noqa: F401
from .rule_tables import MongoRuleTables, RuleTableReader, StaticRuleTables  # noqa: F401
from .scoring import SCORE_CAP, ConflictScorer, classify_risk  # noqa: F401
from .seasonality import SeasonalityEngine  # noqa: F401

__all__ = [
    "AudienceOverlapEstimator",
    "OpenAIOverlapStrategy",
    "RuleBasedOverlapStrategy",
    "EventDeduplicator",
    "dedup_metrics",
    "EventStore",
    "InMemoryEventStore",
    "MongoEventStore",
    "assemble",
    "build_summary",
    "recommendation_text",
    "EventRelevanceFilter",
    "PerplexityResearchService",
    "MongoRuleTables",
    "RuleTableReader",
    "StaticRuleTables",
    "SCORE_CAP",
    "ConflictScorer",
    "classify_risk",
    "SeasonalityEngine",
]
