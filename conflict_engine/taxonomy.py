"""Category relationship tiers and subcategory audience-overlap coefficients.

The same tables drive the rule-based overlap strategy and the conflict
scorer's category-conflict contribution, so both agree on which
categories compete.  Category alignment across providers is approximate:
names are compared through :func:`normalize_key`, so ``"AI/ML"``,
``"AI-ML"`` and ``"ai ml"`` are the same subcategory.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Tuple

from .utils.text_cleaning import normalize_key

# ---------------------------------------------------------------------------
# Category relationship tiers (planned category → competing categories)
# ---------------------------------------------------------------------------
CATEGORY_TIERS: Dict[str, Dict[str, List[str]]] = {
    "high": {
        "Entertainment": ["Entertainment", "Music", "Arts & Culture"],
        "Music": ["Entertainment", "Music"],
        "Sports": ["Sports"],
        "Business": ["Business", "Technology", "Finance"],
        "Technology": ["Business", "Technology"],
        "Finance": ["Business", "Finance"],
    },
    "medium": {
        "Entertainment": ["Sports"],
        "Arts & Culture": ["Entertainment", "Music"],
        "Sports": ["Entertainment"],
        "Business": ["Education"],
        "Technology": ["Education", "Business"],
        "Education": ["Business", "Technology"],
    },
    "low": {
        "Entertainment": ["Business", "Technology", "Finance", "Education"],
        "Sports": ["Business", "Technology", "Finance", "Education"],
        "Business": ["Entertainment", "Sports"],
        "Technology": ["Entertainment", "Sports"],
        "Finance": ["Entertainment", "Sports"],
        "Education": ["Entertainment", "Sports"],
    },
}

_TIER_INDEX: Dict[str, Dict[str, FrozenSet[str]]] = {
    tier: {
        normalize_key(planned): frozenset(normalize_key(c) for c in competing)
        for planned, competing in table.items()
    }
    for tier, table in CATEGORY_TIERS.items()
}

# ---------------------------------------------------------------------------
# Base overlap levels
# ---------------------------------------------------------------------------
SAME_SUBCATEGORY_OVERLAP: float = 0.92
MISSING_SUBCATEGORY_OVERLAP: float = 0.40
CATEGORY_DEFAULT_OVERLAP: float = 0.30
RELATED_CATEGORY_OVERLAP: Dict[str, float] = {"high": 0.25, "medium": 0.15}
UNRELATED_OVERLAP: float = 0.10

_MUSIC_GENRES: Dict[Tuple[str, str], float] = {
    ("Rock", "Metal"): 0.75,
    ("Rock", "Alternative"): 0.65,
    ("Rock", "Indie"): 0.45,
    ("Rock", "Pop"): 0.25,
    ("Pop", "Electronic"): 0.55,
    ("Pop", "Hip-Hop"): 0.40,
    ("Hip-Hop", "R&B"): 0.60,
    ("Electronic", "Techno"): 0.80,
    ("Indie", "Alternative"): 0.70,
    ("Folk", "Indie"): 0.45,
    ("Jazz", "Blues"): 0.70,
    ("Jazz", "Soul"): 0.55,
    ("Classical", "Opera"): 0.70,
}

SUBCATEGORY_OVERLAP: Dict[str, Dict[Tuple[str, str], float]] = {
    "Entertainment": {
        **_MUSIC_GENRES,
        ("Theater", "Opera"): 0.55,
        ("Theater", "Comedy"): 0.45,
        ("Cultural", "Theater"): 0.40,
        ("Cultural", "Classical"): 0.45,
        ("Music", "Classical"): 0.50,
    },
    "Music": dict(_MUSIC_GENRES),
    "Technology": {
        ("AI/ML", "Machine Learning"): 0.85,
        ("AI/ML", "Data Science"): 0.70,
        ("AI/ML", "Startups"): 0.35,
        ("Data Science", "Cloud"): 0.35,
        ("Web Development", "Mobile Development"): 0.55,
        ("Web Development", "DevOps"): 0.45,
        ("Cloud", "DevOps"): 0.65,
        ("Cybersecurity", "DevOps"): 0.40,
        ("Blockchain", "Fintech"): 0.55,
    },
    "Business": {
        ("Conferences", "Networking"): 0.55,
        ("Conferences", "Leadership"): 0.45,
        ("Startups", "Networking"): 0.50,
        ("Marketing", "Sales"): 0.60,
        ("Finance", "Investment"): 0.65,
    },
    "Sports": {
        ("Football", "Hockey"): 0.40,
        ("Football", "Basketball"): 0.35,
        ("Running", "Cycling"): 0.45,
    },
    "Arts & Culture": {
        ("Exhibitions", "Galleries"): 0.75,
        ("Theater", "Opera"): 0.55,
        ("Film", "Theater"): 0.35,
    },
}

_PAIR_INDEX: Dict[str, Dict[FrozenSet[str], float]] = {
    normalize_key(category): {
        frozenset((normalize_key(a), normalize_key(b))): value for (a, b), value in pairs.items()
    }
    for category, pairs in SUBCATEGORY_OVERLAP.items()
}


def same_label(a: Optional[str], b: Optional[str]) -> bool:
    """True when two category or subcategory labels name the same thing."""
    return bool(a) and bool(b) and normalize_key(a) == normalize_key(b)


def category_conflict_level(planned: str, competing: str) -> str:
    """Return ``exact``, ``high``, ``medium``, ``low`` or ``none``."""
    if same_label(planned, competing):
        return "exact"
    planned_key, competing_key = normalize_key(planned), normalize_key(competing)
    for tier in ("high", "medium", "low"):
        if competing_key in _TIER_INDEX[tier].get(planned_key, frozenset()):
            return tier
    return "none"


def subcategory_coefficient(category: str, sub_a: str, sub_b: str) -> Optional[float]:
    pairs = _PAIR_INDEX.get(normalize_key(category), {})
    return pairs.get(frozenset((normalize_key(sub_a), normalize_key(sub_b))))


def _strength(value: float) -> str:
    if value >= 0.6:
        return "strongly"
    if value >= 0.4:
        return "moderately"
    return "partially"


def base_overlap(
    category_a: str,
    subcategory_a: Optional[str],
    category_b: str,
    subcategory_b: Optional[str],
) -> Tuple[float, List[str]]:
    """Return the date-independent base overlap for two category pairings.

    >>> base_overlap("Technology", "AI/ML", "Technology", "AI-ML")[0]
    0.92
    >>> base_overlap("Technology", None, "Entertainment", None)[0]
    0.1
    """
    if same_label(category_a, category_b):
        if subcategory_a and subcategory_b:
            if same_label(subcategory_a, subcategory_b):
                return SAME_SUBCATEGORY_OVERLAP, [
                    f"Both events are {subcategory_a} {category_a} events targeting the same audience"
                ]
            coefficient = subcategory_coefficient(category_a, subcategory_a, subcategory_b)
            if coefficient is not None:
                return coefficient, [
                    f"{subcategory_a} and {subcategory_b} audiences overlap {_strength(coefficient)}"
                ]
            return CATEGORY_DEFAULT_OVERLAP, [
                f"Different {category_a} subcategories ({subcategory_a} vs {subcategory_b}) share a general interest"
            ]
        return MISSING_SUBCATEGORY_OVERLAP, [
            f"Same category ({category_a}) without subcategory detail"
        ]

    level = category_conflict_level(category_a, category_b)
    if level in RELATED_CATEGORY_OVERLAP:
        wording = "are strongly related" if level == "high" else "partially overlap"
        return RELATED_CATEGORY_OVERLAP[level], [f"{category_a} and {category_b} audiences {wording}"]
    return UNRELATED_OVERLAP, [f"{category_a} and {category_b} have very different target audiences"]


__all__ = [
    "CATEGORY_TIERS",
    "SUBCATEGORY_OVERLAP",
    "SAME_SUBCATEGORY_OVERLAP",
    "MISSING_SUBCATEGORY_OVERLAP",
    "CATEGORY_DEFAULT_OVERLAP",
    "RELATED_CATEGORY_OVERLAP",
    "UNRELATED_OVERLAP",
    "same_label",
    "category_conflict_level",
    "subcategory_coefficient",
    "base_overlap",
]
