"""Default Czech rule tables: seasonal demand, holidays and holiday impact.

These rows back :meth:`StaticRuleTables.with_defaults`.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from ..utils.datetime_utils import easter_sunday
from .rule_tables import Holiday, HolidayImpactRule, SeasonalRule

REGION = "CZ"

# ---------------------------------------------------------------------------
# Seasonal rules
# ---------------------------------------------------------------------------
# (month, multiplier, confidence, reasoning)
MonthRow = Tuple[int, float, float, str]


def _rules(
    category: str,
    subcategory: Optional[str],
    rows: Sequence[MonthRow],
    expert_source: str,
    venue_availability: Sequence[float] = (),
) -> List[SeasonalRule]:
    return [
        SeasonalRule(
            category=category,
            subcategory=subcategory,
            region=REGION,
            month=month,
            demand_multiplier=multiplier,
            confidence=confidence,
            reasoning=reasoning,
            venue_availability=venue_availability[month - 1] if venue_availability else 0.8,
            expert_source=expert_source,
        )
        for month, multiplier, confidence, reasoning in rows
    ]


_TECHNOLOGY = [
    (1, 0.6, 0.8, "Post-holiday slowdown, few technology events"),
    (2, 0.9, 0.8, "Q1 planning, technology calendar fills up"),
    (3, 1.3, 0.85, "Spring conference season starts"),
    (4, 1.4, 0.85, "Peak spring technology events"),
    (5, 1.3, 0.8, "Late spring conferences and meetups"),
    (6, 1.0, 0.8, "Early summer, moderate technology activity"),
    (7, 0.7, 0.85, "Summer vacation, low technology activity"),
    (8, 0.7, 0.8, "Summer vacation continues"),
    (9, 1.3, 0.85, "Autumn conference season begins"),
    (10, 1.4, 0.85, "Peak autumn technology events"),
    (11, 1.4, 0.85, "Late autumn conferences and product launches"),
    (12, 1.3, 0.8, "Year-end corporate parties and product showcases compete for technology audiences"),
]

_AI_ML = [
    (1, 0.4, 0.9, "Post-holiday slowdown, low conference activity"),
    (2, 0.8, 0.9, "Q1 conference planning begins, moderate demand"),
    (3, 1.4, 0.95, "Spring conference season peak, high demand for AI/ML events"),
    (4, 1.6, 0.95, "Peak spring events, maximum demand for AI/ML conferences"),
    (5, 1.5, 0.9, "Late spring conferences, still high demand"),
    (6, 0.9, 0.85, "Summer conference decline begins"),
    (7, 0.6, 0.9, "Summer break, vacation period, low demand"),
    (8, 0.7, 0.85, "Summer vacation period continues"),
    (9, 1.3, 0.9, "Fall conference season begins, renewed demand"),
    (10, 1.5, 0.95, "Peak fall events, high demand for AI/ML conferences"),
    (11, 1.4, 0.9, "Late fall conferences, strong demand continues"),
    (12, 0.5, 0.95, "Holiday season, minimal conference activity"),
]

_WEB_DEVELOPMENT = [
    (1, 0.5, 0.85, "Post-holiday period, moderate web dev activity"),
    (2, 0.9, 0.85, "Q1 planning, growing web dev conference demand"),
    (3, 1.3, 0.9, "Spring conference season, high web dev demand"),
    (4, 1.5, 0.9, "Peak spring web dev events, maximum demand"),
    (5, 1.4, 0.85, "Late spring, strong web dev conference demand"),
    (6, 1.0, 0.8, "Summer begins, moderate web dev activity"),
    (7, 0.7, 0.85, "Summer vacation, reduced web dev conference activity"),
    (8, 0.8, 0.8, "Late summer, moderate web dev activity"),
    (9, 1.2, 0.9, "Fall conference season begins, renewed web dev demand"),
    (10, 1.4, 0.9, "Peak fall web dev events, high demand"),
    (11, 1.3, 0.85, "Late fall, strong web dev conference demand"),
    (12, 0.6, 0.9, "Holiday season, minimal web dev conference activity"),
]

_STARTUPS = [
    (1, 1.2, 0.9, "New year startup energy, high demand for startup events"),
    (2, 1.4, 0.9, "Q1 startup season peak"),
    (3, 1.5, 0.95, "Peak startup conference season, highest demand"),
    (4, 1.3, 0.9, "Strong startup event demand"),
    (5, 1.1, 0.85, "Moderate startup activity"),
    (6, 0.9, 0.8, "Summer begins, reduced startup conference activity"),
    (7, 0.7, 0.85, "Summer vacation, low startup event activity"),
    (8, 0.8, 0.8, "Late summer, minimal startup activity"),
    (9, 1.3, 0.9, "Autumn startup season begins, renewed demand"),
    (10, 1.4, 0.9, "Peak autumn startup events, high demand"),
    (11, 1.2, 0.85, "Strong startup conference demand"),
    (12, 0.4, 0.95, "Holiday season, minimal startup activity"),
]

_BUSINESS = [
    (1, 1.0, 0.8, "New year business planning"),
    (2, 1.2, 0.8, "Q1 business season"),
    (3, 1.3, 0.85, "Peak Q1 business events"),
    (4, 1.2, 0.8, "Strong spring business activity"),
    (5, 1.0, 0.8, "Moderate business activity"),
    (6, 0.9, 0.8, "Early summer, reduced business events"),
    (7, 0.5, 0.9, "Czech summer vacation period, minimal business activity"),
    (8, 0.6, 0.85, "Late summer vacation, low business activity"),
    (9, 1.2, 0.85, "Autumn business season begins"),
    (10, 1.4, 0.85, "Peak autumn business events"),
    (11, 1.3, 0.85, "Strong late-autumn business demand"),
    (12, 0.8, 0.85, "Year-end slowdown before the holidays"),
]

_BUSINESS_CONFERENCES = [
    (1, 1.1, 0.85, "New year business planning, moderate conference demand"),
    (2, 1.3, 0.9, "Q1 business season peak, high conference demand"),
    (3, 1.4, 0.9, "Peak Q1 business conferences, maximum demand"),
    (4, 1.2, 0.85, "Late Q1, strong business conference demand"),
    (5, 1.0, 0.8, "Q1-Q2 transition, moderate business activity"),
    (6, 0.8, 0.8, "Summer begins, reduced business conference activity"),
    (7, 0.4, 0.95, "Czech summer vacation period, minimal business activity"),
    (8, 0.5, 0.9, "Late summer vacation, low business conference activity"),
    (9, 1.2, 0.9, "Q3 business season begins, renewed conference demand"),
    (10, 1.4, 0.9, "Peak Q3 business conferences, high demand"),
    (11, 1.3, 0.85, "Late Q3, strong business conference demand"),
    (12, 0.5, 0.95, "Holiday season, minimal business conference activity"),
]

_ENTERTAINMENT = [
    (1, 0.7, 0.8, "Winter low season for entertainment"),
    (2, 0.8, 0.8, "Late winter, moderate entertainment activity"),
    (3, 0.9, 0.8, "Spring begins, growing entertainment demand"),
    (4, 1.0, 0.8, "Spring entertainment season"),
    (5, 1.2, 0.85, "Late spring, strong entertainment demand"),
    (6, 1.4, 0.85, "Summer festival season begins"),
    (7, 1.5, 0.9, "Peak summer festivals and open-air events"),
    (8, 1.4, 0.85, "Late summer festivals"),
    (9, 1.1, 0.8, "Autumn season opens"),
    (10, 1.0, 0.8, "Mid-autumn, moderate entertainment demand"),
    (11, 1.1, 0.8, "Christmas markets begin"),
    (12, 1.3, 0.85, "Christmas season concerts and markets"),
]

_MUSIC = [
    (1, 0.6, 0.9, "Winter low season for music events"),
    (2, 0.7, 0.85, "Late winter, moderate music activity"),
    (3, 0.9, 0.8, "Spring begins, growing music event demand"),
    (4, 1.1, 0.85, "Spring music season begins, increasing demand"),
    (5, 1.3, 0.9, "Late spring, strong music event demand"),
    (6, 1.5, 0.95, "Summer music season begins, high demand"),
    (7, 1.6, 0.95, "Peak summer music season, maximum demand"),
    (8, 1.5, 0.9, "Late summer, high music event demand"),
    (9, 1.2, 0.85, "Fall begins, moderate music activity"),
    (10, 1.0, 0.8, "Mid-fall, moderate music event demand"),
    (11, 0.8, 0.85, "Late fall, declining music activity"),
    (12, 0.7, 0.9, "Holiday season, low music event activity"),
]
_MUSIC_VENUES = (0.9, 0.8, 0.8, 0.7, 0.6, 0.5, 0.4, 0.5, 0.7, 0.8, 0.8, 0.9)

_THEATER = [
    (1, 1.3, 0.9, "Winter theater season peak, high demand"),
    (2, 1.2, 0.85, "Late winter, strong theater demand"),
    (3, 1.1, 0.8, "Spring begins, moderate theater activity"),
    (4, 1.0, 0.8, "Mid-spring, moderate theater demand"),
    (5, 0.9, 0.8, "Late spring, declining theater activity"),
    (6, 0.7, 0.85, "Summer begins, low theater season"),
    (7, 0.6, 0.9, "Peak summer vacation, minimal theater activity"),
    (8, 0.7, 0.85, "Late summer, low theater activity"),
    (9, 1.1, 0.85, "Fall theater season begins, renewed demand"),
    (10, 1.3, 0.9, "Peak fall theater season, high demand"),
    (11, 1.4, 0.9, "Late fall theater peak, maximum demand"),
    (12, 1.2, 0.85, "Holiday season, moderate theater activity"),
]

_SPORTS = [
    (1, 0.8, 0.75, "Winter sports season, indoor leagues"),
    (2, 0.8, 0.75, "Winter sports season continues"),
    (3, 1.0, 0.75, "League run-in and spring fixtures"),
    (4, 1.1, 0.75, "Spring fixtures and running season"),
    (5, 1.3, 0.8, "League finals and outdoor season"),
    (6, 1.3, 0.8, "Outdoor sports season peak"),
    (7, 1.0, 0.75, "Summer break for most leagues"),
    (8, 1.1, 0.75, "New league season begins"),
    (9, 1.3, 0.8, "Autumn fixtures and marathon season"),
    (10, 1.1, 0.75, "Autumn league season"),
    (11, 0.9, 0.75, "Late autumn, indoor season begins"),
    (12, 0.7, 0.8, "Holiday break in most leagues"),
]

DEFAULT_SEASONAL_RULES: List[SeasonalRule] = [
    *_rules("Technology", None, _TECHNOLOGY, "Czech Technology Event Calendar 2024"),
    *_rules("Technology", "AI/ML", _AI_ML, "Tech Conference Industry Analysis 2024"),
    *_rules("Technology", "Web Development", _WEB_DEVELOPMENT, "Web Development Conference Trends 2024"),
    *_rules("Technology", "Startups", _STARTUPS, "Startup Ecosystem Analysis 2024"),
    *_rules("Business", None, _BUSINESS, "Czech Business Calendar Analysis 2024"),
    *_rules("Business", "Conferences", _BUSINESS_CONFERENCES, "Business Conference Trends 2024"),
    *_rules("Entertainment", None, _ENTERTAINMENT, "Czech Cultural Events Analysis 2024"),
    *_rules("Entertainment", "Music", _MUSIC, "Music Industry Seasonal Analysis 2024", _MUSIC_VENUES),
    *_rules("Entertainment", "Theater", _THEATER, "Theater Industry Analysis 2024"),
    *_rules(
        "Entertainment",
        "Classical",
        [(5, 1.8, 0.95, "Prague Spring International Music Festival creates high demand and venue competition")],
        "Czech Cultural Events Analysis 2024",
        (0.8, 0.8, 0.8, 0.8, 0.3, 0.8, 0.8, 0.8, 0.8, 0.8, 0.8, 0.8),
    ),
    *_rules(
        "Entertainment",
        "Cultural",
        [
            (11, 1.4, 0.9, "Czech Christmas markets begin, high cultural event demand"),
            (12, 1.6, 0.95, "Peak Christmas market season, maximum cultural event demand"),
        ],
        "Czech Cultural Events Analysis 2024",
    ),
    *_rules("Sports", None, _SPORTS, "Czech Sports Calendar 2024"),
]

# ---------------------------------------------------------------------------
# Holidays
# ---------------------------------------------------------------------------
_FIXED_PUBLIC_HOLIDAYS: List[Tuple[int, int, str]] = [
    (1, 1, "New Year's Day"),
    (5, 1, "Labour Day"),
    (5, 8, "Liberation Day"),
    (7, 5, "St. Cyril and Methodius Day"),
    (7, 6, "Jan Hus Day"),
    (9, 28, "Czech Statehood Day"),
    (10, 28, "Independence Day"),
    (11, 17, "Struggle for Freedom and Democracy Day"),
    (12, 24, "Christmas Eve"),
    (12, 25, "Christmas Day"),
    (12, 26, "St. Stephen's Day"),
]

_CULTURAL_EVENTS: List[Tuple[int, int, str]] = [
    (5, 12, "Prague Spring Festival"),
    (7, 1, "Karlovy Vary Film Festival"),
]


def czech_holidays(year: int) -> List[Holiday]:
    """Czech public holidays and major cultural events for *year*."""
    easter = easter_sunday(year)
    holidays = [
        Holiday(name, date(year, month, day), "public_holiday", REGION, "full", True)
        for month, day, name in _FIXED_PUBLIC_HOLIDAYS
    ]
    holidays.append(Holiday("Good Friday", easter - timedelta(days=2), "public_holiday", REGION, "full", True))
    holidays.append(Holiday("Easter Monday", easter + timedelta(days=1), "public_holiday", REGION, "full", True))
    holidays.extend(
        Holiday(name, date(year, month, day), "cultural_event", REGION, "partial", False)
        for month, day, name in _CULTURAL_EVENTS
    )
    return sorted(holidays, key=lambda h: h.date)


def holidays_for_year(year: int, region: str) -> List[Holiday]:
    return czech_holidays(year) if region.upper() == REGION else []


# ---------------------------------------------------------------------------
# Holiday impact rules
# ---------------------------------------------------------------------------
# (holiday name, category, subcategory, days before, days after, multiplier, confidence, reasoning)
_IMPACT_ROWS: List[Tuple[str, str, Optional[str], int, int, float, float, str]] = [
    ("Christmas Eve", "Business", None, 5, 2, 4.0, 0.95, "Christmas Eve severely reduces business event attendance"),
    ("Christmas Eve", "Entertainment", None, 3, 1, 2.5, 0.9, "Christmas Eve shifts audiences to family celebrations"),
    ("Christmas Eve", "Technology", None, 5, 2, 3.5, 0.9, "Christmas Eve empties the technology event calendar"),
    ("Christmas Eve", "Entertainment", "Music", 7, 3, 2.2, 0.85, "Christmas period creates high demand for music events but intense competition"),
    ("Christmas Eve", "Entertainment", "Theater", 5, 2, 1.8, 0.85, "Christmas period increases theater demand but reduces venue availability"),
    ("Christmas Day", "Business", None, 2, 1, 4.5, 0.95, "Christmas Day closes most business venues"),
    ("Christmas Day", "Entertainment", None, 1, 1, 2.0, 0.9, "Christmas Day limits entertainment attendance"),
    ("Christmas Day", "Technology", None, 2, 1, 4.0, 0.9, "Christmas Day closes most technology venues"),
    ("St. Stephen's Day", "Business", None, 1, 1, 3.0, 0.9, "St. Stephen's Day extends the Christmas business shutdown"),
    ("St. Stephen's Day", "Technology", None, 1, 1, 2.5, 0.85, "St. Stephen's Day extends the Christmas shutdown"),
    ("New Year's Day", "Business", None, 3, 1, 3.0, 0.9, "New Year period reduces business attendance"),
    ("New Year's Day", "Entertainment", None, 2, 1, 1.8, 0.85, "New Year celebrations compete with entertainment events"),
    ("New Year's Day", "Technology", None, 3, 1, 2.5, 0.85, "New Year period reduces technology event attendance"),
    ("New Year's Day", "Entertainment", "Music", 3, 2, 1.6, 0.85, "New Year period creates high demand for music events"),
    ("Good Friday", "Business", None, 1, 0, 1.8, 0.85, "Good Friday starts the Easter long weekend"),
    ("Easter Monday", "Business", None, 2, 1, 2.5, 0.9, "Easter long weekend reduces business attendance"),
    ("Easter Monday", "Entertainment", None, 1, 1, 1.5, 0.8, "Easter Monday creates moderate entertainment demand"),
    ("Easter Monday", "Technology", None, 2, 1, 2.0, 0.85, "Easter long weekend reduces technology event attendance"),
    ("Easter Monday", "Entertainment", "Cultural", 2, 2, 1.4, 0.8, "Easter period increases cultural event demand"),
    ("Labour Day", "Business", "Conferences", 1, 1, 2.0, 0.85, "Labour Day reduces business conference attendance and venue availability"),
    ("Labour Day", "Business", "Networking", 1, 1, 1.8, 0.85, "Labour Day reduces networking event attendance"),
    ("Liberation Day", "Business", None, 1, 0, 1.5, 0.8, "Liberation Day reduces venue availability for business events"),
    ("Czech Statehood Day", "Business", None, 1, 1, 1.8, 0.85, "Statehood Day reduces business activity and venue availability"),
    ("Independence Day", "Business", None, 1, 1, 1.8, 0.85, "Independence Day reduces business activity and venue availability"),
    ("Struggle for Freedom and Democracy Day", "Business", None, 1, 1, 1.6, 0.8, "Freedom Day reduces business activity and venue availability"),
]

_CULTURAL_IMPACT_ROWS: List[Tuple[str, str, Optional[str], int, int, float, float, str]] = [
    ("Prague Spring Festival", "Entertainment", "Classical", 3, 21, 1.8, 0.9, "Prague Spring festival dominates classical audiences and venues"),
    ("Prague Spring Festival", "Entertainment", "Music", 2, 21, 1.3, 0.8, "Prague Spring festival draws music audiences"),
]

DEFAULT_HOLIDAY_IMPACT_RULES: List[HolidayImpactRule] = [
    HolidayImpactRule(
        holiday_type=holiday_type,
        holiday_name=name,
        event_category=category,
        event_subcategory=subcategory,
        region=REGION,
        days_before=before,
        days_after=after,
        impact_multiplier=multiplier,
        confidence=confidence,
        reasoning=reasoning,
    )
    for holiday_type, rows in (("public_holiday", _IMPACT_ROWS), ("cultural_event", _CULTURAL_IMPACT_ROWS))
    for name, category, subcategory, before, after, multiplier, confidence, reasoning in rows
]


__all__ = [
    "DEFAULT_SEASONAL_RULES",
    "DEFAULT_HOLIDAY_IMPACT_RULES",
    "czech_holidays",
    "holidays_for_year",
]
