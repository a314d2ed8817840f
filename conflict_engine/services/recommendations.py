"""Partition scored dates into recommended and high-risk lists."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..models import AnalysisSummary, CandidateDateResult, Recommendations

SUMMARY_MEDIUM_AVERAGE: float = 10.0


def assemble(results: Iterable[CandidateDateResult]) -> Recommendations:
    """Split *results* by risk tier, keeping the caller's order in each part."""
    recommended: List[CandidateDateResult] = []
    high_risk: List[CandidateDateResult] = []
    for result in results:
        (high_risk if result.risk_level == "High" else recommended).append(result)
    return Recommendations(recommended_dates=recommended, high_risk_dates=high_risk)


def recommendation_text(score: float, risk_level: str, major_events: int = 0) -> str:
    if score == 0:
        return "No conflicts detected. This date looks good for your event."
    if risk_level == "Low":
        return "Low conflict risk. Consider proceeding with your event."
    if risk_level == "Medium":
        return "Medium conflict risk. Consider alternative dates or venues."
    return f"High conflict risk. {major_events} major event(s) on this date. Strongly consider alternative dates."


def build_summary(
    results: Sequence[CandidateDateResult],
    duplicates_removed: int = 0,
    extra_degraded: int = 0,
) -> AnalysisSummary:
    if not results:
        return AnalysisSummary(
            average_score=0.0,
            max_score=0.0,
            overall_risk="Low",
            recommendations=("No candidate dates were analysed.",),
            duplicates_removed=duplicates_removed,
            degraded_operations=extra_degraded,
        )

    scores = [r.conflict_score for r in results]
    average = round(sum(scores) / len(scores), 2)
    if any(r.risk_level == "High" for r in results):
        overall = "High"
    elif average > SUMMARY_MEDIUM_AVERAGE:
        overall = "Medium"
    else:
        overall = "Low"

    lines: List[str] = []
    clean = [r for r in results if r.risk_level == "Low"]
    if clean:
        best = min(clean, key=lambda r: r.conflict_score)
        lines.append(f"Best option: {best.date.isoformat()} (score {best.conflict_score:.1f}).")
    high = [r for r in results if r.risk_level == "High"]
    if high:
        lines.append(f"Avoid {len(high)} high-risk date(s): " + ", ".join(r.date.isoformat() for r in high[:5]) + ".")
    if overall == "Low" and not high:
        lines.append("Overall conflict risk in this window is low.")

    return AnalysisSummary(
        average_score=average,
        max_score=max(scores),
        overall_risk=overall,
        recommendations=tuple(lines),
        duplicates_removed=duplicates_removed,
        degraded_operations=extra_degraded + sum(len(r.degraded) for r in results),
    )


__all__ = ["assemble", "recommendation_text", "build_summary"]
