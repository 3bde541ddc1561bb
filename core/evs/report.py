from __future__ import annotations

from typing import List, Optional, Sequence

from core.evs.models import (
    AuditSnapshot,
    Evolution,
    QueryAggregate,
    QuickScore,
    QuickScoreDisplay,
    VisibilityReport,
    VisibilityScore,
)
from core.evs.scoring import HALF_MAX, round_half_up, share_of_voice_percentage


# Upper bounds (inclusive) for scored quick-score tiers. Lower = more issues = hotter.
QUICK_SCORE_TIERS = [
    (40, "hot", "Many AI-visibility basics missing; top outreach priority."),
    (60, "warm", "Several basics missing."),
    (80, "cool", "A few basics missing."),
    (100, "healthy", "Most basics in place; low outreach priority."),
]


def quick_score_display(score: Optional[QuickScore]) -> QuickScoreDisplay:
    """
    Quick score as shown in the leads table.

    The scale is inverted relative to the visibility score: a LOW quick score
    is a HOT lead. Undetermined (probe refused) never renders as a number.
    """
    if score is None:
        return QuickScoreDisplay(text="-", tier="unscanned", description="Not scanned yet.")
    if not score.determined:
        return QuickScoreDisplay(
            text="blocked",
            tier="blocked",
            description="Site refused the scan request; score could not be determined.",
        )

    # scored values are capped at 100, the last tier bound
    hi, tier, description = next(t for t in QUICK_SCORE_TIERS if score.value <= t[0])
    return QuickScoreDisplay(text=str(score.value), tier=tier, description=description)


def _pct(points: int, out_of: int) -> int:
    if out_of <= 0:
        return 0
    return round_half_up(points / out_of * 100)


def visibility_report(
    score: VisibilityScore,
    aggregates: Sequence[QueryAggregate],
    trend: Optional[Evolution] = None,
) -> VisibilityReport:
    return VisibilityReport(
        score=score,
        total_pct=_pct(score.total, 2 * HALF_MAX),
        on_site_pct=_pct(score.on_site, HALF_MAX),
        off_site_pct=_pct(score.off_site, HALF_MAX),
        sov_pct=share_of_voice_percentage(aggregates),
        queries_checked=len(aggregates),
        queries_mentioned=sum(1 for a in aggregates if a.any_mentioned),
        evolution=trend,
    )


def evolution(history: List[AuditSnapshot]) -> Evolution:
    """History is newest first, as the audits list is loaded."""
    if len(history) < 2:
        return Evolution(audits=len(history), delta=0, trend="stable")

    latest, previous = history[0], history[1]
    delta = round_half_up((latest.score_total or 0) - (previous.score_total or 0))
    trend = "up" if delta > 0 else "down" if delta < 0 else "stable"
    return Evolution(audits=len(history), delta=delta, trend=trend)
