from __future__ import annotations

import math
from typing import Sequence

from core.evs.models import OffSiteQualitative, OnSiteSignals, QueryAggregate, VisibilityScore


HALF_MAX = 50

# On-site: 25 pts split over three binary checks, 25 pts from answer-box readiness.
BINARY_CHECK_POINTS = 25 / 3
ANSWER_BOX_FACTOR = 2.5

# Off-site: 25 pts qualitative pillars, 25 pts share of voice.
CANONICAL_SOURCES_BONUS = 5
SOV_MAX_POINTS = 25

# Retired variant, kept here only as a record:
#   off_site = round(mentioned_queries / total_queries * 50)
# It ignored the qualitative pillars and is not computed anywhere.


def round_half_up(x: float) -> int:
    """Round .5 upwards (the dashboard's rounding), not to even like round()."""
    return int(math.floor(x + 0.5))


def clamp(x: int, lo: int = 0, hi: int = HALF_MAX) -> int:
    return max(lo, min(hi, x))


def on_site_score(signals: OnSiteSignals) -> int:
    binary_checks = (
        int(signals.robots_ok) +
        int(signals.sitemap_ok) +
        int(signals.schema_present)
    )
    raw = binary_checks * BINARY_CHECK_POINTS + signals.answer_box_score * ANSWER_BOX_FACTOR

    # single rounding on the sum so three passing checks give exactly 25
    return clamp(round_half_up(raw))


def qualitative_points(qualitative: OffSiteQualitative) -> int:
    return (
        qualitative.entity_consistency_score +
        qualitative.reputation_score +
        (CANONICAL_SOURCES_BONUS if qualitative.canonical_sources_present else 0)
    )


def share_of_voice_percentage(aggregates: Sequence[QueryAggregate]) -> int:
    if not aggregates:
        return 0
    mentioned = sum(1 for a in aggregates if a.any_mentioned)
    return round_half_up(mentioned / len(aggregates) * 100)


def share_of_voice_points(sov_percentage: int) -> int:
    return round_half_up(sov_percentage / 100 * SOV_MAX_POINTS)


def off_site_score(qualitative: OffSiteQualitative, aggregates: Sequence[QueryAggregate]) -> int:
    sov_points = share_of_voice_points(share_of_voice_percentage(aggregates))
    return clamp(qualitative_points(qualitative) + sov_points)


def total(on_site: int, off_site: int) -> int:
    return clamp(on_site) + clamp(off_site)


def visibility_score(
    signals: OnSiteSignals,
    qualitative: OffSiteQualitative,
    aggregates: Sequence[QueryAggregate],
) -> VisibilityScore:
    on = on_site_score(signals)
    off = off_site_score(qualitative, aggregates)
    return VisibilityScore(on_site=on, off_site=off, total=total(on, off))
