from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from core.evs.models import QuickScanSignals, QuickScore


POINTS_PER_SIGNAL = 20

T = TypeVar("T")


def score(signals: QuickScanSignals) -> QuickScore:
    # A refused probe means nothing else we saw can be trusted.
    if signals.bot_blocked:
        return QuickScore.undetermined()

    passing = (
        int(signals.robots_ok and not signals.blocks_ai_agents) +
        int(signals.sitemap_ok) +
        int(signals.schema_ok) +
        int(signals.llms_txt_ok) +
        int(signals.canonical_ok)
    )
    return QuickScore.scored(passing * POINTS_PER_SIGNAL)


def priority_key(quick_score: Optional[QuickScore]) -> Tuple[int, int]:
    """
    Sort key for outreach priority (ascending = contact first).

    Scored prospects come first, lowest score (most issues) leading.
    Undetermined prospects follow, never-scanned ones go last.
    """
    if quick_score is None:
        return (2, 0)
    if not quick_score.determined:
        return (1, 0)
    return (0, int(quick_score.value))


def rank_prospects(
    items: Iterable[T],
    *,
    get_score: Callable[[T], Optional[QuickScore]],
) -> List[T]:
    # sorted() is stable, so equal scores keep their incoming order
    return sorted(items, key=lambda item: priority_key(get_score(item)))


def coerce_quick_score(raw: Any) -> Optional[QuickScore]:
    if raw is None or isinstance(raw, QuickScore):
        return raw
    return QuickScore.from_int(int(raw))
