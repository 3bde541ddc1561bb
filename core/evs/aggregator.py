from __future__ import annotations

from typing import List, Sequence

from core.evs.models import EngineResult, InvalidInput, QueryAggregate


def _unique(seq) -> List[str]:
    seen = set()
    out: List[str] = []
    for x in seq:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def pick_best(results: Sequence[EngineResult]) -> EngineResult:
    """
    Highest bucket wins. On ties the earliest result is kept, so callers must
    pass results in engine invocation order, not response arrival order.
    """
    best = results[0]
    for current in results[1:]:
        if current.priority > best.priority:
            best = current
    return best


def aggregate(query_text: str, results: Sequence[EngineResult]) -> QueryAggregate:
    if not results:
        raise InvalidInput(f"no engine results to aggregate for query {query_text!r}")

    return QueryAggregate(
        query_text=query_text,
        any_mentioned=any(r.effective_mentioned for r in results),
        best_result=pick_best(results),
        # exact-string dedup, no case folding of competitor names
        all_competitors=_unique(c for r in results for c in r.competitors_mentioned),
    )
