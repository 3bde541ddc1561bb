# signal_adapters.py
from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from core.evs.aggregator import aggregate
from core.evs.models import (
    BUCKET_PRIORITY,
    EngineResult,
    OffSiteQualitative,
    OnSiteSignals,
    QueryAggregate,
)
from core.evs.scoring import round_half_up

_SENTIMENTS = {"Positive", "Neutral", "Negative"}


def _clamp_score(v: Any, lo: int = 0, hi: int = 10) -> int:
    try:
        n = round_half_up(float(v))
    except (TypeError, ValueError, OverflowError):
        n = 0
    return max(lo, min(hi, n))


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw[k]
    return None


def build_on_site_signals(raw: Dict[str, Any]) -> OnSiteSignals:
    """
    Semantic-analyzer output or manual entry -> OnSiteSignals.

    Accepts both the analyzer's names (readiness_score, structure_score,
    authority_score) and the stored audit names (answer_box_score,
    h1_h2_structure_score, authority_signals_score).
    """
    schema_type = raw.get("schema_type")
    return OnSiteSignals(
        robots_ok=bool(raw.get("robots_ok")),
        sitemap_ok=bool(raw.get("sitemap_ok")),
        schema_present=isinstance(schema_type, str) and len(schema_type.strip()) > 0,
        answer_box_score=_clamp_score(_first(raw, "answer_box_score", "readiness_score")),
        structure_score=_clamp_score(_first(raw, "h1_h2_structure_score", "structure_score")),
        authority_score=_clamp_score(_first(raw, "authority_signals_score", "authority_score")),
    )


def build_off_site_qualitative(raw: Dict[str, Any]) -> OffSiteQualitative:
    return OffSiteQualitative(
        entity_consistency_score=_clamp_score(raw.get("entity_consistency_score")),
        canonical_sources_present=bool(
            _first(raw, "canonical_sources_present", "canonical_sources_presence")
        ),
        reputation_score=_clamp_score(raw.get("reputation_score")),
    )


def build_engine_result(raw: Dict[str, Any]) -> EngineResult:
    engine = str(raw.get("engine") or "unknown")
    error: Optional[str] = raw.get("error") or None
    if error:
        return EngineResult.failed(engine, str(error))

    bucket = raw.get("bucket")
    if bucket not in BUCKET_PRIORITY:
        bucket = "Not Found"
    sentiment = raw.get("sentiment")
    if sentiment not in _SENTIMENTS:
        sentiment = "Neutral"

    return EngineResult(
        engine=engine,
        is_mentioned=bool(_first(raw, "is_mentioned", "mentioned")),
        bucket=bucket,
        sentiment=sentiment,
        competitors_mentioned=[str(c) for c in (raw.get("competitors_mentioned") or []) if c],
        raw_response=str(raw.get("raw_response") or ""),
    )


def _fallback_result(row: Dict[str, Any]) -> EngineResult:
    """A stored query row without a per-engine breakdown."""
    mentioned = bool(row.get("mentioned"))
    return EngineResult(
        engine=str(row.get("engine") or "ChatGPT"),
        is_mentioned=mentioned,
        bucket="Mentioned" if mentioned else "Not Found",
        sentiment=row.get("sentiment") if row.get("sentiment") in _SENTIMENTS else "Neutral",
        competitors_mentioned=[str(c) for c in (row.get("competitors_mentioned") or []) if c],
    )


def build_query_aggregates(rows: Iterable[Dict[str, Any]]) -> List[QueryAggregate]:
    """
    Group query rows by query_text (first-seen order) and aggregate each group.

    Rows either carry `engine_results` (a list of per-engine payloads) or are
    themselves one stored row per engine. Blank query texts are skipped.
    """
    grouped: "OrderedDict[str, List[EngineResult]]" = OrderedDict()
    for row in rows:
        text = str(row.get("query_text") or "").strip()
        if not text:
            continue
        results = grouped.setdefault(text, [])
        engine_rows = row.get("engine_results")
        if engine_rows:
            results.extend(build_engine_result(r) for r in engine_rows)
        elif "bucket" in row or "is_mentioned" in row:
            results.append(build_engine_result(row))
        else:
            results.append(_fallback_result(row))

    return [aggregate(text, results) for text, results in grouped.items()]
