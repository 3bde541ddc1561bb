"""
Unit tests for core/evs/aggregator.py

Tests cover:
- any_mentioned OR semantics
- Best result by bucket priority with first-occurrence tie-break
- Competitor union (exact-string dedup, first-seen order)
- Errored engine results count as valid, non-mentioned observations
- Empty input rejection
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.evs.aggregator import aggregate, pick_best
from core.evs.models import BUCKET_PRIORITY, EngineResult, InvalidInput


def _r(engine, bucket="Not Found", mentioned=None, competitors=None, error=None):
    if mentioned is None:
        mentioned = bucket != "Not Found"
    return EngineResult(
        engine=engine,
        is_mentioned=mentioned,
        bucket=bucket,
        competitors_mentioned=competitors or [],
        error=error,
    )


class TestBucketPriority:
    def test_explicit_order_table(self):
        assert BUCKET_PRIORITY == {"Top Answer": 3, "Mentioned": 2, "Cited": 1, "Not Found": 0}


class TestBestResult:
    """Tie-break winner selection"""

    def test_single_element(self):
        only = _r("ChatGPT", "Cited")
        agg = aggregate("q", [only])
        assert agg.best_result == only
        assert agg.any_mentioned is only.is_mentioned

    def test_highest_bucket_wins(self):
        results = [_r("ChatGPT", "Not Found"), _r("Claude", "Cited"), _r("Gemini", "Top Answer"), _r("Perplexity", "Mentioned")]
        agg = aggregate("q", results)
        assert agg.best_result.bucket == "Top Answer"
        assert agg.best_result.engine == "Gemini"

    def test_tie_keeps_first_occurrence(self):
        results = [_r("ChatGPT", "Mentioned"), _r("Claude", "Mentioned"), _r("Gemini", "Mentioned")]
        assert aggregate("q", results).best_result.engine == "ChatGPT"

    def test_all_not_found_keeps_first(self):
        results = [_r("Gemini"), _r("ChatGPT")]
        assert pick_best(results).engine == "Gemini"


class TestAnyMentioned:
    def test_all_false(self):
        results = [_r("a"), _r("b"), _r("c")]
        assert aggregate("q", results).any_mentioned is False

    def test_one_true(self):
        results = [_r("a"), _r("b", "Mentioned"), _r("c")]
        assert aggregate("q", results).any_mentioned is True


class TestCompetitors:
    def test_union_dedup_first_seen_order(self):
        results = [
            _r("a", competitors=["Globex", "Initech"]),
            _r("b", competitors=["Initech", "Umbrella"]),
        ]
        assert aggregate("q", results).all_competitors == ["Globex", "Initech", "Umbrella"]

    def test_case_sensitive(self):
        results = [_r("a", competitors=["Globex"]), _r("b", competitors=["globex"])]
        assert aggregate("q", results).all_competitors == ["Globex", "globex"]

    def test_no_competitors(self):
        assert aggregate("q", [_r("a")]).all_competitors == []


class TestErroredResults:
    """Engine failures are observations, not exclusions"""

    def test_error_only(self):
        failed = EngineResult.failed("Claude", "timeout")
        agg = aggregate("q", [failed])
        assert agg.best_result == failed
        assert agg.any_mentioned is False

    def test_error_treated_as_lowest_bucket(self):
        inconsistent = EngineResult(engine="Claude", is_mentioned=True, bucket="Top Answer", error="HTTP 500")
        cited = _r("Gemini", "Cited")
        agg = aggregate("q", [inconsistent, cited])
        assert agg.best_result == cited
        assert agg.any_mentioned is True

    def test_error_does_not_count_as_mention(self):
        inconsistent = EngineResult(engine="Claude", is_mentioned=True, bucket="Mentioned", error="HTTP 500")
        assert aggregate("q", [inconsistent, _r("Gemini")]).any_mentioned is False


class TestInvalidInput:
    def test_empty_list(self):
        with pytest.raises(InvalidInput):
            aggregate("q", [])

    def test_invalid_input_is_value_error(self):
        assert issubclass(InvalidInput, ValueError)

    def test_query_text_carried(self):
        assert aggregate("best crm for startups", [_r("a")]).query_text == "best crm for startups"

    def test_idempotent(self):
        results = [_r("a", "Cited", competitors=["X"]), _r("b", "Mentioned")]
        assert aggregate("q", results) == aggregate("q", results)
