"""
Unit tests for core/evs/scoring.py

Tests cover:
- On-site score: 25/3 per binary check, answer box * 2.5, single rounding
- Off-site score: qualitative pillars + share-of-voice points, capped at 50
- Share-of-voice percentage and points
- Total = exact sum of the halves
- Half-up rounding
"""
import pytest
from pydantic import ValidationError

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.evs.aggregator import aggregate
from core.evs.models import EngineResult, OffSiteQualitative, OnSiteSignals
from core.evs.scoring import (
    off_site_score,
    on_site_score,
    qualitative_points,
    round_half_up,
    share_of_voice_percentage,
    share_of_voice_points,
    total,
    visibility_score,
)


def _aggregates(*mentioned_flags):
    out = []
    for i, flag in enumerate(mentioned_flags):
        result = EngineResult(
            engine="ChatGPT",
            is_mentioned=flag,
            bucket="Mentioned" if flag else "Not Found",
        )
        out.append(aggregate(f"query {i}", [result]))
    return out


class TestRoundHalfUp:
    def test_halves_go_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(12.5) == 13
        assert round_half_up(0.5) == 1

    def test_regular_rounding(self):
        assert round_half_up(8.333) == 8
        assert round_half_up(16.667) == 17
        assert round_half_up(-0.4) == 0


class TestOnSiteScore:
    """
    On-site score:
    - robots_ok, sitemap_ok, schema_present: 25/3 each (25 together)
    - answer_box_score * 2.5 (max 25)
    - rounded once, clamped to 0..50
    """

    def test_nothing(self):
        assert on_site_score(OnSiteSignals()) == 0

    def test_single_binary_check(self):
        assert on_site_score(OnSiteSignals(robots_ok=True)) == 8

    def test_two_binary_checks(self):
        assert on_site_score(OnSiteSignals(robots_ok=True, schema_present=True)) == 17

    def test_three_binary_checks_are_exactly_25(self):
        """No per-term rounding drift (8+8+8 would be 24)"""
        signals = OnSiteSignals(robots_ok=True, sitemap_ok=True, schema_present=True)
        assert on_site_score(signals) == 25

    def test_answer_box_only(self):
        assert on_site_score(OnSiteSignals(answer_box_score=10)) == 25
        assert on_site_score(OnSiteSignals(answer_box_score=1)) == 3
        assert on_site_score(OnSiteSignals(answer_box_score=3)) == 8

    def test_mixed(self):
        # 8.333 + 2.5 = 10.833
        assert on_site_score(OnSiteSignals(robots_ok=True, answer_box_score=1)) == 11

    def test_perfect(self):
        signals = OnSiteSignals(robots_ok=True, sitemap_ok=True, schema_present=True, answer_box_score=10)
        assert on_site_score(signals) == 50

    def test_structure_and_authority_do_not_score(self):
        base = OnSiteSignals(robots_ok=True, answer_box_score=4)
        richer = OnSiteSignals(robots_ok=True, answer_box_score=4, structure_score=10, authority_score=10)
        assert on_site_score(base) == on_site_score(richer)

    @pytest.mark.parametrize("field", ["answer_box_score", "structure_score", "authority_score"])
    def test_out_of_range_inputs_rejected(self, field):
        with pytest.raises(ValidationError):
            OnSiteSignals(**{field: 11})
        with pytest.raises(ValidationError):
            OnSiteSignals(**{field: -1})

    def test_bounds_over_all_valid_inputs(self):
        for mask in range(8):
            for box in range(11):
                signals = OnSiteSignals(
                    robots_ok=bool(mask & 1),
                    sitemap_ok=bool(mask & 2),
                    schema_present=bool(mask & 4),
                    answer_box_score=box,
                )
                assert 0 <= on_site_score(signals) <= 50


class TestShareOfVoice:
    def test_empty(self):
        assert share_of_voice_percentage([]) == 0
        assert share_of_voice_points(0) == 0

    def test_all_mentioned(self):
        assert share_of_voice_percentage(_aggregates(True, True)) == 100
        assert share_of_voice_points(100) == 25

    def test_half(self):
        assert share_of_voice_percentage(_aggregates(True, False)) == 50
        assert share_of_voice_points(50) == 13  # 12.5 rounds up

    def test_thirds(self):
        assert share_of_voice_percentage(_aggregates(True, False, False)) == 33
        assert share_of_voice_points(33) == 8
        assert share_of_voice_percentage(_aggregates(True, True, False)) == 67
        assert share_of_voice_points(67) == 17

    def test_one_in_eight(self):
        assert share_of_voice_percentage(_aggregates(True, *([False] * 7))) == 13


class TestOffSiteScore:
    """
    Off-site score:
    - qualitative: entity + reputation + 5 if canonical sources (max 25)
    - share of voice points (max 25)
    - capped at 50
    """

    def test_nothing(self):
        assert off_site_score(OffSiteQualitative(), []) == 0

    def test_qualitative_only(self):
        q = OffSiteQualitative(entity_consistency_score=7, reputation_score=6, canonical_sources_present=True)
        assert qualitative_points(q) == 18
        assert off_site_score(q, []) == 18

    def test_sov_only(self):
        assert off_site_score(OffSiteQualitative(), _aggregates(True, False)) == 13

    def test_perfect(self):
        q = OffSiteQualitative(entity_consistency_score=10, reputation_score=10, canonical_sources_present=True)
        assert off_site_score(q, _aggregates(True, True, True)) == 50

    def test_mixed(self):
        q = OffSiteQualitative(entity_consistency_score=5, reputation_score=4)
        # 9 + round(67/100*25)=17
        assert off_site_score(q, _aggregates(True, True, False)) == 26

    def test_bounds(self):
        for entity in (0, 5, 10):
            for rep in (0, 5, 10):
                for canonical in (False, True):
                    q = OffSiteQualitative(
                        entity_consistency_score=entity,
                        reputation_score=rep,
                        canonical_sources_present=canonical,
                    )
                    for flags in ((), (False,), (True,), (True, False, True)):
                        assert 0 <= off_site_score(q, _aggregates(*flags)) <= 50


class TestTotal:
    def test_total_is_exact_sum(self):
        assert total(25, 13) == 38

    def test_visibility_score(self):
        signals = OnSiteSignals(robots_ok=True, sitemap_ok=True, schema_present=True, answer_box_score=6)
        q = OffSiteQualitative(entity_consistency_score=7, reputation_score=6, canonical_sources_present=True)
        score = visibility_score(signals, q, _aggregates(True, False))
        assert score.on_site == 40
        assert score.off_site == 31
        assert score.total == 71
        assert score.total == score.on_site + score.off_site

    def test_idempotent(self):
        signals = OnSiteSignals(robots_ok=True, answer_box_score=7)
        q = OffSiteQualitative(reputation_score=3)
        aggs = _aggregates(True, False, False)
        assert visibility_score(signals, q, aggs) == visibility_score(signals, q, aggs)
