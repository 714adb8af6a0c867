#!/usr/bin/env python3
"""Tests for depmap/ranking.py"""

import logging
from typing import Callable, Dict
from unittest.mock import Mock

import pytest

from depmap.constants import ConfigurationError
from depmap.ranking import ExtractionStatistics, rank_candidates, rank_scores
from depmap.scoring import Category, ExtractionScoreCombiner, ScoringWeights
from test.conftest_graph import UnitFactory

CombinerFactory = Callable[..., ExtractionScoreCombiner]


class TestRankCandidates:
    """Tests for rank_candidates."""

    def test_seventy_three_units(
        self, unit_factory: UnitFactory, fixed_combiner_factory: CombinerFactory, seventy_three_unit_scores: Dict[str, float]
    ) -> None:
        units = [unit_factory(name) for name in seventy_three_unit_scores]
        combiner = fixed_combiner_factory(seventy_three_unit_scores)

        ranked = rank_candidates(units, combiner, ScoringWeights())

        assert ranked.statistics == ExtractionStatistics(total_units=73, easy_count=18, medium_count=31, hard_count=24)
        assert ranked.statistics.is_valid
        assert len(ranked.all_units) == 73

    def test_easiest_and_hardest_lists(
        self, unit_factory: UnitFactory, fixed_combiner_factory: CombinerFactory, seventy_three_unit_scores: Dict[str, float]
    ) -> None:
        units = [unit_factory(name) for name in seventy_three_unit_scores]

        ranked = rank_candidates(units, fixed_combiner_factory(seventy_three_unit_scores), ScoringWeights())

        easiest = [s.final_score for s in ranked.easiest_candidates]
        hardest = [s.final_score for s in ranked.hardest_candidates]
        assert len(easiest) == 10
        assert easiest == sorted(easiest)
        assert easiest[0] == 1.0
        assert all(s.category == Category.EASY for s in ranked.easiest_candidates)
        assert len(hardest) == 10
        assert hardest == sorted(hardest, reverse=True)
        assert hardest[0] == 90.0
        assert all(s.category == Category.HARD for s in ranked.hardest_candidates)

    def test_fewer_candidates_than_limit(self, unit_factory: UnitFactory, fixed_combiner_factory: CombinerFactory) -> None:
        scores = {"A": 10.0, "B": 20.0, "C": 50.0, "D": 70.0}
        units = [unit_factory(n) for n in scores]

        ranked = rank_candidates(units, fixed_combiner_factory(scores), ScoringWeights())

        assert [s.unit.name for s in ranked.easiest_candidates] == ["A", "B"]
        assert [s.unit.name for s in ranked.hardest_candidates] == ["D"]

    def test_boundary_scores(self, unit_factory: UnitFactory, fixed_combiner_factory: CombinerFactory) -> None:
        scores = {"AtEasy": 33.0, "AtHard": 67.0}
        units = [unit_factory(n) for n in scores]

        ranked = rank_candidates(units, fixed_combiner_factory(scores), ScoringWeights())

        assert [s.unit.name for s in ranked.easiest_candidates] == ["AtEasy"]
        assert [s.unit.name for s in ranked.hardest_candidates] == ["AtHard"]
        assert ranked.statistics.medium_count == 0

    def test_no_units(self, fixed_combiner_factory: CombinerFactory) -> None:
        ranked = rank_candidates([], fixed_combiner_factory({}), ScoringWeights())

        assert ranked.all_units == ()
        assert ranked.easiest_candidates == ()
        assert ranked.statistics == ExtractionStatistics(0, 0, 0, 0)

    def test_combiner_called_once(self, unit_factory: UnitFactory) -> None:
        combiner = Mock(spec=ExtractionScoreCombiner)
        combiner.combine.return_value = []
        units = [unit_factory("A")]
        weights = ScoringWeights()

        rank_candidates(units, combiner, weights)

        combiner.combine.assert_called_once_with(units, weights)

    def test_invalid_weights_propagate(self, unit_factory: UnitFactory, fixed_combiner_factory: CombinerFactory) -> None:
        with pytest.raises(ConfigurationError):
            rank_candidates([unit_factory("A")], fixed_combiner_factory({}), ScoringWeights(0.0, 0.0, 0.0, 0.0))


class TestExtractionStatistics:
    """Tests for the category count invariant."""

    def test_invalid_counts_detected(self) -> None:
        assert not ExtractionStatistics(total_units=5, easy_count=1, medium_count=1, hard_count=1).is_valid

    def test_warning_logged_when_counts_disagree(self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
        import depmap.ranking as ranking

        monkeypatch.setattr(ranking, "calculate_extraction_statistics", lambda scores: ExtractionStatistics(3, 1, 1, 0))

        with caplog.at_level(logging.WARNING):
            rank_scores([])

        assert "Category counts do not add up" in caplog.text
