#!/usr/bin/env python3
"""Tests for depmap/scoring.py"""

import logging
import threading
from typing import Any, Callable, Dict
from unittest.mock import Mock

import pytest

from depmap.constants import ConfigurationError
from depmap.graph_model import Unit
from depmap.metrics import ComplexityMetric, CouplingMetric, ExternalApiDetector, ExternalApiMetric, TechDebtMetric
from depmap.scoring import (
    Category,
    ExtractionScoreCombiner,
    ScoringWeights,
    UnitMetrics,
    categorize_score,
    compute_final_score,
)
from test.conftest_graph import GraphBuilder, UnitFactory
from test.conftest_scoring import FixedScoreCalculator

CombinerFactory = Callable[..., ExtractionScoreCombiner]


def _metrics(unit: Unit, coupling: float, complexity: float, tech_debt: float, api: float) -> UnitMetrics:
    return UnitMetrics(
        CouplingMetric(unit, 0, 0, 0, coupling),
        ComplexityMetric(unit, 0, 0, 0.0, complexity),
        TechDebtMetric(unit, "net8.0", tech_debt),
        ExternalApiMetric(unit, 0, api),
    )


class TestScoringWeights:
    """Tests for weight validation."""

    def test_defaults_are_valid(self) -> None:
        weights = ScoringWeights()

        weights.validate()
        assert weights.as_tuple() == (0.40, 0.30, 0.20, 0.10)
        assert weights.total == pytest.approx(1.0)

    def test_sum_within_tolerance(self) -> None:
        ScoringWeights(0.405, 0.30, 0.20, 0.10).validate()

    @pytest.mark.parametrize(
        "weights",
        [
            ScoringWeights(0.5, 0.3, 0.2, 0.1),
            ScoringWeights(0.3, 0.3, 0.2, 0.1),
            ScoringWeights(-0.1, 0.6, 0.4, 0.1),
            ScoringWeights(1.2, -0.2, 0.0, 0.0),
            ScoringWeights(float("nan"), 0.3, 0.2, 0.1),
        ],
    )
    def test_invalid_weights_raise(self, weights: ScoringWeights) -> None:
        with pytest.raises(ConfigurationError):
            weights.validate()

    def test_error_message_names_sum(self) -> None:
        with pytest.raises(ConfigurationError, match="Current sum: 1.100"):
            ScoringWeights(0.5, 0.3, 0.2, 0.1).validate()


class TestCategorizeScore:
    """Tests for category boundaries."""

    @pytest.mark.parametrize(
        "score,category",
        [
            (0.0, Category.EASY),
            (33.0, Category.EASY),
            (33.01, Category.MEDIUM),
            (50.0, Category.MEDIUM),
            (66.99, Category.MEDIUM),
            (67.0, Category.HARD),
            (100.0, Category.HARD),
        ],
    )
    def test_boundaries(self, score: float, category: Category) -> None:
        assert categorize_score(score) == category


class TestComputeFinalScore:
    """Tests for the weighted sum."""

    def test_weighted_sum(self, unit_factory: UnitFactory) -> None:
        metrics = _metrics(unit_factory("A"), 100.0, 50.0, 0.0, 33.0)
        # 0.4*100 + 0.3*50 + 0.2*0 + 0.1*33
        assert compute_final_score(metrics, ScoringWeights()) == pytest.approx(58.3)

    def test_boundary_values_survive_float_noise(self, unit_factory: UnitFactory) -> None:
        for value in (33.0, 67.0):
            score = compute_final_score(_metrics(unit_factory("A"), value, value, value, value), ScoringWeights())
            assert score == value

    def test_clamped(self, unit_factory: UnitFactory) -> None:
        metrics = _metrics(unit_factory("A"), 100.0, 100.0, 100.0, 100.0)
        assert compute_final_score(metrics, ScoringWeights(0.41, 0.3, 0.2, 0.1)) == 100.0


class TestExtractionScoreCombiner:
    """Tests for ExtractionScoreCombiner.combine."""

    def test_sorted_ascending(self, unit_factory: UnitFactory, fixed_combiner_factory: CombinerFactory) -> None:
        units = [unit_factory(n) for n in ("Hard", "Easy", "Mid")]
        combiner = fixed_combiner_factory({"Hard": 80.0, "Easy": 10.0, "Mid": 50.0})

        scores = combiner.combine(units, ScoringWeights())

        assert [s.unit.name for s in scores] == ["Easy", "Mid", "Hard"]
        assert [s.category for s in scores] == [Category.EASY, Category.MEDIUM, Category.HARD]
        assert all(0.0 <= s.final_score <= 100.0 for s in scores)

    def test_ties_ordered_by_name_then_path(self, fixed_combiner_factory: CombinerFactory) -> None:
        units = [Unit("z/Same.csproj", "Same"), Unit("b/beta.csproj", "beta"), Unit("a/Same.csproj", "Same"), Unit("c/Alpha.csproj", "Alpha")]
        combiner = fixed_combiner_factory({})

        scores = combiner.combine(units, ScoringWeights())

        assert [(s.unit.name, s.unit.path) for s in scores] == [
            ("Alpha", "c/Alpha.csproj"),
            ("beta", "b/beta.csproj"),
            ("Same", "a/Same.csproj"),
            ("Same", "z/Same.csproj"),
        ]

    def test_weights_validated_before_metrics(self, unit_factory: UnitFactory) -> None:
        calculators = [FixedScoreCalculator(kind, {}) for kind in ("coupling", "complexity", "tech_debt", "external_api")]
        combiner = ExtractionScoreCombiner(*calculators)

        with pytest.raises(ConfigurationError):
            combiner.combine([unit_factory("A")], ScoringWeights(0.9, 0.9, 0.0, 0.0))

        assert all(calculator.calls == [] for calculator in calculators)

    def test_empty_units(self, fixed_combiner_factory: CombinerFactory) -> None:
        assert fixed_combiner_factory({}).combine([], ScoringWeights()) == []

    def test_results_keep_input_order_regardless_of_completion(self, unit_factory: UnitFactory) -> None:
        """The first unit finishes last; metrics still line up with their units."""
        release = threading.Event()
        units = [unit_factory(f"U{i}") for i in range(6)]

        def slow_first(unit: Unit) -> int:
            if unit.name == "U0":
                release.wait(timeout=5)
            else:
                release.set()
            return int(unit.name[1:])

        combiner = ExtractionScoreCombiner(
            FixedScoreCalculator("coupling", {}),
            FixedScoreCalculator("complexity", {}),
            FixedScoreCalculator("tech_debt", {}),
            ExternalApiDetector(slow_first),
            max_workers=4,
        )

        metrics = combiner.compute_metrics(units)

        assert [m.unit.name for m in metrics] == [u.name for u in units]
        assert [m.external_api.endpoint_count for m in metrics] == list(range(6))

    def test_timeout_uses_fallback(self, unit_factory: UnitFactory, caplog: pytest.LogCaptureFixture) -> None:
        blocker = threading.Event()
        slow = FixedScoreCalculator("complexity", {"Fast": 10.0})
        slow_calculate = slow.calculate

        def calculate(unit: Unit) -> ComplexityMetric:
            if unit.name == "Slow":
                blocker.wait(timeout=5)
            return slow_calculate(unit)

        slow.calculate = calculate  # type: ignore[method-assign]
        combiner = ExtractionScoreCombiner(
            FixedScoreCalculator("coupling", {"Fast": 10.0}),
            slow,
            FixedScoreCalculator("tech_debt", {"Fast": 10.0}),
            FixedScoreCalculator("external_api", {"Fast": 10.0}),
            unit_timeout=0.2,
        )

        try:
            with caplog.at_level(logging.WARNING):
                scores = combiner.combine([unit_factory("Slow"), unit_factory("Fast")], ScoringWeights())
        finally:
            blocker.set()

        by_name = {s.unit.name: s for s in scores}
        assert by_name["Slow"].final_score == pytest.approx(50.0)
        assert by_name["Slow"].complexity_metric.is_fallback
        assert by_name["Fast"].final_score == pytest.approx(10.0)
        assert "timed out" in caplog.text

    def test_timeout_only_neutralizes_the_slow_unit(self, unit_factory: UnitFactory) -> None:
        """Units queued behind a stuck worker are not charged for the wait."""
        blocker = threading.Event()
        units = [unit_factory(f"U{i}") for i in range(3)]

        def count(unit: Unit) -> int:
            if unit.name == "U0":
                blocker.wait(timeout=1.0)
            return 2

        combiner = ExtractionScoreCombiner(
            FixedScoreCalculator("coupling", {}),
            FixedScoreCalculator("complexity", {}),
            FixedScoreCalculator("tech_debt", {}),
            ExternalApiDetector(count),
            max_workers=1,
            unit_timeout=0.2,
        )

        try:
            metrics = combiner.compute_metrics(units)
        finally:
            blocker.set()

        assert [(m.unit.name, m.has_fallback) for m in metrics] == [("U0", True), ("U1", False), ("U2", False)]
        assert [m.external_api.endpoint_count for m in metrics[1:]] == [2, 2]

    def test_unexpected_calculator_error_isolated(self, unit_factory: UnitFactory) -> None:
        broken = Mock()
        broken.calculate.side_effect = RuntimeError("calculator bug")
        broken.fallback.side_effect = lambda unit: FixedScoreCalculator("coupling", {}).fallback(unit)
        combiner = ExtractionScoreCombiner(
            broken,
            FixedScoreCalculator("complexity", {}),
            FixedScoreCalculator("tech_debt", {}),
            FixedScoreCalculator("external_api", {}),
        )

        scores = combiner.combine([unit_factory("A")], ScoringWeights())

        assert scores[0].coupling_metric.is_fallback
        assert scores[0].final_score == pytest.approx(50.0)

    def test_deterministic(self, fixed_combiner_factory: CombinerFactory, unit_factory: UnitFactory) -> None:
        units = [unit_factory(f"U{i:02d}") for i in range(30)]
        scores = {u.name: float(i % 7) * 10 for i, u in enumerate(units)}

        first = fixed_combiner_factory(scores, max_workers=8).combine(units, ScoringWeights())
        second = fixed_combiner_factory(scores, max_workers=2).combine(units, ScoringWeights())

        assert first == second

    def test_for_graph_uses_graph_coupling(self, graph_builder: GraphBuilder) -> None:
        graph = graph_builder([("A", "B", 4)])
        combiner = ExtractionScoreCombiner.for_graph(
            graph,
            complexity_calculator=FixedScoreCalculator("complexity", {}),
            tech_debt_analyzer=FixedScoreCalculator("tech_debt", {}),
            external_api_detector=FixedScoreCalculator("external_api", {}),
        )

        scores = combiner.combine(graph.units, ScoringWeights(1.0, 0.0, 0.0, 0.0))

        # A: 4 outgoing, B: 2 * 4 incoming
        assert [(s.unit.name, s.final_score) for s in scores] == [("A", 50.0), ("B", 100.0)]

    @pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"unit_timeout": 0}, {"unit_timeout": -1.0}])
    def test_invalid_pool_settings(self, kwargs: Dict[str, Any]) -> None:
        with pytest.raises(ConfigurationError):
            ExtractionScoreCombiner(FixedScoreCalculator("coupling", {}), **kwargs)
