#!/usr/bin/env python3
"""Metric and scoring fixtures for extraction analysis tests."""

import pytest
from typing import Callable, Dict, List, Mapping

from depmap.graph_model import Unit
from depmap.metrics import ComplexityMetric, CouplingMetric, ExternalApiMetric, TechDebtMetric
from depmap.scoring import ExtractionScoreCombiner, ScoringWeights


class FixedScoreCalculator:
    """Calculator double returning a preset normalized score per unit name.

    Units without a preset score get 0. Every calculate() call is recorded.
    """

    def __init__(self, kind: str, scores: Mapping[str, float]) -> None:
        self.kind = kind
        self.scores = dict(scores)
        self.calls: List[str] = []

    def _metric(self, unit: Unit, score: float, is_fallback: bool = False):  # type: ignore[no-untyped-def]
        if self.kind == "coupling":
            return CouplingMetric(unit, 0, 0, 0, score, is_fallback)
        if self.kind == "complexity":
            return ComplexityMetric(unit, 0, 0, 0.0, score, is_fallback)
        if self.kind == "tech_debt":
            return TechDebtMetric(unit, "net8.0", score, is_fallback)
        return ExternalApiMetric(unit, 0, score, is_fallback)

    def calculate(self, unit: Unit):  # type: ignore[no-untyped-def]
        self.calls.append(unit.name)
        return self._metric(unit, self.scores.get(unit.name, 0.0))

    def fallback(self, unit: Unit):  # type: ignore[no-untyped-def]
        return self._metric(unit, 50.0, is_fallback=True)


def make_fixed_combiner(scores: Mapping[str, float], **kwargs) -> ExtractionScoreCombiner:  # type: ignore[no-untyped-def]
    """Combiner whose four metrics all equal the preset score, so final score == preset."""
    return ExtractionScoreCombiner(
        FixedScoreCalculator("coupling", scores),
        FixedScoreCalculator("complexity", scores),
        FixedScoreCalculator("tech_debt", scores),
        FixedScoreCalculator("external_api", scores),
        **kwargs,
    )


@pytest.fixture
def default_weights() -> ScoringWeights:
    """Default 40/30/20/10 weights."""
    return ScoringWeights()


@pytest.fixture
def fixed_combiner_factory() -> Callable[..., ExtractionScoreCombiner]:
    """Factory for combiners producing preset final scores per unit name."""
    return make_fixed_combiner


@pytest.fixture
def seventy_three_unit_scores() -> Dict[str, float]:
    """73 units: 18 easy (<= 33), 31 medium, 24 hard (>= 67), boundaries included."""
    scores: Dict[str, float] = {}
    for i in range(18):
        scores[f"Easy{i:02d}"] = 33.0 if i == 0 else float(i)
    for i in range(31):
        scores[f"Medium{i:02d}"] = 33.5 + i
    for i in range(24):
        scores[f"Hard{i:02d}"] = 67.0 if i == 0 else 67.0 + i
    return scores
