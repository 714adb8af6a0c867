#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Weighted extraction difficulty scores.

Combines the four per-unit metrics into one final 0-100 score using
configurable weights and assigns each unit an easy/medium/hard category.
"""

import concurrent.futures
import enum
import logging
import math
import time
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    DEFAULT_COMPLEXITY_WEIGHT,
    DEFAULT_COUPLING_WEIGHT,
    DEFAULT_EXTERNAL_API_WEIGHT,
    DEFAULT_MAX_WORKERS,
    DEFAULT_TECH_DEBT_WEIGHT,
    DEFAULT_UNIT_TIMEOUT,
    EASY_SCORE_MAX,
    HARD_SCORE_MIN,
    MAX_SCORE,
    MIN_SCORE,
    SCORE_PRECISION,
    WEIGHT_SUM_TOLERANCE,
    ConfigurationError,
)
from .graph_model import DependencyGraph, Unit
from .metrics import (
    ComplexityMetric,
    ComplexityMetricCalculator,
    CouplingMetric,
    CouplingMetricCalculator,
    ExternalApiDetector,
    ExternalApiMetric,
    MetricCalculator,
    TechDebtAnalyzer,
    TechDebtMetric,
)

logger = logging.getLogger(__name__)

# Seconds between checks whether a queued unit has been picked up by a worker
_START_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class ScoringWeights:
    """Weights applied to the normalized metrics.

    Each weight must lie in [0, 1] and the four must sum to 1.0 within
    WEIGHT_SUM_TOLERANCE so the final score stays on the 0-100 scale.
    """

    coupling: float = DEFAULT_COUPLING_WEIGHT
    complexity: float = DEFAULT_COMPLEXITY_WEIGHT
    tech_debt: float = DEFAULT_TECH_DEBT_WEIGHT
    external_api: float = DEFAULT_EXTERNAL_API_WEIGHT

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.coupling, self.complexity, self.tech_debt, self.external_api)

    @property
    def total(self) -> float:
        return math.fsum(self.as_tuple())

    def _describe(self) -> str:
        return ", ".join(f"{f.name}={getattr(self, f.name)}" for f in fields(self))

    def validate(self) -> None:
        """Check the weights.

        Raises:
            ConfigurationError: If a weight is not a finite number in [0, 1] or the sum is not 1.0 +/- 0.01
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"Weight '{f.name}' must be a finite number, got {value!r}")
            if value < 0.0 or value > 1.0:
                raise ConfigurationError(f"All weights must be between 0.0 and 1.0. Current: {self._describe()}")

        total = self.total
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ConfigurationError(
                f"Weights must sum to 1.0 (+/-{WEIGHT_SUM_TOLERANCE} tolerance). Current sum: {total:.3f}. Weights: {self._describe()}"
            )


class Category(enum.Enum):
    """Extraction difficulty category."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def categorize_score(score: float) -> Category:
    """Category for a final score: easy <= 33 < medium < 67 <= hard."""
    if score <= EASY_SCORE_MAX:
        return Category.EASY
    if score >= HARD_SCORE_MIN:
        return Category.HARD
    return Category.MEDIUM


@dataclass(frozen=True)
class UnitMetrics:
    """The four metrics computed for one unit."""

    coupling: CouplingMetric
    complexity: ComplexityMetric
    tech_debt: TechDebtMetric
    external_api: ExternalApiMetric

    @property
    def unit(self) -> Unit:
        return self.coupling.unit

    @property
    def has_fallback(self) -> bool:
        return any(m.is_fallback for m in (self.coupling, self.complexity, self.tech_debt, self.external_api))

    def scores(self) -> Tuple[float, float, float, float]:
        return (
            self.coupling.normalized_score,
            self.complexity.normalized_score,
            self.tech_debt.normalized_score,
            self.external_api.normalized_score,
        )


@dataclass(frozen=True)
class ExtractionScore:
    """Final weighted extraction score of a unit."""

    unit: Unit
    final_score: float
    coupling_metric: CouplingMetric
    complexity_metric: ComplexityMetric
    tech_debt_metric: TechDebtMetric
    external_api_metric: ExternalApiMetric

    @property
    def category(self) -> Category:
        return categorize_score(self.final_score)

    def sort_key(self) -> Tuple[float, str, str]:
        return (self.final_score, self.unit.name.casefold(), self.unit.path.casefold())


def compute_final_score(metrics: UnitMetrics, weights: ScoringWeights) -> float:
    """Weighted sum of the normalized metric scores, clamped to [0, 100]."""
    score = float(np.dot(metrics.scores(), weights.as_tuple()))
    # Float noise must not move a score across a category boundary
    return round(float(np.clip(score, MIN_SCORE, MAX_SCORE)), SCORE_PRECISION)


class ExtractionScoreCombiner:
    """Compute per-unit metrics in parallel and combine them into final scores.

    Args:
        coupling_calculator: Calculator for the coupling metric
        complexity_calculator: Calculator for the complexity metric
        tech_debt_analyzer: Calculator for the technology debt metric
        external_api_detector: Calculator for the external API metric
        max_workers: Worker pool size (None = executor default)
        unit_timeout: Seconds to wait for one unit's metrics before using fallbacks (None = no limit)
    """

    def __init__(
        self,
        coupling_calculator: MetricCalculator,
        complexity_calculator: Optional[MetricCalculator] = None,
        tech_debt_analyzer: Optional[MetricCalculator] = None,
        external_api_detector: Optional[MetricCalculator] = None,
        max_workers: Optional[int] = DEFAULT_MAX_WORKERS,
        unit_timeout: Optional[float] = DEFAULT_UNIT_TIMEOUT,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {max_workers}")
        if unit_timeout is not None and unit_timeout <= 0:
            raise ConfigurationError(f"unit_timeout must be positive, got {unit_timeout}")
        self.coupling_calculator = coupling_calculator
        self.complexity_calculator = complexity_calculator if complexity_calculator is not None else ComplexityMetricCalculator()
        self.tech_debt_analyzer = tech_debt_analyzer if tech_debt_analyzer is not None else TechDebtAnalyzer()
        self.external_api_detector = external_api_detector if external_api_detector is not None else ExternalApiDetector()
        self.max_workers = max_workers
        self.unit_timeout = unit_timeout

    @classmethod
    def for_graph(cls, graph: DependencyGraph, **kwargs: Any) -> "ExtractionScoreCombiner":
        """Combiner whose coupling metric is relative to graph."""
        return cls(CouplingMetricCalculator(graph), **kwargs)

    def _calculators(self) -> Tuple[MetricCalculator, ...]:
        return (self.coupling_calculator, self.complexity_calculator, self.tech_debt_analyzer, self.external_api_detector)

    def calculate_unit_metrics(self, unit: Unit) -> UnitMetrics:
        """All four metrics for a single unit."""
        return UnitMetrics(*(calculator.calculate(unit) for calculator in self._calculators()))  # type: ignore[arg-type]

    def fallback_metrics(self, unit: Unit) -> UnitMetrics:
        """Neutral metrics for a unit whose analysis did not finish."""
        return UnitMetrics(*(calculator.fallback(unit) for calculator in self._calculators()))  # type: ignore[arg-type]

    def _timed_unit_metrics(self, unit: Unit, started: Dict[int, float], index: int) -> UnitMetrics:
        started[index] = time.monotonic()
        return self.calculate_unit_metrics(unit)

    def _await_unit(self, future: "concurrent.futures.Future[UnitMetrics]", started: Dict[int, float], index: int) -> UnitMetrics:
        """Wait for one unit, charging the timeout from the moment a worker picked it up."""
        if self.unit_timeout is None:
            return future.result()
        while index not in started:
            # Queued behind busy workers; its clock has not started yet
            done, _ = concurrent.futures.wait([future], timeout=_START_POLL_INTERVAL)
            if done:
                return future.result()
        remaining = started[index] + self.unit_timeout - time.monotonic()
        return future.result(timeout=max(remaining, 0.0))

    def _compute_batch(self, units: Sequence[Unit], indices: List[int], results: List[Optional[UnitMetrics]]) -> List[int]:
        """Compute metrics for units[indices] on a fresh worker pool.

        A unit that runs past the timeout keeps its worker busy. Units that had
        not started by then are cancelled and returned for a new pool, so they
        are not charged for the stuck one.

        Returns:
            Indices that must be resubmitted
        """
        started: Dict[int, float] = {}
        resubmit: List[int] = []
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="depmap-metrics")
        try:
            futures = {i: executor.submit(self._timed_unit_metrics, units[i], started, i) for i in indices}
            for position, i in enumerate(indices):
                if i in resubmit:
                    continue
                unit = units[i]
                try:
                    results[i] = self._await_unit(futures[i], started, i)
                except concurrent.futures.TimeoutError:
                    logger.warning("Metric calculation for %s timed out after %.1fs, using neutral scores", unit.name, self.unit_timeout)
                    results[i] = self.fallback_metrics(unit)
                    resubmit.extend(j for j in indices[position + 1 :] if j not in resubmit and futures[j].cancel())
                except Exception as e:  # pylint: disable=broad-exception-caught
                    logger.warning("Metric calculation for %s failed, using neutral scores: %s", unit.name, e)
                    results[i] = self.fallback_metrics(unit)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if resubmit:
            logger.debug("Resubmitting %d queued units to a new worker pool", len(resubmit))
        return resubmit

    def compute_metrics(self, units: Sequence[Unit]) -> List[UnitMetrics]:
        """Compute metrics for all units on a bounded worker pool.

        Results are returned in the order of units regardless of completion order.
        A unit whose own calculation exceeds the timeout, or fails unexpectedly,
        gets fallback metrics. Time spent waiting for a free worker does not count.
        """
        if not units:
            return []

        results: List[Optional[UnitMetrics]] = [None] * len(units)
        pending = list(range(len(units)))
        while pending:
            pending = self._compute_batch(units, pending, results)

        computed = [m for m in results if m is not None]
        fallback_units = sum(1 for m in computed if m.has_fallback)
        if fallback_units:
            logger.info("%d of %d units use at least one fallback metric", fallback_units, len(computed))
        return computed

    def combine(self, units: Iterable[Unit], weights: ScoringWeights) -> List[ExtractionScore]:
        """Score all units and return them sorted ascending (easiest first).

        Args:
            units: Units to score
            weights: Metric weights, validated before any metric is computed

        Returns:
            ExtractionScores ordered by final score, then unit name, then path

        Raises:
            ConfigurationError: If the weights are invalid
        """
        weights.validate()
        unit_list = list(units)
        logger.info("Calculating extraction scores for %d units", len(unit_list))

        scores = [
            ExtractionScore(
                unit=m.unit,
                final_score=compute_final_score(m, weights),
                coupling_metric=m.coupling,
                complexity_metric=m.complexity,
                tech_debt_metric=m.tech_debt,
                external_api_metric=m.external_api,
            )
            for m in self.compute_metrics(unit_list)
        ]
        scores.sort(key=ExtractionScore.sort_key)

        if scores:
            logger.info("Extraction scores range from %.1f (%s) to %.1f (%s)", scores[0].final_score, scores[0].unit.name, scores[-1].final_score, scores[-1].unit.name)
        return scores
