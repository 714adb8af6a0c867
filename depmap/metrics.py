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
"""Per-unit extraction difficulty metrics.

Four calculators share the MetricCalculator protocol: coupling, cyclomatic
complexity, technology debt and external API exposure. Each normalizes its raw
values to a 0-100 score where higher means harder to extract.

Coupling is normalized relative to the analyzed graph. Complexity, tech debt and
API exposure use fixed thresholds. A calculator never raises: when its
underlying analysis fails it logs a warning and returns a fallback metric with
the neutral score 50.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from .constants import (
    API_EXPOSURE_MAX_SCORE,
    API_EXPOSURE_STEPS,
    COMPLEXITY_SCORE_ANCHORS,
    COMPLEXITY_THRESHOLDS,
    FRAMEWORK_DEBT_SCORES,
    MAX_SCORE,
    MIN_SCORE,
    NEUTRAL_FALLBACK_SCORE,
    REFERENCE_COUNT_COUPLING,
    UNKNOWN_FRAMEWORK,
)
from .graph_model import DependencyGraph, Unit
from .source_analysis import analyze_unit_complexity, count_unit_endpoints

logger = logging.getLogger(__name__)

ComplexityAnalyzer = Callable[[Unit], Sequence[int]]
EndpointCounter = Callable[[Unit], int]
FrameworkResolver = Callable[[Unit], Optional[str]]


@dataclass(frozen=True)
class CouplingMetric:
    """Coupling of a unit to the rest of the graph.

    Attributes:
        unit: Measured unit
        incoming_count: Summed coupling of edges pointing at the unit
        outgoing_count: Summed coupling of edges leaving the unit
        total_score: 2 * incoming + outgoing
        normalized_score: total_score relative to the graph maximum, 0-100
        is_fallback: True when the value is the neutral fallback
    """

    unit: Unit
    incoming_count: int
    outgoing_count: int
    total_score: int
    normalized_score: float
    is_fallback: bool = False


@dataclass(frozen=True)
class ComplexityMetric:
    """Average cyclomatic complexity of a unit's methods."""

    unit: Unit
    method_count: int
    total_complexity: int
    average_complexity: float
    normalized_score: float
    is_fallback: bool = False


@dataclass(frozen=True)
class TechDebtMetric:
    """Framework staleness of a unit."""

    unit: Unit
    target_framework: str
    normalized_score: float
    is_fallback: bool = False


@dataclass(frozen=True)
class ExternalApiMetric:
    """Public endpoint surface of a unit."""

    unit: Unit
    endpoint_count: int
    normalized_score: float
    is_fallback: bool = False


Metric = Union[CouplingMetric, ComplexityMetric, TechDebtMetric, ExternalApiMetric]


class MetricCalculator(Protocol):
    """Interface shared by all metric calculators."""

    def calculate(self, unit: Unit) -> Metric:
        ...

    def fallback(self, unit: Unit) -> Metric:
        ...


# =============================================================================
# Coupling
# =============================================================================


def _edge_weight(coupling: Optional[int]) -> int:
    return REFERENCE_COUNT_COUPLING if coupling is None else coupling


class CouplingMetricCalculator:
    """Coupling metric normalized against the most coupled unit of the graph.

    Incoming coupling counts double: every consumer of a unit must change when
    the unit is extracted. Edges without a coupling annotation count as one
    reference.
    """

    def __init__(self, graph: DependencyGraph) -> None:
        self._graph = graph
        self._raw: Dict[Unit, Tuple[int, int, int]] = {}
        for unit in graph.units:
            incoming = sum(_edge_weight(e.coupling) for e in graph.in_edges(unit))
            outgoing = sum(_edge_weight(e.coupling) for e in graph.out_edges(unit))
            self._raw[unit] = (incoming, outgoing, incoming * 2 + outgoing)
        self._max_score = max((raw[2] for raw in self._raw.values()), default=0)
        logger.debug("Coupling baseline: max raw score %d over %d units", self._max_score, len(self._raw))

    @property
    def max_score(self) -> int:
        return self._max_score

    def fallback(self, unit: Unit) -> CouplingMetric:
        return CouplingMetric(unit, 0, 0, 0, NEUTRAL_FALLBACK_SCORE, is_fallback=True)

    def calculate(self, unit: Unit) -> CouplingMetric:
        raw = self._raw.get(unit)
        if raw is None:
            logger.warning("Unit %s is not part of the dependency graph, using neutral coupling score %.0f", unit.name, NEUTRAL_FALLBACK_SCORE)
            return self.fallback(unit)
        incoming, outgoing, total = raw
        normalized = 0.0 if self._max_score == 0 else total / self._max_score * MAX_SCORE
        logger.debug("Unit %s: incoming=%d, outgoing=%d, coupling score=%.1f", unit.name, incoming, outgoing, normalized)
        return CouplingMetric(unit, incoming, outgoing, total, float(np.clip(normalized, MIN_SCORE, MAX_SCORE)))


# =============================================================================
# Complexity
# =============================================================================


def normalize_complexity(average_complexity: float) -> float:
    """Map an average cyclomatic complexity to 0-100.

    Piecewise linear: 0-7 -> 0-33, 7-15 -> 33-66, 15-25 -> 66-90, and one point
    per unit of complexity above 25, capped at 100.

    Args:
        average_complexity: Average complexity per method (>= 0)

    Returns:
        Normalized score
    """
    return float(np.interp(average_complexity, COMPLEXITY_THRESHOLDS, COMPLEXITY_SCORE_ANCHORS))


class ComplexityMetricCalculator:
    """Complexity metric from per-method cyclomatic complexities.

    Args:
        analyzer: Callable returning per-method complexities for a unit.
            Defaults to Python source analysis below the unit's directory.
    """

    def __init__(self, analyzer: Optional[ComplexityAnalyzer] = None) -> None:
        self._analyzer = analyzer if analyzer is not None else analyze_unit_complexity

    def fallback(self, unit: Unit) -> ComplexityMetric:
        return ComplexityMetric(unit, 0, 0, 0.0, NEUTRAL_FALLBACK_SCORE, is_fallback=True)

    def calculate(self, unit: Unit) -> ComplexityMetric:
        try:
            complexities = [int(c) for c in self._analyzer(unit)]
            if any(c < 0 for c in complexities):
                raise ValueError("negative complexity reported")
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Complexity analysis failed for %s, using neutral score %.0f: %s", unit.name, NEUTRAL_FALLBACK_SCORE, e)
            return self.fallback(unit)

        if not complexities:
            logger.debug("Unit %s has no methods, complexity score 0", unit.name)
            return ComplexityMetric(unit, 0, 0, 0.0, MIN_SCORE)

        average = float(np.mean(complexities))
        normalized = normalize_complexity(average)
        logger.debug("Unit %s: %d methods, average complexity %.2f, score %.1f", unit.name, len(complexities), average, normalized)
        return ComplexityMetric(unit, len(complexities), sum(complexities), average, normalized)


# =============================================================================
# Technology debt
# =============================================================================


def normalize_target_framework(tfm: str) -> str:
    """Normalize a target framework moniker for table lookup.

    "net6" becomes "net6.0"; "netcoreapp*", "net472" and "net8.0" only get lower-cased.
    """
    tfm = tfm.strip().lower()
    if tfm.startswith("netcoreapp") or not tfm.startswith("net"):
        return tfm
    version = tfm[3:]
    if len(version) == 1 and version.isdigit():
        return tfm + ".0"
    return tfm


def legacy_version_to_tfm(version: str) -> str:
    """Convert a legacy TargetFrameworkVersion ("v4.7.2") to a moniker ("net472")."""
    version = version.strip().lstrip("vV")
    if not version:
        return UNKNOWN_FRAMEWORK
    return "net" + version.replace(".", "")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def read_project_framework(project_file: Union[str, Path]) -> Optional[str]:
    """Read the target framework from an MSBuild project file.

    Checks TargetFramework, then the first entry of TargetFrameworks, then the
    legacy TargetFrameworkVersion. Namespaced (legacy) project files are handled.

    Args:
        project_file: Path to the project file

    Returns:
        Target framework moniker, or None when the file declares none

    Raises:
        OSError: If the file cannot be read
        ET.ParseError: If the file is not valid XML
    """
    root = ET.parse(str(project_file)).getroot()
    values: Dict[str, str] = {}
    for element in root.iter():
        name = _local_name(element.tag)
        if name in ("TargetFramework", "TargetFrameworks", "TargetFrameworkVersion") and element.text and name not in values:
            values[name] = element.text.strip()

    if values.get("TargetFramework"):
        return values["TargetFramework"]
    if values.get("TargetFrameworks"):
        return values["TargetFrameworks"].split(";")[0].strip()
    if values.get("TargetFrameworkVersion"):
        return legacy_version_to_tfm(values["TargetFrameworkVersion"])
    return None


def resolve_unit_framework(unit: Unit) -> Optional[str]:
    """Framework tag of the unit, or the one declared in its project file."""
    if unit.framework:
        return unit.framework
    path = Path(unit.path)
    if not path.is_file():
        return None
    return read_project_framework(path)


class TechDebtAnalyzer:
    """Technology debt from the unit's target framework.

    Args:
        framework_resolver: Callable returning the framework moniker of a unit
        debt_scores: Moniker to score table
    """

    def __init__(self, framework_resolver: Optional[FrameworkResolver] = None, debt_scores: Optional[Mapping[str, float]] = None) -> None:
        self._resolve = framework_resolver if framework_resolver is not None else resolve_unit_framework
        self._scores = dict(debt_scores) if debt_scores is not None else dict(FRAMEWORK_DEBT_SCORES)

    def fallback(self, unit: Unit) -> TechDebtMetric:
        return TechDebtMetric(unit, UNKNOWN_FRAMEWORK, NEUTRAL_FALLBACK_SCORE, is_fallback=True)

    def calculate(self, unit: Unit) -> TechDebtMetric:
        try:
            framework = self._resolve(unit)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Could not determine target framework for %s, using neutral score %.0f: %s", unit.name, NEUTRAL_FALLBACK_SCORE, e)
            return self.fallback(unit)

        if not framework:
            logger.warning("No target framework found for %s, using neutral score %.0f", unit.name, NEUTRAL_FALLBACK_SCORE)
            return self.fallback(unit)

        score = self._scores.get(normalize_target_framework(framework))
        if score is None:
            logger.warning("Unknown target framework %s for %s, using neutral score %.0f", framework, unit.name, NEUTRAL_FALLBACK_SCORE)
            return TechDebtMetric(unit, framework, NEUTRAL_FALLBACK_SCORE, is_fallback=True)

        logger.debug("Unit %s: framework=%s, tech debt score=%.1f", unit.name, framework, score)
        return TechDebtMetric(unit, framework, float(score))


# =============================================================================
# External API exposure
# =============================================================================


def normalize_endpoint_count(endpoint_count: int) -> float:
    """Stepped mapping: 0 -> 0, 1-5 -> 33, 6-15 -> 66, 16+ -> 100."""
    for max_count, score in API_EXPOSURE_STEPS:
        if endpoint_count <= max_count:
            return score
    return API_EXPOSURE_MAX_SCORE


class ExternalApiDetector:
    """External API exposure from the number of public endpoints.

    Args:
        endpoint_counter: Callable returning the endpoint count of a unit.
            Defaults to counting route-decorated Python functions.
    """

    def __init__(self, endpoint_counter: Optional[EndpointCounter] = None) -> None:
        self._count = endpoint_counter if endpoint_counter is not None else count_unit_endpoints

    def fallback(self, unit: Unit) -> ExternalApiMetric:
        return ExternalApiMetric(unit, 0, NEUTRAL_FALLBACK_SCORE, is_fallback=True)

    def calculate(self, unit: Unit) -> ExternalApiMetric:
        try:
            count = int(self._count(unit))
            if count < 0:
                raise ValueError(f"invalid endpoint count {count}")
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("API exposure detection failed for %s, using neutral score %.0f: %s", unit.name, NEUTRAL_FALLBACK_SCORE, e)
            return self.fallback(unit)

        score = normalize_endpoint_count(count)
        logger.debug("Unit %s: %d endpoints, API exposure score %.0f", unit.name, count, score)
        return ExternalApiMetric(unit, count, score)
