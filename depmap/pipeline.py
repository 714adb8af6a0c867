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
"""End-to-end analysis runs.

Executes the analysis phases in order and checks for cancellation between
them. A cycle-detection pass is never interrupted halfway; cancellation takes
effect at the next phase boundary.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import AnalysisConfig
from .constants import AnalysisCancelledError
from .coupling import CallSiteProvider, annotate_coupling
from .cycle_detection import Cycle, CycleStatistics, detect_cycles
from .framework_filter import filter_framework_references
from .graph_model import DependencyGraph
from .ranking import RankedCandidates, rank_scores
from .recommendations import BreakSuggestion, rank_break_suggestions, top_break_suggestions
from .scoring import ExtractionScoreCombiner
from .weak_edges import identify_weak_edges

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and an analysis run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, phase: str) -> None:
        """Raise AnalysisCancelledError when cancellation was requested.

        Args:
            phase: Name of the last completed phase, for the error message
        """
        if self._event.is_set():
            logger.info("Analysis cancelled after phase: %s", phase)
            raise AnalysisCancelledError(f"Analysis cancelled after phase: {phase}")


def _check(cancellation: Optional[CancellationToken], phase: str) -> None:
    if cancellation is not None:
        cancellation.raise_if_cancelled(phase)


@dataclass(frozen=True)
class CycleAnalysisResult:
    """Outcome of cycle detection and break recommendation.

    Attributes:
        graph: Filtered, coupling-annotated graph the analysis ran on
        cycles: Cycles with weak edges populated
        statistics: Cycle statistics
        suggestions: All break suggestions, ranked
        top_suggestions: The first max_suggestions suggestions
    """

    graph: DependencyGraph
    cycles: Tuple[Cycle, ...]
    statistics: CycleStatistics
    suggestions: Tuple[BreakSuggestion, ...]
    top_suggestions: Tuple[BreakSuggestion, ...]


@dataclass(frozen=True)
class AnalysisResults:
    """Results of a complete analysis run."""

    cycle_analysis: CycleAnalysisResult
    ranked_candidates: RankedCandidates

    @property
    def cycles(self) -> Tuple[Cycle, ...]:
        return self.cycle_analysis.cycles

    @property
    def statistics(self) -> CycleStatistics:
        return self.cycle_analysis.statistics

    @property
    def suggestions(self) -> Tuple[BreakSuggestion, ...]:
        return self.cycle_analysis.suggestions


def run_cycle_analysis(
    graph: DependencyGraph,
    call_site_provider: Optional[CallSiteProvider] = None,
    config: Optional[AnalysisConfig] = None,
    cancellation: Optional[CancellationToken] = None,
    filter_frameworks: bool = True,
) -> CycleAnalysisResult:
    """Detect cycles, annotate coupling, find weak edges and rank break suggestions.

    Args:
        graph: Dependency graph
        call_site_provider: Source of per-edge call-site counts (None = reference-count fallback)
        config: Analysis configuration (defaults when None)
        cancellation: Optional cancellation token
        filter_frameworks: Drop edges to framework units before analysis

    Raises:
        AnalysisCancelledError: If cancelled between phases
    """
    config = config if config is not None else AnalysisConfig()
    if filter_frameworks:
        graph = filter_framework_references(graph, config.block_list, config.allow_list)
    _check(cancellation, "graph built")

    cycles, statistics = detect_cycles(graph)
    _check(cancellation, "cycles detected")

    annotated = annotate_coupling(graph, call_site_provider)
    _check(cancellation, "coupling annotated")

    cycles = identify_weak_edges(cycles, annotated)
    _check(cancellation, "weak edges identified")

    suggestions: List[BreakSuggestion] = rank_break_suggestions(cycles)
    _check(cancellation, "recommendations ranked")

    return CycleAnalysisResult(
        graph=annotated,
        cycles=tuple(cycles),
        statistics=statistics,
        suggestions=tuple(suggestions),
        top_suggestions=tuple(top_break_suggestions(suggestions, config.max_suggestions)),
    )


def run_extraction_analysis(
    graph: DependencyGraph,
    config: Optional[AnalysisConfig] = None,
    combiner: Optional[ExtractionScoreCombiner] = None,
    cancellation: Optional[CancellationToken] = None,
) -> RankedCandidates:
    """Score every unit of graph and rank the extraction candidates.

    Args:
        graph: Dependency graph, ideally coupling-annotated
        config: Analysis configuration (defaults when None)
        combiner: Score combiner (default: one built for graph from config)
        cancellation: Optional cancellation token

    Raises:
        ConfigurationError: If the weights are invalid
        AnalysisCancelledError: If cancelled between phases
    """
    config = config if config is not None else AnalysisConfig()
    config.weights.validate()
    if combiner is None:
        combiner = ExtractionScoreCombiner.for_graph(graph, max_workers=config.max_workers, unit_timeout=config.unit_timeout)
    _check(cancellation, "scoring prepared")

    scores = combiner.combine(graph.units, config.weights)
    _check(cancellation, "scores combined")

    ranked = rank_scores(scores)
    _check(cancellation, "candidates ranked")
    return ranked


def run_analysis(
    graph: DependencyGraph,
    call_site_provider: Optional[CallSiteProvider] = None,
    config: Optional[AnalysisConfig] = None,
    combiner: Optional[ExtractionScoreCombiner] = None,
    cancellation: Optional[CancellationToken] = None,
) -> AnalysisResults:
    """Run cycle analysis followed by extraction scoring.

    Configuration is validated before any work starts. Extraction scoring uses
    the coupling-annotated graph produced by cycle analysis.

    Raises:
        ConfigurationError: If the configuration is invalid
        AnalysisCancelledError: If cancelled between phases
    """
    config = config if config is not None else AnalysisConfig()
    config.validate()
    logger.info("Starting analysis of %d units and %d edges", graph.unit_count, graph.edge_count)

    cycle_analysis = run_cycle_analysis(graph, call_site_provider, config, cancellation)
    ranked = run_extraction_analysis(cycle_analysis.graph, config, combiner, cancellation)
    return AnalysisResults(cycle_analysis, ranked)
