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
"""Cycle-breaking recommendations.

Turns the weak edges of every cycle into BreakSuggestion objects with a
human-readable rationale, then ranks them globally:

1. Lowest coupling first (fewest call sites to remove)
2. Largest cycle first among equal coupling (highest impact)
3. Source unit name, case-insensitive (deterministic order)
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from .constants import (
    CRITICAL_CYCLE_MIN_SIZE,
    DEFAULT_MAX_SUGGESTIONS,
    LARGE_CYCLE_MIN_SIZE,
    SMALL_CYCLE_MAX_SIZE,
    WEAK_COUPLING_MAX_CALLS,
)
from .cycle_detection import Cycle
from .graph_model import DependencyEdge, Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BreakSuggestion:
    """Recommendation to remove one dependency edge to break a cycle.

    Attributes:
        cycle_id: Id of the cycle the edge belongs to
        source: Unit that holds the dependency
        target: Unit being depended upon
        coupling_score: Call sites on the edge
        cycle_size: Number of units in the cycle
        rationale: Explanation, e.g. "Weakest link in 8-project cycle, only 3 method calls"
        rank: 1-based priority, 0 until ranked
    """

    cycle_id: int
    source: Unit
    target: Unit
    coupling_score: int
    cycle_size: int
    rationale: str
    rank: int = 0

    def __post_init__(self) -> None:
        if self.source is None or self.target is None:
            raise ValueError("Break suggestion requires source and target units")
        if not self.rationale or not self.rationale.strip():
            raise ValueError("Rationale cannot be empty")

    def sort_key(self) -> Tuple[int, int, str]:
        return (self.coupling_score, -self.cycle_size, self.source.name.casefold())


def describe_cycle_size(cycle_size: int) -> str:
    """Describe a cycle's size with its impact qualifier."""
    if cycle_size >= CRITICAL_CYCLE_MIN_SIZE:
        return f"critical {cycle_size}-project cycle"
    if cycle_size >= LARGE_CYCLE_MIN_SIZE:
        return f"large {cycle_size}-project cycle"
    if cycle_size > SMALL_CYCLE_MAX_SIZE:
        return f"{cycle_size}-project cycle"
    return f"small {cycle_size}-project cycle"


def describe_coupling(coupling_score: int) -> str:
    """Describe an edge's coupling in method calls."""
    if coupling_score == 1:
        return "only 1 method call"
    if coupling_score <= WEAK_COUPLING_MAX_CALLS:
        return f"only {coupling_score} method calls"
    return f"{coupling_score} method calls"


def generate_rationale(edge: DependencyEdge, cycle: Cycle) -> str:
    """Explain why an edge is recommended for breaking."""
    coupling = edge.coupling if edge.coupling is not None else 0
    return f"Weakest link in {describe_cycle_size(cycle.size)}, {describe_coupling(coupling)}"


def rank_break_suggestions(cycles: Sequence[Cycle], max_suggestions: Optional[int] = None) -> List[BreakSuggestion]:
    """Build and rank break suggestions for all weak edges of all cycles.

    Args:
        cycles: Cycles with weak edges identified
        max_suggestions: Optional cap on the number of suggestions returned;
            None returns one suggestion per weak edge

    Returns:
        Suggestions sorted by priority with ranks 1..N
    """
    suggestions: List[BreakSuggestion] = []
    for cycle in cycles:
        if not cycle.weak_edges:
            logger.debug("Cycle %d: no weak edges identified, skipping", cycle.cycle_id)
            continue

        for edge in cycle.weak_edges:
            suggestions.append(
                BreakSuggestion(
                    cycle_id=cycle.cycle_id,
                    source=edge.source,
                    target=edge.target,
                    coupling_score=edge.coupling if edge.coupling is not None else 0,
                    cycle_size=cycle.size,
                    rationale=generate_rationale(edge, cycle),
                )
            )

    ordered = sorted(suggestions, key=BreakSuggestion.sort_key)
    if max_suggestions is not None:
        ordered = ordered[: max(0, max_suggestions)]
    ranked = [replace(suggestion, rank=position) for position, suggestion in enumerate(ordered, 1)]

    logger.debug("Generated %d cycle-breaking recommendations", len(ranked))
    if ranked:
        top = ranked[0]
        logger.info(
            "Top recommendation: %s -> %s (coupling: %d, cycle size: %d)",
            top.source.name,
            top.target.name,
            top.coupling_score,
            top.cycle_size,
        )
    return ranked


def top_break_suggestions(suggestions: Sequence[BreakSuggestion], limit: int = DEFAULT_MAX_SUGGESTIONS) -> List[BreakSuggestion]:
    """Return the first `limit` ranked suggestions (fewer when fewer exist)."""
    return list(suggestions[: max(0, limit)])
