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
"""Weak edge identification within circular dependencies."""

import logging
from typing import List, Sequence

from .cycle_detection import Cycle
from .graph_model import DependencyEdge, DependencyGraph

logger = logging.getLogger(__name__)


def get_edges_in_cycle(cycle: Cycle, graph: DependencyGraph) -> List[DependencyEdge]:
    """Return all graph edges between two different cycle members.

    Self-loops are left out: removing one never breaks the cycle.
    """
    members = set(cycle.units)
    return [edge for edge in graph.edges if edge.source in members and edge.target in members and edge.source != edge.target]


def select_weak_edges(cycle: Cycle, graph: DependencyGraph) -> List[DependencyEdge]:
    """Select the weakest internal edges of a cycle.

    All edges tied at the minimum coupling are returned, in graph edge order.
    Edges without a coupling value are not considered.

    Args:
        cycle: Cycle to analyze
        graph: Coupling-annotated dependency graph

    Returns:
        Edges with minimum coupling, or an empty list when the cycle has no
        annotated internal edges
    """
    annotated = [edge for edge in get_edges_in_cycle(cycle, graph) if edge.coupling is not None]
    if not annotated:
        return []

    min_coupling = min(edge.coupling for edge in annotated if edge.coupling is not None)
    return [edge for edge in annotated if edge.coupling == min_coupling]


def identify_weak_edges(cycles: Sequence[Cycle], graph: DependencyGraph) -> List[Cycle]:
    """Return new cycles with their weak edges populated.

    Cycles without annotated internal edges are returned unchanged and logged.

    Args:
        cycles: Detected cycles
        graph: Coupling-annotated dependency graph

    Returns:
        List of cycles in the same order as the input
    """
    if not cycles:
        logger.info("No cycles to analyze for weak coupling edges")
        return []

    logger.info("Analyzing %d cycles for weak coupling edges", len(cycles))

    result: List[Cycle] = []
    for cycle in cycles:
        weak_edges = select_weak_edges(cycle, graph)
        if not weak_edges:
            logger.warning("Cycle %d with %d units has no annotated edges - skipping weak edge analysis", cycle.cycle_id, cycle.size)
            result.append(cycle)
            continue

        min_coupling = weak_edges[0].coupling
        logger.debug("Cycle %d: min coupling = %s, %d weak edges flagged", cycle.cycle_id, min_coupling, len(weak_edges))
        result.append(cycle.with_weak_edges(weak_edges, min_coupling))

    total_weak = sum(len(cycle.weak_edges) for cycle in result)
    logger.info(
        "Identified %d weak coupling edges across %d cycles (avg %.1f per cycle)",
        total_weak,
        len(result),
        total_weak / len(result),
    )
    return result
