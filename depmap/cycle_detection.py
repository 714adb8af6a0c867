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
"""Circular dependency detection using strongly connected components.

The traversal is an iterative Tarjan SCC search: an explicit work stack
replaces recursion so graphs with thousands of units cannot exhaust the
interpreter call stack. Only components with more than one unit are reported
as cycles; self-referencing units form singleton components and are ignored.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .graph_model import DependencyEdge, DependencyGraph, Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cycle:
    """A circular dependency: a strongly connected component of 2+ units.

    Attributes:
        cycle_id: 1-based id in discovery order
        units: Participating units, ordered by graph arena index
        weak_edges: Internal edges tied at the minimum coupling (empty until identified)
        weak_coupling_score: Minimum internal coupling (None until identified)
    """

    cycle_id: int
    units: Tuple[Unit, ...]
    weak_edges: Tuple[DependencyEdge, ...] = ()
    weak_coupling_score: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "units", tuple(self.units))
        object.__setattr__(self, "weak_edges", tuple(self.weak_edges))
        if len(self.units) < 2:
            raise ValueError("Cycle must contain at least 2 units")

    @property
    def size(self) -> int:
        return len(self.units)

    def contains(self, unit: Unit) -> bool:
        return unit in self.units

    def with_weak_edges(self, weak_edges: Sequence[DependencyEdge], weak_coupling_score: Optional[int]) -> "Cycle":
        """Return a copy of this cycle with weak edge information populated."""
        return replace(self, weak_edges=tuple(weak_edges), weak_coupling_score=weak_coupling_score)


@dataclass(frozen=True)
class CycleStatistics:
    """Aggregate statistics across all detected cycles.

    Attributes:
        total_cycles: Number of cycles found
        largest_cycle_size: Size of the biggest cycle (0 when none)
        units_in_cycles: Distinct units that take part in any cycle
        total_units: Units analyzed (participation rate denominator)
        average_cycle_size: Mean cycle size (0.0 when none)
        participation_rate: Percentage of analyzed units that are in a cycle
    """

    total_cycles: int
    largest_cycle_size: int
    units_in_cycles: int
    total_units: int
    average_cycle_size: float = 0.0
    participation_rate: float = field(init=False)

    def __post_init__(self) -> None:
        rate = (self.units_in_cycles / self.total_units) * 100.0 if self.total_units > 0 else 0.0
        object.__setattr__(self, "participation_rate", rate)


def find_strongly_connected_components(graph: DependencyGraph) -> List[List[int]]:
    """Find all strongly connected components using an iterative Tarjan search.

    Args:
        graph: Dependency graph

    Returns:
        Components as lists of arena indices, in the order Tarjan completes
        them (reverse topological order of the condensation). Singletons are
        included.
    """
    count = graph.unit_count
    index = [-1] * count
    lowlink = [0] * count
    on_stack = [False] * count
    stack: List[int] = []
    components: List[List[int]] = []
    counter = 0

    for root in range(count):
        if index[root] != -1:
            continue

        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack[root] = True
        work: List[Tuple[int, Iterator[int]]] = [(root, iter(graph.successor_indices(root)))]

        while work:
            node, successors = work[-1]
            descended = False
            for succ in successors:
                if index[succ] == -1:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack[succ] = True
                    work.append((succ, iter(graph.successor_indices(succ))))
                    descended = True
                    break
                if on_stack[succ]:
                    lowlink[node] = min(lowlink[node], index[succ])
            if descended:
                continue

            # All successors explored
            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            if lowlink[node] == index[node]:
                component: List[int] = []
                while True:
                    member = stack.pop()
                    on_stack[member] = False
                    component.append(member)
                    if member == node:
                        break
                components.append(component)

    return components


def calculate_cycle_statistics(cycles: Sequence[Cycle], total_units: int) -> CycleStatistics:
    """Compute aggregate statistics for detected cycles.

    Units appearing in several cycles are counted once.

    Args:
        cycles: Detected cycles
        total_units: Number of units analyzed

    Returns:
        CycleStatistics (all zeros except total_units when there are no cycles)
    """
    if not cycles:
        logger.info("No cycles detected, statistics calculation skipped")
        return CycleStatistics(0, 0, 0, total_units)

    sizes = [cycle.size for cycle in cycles]
    distinct_units = {unit for cycle in cycles for unit in cycle.units}

    stats = CycleStatistics(
        total_cycles=len(cycles),
        largest_cycle_size=max(sizes),
        units_in_cycles=len(distinct_units),
        total_units=total_units,
        average_cycle_size=float(np.mean(sizes)),
    )

    logger.info(
        "Cycle statistics: %d chains, %d units (%.1f%%), largest: %d",
        stats.total_cycles,
        stats.units_in_cycles,
        stats.participation_rate,
        stats.largest_cycle_size,
    )
    return stats


def detect_cycles(graph: Optional[DependencyGraph]) -> Tuple[List[Cycle], CycleStatistics]:
    """Detect circular dependencies in a dependency graph.

    Args:
        graph: Dependency graph (None or empty yields no cycles)

    Returns:
        Tuple of (cycles, statistics). Cycles are numbered from 1 in discovery
        order; units within a cycle keep their graph order.
    """
    if graph is None or graph.is_empty():
        logger.info("Empty graph provided, no cycles to detect")
        return [], CycleStatistics(0, 0, 0, 0)

    logger.info("Detecting circular dependencies in %d units", graph.unit_count)

    cycles: List[Cycle] = []
    for component in find_strongly_connected_components(graph):
        if len(component) < 2:
            continue
        units = tuple(graph.unit_at(i) for i in sorted(component))
        cycles.append(Cycle(cycle_id=len(cycles) + 1, units=units))
        logger.debug("Cycle %d: %s", len(cycles), ", ".join(unit.name for unit in units))

    return cycles, calculate_cycle_statistics(cycles, graph.unit_count)
