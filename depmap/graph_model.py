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
"""Dependency graph model for build unit analysis.

Units are stored in an arena (an indexed tuple) and edges reference their
endpoints by arena index, so algorithms can work on plain integers while
callers keep working with Unit and DependencyEdge value objects. The graph is
read-only after construction; transformations return new graphs.
"""

import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple, Any

import networkx as nx

from .constants import WEAK_COUPLING_MAX_CALLS, MEDIUM_COUPLING_MAX_CALLS

logger = logging.getLogger(__name__)


class ReferenceKind(enum.Enum):
    """Kind of reference that created a dependency edge."""

    PROJECT_REFERENCE = "project"
    BINARY_REFERENCE = "binary"


class CouplingStrength(enum.Enum):
    """Classification of coupling intensity based on method call count.

    - WEAK: 1-5 calls
    - MEDIUM: 6-20 calls
    - STRONG: 21+ calls
    """

    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


def classify_coupling_strength(call_count: int) -> CouplingStrength:
    """Classify coupling strength from a method call count.

    Args:
        call_count: Number of call sites from source to target

    Returns:
        CouplingStrength for the count
    """
    if call_count <= WEAK_COUPLING_MAX_CALLS:
        return CouplingStrength.WEAK
    if call_count <= MEDIUM_COUPLING_MAX_CALLS:
        return CouplingStrength.MEDIUM
    return CouplingStrength.STRONG


@dataclass(frozen=True, eq=False)
class Unit:
    """A build unit (project) in the dependency graph.

    Identity is the canonical path, compared case-insensitively. Two Unit
    instances with the same path are equal even if other fields differ.

    Attributes:
        path: Canonical path of the unit (unique identity)
        name: Display name
        framework: Framework tag (e.g. "net8.0"), empty when unknown
        group: Origin group, e.g. the solution the unit was loaded from
    """

    path: str
    name: str
    framework: str = ""
    group: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Unit):
            return NotImplemented
        return self.path.casefold() == other.path.casefold()

    def __hash__(self) -> int:
        return hash(self.path.casefold())

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DependencyEdge:
    """Directed dependency from source unit to target unit.

    Attributes:
        source: Unit that has the dependency
        target: Unit being depended upon
        kind: Reference kind
        coupling: Call-site count, None until annotated
    """

    source: Unit
    target: Unit
    kind: ReferenceKind = ReferenceKind.PROJECT_REFERENCE
    coupling: Optional[int] = None

    @property
    def is_project_reference(self) -> bool:
        return self.kind == ReferenceKind.PROJECT_REFERENCE

    @property
    def is_cross_group(self) -> bool:
        """True when source and target belong to different (known) groups."""
        if not self.source.group or not self.target.group:
            return False
        return self.source.group.casefold() != self.target.group.casefold()

    @property
    def coupling_strength(self) -> Optional[CouplingStrength]:
        if self.coupling is None:
            return None
        return classify_coupling_strength(self.coupling)

    def with_coupling(self, coupling: int) -> "DependencyEdge":
        """Return a copy of this edge annotated with a coupling value."""
        return replace(self, coupling=coupling)

    def __str__(self) -> str:
        calls = "unannotated" if self.coupling is None else f"{self.coupling} calls"
        return f"{self.source.name} -> {self.target.name} ({self.kind.value}, {calls})"


class DependencyGraph:
    """Immutable directed graph of units and dependency edges.

    Edges whose endpoints are not part of the unit set are skipped with a
    warning. Duplicate units (same canonical path) keep their first occurrence.
    """

    def __init__(self, units: Iterable[Unit] = (), edges: Iterable[DependencyEdge] = ()) -> None:
        unit_list: List[Unit] = []
        index: Dict[Unit, int] = {}
        for unit in units:
            if unit in index:
                logger.debug("Duplicate unit ignored: %s", unit.path)
                continue
            index[unit] = len(unit_list)
            unit_list.append(unit)

        edge_list: List[DependencyEdge] = []
        endpoints: List[Tuple[int, int]] = []
        out_adj: List[List[int]] = [[] for _ in unit_list]
        in_adj: List[List[int]] = [[] for _ in unit_list]
        for edge in edges:
            src = index.get(edge.source)
            tgt = index.get(edge.target)
            if src is None or tgt is None:
                missing = edge.source if src is None else edge.target
                logger.warning("Skipping edge %s -> %s: unit '%s' is not part of the graph", edge.source.name, edge.target.name, missing.path)
                continue
            out_adj[src].append(len(edge_list))
            in_adj[tgt].append(len(edge_list))
            endpoints.append((src, tgt))
            edge_list.append(edge)

        self._units: Tuple[Unit, ...] = tuple(unit_list)
        self._index = index
        self._edges: Tuple[DependencyEdge, ...] = tuple(edge_list)
        self._endpoints: Tuple[Tuple[int, int], ...] = tuple(endpoints)
        self._out: Tuple[Tuple[int, ...], ...] = tuple(tuple(e) for e in out_adj)
        self._in: Tuple[Tuple[int, ...], ...] = tuple(tuple(e) for e in in_adj)

        logger.debug("Built graph with %s units and %s edges", len(self._units), len(self._edges))

    @property
    def units(self) -> Tuple[Unit, ...]:
        return self._units

    @property
    def edges(self) -> Tuple[DependencyEdge, ...]:
        return self._edges

    @property
    def unit_count(self) -> int:
        return len(self._units)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def is_empty(self) -> bool:
        return not self._units

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, unit: object) -> bool:
        return unit in self._index

    def index_of(self, unit: Unit) -> int:
        """Return the arena index of a unit (KeyError if absent)."""
        return self._index[unit]

    def unit_at(self, index: int) -> Unit:
        return self._units[index]

    def edge_endpoints(self, edge_index: int) -> Tuple[int, int]:
        """Return (source_index, target_index) of the edge at edge_index."""
        return self._endpoints[edge_index]

    def successor_indices(self, unit_index: int) -> List[int]:
        """Return target unit indices of all outgoing edges, in edge order."""
        return [self._endpoints[e][1] for e in self._out[unit_index]]

    def out_edges(self, unit: Unit) -> List[DependencyEdge]:
        """Edges from unit to the units it depends on."""
        return [self._edges[e] for e in self._out[self._index[unit]]]

    def in_edges(self, unit: Unit) -> List[DependencyEdge]:
        """Edges from units that depend on unit."""
        return [self._edges[e] for e in self._in[self._index[unit]]]

    def orphaned_units(self) -> List[Unit]:
        """Return units with no incoming and no outgoing edges."""
        return [unit for i, unit in enumerate(self._units) if not self._out[i] and not self._in[i]]

    def with_edges(self, edges: Iterable[DependencyEdge]) -> "DependencyGraph":
        """Return a new graph with the same units and the given edges."""
        return DependencyGraph(self._units, edges)

    def to_networkx(self) -> "nx.MultiDiGraph[Any]":
        """Build a NetworkX multigraph view keyed by Unit.

        Parallel edges (e.g. a project and a binary reference between the same
        units) are kept. Each edge carries 'kind' and 'coupling' attributes.
        """
        G: nx.MultiDiGraph[Any] = nx.MultiDiGraph()
        G.add_nodes_from(self._units)
        G.add_edges_from((edge.source, edge.target, {"kind": edge.kind, "coupling": edge.coupling}) for edge in self._edges)
        return G
