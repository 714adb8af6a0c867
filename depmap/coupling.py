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
"""Coupling annotation of dependency edges.

Every edge gets a coupling value equal to the number of call sites from the
source unit's code into the target unit's code. Call-site counting is done by
an external collaborator (a CallSiteProvider); when it cannot analyze an edge
the edge falls back to the reference-count coupling of 1.
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .constants import REFERENCE_COUNT_COUPLING
from .graph_model import DependencyEdge, DependencyGraph, Unit

logger = logging.getLogger(__name__)

# (source, target) -> call-site count, or None when no calls were found
CallSiteProvider = Callable[[Unit, Unit], Optional[int]]


class MappingCallSiteProvider:
    """Call-site provider backed by precomputed counts keyed by canonical unit paths.

    Lookups are case-insensitive, like Unit identity. Display names are not
    used since two units may share one. Pairs missing from the mapping report
    no detected calls.
    """

    def __init__(self, counts: Mapping[Tuple[str, str], int]) -> None:
        self._counts: Dict[Tuple[str, str], int] = {(src.casefold(), tgt.casefold()): count for (src, tgt), count in counts.items()}

    def __call__(self, source: Unit, target: Unit) -> Optional[int]:
        return self._counts.get((source.path.casefold(), target.path.casefold()))

    def __len__(self) -> int:
        return len(self._counts)


def _count_call_sites(edge: DependencyEdge, provider: CallSiteProvider) -> Tuple[int, bool]:
    """Ask the provider for an edge's call-site count.

    Returns:
        Tuple of (coupling, measured) where measured is False when the
        reference-count fallback was used
    """
    try:
        count = provider(edge.source, edge.target)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.warning(
            "Call-site analysis failed for %s -> %s, using reference count fallback: %s",
            edge.source.name,
            edge.target.name,
            e,
        )
        return REFERENCE_COUNT_COUPLING, False

    if not count:
        logger.debug("Edge %s -> %s: no method calls detected, using reference count", edge.source.name, edge.target.name)
        return REFERENCE_COUNT_COUPLING, False

    if count < 0:
        logger.warning("Ignoring negative call-site count %d for %s -> %s", count, edge.source.name, edge.target.name)
        return REFERENCE_COUNT_COUPLING, False

    return int(count), True


def annotate_coupling(graph: DependencyGraph, call_site_provider: Optional[CallSiteProvider] = None) -> DependencyGraph:
    """Return a new graph whose edges carry coupling values.

    Args:
        graph: Dependency graph (not modified)
        call_site_provider: Callable returning the call-site count for an edge's
            (source, target) pair. None applies the reference-count fallback to
            every edge.

    Returns:
        New DependencyGraph with annotated edges
    """
    if graph.edge_count == 0:
        logger.info("No dependency edges to analyze for coupling")
        return graph

    if call_site_provider is None:
        logger.warning("No call-site provider available, using reference count fallback for %d edges", graph.edge_count)
        return graph.with_edges(edge.with_coupling(REFERENCE_COUNT_COUPLING) for edge in graph.edges)

    annotated: List[DependencyEdge] = []
    measured_count = 0
    for edge in graph.edges:
        coupling, measured = _count_call_sites(edge, call_site_provider)
        if measured:
            measured_count += 1
            logger.debug("Edge %s -> %s: %d calls (%s)", edge.source.name, edge.target.name, coupling, edge.with_coupling(coupling).coupling_strength)
        annotated.append(edge.with_coupling(coupling))

    logger.info("Found %d dependency edges with coupling scores (total edges: %d)", measured_count, graph.edge_count)
    return graph.with_edges(annotated)
