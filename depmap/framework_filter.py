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
"""Removal of framework references from a dependency graph.

Framework libraries (System.*, Microsoft.* and friends) are referenced by
nearly every unit and are never extraction targets. Dropping edges into them
keeps cycles and coupling focused on the analyzed code base.
"""

import logging
from typing import Dict, List, Optional, Sequence

from .constants import DEFAULT_FRAMEWORK_BLOCK_LIST
from .graph_model import DependencyEdge, DependencyGraph

logger = logging.getLogger(__name__)


def matches_pattern(name: str, pattern: str) -> bool:
    """Match a unit name against a pattern, ignoring case.

    A trailing '*' makes the pattern a prefix match, otherwise the whole name must match.
    """
    name = name.casefold()
    pattern = pattern.strip().casefold()
    if pattern.endswith("*"):
        return name.startswith(pattern[:-1])
    return name == pattern


def is_framework_reference(name: str, block_list: Sequence[str], allow_list: Sequence[str] = ()) -> bool:
    """True when name is blocked and not explicitly allowed. The allow list wins."""
    if any(matches_pattern(name, pattern) for pattern in allow_list):
        return False
    return any(matches_pattern(name, pattern) for pattern in block_list)


def filter_framework_references(
    graph: DependencyGraph,
    block_list: Optional[Sequence[str]] = None,
    allow_list: Optional[Sequence[str]] = None,
) -> DependencyGraph:
    """Return a graph without edges that point at framework units.

    Args:
        graph: Graph to filter
        block_list: Patterns of framework unit names (defaults to DEFAULT_FRAMEWORK_BLOCK_LIST)
        allow_list: Patterns that are kept even when blocked

    Returns:
        New graph with the same units and the retained edges
    """
    block = list(DEFAULT_FRAMEWORK_BLOCK_LIST if block_list is None else block_list)
    allow = list(allow_list or ())
    if graph.edge_count == 0 or not block:
        return graph

    retained: List[DependencyEdge] = []
    blocked_by_target: Dict[str, int] = {}
    for edge in graph.edges:
        if is_framework_reference(edge.target.name, block, allow):
            blocked_by_target[edge.target.name] = blocked_by_target.get(edge.target.name, 0) + 1
        else:
            retained.append(edge)

    blocked = graph.edge_count - len(retained)
    logger.info(
        "Framework filter: blocked %d of %d references (%.1f%%), retained %d (%.1f%%)",
        blocked,
        graph.edge_count,
        blocked * 100.0 / graph.edge_count,
        len(retained),
        len(retained) * 100.0 / graph.edge_count,
    )
    for name, count in sorted(blocked_by_target.items()):
        logger.debug("Blocked %d references to %s", count, name)

    if blocked == 0:
        return graph
    return graph.with_edges(retained)
