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
"""Loading dependency graphs from JSON descriptions.

Format:

    {
        "units": [{"path": "src/Core/Core.csproj", "name": "Core", "framework": "net8.0", "group": "Main"}],
        "edges": [{"source": "Api", "target": "Core", "kind": "project", "call_sites": 12}]
    }

Only "path" is required for a unit; "name" defaults to the file stem. Edge
endpoints refer to units by path or by name, case-insensitively. A name
shared by several units must be given as a path. Unknown keys are ignored.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .constants import GraphInputError
from .coupling import MappingCallSiteProvider
from .graph_model import DependencyEdge, DependencyGraph, ReferenceKind, Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphInput:
    """A loaded graph and the call-site counts that came with it."""

    graph: DependencyGraph
    call_site_provider: MappingCallSiteProvider


def _require(entry: Mapping[str, Any], key: str, what: str, position: int) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise GraphInputError(f"{what} #{position} is missing required key '{key}'")
    return value.strip()


def _parse_unit(entry: Any, position: int) -> Unit:
    if not isinstance(entry, dict):
        raise GraphInputError(f"Unit #{position} must be an object")
    path = _require(entry, "path", "Unit", position)
    name = entry.get("name") or Path(path).stem
    return Unit(path=path, name=str(name), framework=str(entry.get("framework") or ""), group=str(entry.get("group") or ""))


def _parse_kind(value: Any, position: int) -> ReferenceKind:
    if value is None:
        return ReferenceKind.PROJECT_REFERENCE
    try:
        return ReferenceKind(str(value).lower())
    except ValueError as e:
        raise GraphInputError(f"Edge #{position} has unknown kind '{value}'") from e


def _parse_call_sites(value: Any, position: int) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise GraphInputError(f"Edge #{position} has invalid call_sites '{value}'")
    return value


def graph_from_dict(data: Any) -> GraphInput:
    """Build a GraphInput from a parsed JSON description.

    Edges that reference an unknown unit are skipped with a warning.

    Raises:
        GraphInputError: If the description is structurally invalid
    """
    if not isinstance(data, dict):
        raise GraphInputError("Graph description must be a JSON object")
    raw_units = data.get("units")
    if not isinstance(raw_units, list):
        raise GraphInputError("Graph description is missing the 'units' list")
    raw_edges = data.get("edges", [])
    if not isinstance(raw_edges, list):
        raise GraphInputError("'edges' must be a list")

    units = [_parse_unit(entry, i) for i, entry in enumerate(raw_units, 1)]

    lookup: Dict[str, Unit] = {}
    for unit in units:
        lookup.setdefault(unit.path.casefold(), unit)
    # Names shared by several units only resolve by path
    name_counts = Counter(unit.name.casefold() for unit in units)
    ambiguous = {name for name, n in name_counts.items() if n > 1 and name not in lookup}
    for unit in units:
        if unit.name.casefold() not in ambiguous:
            lookup.setdefault(unit.name.casefold(), unit)

    edges: List[DependencyEdge] = []
    counts: Dict[Tuple[str, str], int] = {}
    for i, entry in enumerate(raw_edges, 1):
        if not isinstance(entry, dict):
            raise GraphInputError(f"Edge #{i} must be an object")
        source_ref = _require(entry, "source", "Edge", i)
        target_ref = _require(entry, "target", "Edge", i)
        kind = _parse_kind(entry.get("kind"), i)
        call_sites = _parse_call_sites(entry.get("call_sites"), i)

        shared = [ref for ref in (source_ref, target_ref) if ref.casefold() in ambiguous]
        if shared:
            logger.warning("Skipping edge %s -> %s: unit name '%s' is shared by several units, refer to it by path", source_ref, target_ref, shared[0])
            continue

        source = lookup.get(source_ref.casefold())
        target = lookup.get(target_ref.casefold())
        if source is None or target is None:
            logger.warning("Skipping edge %s -> %s: unknown unit '%s'", source_ref, target_ref, source_ref if source is None else target_ref)
            continue
        edges.append(DependencyEdge(source, target, kind))
        if call_sites is not None:
            counts[(source.path, target.path)] = call_sites

    graph = DependencyGraph(units, edges)
    logger.info("Loaded %d units and %d edges (%d with call-site counts)", graph.unit_count, graph.edge_count, len(counts))
    return GraphInput(graph, MappingCallSiteProvider(counts))


def load_graph_json(path: Union[str, Path]) -> GraphInput:
    """Load a dependency graph description from a JSON file.

    Raises:
        GraphInputError: If the file cannot be read, is not valid JSON, or is malformed
    """
    logger.info("Loading dependency graph from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise GraphInputError(f"Cannot read graph file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise GraphInputError(f"Invalid JSON in graph file {path}: {e}") from e
    return graph_from_dict(data)
