#!/usr/bin/env python3
#****************************************************************************************************************************************************
#* BSD 3-Clause License
#*
#* Copyright (c) 2025, Mana Battery
#* All rights reserved.
#*
#* Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
#*
#* 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
#* 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
#*    documentation and/or other materials provided with the distribution.
#* 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
#*    software without specific prior written permission.
#*
#* THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
#* THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
#* CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
#* PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
#* LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
#* EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#****************************************************************************************************************************************************
"""Pytest configuration and shared base fixtures for depmap tests.

This module provides base fixtures used across all tests. Specialized fixtures
are organized in separate conftest files:
- conftest_graph.py: Unit/graph fixtures and graph builder helpers
- conftest_scoring.py: Metric calculator doubles and scoring fixtures

Fixture Scopes:
- function: Default, recreated for each test
- module: Shared across tests in one file, use for immutable data
"""

import sys
import json
from pathlib import Path
from typing import Any, Callable, Dict
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import specialized fixture modules
pytest_plugins = [
    'test.conftest_graph',
    'test.conftest_scoring',
]


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write a JSON document into tmp_path and return its path.

    Scope: function
    Use for: Configuration and graph description files
    """

    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_graph_document() -> Dict[str, Any]:
    """Graph description with one 3-unit cycle and a framework reference.

    Structure:
        Api -> Core (12 calls) -> Data (3 calls) -> Api (5 calls)
        Core -> System.Runtime (framework)
        Tools (isolated)
    """
    return {
        "units": [
            {"path": "src/Api/Api.csproj", "name": "Api", "framework": "net8.0", "group": "Main"},
            {"path": "src/Core/Core.csproj", "name": "Core", "framework": "net6.0", "group": "Main"},
            {"path": "src/Data/Data.csproj", "name": "Data", "framework": "net472", "group": "Legacy"},
            {"path": "lib/System.Runtime.dll", "name": "System.Runtime"},
            {"path": "src/Tools/Tools.csproj", "name": "Tools"},
        ],
        "edges": [
            {"source": "Api", "target": "Core", "call_sites": 12},
            {"source": "Core", "target": "Data", "call_sites": 3},
            {"source": "Data", "target": "Api", "kind": "project", "call_sites": 5},
            {"source": "Core", "target": "System.Runtime", "kind": "binary"},
        ],
    }
