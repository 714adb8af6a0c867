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
"""Static source analysis used by the default metric analyzers.

Works on Python sources found under a unit's directory: cyclomatic complexity
per function and a count of HTTP endpoint handlers. Any unreadable or
unparsable file raises AnalysisError so the calling metric calculator can fall
back to its neutral score.
"""

import ast
import logging
from pathlib import Path
from typing import Iterator, List, Optional

from .constants import AnalysisError
from .graph_model import Unit

logger = logging.getLogger(__name__)

# Decorator names that mark a function as a publicly reachable endpoint
HTTP_ROUTE_DECORATORS = frozenset({"get", "post", "put", "delete", "patch", "route", "api_view"})

_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)


class CyclomaticComplexityVisitor(ast.NodeVisitor):
    """Count decision points inside a single function body.

    Complexity starts at 1 and grows by one per conditional, loop, match
    case, conditional expression, exception handler and comprehension filter,
    and by one per extra operand of a boolean `and`/`or`. Nested functions are
    not descended into; they are measured on their own.
    """

    def __init__(self, root: ast.AST) -> None:
        self.root = root
        self.complexity = 1

    def _branch(self, node: ast.AST) -> None:
        self.complexity += 1
        self.generic_visit(node)

    visit_If = _branch
    visit_For = _branch
    visit_AsyncFor = _branch
    visit_While = _branch
    visit_IfExp = _branch
    visit_ExceptHandler = _branch
    visit_match_case = _branch

    def visit_BoolOp(self, node: ast.BoolOp) -> None:
        self.complexity += len(node.values) - 1
        self.generic_visit(node)

    def visit_comprehension(self, node: ast.comprehension) -> None:
        self.complexity += len(node.ifs)
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        if node is self.root:
            self.generic_visit(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        if node is self.root:
            self.generic_visit(node)

    def visit_Lambda(self, node: ast.Lambda) -> None:
        return


def function_complexities(source: str, filename: str = "<unknown>") -> List[int]:
    """Return the cyclomatic complexity of every function in a source string.

    Raises:
        SyntaxError: If the source cannot be parsed
    """
    tree = ast.parse(source, filename=filename)
    complexities = []
    for node in ast.walk(tree):
        if isinstance(node, _FUNCTION_NODES):
            visitor = CyclomaticComplexityVisitor(node)
            visitor.visit(node)
            complexities.append(visitor.complexity)
    return complexities


def _decorator_name(decorator: ast.expr) -> Optional[str]:
    if isinstance(decorator, ast.Call):
        decorator = decorator.func
    if isinstance(decorator, ast.Attribute):
        return decorator.attr
    if isinstance(decorator, ast.Name):
        return decorator.id
    return None


def count_endpoints(source: str, filename: str = "<unknown>") -> int:
    """Count functions decorated as HTTP route handlers in a source string.

    Raises:
        SyntaxError: If the source cannot be parsed
    """
    tree = ast.parse(source, filename=filename)
    count = 0
    for node in ast.walk(tree):
        if isinstance(node, _FUNCTION_NODES) and any(_decorator_name(d) in HTTP_ROUTE_DECORATORS for d in node.decorator_list):
            count += 1
    return count


def resolve_source_dir(unit: Unit) -> Path:
    """Return the directory holding a unit's sources.

    A unit path may name the project directory itself or a project file inside it.
    """
    path = Path(unit.path)
    return path if path.is_dir() else path.parent


def iter_python_sources(source_dir: Path) -> Iterator[Path]:
    """Yield Python files below source_dir in a stable order."""
    yield from sorted(source_dir.rglob("*.py"))


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise AnalysisError(f"Cannot read {path}: {e}") from e


def _python_sources_or_raise(unit: Unit) -> List[Path]:
    source_dir = resolve_source_dir(unit)
    if not source_dir.is_dir():
        raise AnalysisError(f"Source directory not found for {unit.name}: {source_dir}")
    sources = list(iter_python_sources(source_dir))
    if not sources:
        raise AnalysisError(f"No analyzable Python sources found for {unit.name} in {source_dir}")
    return sources


def analyze_unit_complexity(unit: Unit) -> List[int]:
    """Per-function cyclomatic complexities for all Python sources of a unit.

    Raises:
        AnalysisError: If the source directory is missing or has no Python sources, or a file cannot be read or parsed
    """
    complexities: List[int] = []
    for path in _python_sources_or_raise(unit):
        try:
            file_complexities = function_complexities(_read_source(path), str(path))
        except SyntaxError as e:
            raise AnalysisError(f"Cannot parse {path}: {e}") from e
        logger.debug("%s: %d functions", path, len(file_complexities))
        complexities.extend(file_complexities)
    return complexities


def count_unit_endpoints(unit: Unit) -> int:
    """Number of HTTP endpoint handlers across all Python sources of a unit.

    Raises:
        AnalysisError: If the source directory is missing or has no Python sources, or a file cannot be read or parsed
    """
    total = 0
    for path in _python_sources_or_raise(unit):
        try:
            total += count_endpoints(_read_source(path), str(path))
        except SyntaxError as e:
            raise AnalysisError(f"Cannot parse {path}: {e}") from e
    return total
