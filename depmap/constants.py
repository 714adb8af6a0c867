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
"""Shared constants for depmap tools.

This module provides centralized constants used across the cycle analysis and
extraction scoring modules so thresholds and defaults stay consistent.
"""

from typing import Dict

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Cycle Analysis Constants
# =============================================================================

# Coupling assigned to an edge when call sites cannot be counted (the reference itself)
REFERENCE_COUNT_COUPLING = 1

# Coupling strength classification (method call counts, inclusive upper bounds)
WEAK_COUPLING_MAX_CALLS = 5
MEDIUM_COUPLING_MAX_CALLS = 20

# Cycle size boundaries used in break suggestion rationale
SMALL_CYCLE_MAX_SIZE = 3
LARGE_CYCLE_MIN_SIZE = 6
CRITICAL_CYCLE_MIN_SIZE = 10

# Default number of break suggestions handed to consumers
DEFAULT_MAX_SUGGESTIONS = 10

# =============================================================================
# Extraction Scoring Constants
# =============================================================================

# Category boundaries (fixed, not configurable)
EASY_SCORE_MAX = 33.0  # score <= 33 is easy
HARD_SCORE_MIN = 67.0  # score >= 67 is hard

MIN_SCORE = 0.0
MAX_SCORE = 100.0

# Decimal places kept in final scores
SCORE_PRECISION = 6

# Score used when a metric cannot be computed
NEUTRAL_FALLBACK_SCORE = 50.0

# Number of easiest/hardest candidates to surface
TOP_CANDIDATES_COUNT = 10

# Allowed deviation of the weight sum from 1.0
WEIGHT_SUM_TOLERANCE = 0.01

# Default scoring weights
DEFAULT_COUPLING_WEIGHT = 0.40
DEFAULT_COMPLEXITY_WEIGHT = 0.30
DEFAULT_TECH_DEBT_WEIGHT = 0.20
DEFAULT_EXTERNAL_API_WEIGHT = 0.10

# Cyclomatic complexity thresholds (average per method) and their score anchors.
# 0-7 low, 7-15 medium, 15-25 high, 25+ very high (capped after 10 more points)
COMPLEXITY_THRESHOLDS = (0.0, 7.0, 15.0, 25.0, 35.0)
COMPLEXITY_SCORE_ANCHORS = (0.0, 33.0, 66.0, 90.0, 100.0)

# External API exposure steps: (max endpoints, score)
API_EXPOSURE_STEPS = ((0, 0.0), (5, 33.0), (15, 66.0))
API_EXPOSURE_MAX_SCORE = 100.0

# Framework staleness (older framework = more debt)
FRAMEWORK_DEBT_SCORES: Dict[str, float] = {
    # .NET Framework
    "net35": 100.0,
    "net3.5": 100.0,
    "net40": 90.0,
    "net4.0": 90.0,
    "net45": 80.0,
    "net4.5": 80.0,
    "net451": 75.0,
    "net452": 70.0,
    "net46": 65.0,
    "net4.6": 65.0,
    "net461": 60.0,
    "net462": 55.0,
    "net47": 50.0,
    "net4.7": 50.0,
    "net471": 45.0,
    "net472": 40.0,
    "net48": 40.0,
    "net4.8": 40.0,
    # .NET Standard
    "netstandard1.0": 70.0,
    "netstandard1.1": 70.0,
    "netstandard1.2": 70.0,
    "netstandard1.3": 70.0,
    "netstandard1.4": 70.0,
    "netstandard1.5": 70.0,
    "netstandard1.6": 70.0,
    "netstandard2.0": 50.0,
    "netstandard2.1": 35.0,
    # .NET Core / modern .NET
    "netcoreapp3.1": 30.0,
    "net5.0": 20.0,
    "net6.0": 10.0,
    "net7.0": 5.0,
    "net8.0": 0.0,
    "net9.0": 0.0,
}

UNKNOWN_FRAMEWORK = "unknown"

# =============================================================================
# Filtering Constants
# =============================================================================

DEFAULT_FRAMEWORK_BLOCK_LIST = ("Microsoft.*", "System.*", "mscorlib", "netstandard")

# =============================================================================
# Performance Constants
# =============================================================================

# Per-unit metric computation timeout (seconds)
DEFAULT_UNIT_TIMEOUT = 60.0

# Parallel processing
DEFAULT_MAX_WORKERS = None  # None = executor default

# =============================================================================
# Exception Classes
# =============================================================================


class DepMapError(Exception):
    """Base exception for all depmap errors.

    All depmap exceptions carry an exit_code attribute that indicates
    what exit code the program should use when this error is caught at the
    main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(DepMapError):
    """Raised when input validation fails (arguments, paths, etc)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class ConfigurationError(ValidationError):
    """Raised when scoring weights or other configuration values are invalid."""


class GraphInputError(ValidationError):
    """Raised when a dependency graph description cannot be loaded."""


# Analysis/processing errors (EXIT_RUNTIME_ERROR)
class AnalysisError(DepMapError):
    """Raised when analysis or processing operations fail."""


class AnalysisCancelledError(DepMapError):
    """Raised when an analysis run is cancelled between phases."""

    def __init__(self, message: str = "Analysis cancelled"):
        super().__init__(message, EXIT_KEYBOARD_INTERRUPT)
