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
"""Analysis configuration.

Configuration files are JSON:

    {
        "ScoringWeights": {"Coupling": 0.4, "Complexity": 0.3, "TechDebt": 0.2, "ExternalExposure": 0.1},
        "FrameworkFilters": {"BlockList": ["Microsoft.*", "System.*"], "AllowList": []},
        "Analysis": {"MaxSuggestions": 10, "MaxWorkers": 4, "UnitTimeoutSeconds": 60}
    }

Every section and key is optional; missing values use the defaults.
"""

import json
import logging
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .constants import (
    DEFAULT_FRAMEWORK_BLOCK_LIST,
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_UNIT_TIMEOUT,
    ConfigurationError,
)
from .scoring import ScoringWeights

logger = logging.getLogger(__name__)

# JSON key -> ScoringWeights field
_WEIGHT_KEYS = {
    "Coupling": "coupling",
    "Complexity": "complexity",
    "TechDebt": "tech_debt",
    "ExternalExposure": "external_api",
}


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable settings for one analysis run.

    Attributes:
        weights: Metric weights for extraction scoring
        max_suggestions: Number of break suggestions handed to reports
        block_list: Framework unit name patterns removed from the graph
        allow_list: Patterns kept even when they match the block list
        max_workers: Metric worker pool size (None = executor default)
        unit_timeout: Seconds allowed per unit for metric calculation (None = no limit)
    """

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
    block_list: Tuple[str, ...] = DEFAULT_FRAMEWORK_BLOCK_LIST
    allow_list: Tuple[str, ...] = ()
    max_workers: Optional[int] = DEFAULT_MAX_WORKERS
    unit_timeout: Optional[float] = DEFAULT_UNIT_TIMEOUT

    def validate(self) -> None:
        """Check all values.

        Raises:
            ConfigurationError: If any value is out of range
        """
        self.weights.validate()
        if isinstance(self.max_suggestions, bool) or not isinstance(self.max_suggestions, int) or self.max_suggestions < 1:
            raise ConfigurationError(f"MaxSuggestions must be a positive integer, got {self.max_suggestions!r}")
        if self.max_workers is not None and (isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1):
            raise ConfigurationError(f"MaxWorkers must be a positive integer, got {self.max_workers!r}")
        if self.unit_timeout is not None and (
            isinstance(self.unit_timeout, bool) or not isinstance(self.unit_timeout, (int, float)) or not math.isfinite(self.unit_timeout) or self.unit_timeout <= 0
        ):
            raise ConfigurationError(f"UnitTimeoutSeconds must be a positive number, got {self.unit_timeout!r}")

    def with_overrides(self, **changes: Any) -> "AnalysisConfig":
        """Copy with the given non-None fields replaced, e.g. from command line flags."""
        updated = replace(self, **{k: v for k, v in changes.items() if v is not None})
        updated.validate()
        return updated


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Configuration section '{name}' must be an object")
    return section


def _pattern_list(section: Mapping[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if key not in section:
        return default
    value = section[key]
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return tuple(p for p in value if p.strip())


def config_from_dict(data: Mapping[str, Any]) -> AnalysisConfig:
    """Build and validate an AnalysisConfig from parsed JSON.

    Raises:
        ConfigurationError: If the structure or any value is invalid
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a JSON object")

    weights_section = _section(data, "ScoringWeights")
    weight_values: Dict[str, Any] = {attr: weights_section[key] for key, attr in _WEIGHT_KEYS.items() if key in weights_section}
    unknown = set(weights_section) - set(_WEIGHT_KEYS)
    if unknown:
        logger.warning("Ignoring unknown scoring weight keys: %s", ", ".join(sorted(unknown)))

    filters = _section(data, "FrameworkFilters")
    analysis = _section(data, "Analysis")

    config = AnalysisConfig(
        weights=ScoringWeights(**weight_values),
        max_suggestions=analysis.get("MaxSuggestions", DEFAULT_MAX_SUGGESTIONS),
        block_list=_pattern_list(filters, "BlockList", DEFAULT_FRAMEWORK_BLOCK_LIST),
        allow_list=_pattern_list(filters, "AllowList", ()),
        max_workers=analysis.get("MaxWorkers", DEFAULT_MAX_WORKERS),
        unit_timeout=analysis.get("UnitTimeoutSeconds", DEFAULT_UNIT_TIMEOUT),
    )
    config.validate()
    return config


def load_analysis_config(path: Optional[Union[str, Path]] = None) -> AnalysisConfig:
    """Load analysis configuration from a JSON file.

    Args:
        path: Configuration file, or None for defaults

    Returns:
        Validated AnalysisConfig

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON, or holds invalid values
    """
    if path is None:
        return AnalysisConfig()

    logger.info("Loading configuration from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {path}: {e}") from e

    return config_from_dict(data)
