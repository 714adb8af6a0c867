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
"""Ranked extraction candidates.

Splits combined extraction scores into the easiest and hardest candidates and
category statistics.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .constants import EASY_SCORE_MAX, HARD_SCORE_MIN, TOP_CANDIDATES_COUNT
from .graph_model import Unit
from .scoring import Category, ExtractionScore, ExtractionScoreCombiner, ScoringWeights

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionStatistics:
    """Category counts over all scored units."""

    total_units: int
    easy_count: int
    medium_count: int
    hard_count: int

    @property
    def is_valid(self) -> bool:
        return self.easy_count + self.medium_count + self.hard_count == self.total_units


@dataclass(frozen=True)
class RankedCandidates:
    """Extraction scores ranked for reporting.

    Attributes:
        all_units: Every score, ascending
        easiest_candidates: Up to 10 easy scores, ascending
        hardest_candidates: Up to 10 hard scores, descending
        statistics: Category counts
    """

    all_units: Tuple[ExtractionScore, ...]
    easiest_candidates: Tuple[ExtractionScore, ...]
    hardest_candidates: Tuple[ExtractionScore, ...]
    statistics: ExtractionStatistics


def calculate_extraction_statistics(scores: Iterable[ExtractionScore]) -> ExtractionStatistics:
    counts = {category: 0 for category in Category}
    total = 0
    for score in scores:
        counts[score.category] += 1
        total += 1
    return ExtractionStatistics(total, counts[Category.EASY], counts[Category.MEDIUM], counts[Category.HARD])


def rank_scores(scores: List[ExtractionScore], limit: int = TOP_CANDIDATES_COUNT) -> RankedCandidates:
    """Rank already combined scores.

    Args:
        scores: Scores sorted ascending by final score
        limit: Maximum length of the easiest and hardest lists

    Returns:
        RankedCandidates for the scores
    """
    easiest = [s for s in scores if s.final_score <= EASY_SCORE_MAX][:limit]
    hardest = sorted((s for s in scores if s.final_score >= HARD_SCORE_MIN), key=lambda s: s.final_score, reverse=True)[:limit]

    statistics = calculate_extraction_statistics(scores)
    if not statistics.is_valid:
        logger.warning(
            "Category counts do not add up: easy=%d + medium=%d + hard=%d != total=%d",
            statistics.easy_count,
            statistics.medium_count,
            statistics.hard_count,
            statistics.total_units,
        )

    logger.info(
        "Ranked %d units: %d easy, %d medium, %d hard",
        statistics.total_units,
        statistics.easy_count,
        statistics.medium_count,
        statistics.hard_count,
    )
    return RankedCandidates(tuple(scores), tuple(easiest), tuple(hardest), statistics)


def rank_candidates(units: Iterable[Unit], combiner: ExtractionScoreCombiner, weights: ScoringWeights) -> RankedCandidates:
    """Score units once and rank them into easiest/hardest candidates.

    Raises:
        ConfigurationError: If the weights are invalid
    """
    return rank_scores(combiner.combine(units, weights))
