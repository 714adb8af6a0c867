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
"""
Extraction Candidate Ranker

Scores how hard each unit would be to extract into its own service and lists
the easiest and hardest candidates.

USAGE:
    python3 depMapExtraction.py <graph.json> [options]

EXAMPLES:
    # Rank all units with the default weights
    python3 depMapExtraction.py graph.json

    # Use custom weights and a bigger worker pool
    python3 depMapExtraction.py graph.json --config depmap-config.json --workers 8

METHOD:
    Each unit gets four metrics normalized to 0-100 (higher = harder):
    - Coupling: 2 x incoming + outgoing calls, relative to the most coupled unit
    - Complexity: average cyclomatic complexity of its functions
    - Tech debt: age of its target framework
    - External API: number of HTTP endpoints it exposes
    The final score is their weighted sum (default 40/30/20/10 percent).
    Categories: easy <= 33 < medium < 67 <= hard.
"""

import sys
import argparse
import logging
from typing import List, Optional, Sequence

from depmap.color_utils import Colors, colored, colored_category, print_warning, set_color_enabled
from depmap.config import load_analysis_config
from depmap.constants import EXIT_SUCCESS
from depmap.graph_loader import load_graph_json
from depmap.pipeline import run_cycle_analysis, run_extraction_analysis
from depmap.ranking import RankedCandidates
from depmap.scoring import ExtractionScore


def print_candidate_table(title: str, scores: Sequence[ExtractionScore]) -> None:
    print(f"\n{colored(title, style=Colors.BRIGHT)}\n")
    if not scores:
        print("  (none)")
        return
    print(f"  {'Unit':<40} {'Score':>6}  {'Coupling':>8} {'Complex':>8} {'Debt':>6} {'API':>5}")
    for score in scores:
        fallback = "*" if any(m.is_fallback for m in (score.coupling_metric, score.complexity_metric, score.tech_debt_metric, score.external_api_metric)) else " "
        print(
            f"  {score.unit.name:<40} {colored_category(score.category, f'{score.final_score:6.1f}')}{fallback} "
            f"{score.coupling_metric.normalized_score:8.1f} {score.complexity_metric.normalized_score:8.1f} "
            f"{score.tech_debt_metric.normalized_score:6.1f} {score.external_api_metric.normalized_score:5.1f}"
        )


def print_ranking(ranked: RankedCandidates) -> None:
    stats = ranked.statistics
    print(f"\n{colored('=' * 80, style=Colors.BRIGHT)}")
    print(f"{colored('EXTRACTION DIFFICULTY', style=Colors.BRIGHT)}")
    print(f"{colored('=' * 80, style=Colors.BRIGHT)}\n")
    print(f"  Total units:  {stats.total_units}")
    print(f"  {colored('Easy', Colors.GREEN)}:         {stats.easy_count}")
    print(f"  {colored('Medium', Colors.YELLOW)}:       {stats.medium_count}")
    print(f"  {colored('Hard', Colors.RED)}:         {stats.hard_count}")

    print_candidate_table("EASIEST CANDIDATES", ranked.easiest_candidates)
    print_candidate_table("HARDEST CANDIDATES", ranked.hardest_candidates)
    print("\n  * at least one metric fell back to the neutral score")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Rank units by how hard they are to extract",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s graph.json
  %(prog)s graph.json --config depmap-config.json
  %(prog)s graph.json --workers 8 --timeout 30
        """,
    )

    parser.add_argument("graph_file", help="Dependency graph description (JSON)")
    parser.add_argument("--config", metavar="FILE", help="Analysis configuration file (JSON)")
    parser.add_argument("--workers", type=int, metavar="N", help="Number of parallel metric workers (default: executor default)")
    parser.add_argument("--timeout", type=float, metavar="SECONDS", help="Per-unit metric timeout in seconds (default: 60)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")
    if args.no_color:
        set_color_enabled(False)

    config = load_analysis_config(args.config).with_overrides(max_workers=args.workers, unit_timeout=args.timeout)

    graph_input = load_graph_json(args.graph_file)
    if graph_input.graph.is_empty():
        print_warning("Dependency graph contains no units")
        return EXIT_SUCCESS

    # Coupling metrics need call-site counts on the edges
    cycle_analysis = run_cycle_analysis(graph_input.graph, graph_input.call_site_provider, config)
    ranked = run_extraction_analysis(cycle_analysis.graph, config)

    print_ranking(ranked)
    return EXIT_SUCCESS


if __name__ == "__main__":
    from depmap.constants import EXIT_KEYBOARD_INTERRUPT, EXIT_RUNTIME_ERROR, DepMapError

    try:
        exit_code = main()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(EXIT_KEYBOARD_INTERRUPT)
    except DepMapError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    except Exception as e:  # pylint: disable=broad-exception-caught
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(EXIT_RUNTIME_ERROR)
