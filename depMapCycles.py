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
Circular Dependency Analyzer

Finds circular dependencies between units of a solution and recommends which
references to break first. The weakest link of each cycle (the reference with
the fewest method calls) is the cheapest one to cut.

USAGE:
    python3 depMapCycles.py <graph.json> [options]

EXAMPLES:
    # Show cycles and the top 10 break suggestions
    python3 depMapCycles.py graph.json

    # Show every break suggestion
    python3 depMapCycles.py graph.json --all

    # Also drop references to in-house framework libraries
    python3 depMapCycles.py graph.json --exclude-framework "Contoso.Framework.*"

METHOD:
    - Drops references to framework units (System.*, Microsoft.*, ...)
    - Finds strongly connected components with more than one unit
    - Annotates each reference with its call-site count
    - Flags the minimum-coupling references of each cycle as weak edges
    - Ranks weak edges: lowest coupling, then largest cycle, then source name
"""

import sys
import argparse
import logging
from typing import List, Optional, Sequence

from depmap.color_utils import Colors, colored, print_info, print_success, print_warning, set_color_enabled
from depmap.config import load_analysis_config
from depmap.constants import EXIT_SUCCESS
from depmap.graph_loader import load_graph_json
from depmap.pipeline import CycleAnalysisResult, run_cycle_analysis
from depmap.recommendations import BreakSuggestion


def print_statistics(result: CycleAnalysisResult) -> None:
    stats = result.statistics
    print(f"\n{colored('=' * 80, style=Colors.BRIGHT)}")
    print(f"{colored('CYCLE STATISTICS', style=Colors.BRIGHT)}")
    print(f"{colored('=' * 80, style=Colors.BRIGHT)}\n")
    print(f"  Total cycles:          {stats.total_cycles}")
    print(f"  Largest cycle:         {stats.largest_cycle_size} units")
    print(f"  Average cycle size:    {stats.average_cycle_size:.1f} units")
    print(f"  Units in cycles:       {stats.units_in_cycles} of {stats.total_units} ({stats.participation_rate:.1f}%)")


def print_cycles(result: CycleAnalysisResult) -> None:
    print(f"\n{colored('CIRCULAR DEPENDENCIES', style=Colors.BRIGHT)}\n")
    for cycle in result.cycles:
        members = " -> ".join(unit.name for unit in cycle.units)
        print(f"  {colored(f'Cycle {cycle.cycle_id}', Colors.RED)} ({cycle.size} units): {members}")
        if cycle.weak_edges:
            print(f"    Weak coupling ({cycle.weak_coupling_score} calls): {', '.join(f'{e.source.name} -> {e.target.name}' for e in cycle.weak_edges)}")


def print_suggestions(suggestions: Sequence[BreakSuggestion], total: int) -> None:
    print(f"\n{colored('=' * 80, style=Colors.BRIGHT)}")
    print(f"{colored('BREAK SUGGESTIONS', style=Colors.BRIGHT)} (showing {len(suggestions)} of {total})")
    print(f"{colored('=' * 80, style=Colors.BRIGHT)}\n")
    for suggestion in suggestions:
        edge = f"{suggestion.source.name} -> {suggestion.target.name}"
        print(f"  {suggestion.rank:3d}. {colored(edge, Colors.YELLOW)}  [cycle {suggestion.cycle_id}]")
        print(f"       {suggestion.rationale}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Find circular unit dependencies and recommend references to break",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s graph.json
  %(prog)s graph.json --top 5
  %(prog)s graph.json --all
  %(prog)s graph.json --config depmap-config.json
  %(prog)s graph.json --exclude-framework "Contoso.Framework.*"
        """,
    )

    parser.add_argument("graph_file", help="Dependency graph description (JSON)")
    parser.add_argument("--top", type=int, metavar="N", help="Number of break suggestions to display (default: MaxSuggestions from config, 10)")
    parser.add_argument("--all", action="store_true", help="Display every break suggestion")
    parser.add_argument("--config", metavar="FILE", help="Analysis configuration file (JSON)")
    parser.add_argument(
        "--exclude-framework",
        type=str,
        action="append",
        metavar="PATTERN",
        help="Additional framework unit pattern to drop references to (can be used multiple times). "
        'A trailing * matches a prefix, e.g. "Contoso.Framework.*"',
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")
    if args.no_color:
        set_color_enabled(False)

    config = load_analysis_config(args.config)
    config = config.with_overrides(
        max_suggestions=args.top,
        block_list=config.block_list + tuple(args.exclude_framework) if args.exclude_framework else None,
    )

    graph_input = load_graph_json(args.graph_file)
    if graph_input.graph.is_empty():
        print_warning("Dependency graph contains no units")
        return EXIT_SUCCESS

    result = run_cycle_analysis(graph_input.graph, graph_input.call_site_provider, config)

    print_statistics(result)
    if not result.cycles:
        print_success("\nNo circular dependencies found")
        return EXIT_SUCCESS

    print_cycles(result)
    shown = result.suggestions if args.all else result.top_suggestions
    print_suggestions(shown, len(result.suggestions))

    orphans = result.graph.orphaned_units()
    if orphans:
        print_info(f"\n{len(orphans)} units have no dependencies in either direction")
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
