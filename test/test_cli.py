#!/usr/bin/env python3
"""Tests for the depMapCycles.py and depMapExtraction.py command line tools"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterator

import pytest

import depMapCycles
import depMapExtraction
from depmap import color_utils
from depmap.constants import EXIT_SUCCESS, ConfigurationError, GraphInputError

JsonWriter = Callable[[str, Any], Path]


@pytest.fixture(autouse=True)
def restore_color_setting() -> Iterator[None]:
    previous = color_utils.is_color_enabled()
    yield
    color_utils.set_color_enabled(previous)


@pytest.fixture
def graph_file(write_json: JsonWriter, sample_graph_document: Dict[str, Any]) -> Path:
    return write_json("graph.json", sample_graph_document)


class TestCyclesCli:
    """Tests for depMapCycles.main"""

    def test_reports_cycle_and_suggestion(self, graph_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = depMapCycles.main([str(graph_file), "--no-color"])

        out = capsys.readouterr().out
        assert exit_code == EXIT_SUCCESS
        assert "Total cycles:          1" in out
        assert "Cycle 1 (3 units): Api -> Core -> Data" in out
        assert "1. Core -> Data" in out
        assert "Weakest link in small 3-project cycle, only 3 method calls" in out
        assert "\x1b[" not in out

    def test_no_cycles(self, write_json: JsonWriter, capsys: pytest.CaptureFixture[str]) -> None:
        path = write_json("graph.json", {"units": [{"path": "a", "name": "A"}, {"path": "b", "name": "B"}], "edges": [{"source": "A", "target": "B"}]})

        assert depMapCycles.main([str(path), "--no-color"]) == EXIT_SUCCESS
        assert "No circular dependencies found" in capsys.readouterr().out

    def test_empty_graph(self, write_json: JsonWriter, capsys: pytest.CaptureFixture[str]) -> None:
        path = write_json("graph.json", {"units": []})

        assert depMapCycles.main([str(path), "--no-color"]) == EXIT_SUCCESS
        assert "contains no units" in capsys.readouterr().err

    def test_exclude_framework_breaks_cycle(self, graph_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert depMapCycles.main([str(graph_file), "--no-color", "--exclude-framework", "Data"]) == EXIT_SUCCESS
        assert "No circular dependencies found" in capsys.readouterr().out

    def test_invalid_top(self, graph_file: Path) -> None:
        with pytest.raises(ConfigurationError, match="MaxSuggestions"):
            depMapCycles.main([str(graph_file), "--no-color", "--top", "0"])

    def test_missing_graph_file(self, tmp_path: Path) -> None:
        with pytest.raises(GraphInputError):
            depMapCycles.main([str(tmp_path / "missing.json"), "--no-color"])

    def test_config_file(self, graph_file: Path, write_json: JsonWriter) -> None:
        config = write_json("config.json", {"ScoringWeights": {"Coupling": 0.9}})

        with pytest.raises(ConfigurationError, match="sum to 1.0"):
            depMapCycles.main([str(graph_file), "--config", str(config)])


class TestExtractionCli:
    """Tests for depMapExtraction.main"""

    def test_ranks_all_units(self, graph_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = depMapExtraction.main([str(graph_file), "--no-color", "--workers", "2"])

        out = capsys.readouterr().out
        assert exit_code == EXIT_SUCCESS
        assert "Total units:  5" in out
        assert "EASIEST CANDIDATES" in out
        assert "HARDEST CANDIDATES" in out
        assert "\x1b[" not in out

    def test_invalid_timeout(self, graph_file: Path) -> None:
        with pytest.raises(ConfigurationError, match="UnitTimeoutSeconds"):
            depMapExtraction.main([str(graph_file), "--no-color", "--timeout", "-1"])
