#!/usr/bin/env python3
"""Tests for depmap/metrics.py"""

import logging
from pathlib import Path
from unittest.mock import Mock

import pytest

from depmap.graph_model import DependencyGraph, Unit
from depmap.metrics import (
    ComplexityMetricCalculator,
    CouplingMetricCalculator,
    ExternalApiDetector,
    TechDebtAnalyzer,
    legacy_version_to_tfm,
    normalize_complexity,
    normalize_endpoint_count,
    normalize_target_framework,
    read_project_framework,
)
from test.conftest_graph import GraphBuilder, UnitFactory


class TestCouplingMetricCalculator:
    """Tests for the graph-relative coupling metric."""

    @pytest.fixture
    def graph(self, graph_builder: GraphBuilder) -> DependencyGraph:
        """A -> B (3), C -> B (2), B -> D (unannotated)."""
        return graph_builder([("A", "B", 3), ("C", "B", 2), ("B", "D")])

    def test_raw_scores(self, graph: DependencyGraph) -> None:
        calculator = CouplingMetricCalculator(graph)
        a, b, c, d = (calculator.calculate(u) for u in graph.units)

        assert (b.incoming_count, b.outgoing_count, b.total_score) == (5, 1, 11)
        assert (a.incoming_count, a.outgoing_count, a.total_score) == (0, 3, 3)
        assert c.total_score == 2
        assert d.total_score == 2
        assert calculator.max_score == 11

    def test_normalized_relative_to_maximum(self, graph: DependencyGraph) -> None:
        calculator = CouplingMetricCalculator(graph)
        a, b = graph.units[0], graph.units[1]

        assert calculator.calculate(b).normalized_score == pytest.approx(100.0)
        assert calculator.calculate(a).normalized_score == pytest.approx(3 / 11 * 100)
        assert not calculator.calculate(a).is_fallback

    def test_graph_without_edges_scores_zero(self, unit_factory: UnitFactory) -> None:
        unit = unit_factory("Lonely")
        calculator = CouplingMetricCalculator(DependencyGraph([unit]))

        assert calculator.calculate(unit).normalized_score == 0.0

    def test_unknown_unit_falls_back(self, graph: DependencyGraph, unit_factory: UnitFactory, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            metric = CouplingMetricCalculator(graph).calculate(unit_factory("Elsewhere"))

        assert metric.normalized_score == 50.0
        assert metric.is_fallback
        assert "not part of the dependency graph" in caplog.text


class TestComplexityMetricCalculator:
    """Tests for the complexity metric."""

    @pytest.mark.parametrize(
        "average,expected",
        [
            (0.0, 0.0),
            (3.5, 16.5),
            (7.0, 33.0),
            (11.0, 49.5),
            (15.0, 66.0),
            (20.0, 78.0),
            (25.0, 90.0),
            (30.0, 95.0),
            (35.0, 100.0),
            (120.0, 100.0),
        ],
    )
    def test_normalize_complexity(self, average: float, expected: float) -> None:
        assert normalize_complexity(average) == pytest.approx(expected)

    def test_average_of_methods(self, unit_factory: UnitFactory) -> None:
        analyzer = Mock(return_value=[1, 7, 13])
        unit = unit_factory("Core")

        metric = ComplexityMetricCalculator(analyzer).calculate(unit)

        analyzer.assert_called_once_with(unit)
        assert metric.method_count == 3
        assert metric.total_complexity == 21
        assert metric.average_complexity == pytest.approx(7.0)
        assert metric.normalized_score == pytest.approx(33.0)

    def test_no_methods_scores_zero(self, unit_factory: UnitFactory) -> None:
        """Sources were analyzed and contained no functions."""
        metric = ComplexityMetricCalculator(Mock(return_value=[])).calculate(unit_factory("Empty"))

        assert metric.normalized_score == 0.0
        assert not metric.is_fallback

    def test_analyzer_failure_falls_back(self, unit_factory: UnitFactory, caplog: pytest.LogCaptureFixture) -> None:
        analyzer = Mock(side_effect=OSError("disk on fire"))

        with caplog.at_level(logging.WARNING):
            metric = ComplexityMetricCalculator(analyzer).calculate(unit_factory("Core"))

        assert metric.normalized_score == 50.0
        assert metric.is_fallback
        assert "disk on fire" in caplog.text

    def test_negative_complexity_falls_back(self, unit_factory: UnitFactory) -> None:
        metric = ComplexityMetricCalculator(Mock(return_value=[3, -1])).calculate(unit_factory("Core"))
        assert metric.is_fallback

    def test_default_analyzer_missing_sources_falls_back(self, tmp_path: Path) -> None:
        metric = ComplexityMetricCalculator().calculate(Unit(str(tmp_path / "nowhere" / "X.csproj"), "X"))
        assert metric.is_fallback

    def test_default_analyzer_without_python_sources_falls_back(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        root = tmp_path / "Core"
        root.mkdir()
        (root / "Core.csproj").write_text("<Project><PropertyGroup><TargetFramework>net8.0</TargetFramework></PropertyGroup></Project>", encoding="utf-8")
        (root / "Big.cs").write_text("void Run() { if (a) {} if (b) {} if (c) {} while (d) {} }", encoding="utf-8")
        unit = Unit(str(root / "Core.csproj"), "Core")

        with caplog.at_level(logging.WARNING):
            complexity = ComplexityMetricCalculator().calculate(unit)
            exposure = ExternalApiDetector().calculate(unit)

        assert (complexity.normalized_score, complexity.is_fallback) == (50.0, True)
        assert (exposure.normalized_score, exposure.is_fallback) == (50.0, True)
        assert "No analyzable Python sources" in caplog.text

    def test_default_analyzer_sources_without_functions_score_zero(self, tmp_path: Path) -> None:
        (tmp_path / "settings.py").write_text("DEBUG = False\n", encoding="utf-8")

        metric = ComplexityMetricCalculator().calculate(Unit(str(tmp_path), "Settings"))

        assert metric.normalized_score == 0.0
        assert not metric.is_fallback


class TestTechDebtAnalyzer:
    """Tests for the framework staleness metric."""

    @pytest.mark.parametrize(
        "tfm,expected",
        [
            ("net6", "net6.0"),
            ("NET8.0", "net8.0"),
            ("net472", "net472"),
            ("net45", "net45"),
            ("netcoreapp3.1", "netcoreapp3.1"),
            ("netstandard2.0", "netstandard2.0"),
        ],
    )
    def test_normalize_target_framework(self, tfm: str, expected: str) -> None:
        assert normalize_target_framework(tfm) == expected

    def test_legacy_version(self) -> None:
        assert legacy_version_to_tfm("v4.7.2") == "net472"
        assert legacy_version_to_tfm("v") == "unknown"

    @pytest.mark.parametrize(
        "framework,score",
        [("net8.0", 0.0), ("net6", 10.0), ("net472", 40.0), ("netstandard2.0", 50.0), ("net35", 100.0), ("netcoreapp3.1", 30.0)],
    )
    def test_framework_tag_scores(self, unit_factory: UnitFactory, framework: str, score: float) -> None:
        metric = TechDebtAnalyzer().calculate(unit_factory("Core", framework=framework))

        assert metric.normalized_score == score
        assert metric.target_framework == framework
        assert not metric.is_fallback

    def test_unknown_framework_neutral(self, unit_factory: UnitFactory, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            metric = TechDebtAnalyzer().calculate(unit_factory("Core", framework="net99.0"))

        assert metric.normalized_score == 50.0
        assert "Unknown target framework" in caplog.text

    def test_custom_resolver_and_table(self, unit_factory: UnitFactory) -> None:
        analyzer = TechDebtAnalyzer(framework_resolver=lambda unit: "py3.8", debt_scores={"py3.8": 80.0})
        assert analyzer.calculate(unit_factory("Core")).normalized_score == 80.0

    def test_resolver_failure_falls_back(self, unit_factory: UnitFactory) -> None:
        analyzer = TechDebtAnalyzer(framework_resolver=Mock(side_effect=RuntimeError("boom")))

        metric = analyzer.calculate(unit_factory("Core"))

        assert metric.is_fallback
        assert metric.target_framework == "unknown"

    def test_sdk_style_project_file(self, tmp_path: Path) -> None:
        project = tmp_path / "Core.csproj"
        project.write_text(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup><TargetFramework>net7.0</TargetFramework></PropertyGroup></Project>',
            encoding="utf-8",
        )

        metric = TechDebtAnalyzer().calculate(Unit(str(project), "Core"))

        assert metric.target_framework == "net7.0"
        assert metric.normalized_score == 5.0

    def test_multi_targeting_uses_first(self, tmp_path: Path) -> None:
        project = tmp_path / "Lib.csproj"
        project.write_text(
            "<Project><PropertyGroup><TargetFrameworks>net8.0;net6.0</TargetFrameworks></PropertyGroup></Project>",
            encoding="utf-8",
        )
        assert read_project_framework(project) == "net8.0"

    def test_legacy_project_with_namespace(self, tmp_path: Path) -> None:
        project = tmp_path / "Old.csproj"
        project.write_text(
            '<?xml version="1.0" encoding="utf-8"?>'
            '<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">'
            "<PropertyGroup><TargetFrameworkVersion>v4.7.2</TargetFrameworkVersion></PropertyGroup></Project>",
            encoding="utf-8",
        )

        metric = TechDebtAnalyzer().calculate(Unit(str(project), "Old"))

        assert metric.target_framework == "net472"
        assert metric.normalized_score == 40.0

    def test_malformed_project_falls_back(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        project = tmp_path / "Bad.csproj"
        project.write_text("<Project><PropertyGroup>", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            metric = TechDebtAnalyzer().calculate(Unit(str(project), "Bad"))

        assert metric.is_fallback
        assert metric.normalized_score == 50.0
        assert "Could not determine target framework" in caplog.text

    def test_no_framework_anywhere(self, tmp_path: Path) -> None:
        project = tmp_path / "Empty.csproj"
        project.write_text("<Project />", encoding="utf-8")

        assert TechDebtAnalyzer().calculate(Unit(str(project), "Empty")).is_fallback


class TestExternalApiDetector:
    """Tests for the API exposure metric."""

    @pytest.mark.parametrize(
        "count,expected",
        [(0, 0.0), (1, 33.0), (5, 33.0), (6, 66.0), (15, 66.0), (16, 100.0), (500, 100.0)],
    )
    def test_steps(self, count: int, expected: float) -> None:
        assert normalize_endpoint_count(count) == expected

    def test_calculate(self, unit_factory: UnitFactory) -> None:
        metric = ExternalApiDetector(Mock(return_value=7)).calculate(unit_factory("Api"))

        assert metric.endpoint_count == 7
        assert metric.normalized_score == 66.0

    def test_counter_failure_falls_back(self, unit_factory: UnitFactory, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            metric = ExternalApiDetector(Mock(side_effect=TimeoutError("slow"))).calculate(unit_factory("Api"))

        assert metric.normalized_score == 50.0
        assert metric.is_fallback
        assert "API exposure detection failed" in caplog.text

    def test_negative_count_falls_back(self, unit_factory: UnitFactory) -> None:
        assert ExternalApiDetector(Mock(return_value=-1)).calculate(unit_factory("Api")).is_fallback
