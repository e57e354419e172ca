# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests: walk, extraction, reconciliation and graph on real trees."""

import os
from pathlib import Path

import pytest

from dnscan.config import Config
from dnscan.errors import RootDirectoryNotFoundError
from dnscan.graph import NodeKind, build_analysis_graph
from dnscan.models import FileStatus, ProjectOwnership, ProjectVersion, TestFramework
from dnscan.reconciliation import analyze
from dnscan.transitive_reduction import transitive_reduction

from graph_helpers import reachable_from

NO_CONFIG = Path(os.sep) / "nonexistent" / ".dnscan.yml"


def names(projects):
    return [os.path.basename(p.path) for p in projects]


class TestVehicles:
    """Linked and orphaned ownership across two solution directories."""

    def test_car_solution(self, vehicles_tree):
        """Test that car.sln links ford and toyota and orphans bmw."""
        result = analyze(str(vehicles_tree), Config(config_path=NO_CONFIG))

        car_dir = result.solution_directories[0]
        assert car_dir.directory == str(vehicles_tree)
        assert car_dir.num_solutions() == 1
        assert car_dir.num_linked_projects() == 2
        assert car_dir.num_orphaned_projects() == 1

        car = car_dir.solutions[0]
        assert names(car.linked_projects()) == ["ford.csproj", "toyota.csproj"]
        assert names(car.orphaned_projects()) == ["bmw.csproj"]

    def test_truck_solution(self, vehicles_tree):
        """Test that truck.sln links volvo and orphans mercedes and renault."""
        result = analyze(str(vehicles_tree), Config(config_path=NO_CONFIG))

        truck_dir = result.solution_directories[1]
        assert truck_dir.directory == str(vehicles_tree / "trucks")
        truck = truck_dir.solutions[0]
        assert names(truck.linked_projects()) == ["volvo.csproj"]
        assert names(truck.orphaned_projects()) == ["mercedes.csproj", "renault.csproj"]

    def test_totals_and_pruning(self, vehicles_tree):
        """Test overall counts, and that pruned directories were not scanned."""
        result = analyze(str(vehicles_tree), Config(config_path=NO_CONFIG))

        assert result.num_solutions() == 2
        assert result.num_linked_projects() == 3
        assert result.num_orphaned_projects() == 3
        assert not any("ignored" in p for p in result.paths.csproj_files + result.paths.sln_files)
        assert result.disk_walk_seconds >= 0.0

    def test_missing_root(self, tmp_path):
        """Test that scanning a nonexistent directory is fatal."""
        with pytest.raises(RootDirectoryNotFoundError):
            analyze(str(tmp_path / "nope"), Config(config_path=NO_CONFIG))


class TestShop:
    """Extraction and graph reduction on a small SDK solution."""

    @pytest.fixture
    def result(self, shop_tree):
        return analyze(str(shop_tree), Config(config_path=NO_CONFIG))

    def test_projects_extracted(self, result):
        """Test facts extracted from each project."""
        by_name = {os.path.basename(p.path): p for p in result.projects()}

        assert set(by_name) == {"App.csproj", "Core.csproj", "Lib.csproj", "Tests.csproj"}
        assert all(p.ownership == ProjectOwnership.LINKED for p in by_name.values())

        app = by_name["App.csproj"]
        assert app.version == ProjectVersion.SDK
        assert app.app_settings_json == FileStatus.ON_DISK_ONLY
        assert [(p.name, p.development) for p in app.packages] == [
            ("EntityFramework", False),
            ("StyleCop.Analyzers", True),
        ]

        assert by_name["Lib.csproj"].target_frameworks == ["netstandard2.0", "net462"]

        tests = by_name["Tests.csproj"]
        assert tests.version == ProjectVersion.OLD_STYLE
        assert tests.test_framework == TestFramework.NUNIT
        assert tests.packages_config == FileStatus.IN_PROJECT_FILE_AND_ON_DISK

    def test_graph_and_reduction(self, result):
        """Test that App->Lib is redundant given App->Core->Lib."""
        graph = build_analysis_graph(result)
        app = graph.index_of(next(p for p in result.projects() if p.path.endswith("App.csproj")))
        lib = graph.index_of(next(p for p in result.projects() if p.path.endswith("Lib.csproj")))
        before = {i: reachable_from(graph, i) for i in range(graph.node_count())}

        assert len(graph.nodes_of_kind(NodeKind.PROJECT)) == 4
        assert graph.has_edge(app, lib)

        removed = transitive_reduction(graph)

        assert removed == {(app, lib)}
        assert not graph.has_edge(app, lib)
        after = {i: reachable_from(graph, i) for i in range(graph.node_count())}
        assert after == before
