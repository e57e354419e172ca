# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for ownership reconciliation, using in-memory content."""

import logging
import os
from pathlib import Path

from dnscan.config import Config
from dnscan.file_loader import MemoryFileLoader
from dnscan.models import DiscoveredPaths, FileRecord, ProjectOwnership, Solution
from dnscan.reconciliation import (
    Analyzer,
    analyze,
    group_solutions,
    other_files_by_directory,
    parallel_map,
)

NO_CONFIG = Path(os.sep) / "nonexistent" / ".dnscan.yml"


def p(*parts: str) -> str:
    return os.path.join(os.sep, "temp", *parts)


def run(files, other_files=None, max_workers=4):
    loader = MemoryFileLoader(files)
    paths = DiscoveredPaths(
        sln_files=[f for f in files if f.endswith(".sln")],
        csproj_files=[f for f in files if f.endswith(".csproj")],
        other_files=list(other_files or []),
    )
    config = Config(config_path=NO_CONFIG)
    config._config["max_workers"] = max_workers
    return analyze(p(), config=config, file_loader=loader, paths=paths)


def ownership(result):
    return {
        os.path.basename(proj.path): (os.path.basename(sln.path), proj.ownership)
        for sln in result.solutions()
        for proj in sln.projects
    }


class TestOwnership:
    """Tests for linked and orphaned assignment."""

    def test_linked_and_orphaned(self):
        """Test a solution that mentions one sibling project but not another."""
        result = run(
            {
                p("car.sln"): '"ford.csproj"',
                p("ford.csproj"): "",
                p("bmw.csproj"): "",
            }
        )

        assert ownership(result) == {
            "ford.csproj": ("car.sln", ProjectOwnership.LINKED),
            "bmw.csproj": ("car.sln", ProjectOwnership.ORPHANED),
        }
        assert result.num_solutions() == 1
        assert result.num_linked_projects() == 1
        assert result.num_orphaned_projects() == 1

    def test_linked_match_is_case_insensitive(self):
        """Test that a differently cased mention still links."""
        result = run({p("car.sln"): '"FORD.CSPROJ"', p("ford.csproj"): ""})
        assert ownership(result) == {"ford.csproj": ("car.sln", ProjectOwnership.LINKED)}

    def test_orphan_in_parent_directory(self):
        """Test that a project one level below a solution is orphaned to it."""
        result = run({p("car.sln"): "", p("sub", "toyota.csproj"): ""})
        assert ownership(result) == {"toyota.csproj": ("car.sln", ProjectOwnership.ORPHANED)}

    def test_same_directory_preferred_over_parent(self):
        """Test that a solution in the project's own directory wins over the parent."""
        result = run(
            {
                p("car.sln"): "",
                p("sub", "sub.sln"): "",
                p("sub", "toyota.csproj"): "",
            }
        )
        assert ownership(result) == {"toyota.csproj": ("sub.sln", ProjectOwnership.ORPHANED)}

    def test_linked_beats_orphaned(self):
        """Test that a mention anywhere wins over a solution next to the project."""
        result = run(
            {
                p("a", "a.sln"): "",
                p("a", "ford.csproj"): "",
                p("b", "b.sln"): '"..\\a\\ford.csproj"',
            }
        )
        assert ownership(result) == {"ford.csproj": ("b.sln", ProjectOwnership.LINKED)}

    def test_first_mentioning_solution_wins(self):
        """Test that a project mentioned twice is owned by the first solution only."""
        result = run(
            {
                p("a", "a.sln"): '"..\\shared\\shared.csproj"',
                p("b", "b.sln"): '"..\\shared\\shared.csproj"',
                p("shared", "shared.csproj"): "",
            }
        )
        assert ownership(result) == {"shared.csproj": ("a.sln", ProjectOwnership.LINKED)}
        assert result.num_linked_projects() == 1

    def test_unassociated_project_dropped(self, caplog):
        """Test that a project no solution claims is logged and left out."""
        with caplog.at_level(logging.WARNING, logger="dnscan.reconciliation"):
            result = run(
                {
                    p("car.sln"): "",
                    p("far", "away", "lost.csproj"): "",
                }
            )

        assert ownership(result) == {}
        assert p("far", "away", "lost.csproj") in result.paths.csproj_files
        assert any("lost.csproj" in r.getMessage() for r in caplog.records)

    def test_ownership_partition(self):
        """Test that Linked is assigned iff the owning solution mentions the project."""
        result = run(
            {
                p("car.sln"): '"ford.csproj" "sub\\toyota.csproj"',
                p("ford.csproj"): "",
                p("bmw.csproj"): "",
                p("sub", "toyota.csproj"): "",
                p("sub", "honda.csproj"): "",
            }
        )

        for sln in result.solutions():
            for proj in sln.projects:
                assert proj.ownership in (ProjectOwnership.LINKED, ProjectOwnership.ORPHANED)
                linked = proj.ownership == ProjectOwnership.LINKED
                assert linked == sln.refers_to_project(proj.path)

    def test_serial_and_parallel_agree(self):
        """Test that the worker pool size does not change the result."""
        files = {p(f"s{i}", f"s{i}.sln"): f'"p{i}.csproj"' for i in range(6)}
        files.update({p(f"s{i}", f"p{i}.csproj"): "" for i in range(6)})

        serial = run(files, max_workers=1)
        parallel = run(files, max_workers=8)

        assert ownership(serial) == ownership(parallel)


class TestGroupingAndSorting:
    """Tests for solution grouping and the final sort."""

    def test_solutions_grouped_by_directory(self):
        """Test that solutions in one directory share a SolutionDirectory."""
        result = run(
            {
                p("x", "b.sln"): "",
                p("x", "a.sln"): "",
                p("y", "c.sln"): "",
            }
        )

        assert [sd.directory for sd in result.solution_directories] == [p("x"), p("y")]
        assert [s.path for s in result.solution_directories[0].solutions] == [
            p("x", "a.sln"),
            p("x", "b.sln"),
        ]

    def test_projects_sorted_within_solution(self):
        """Test that owned projects are sorted by path."""
        result = run(
            {
                p("car.sln"): "",
                p("zeta.csproj"): "",
                p("alpha.csproj"): "",
            }
        )
        sln = next(result.solutions())
        assert [os.path.basename(x.path) for x in sln.projects] == ["alpha.csproj", "zeta.csproj"]

    def test_group_solutions_keeps_discovery_order(self):
        """Test that the first solution in a directory creates its entry."""
        names = [("b", "1.sln"), ("a", "2.sln"), ("b", "3.sln")]
        slns = [Solution(FileRecord(p(d, n))) for d, n in names]

        groups = group_solutions(slns)

        assert [g.directory for g in groups] == [p("b"), p("a")]
        assert [s.path for s in groups[0].solutions] == [p("b", "1.sln"), p("b", "3.sln")]

    def test_empty_inventory(self):
        """Test that no files gives an empty result."""
        result = run({})
        assert result.is_empty()
        assert result.num_solutions() == 0


class TestOtherFiles:
    """Tests for matching other files to projects."""

    def test_other_files_from_same_directory_only(self):
        """Test that files in a subdirectory are not attributed to the project."""
        result = run(
            {p("car.sln"): "", p("ford.csproj"): ""},
            other_files=[p("web.config"), p("sub", "app.config")],
        )
        proj = next(result.projects())
        assert proj.other_files == [p("web.config")]

    def test_index_is_case_insensitive(self):
        """Test directory keys ignore case."""
        index = other_files_by_directory([p("Dir", "web.config")])
        assert list(index.values()) == [[p("Dir", "web.config")]]
        assert len(index) == 1


def test_parallel_map_preserves_order():
    """Test that results come back in input order."""
    assert parallel_map(lambda x: x * 2, list(range(20)), max_workers=4) == list(range(0, 40, 2))
    assert parallel_map(lambda x: x, [], max_workers=4) == []


def test_analyzer_records_stage_timings():
    """Test that the load stages record non-negative durations."""
    loader = MemoryFileLoader({p("car.sln"): "", p("ford.csproj"): ""})
    paths = DiscoveredPaths(sln_files=[p("car.sln")], csproj_files=[p("ford.csproj")])

    result = Analyzer(Config(config_path=NO_CONFIG), loader).analyze(p(), paths)

    assert result.solution_load_seconds >= 0.0
    assert result.project_load_seconds >= 0.0
    assert result.disk_walk_seconds == 0.0


def test_supplied_paths_left_unchanged():
    """Test that the caller's inventory is sorted in a copy, not in place."""
    loader = MemoryFileLoader({p("car.sln"): "", p("b.csproj"): "", p("a.csproj"): ""})
    paths = DiscoveredPaths(sln_files=[p("car.sln")], csproj_files=[p("b.csproj"), p("a.csproj")])

    result = Analyzer(Config(config_path=NO_CONFIG), loader).analyze(p(), paths)

    assert paths.csproj_files == [p("b.csproj"), p("a.csproj")]
    assert result.paths.csproj_files == [p("a.csproj"), p("b.csproj")]
    assert result.paths is not paths
