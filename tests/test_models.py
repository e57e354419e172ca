# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for the data model."""

from dnscan.models import (
    AnalysisResult,
    DiscoveredPaths,
    FileRecord,
    FileStatus,
    InterestingFile,
    Package,
    Project,
    ProjectOwnership,
    Solution,
    SolutionDirectory,
    sorted_unique_paths,
)


class TestFileRecord:
    """Tests for FileRecord."""

    def test_filename_and_directory(self):
        """Test the derived path parts."""
        record = FileRecord("/src/app/App.csproj")
        assert record.filename == "App.csproj"
        assert record.directory == "/src/app"

    def test_defaults_mean_unreadable(self):
        """Test that a bare record has no contents."""
        record = FileRecord("/src/app/App.csproj")
        assert record.contents == ""
        assert record.is_valid_utf8 is False


class TestPackage:
    """Tests for Package."""

    def test_preview(self):
        """Test that a hyphenated version is a preview."""
        assert Package("A", "1.0.0-beta2").is_preview
        assert not Package("A", "1.0.0").is_preview

    def test_sort_and_dedupe(self):
        """Test that Project sorts packages and drops exact duplicates."""
        project = Project(
            file_record=FileRecord("/a.csproj"),
            packages=[Package("Zed", "1.0"), Package("Alpha", "2.0"), Package("Zed", "1.0")],
        )
        assert [p.name for p in project.packages] == ["Alpha", "Zed"]

    def test_same_name_different_versions_kept(self):
        """Test that version is part of package identity."""
        project = Project(
            file_record=FileRecord("/a.csproj"),
            packages=[Package("A", "2.0"), Package("A", "1.0")],
        )
        assert [p.version for p in project.packages] == ["1.0", "2.0"]


class TestFileStatus:
    """Tests for FileStatus.from_flags."""

    def test_truth_table(self):
        """Test all four combinations."""
        assert FileStatus.from_flags(False, False) == FileStatus.NOT_PRESENT
        assert FileStatus.from_flags(True, False) == FileStatus.IN_PROJECT_FILE_ONLY
        assert FileStatus.from_flags(False, True) == FileStatus.ON_DISK_ONLY
        assert FileStatus.from_flags(True, True) == FileStatus.IN_PROJECT_FILE_AND_ON_DISK


class TestInterestingFile:
    """Tests for InterestingFile.from_name."""

    def test_case_insensitive(self):
        """Test that names match regardless of case."""
        assert InterestingFile.from_name("Web.Config") == InterestingFile.WEB_CONFIG
        assert InterestingFile.from_name("AppSettings.json") == InterestingFile.APP_SETTINGS_JSON

    def test_not_interesting(self):
        """Test that other files give None."""
        assert InterestingFile.from_name("appsettings.Development.json") is None


def test_sorted_unique_paths():
    """Test that case-insensitive duplicates collapse to the first sorted spelling."""
    assert sorted_unique_paths(["/b", "/A/x.csproj", "/a/X.csproj"]) == ["/A/x.csproj", "/b"]


def test_project_references():
    """Test that references compare the referenced path exactly."""
    lib = Project(file_record=FileRecord("/s/lib/Lib.csproj"))
    app = Project(file_record=FileRecord("/s/app/App.csproj"), referenced_projects=[lib.path])
    assert app.references(lib)
    assert not lib.references(app)


class TestAnalysisResult:
    """Tests for the counting helpers."""

    def make_result(self):
        linked = Project(file_record=FileRecord("/r/a.csproj"), ownership=ProjectOwnership.LINKED)
        orphan = Project(
            file_record=FileRecord("/r/b.csproj"), ownership=ProjectOwnership.ORPHANED
        )
        first = Solution(FileRecord("/r/z.sln"), projects=[orphan, linked])
        second = Solution(FileRecord("/r/a.sln"))
        return AnalysisResult(
            root_path="/r",
            solution_directories=[
                SolutionDirectory("/r/sub", [Solution(FileRecord("/r/sub/s.sln"))]),
                SolutionDirectory("/r", [first, second]),
            ],
        )

    def test_counts(self):
        """Test solution, linked and orphaned totals."""
        result = self.make_result()

        assert result.num_solutions() == 3
        assert result.num_linked_projects() == 1
        assert result.num_orphaned_projects() == 1
        assert not result.is_empty()
        assert AnalysisResult(root_path="/r").is_empty()

    def test_sort(self):
        """Test that sort orders directories, solutions and projects by path."""
        result = self.make_result()

        result.sort()

        assert [sd.directory for sd in result.solution_directories] == ["/r", "/r/sub"]
        assert [s.path for s in result.solutions()] == ["/r/a.sln", "/r/z.sln", "/r/sub/s.sln"]
        assert [p.path for p in result.projects()] == ["/r/a.csproj", "/r/b.csproj"]

    def test_mentioned_projects_match_ignoring_case(self):
        """Test that solution membership ignores case."""
        sln = Solution(FileRecord("/r/s.sln"), mentioned_projects=["/r/App/App.csproj"])
        assert sln.refers_to_project("/r/app/app.csproj")


def test_discovered_paths_len():
    """Test that git directories are not counted as files."""
    paths = DiscoveredPaths(
        sln_files=["/a.sln"], csproj_files=["/a.csproj"], git_dirs=["/.git"]
    )
    assert len(paths) == 2
