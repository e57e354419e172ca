# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for dnscan.

This module defines the data structures produced by a scan:
- DiscoveredPaths: Raw inventory of interesting paths from the directory walk
- FileRecord: A solution or project file together with its text
- Package: A versioned package dependency declared by a project
- Project: Facts extracted from a project file
- Solution: A solution file and the projects it owns
- SolutionDirectory: A directory holding one or more solutions
- AnalysisResult: The reconciled model for one scan root

Enumerations are class constants holding plain strings, which keeps them
directly usable as CSV cells and graph labels.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from dnscan.path_classifier import ascii_lower, eq_ignoring_case


class ProjectVersion:
    """Dialect of a project file, detected from its prolog."""

    UNKNOWN = "Unknown"
    OLD_STYLE = "OldStyle"  # <Project ToolsVersion="14.0" ...
    SDK = "MicrosoftNetSdk"  # <Project Sdk="Microsoft.NET.Sdk">
    SDK_WEB = "MicrosoftNetSdkWeb"  # <Project Sdk="Microsoft.NET.Sdk.Web">

    SDK_STYLES = (SDK, SDK_WEB)


class OutputType:
    UNKNOWN = "Unknown"
    LIBRARY = "Library"
    EXE = "Exe"
    WIN_EXE = "WinExe"


class XmlDoc:
    """Which build configurations generate XML documentation."""

    UNKNOWN = "Unknown"
    NONE = "None"
    DEBUG = "Debug"
    RELEASE = "Release"
    BOTH = "Both"


class ProjectOwnership:
    UNKNOWN = "Unknown"
    LINKED = "Linked"  # mentioned inside the solution file
    ORPHANED = "Orphaned"  # found next to the solution but not mentioned


class TestFramework:
    __test__ = False  # not a pytest test class

    NONE = "None"
    MSTEST = "MSTest"
    XUNIT = "XUnit"
    NUNIT = "NUnit"


class VisualStudioVersion:
    UNKNOWN = "Unknown"
    VS2015 = "VS2015"
    VS2017 = "VS2017"
    VS2019 = "VS2019"


class FileStatus:
    """Presence of an auxiliary file, combining project text and disk."""

    NOT_PRESENT = "NotPresent"
    IN_PROJECT_FILE_ONLY = "InProjectFileOnly"
    ON_DISK_ONLY = "OnDiskOnly"
    IN_PROJECT_FILE_AND_ON_DISK = "InProjectFileAndOnDisk"

    ALL = (NOT_PRESENT, IN_PROJECT_FILE_ONLY, ON_DISK_ONLY, IN_PROJECT_FILE_AND_ON_DISK)

    @classmethod
    def from_flags(cls, in_project_file: bool, on_disk: bool) -> str:
        if in_project_file and on_disk:
            return cls.IN_PROJECT_FILE_AND_ON_DISK
        if in_project_file:
            return cls.IN_PROJECT_FILE_ONLY
        if on_disk:
            return cls.ON_DISK_ONLY
        return cls.NOT_PRESENT


class InterestingFile:
    """Files whose mere presence next to a project is tracked."""

    WEB_CONFIG = "web.config"
    APP_CONFIG = "app.config"
    APP_SETTINGS_JSON = "appsettings.json"
    PACKAGE_JSON = "package.json"  # required by npm
    PACKAGES_CONFIG = "packages.config"  # obsolete, should be removed
    PROJECT_JSON = "project.json"  # obsolete, should be removed

    ALL = (WEB_CONFIG, APP_CONFIG, APP_SETTINGS_JSON, PACKAGE_JSON, PACKAGES_CONFIG, PROJECT_JSON)

    @classmethod
    def from_name(cls, name: str) -> Optional[str]:
        """Return the canonical name if `name` is an interesting file, else None."""
        lowered = ascii_lower(name)
        for item in cls.ALL:
            if lowered == item:
                return item
        return None


@dataclass(frozen=True)
class FileRecord:
    """A solution or project file and its text.

    `contents` is "" when the file could not be read or was not valid UTF-8;
    in that case `is_valid_utf8` is False and every extraction yields defaults.
    """

    path: str
    contents: str = ""
    is_valid_utf8: bool = False

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path)


@dataclass(frozen=True, order=True)
class Package:
    """A package dependency. Orders by name, then version."""

    name: str
    version: str
    development: bool = False
    classification: str = ""

    @property
    def is_preview(self) -> bool:
        return "-" in self.version


@dataclass
class GitInfo:
    """Version-control metadata for a directory."""

    branch: str = ""
    sha: str = ""
    summary: str = ""
    commit_time: str = ""
    author_name: str = ""
    author_email: str = ""
    remote_name: str = ""
    remote_url: str = ""


def sorted_unique_packages(packages: List[Package]) -> List[Package]:
    return list(dict.fromkeys(sorted(packages)))


def sorted_unique_paths(paths: List[str]) -> List[str]:
    """Sort paths and drop case-insensitive duplicates, keeping the first spelling."""
    seen = set()
    result = []
    for p in sorted(paths):
        key = ascii_lower(p)
        if key not in seen:
            seen.add(key)
            result.append(p)
    return result


@dataclass
class Project:
    """The results of analyzing a project file."""

    file_record: FileRecord
    other_files: List[str] = field(default_factory=list)
    version: str = ProjectVersion.UNKNOWN
    output_type: str = OutputType.UNKNOWN
    xml_doc: str = XmlDoc.UNKNOWN
    tt_file: bool = False
    embedded_debugging: bool = False
    linked_solution_info: bool = False
    auto_generate_binding_redirects: bool = False
    referenced_assemblies: List[str] = field(default_factory=list)
    target_frameworks: List[str] = field(default_factory=list)
    referenced_projects: List[str] = field(default_factory=list)
    web_config: str = FileStatus.NOT_PRESENT
    app_config: str = FileStatus.NOT_PRESENT
    app_settings_json: str = FileStatus.NOT_PRESENT
    package_json: str = FileStatus.NOT_PRESENT
    packages_config: str = FileStatus.NOT_PRESENT
    project_json: str = FileStatus.NOT_PRESENT
    packages: List[Package] = field(default_factory=list)
    test_framework: str = TestFramework.NONE
    uses_specflow: bool = False
    ownership: str = ProjectOwnership.UNKNOWN

    def __post_init__(self) -> None:
        self.packages = sorted_unique_packages(self.packages)
        self.referenced_assemblies = sorted(set(self.referenced_assemblies))
        self.referenced_projects = sorted_unique_paths(self.referenced_projects)
        self.other_files = sorted(self.other_files)

    @property
    def path(self) -> str:
        return self.file_record.path

    def file_status(self, interesting_file: str) -> str:
        """Status for one of the InterestingFile names."""
        statuses: Dict[str, str] = {
            InterestingFile.WEB_CONFIG: self.web_config,
            InterestingFile.APP_CONFIG: self.app_config,
            InterestingFile.APP_SETTINGS_JSON: self.app_settings_json,
            InterestingFile.PACKAGE_JSON: self.package_json,
            InterestingFile.PACKAGES_CONFIG: self.packages_config,
            InterestingFile.PROJECT_JSON: self.project_json,
        }
        return statuses[interesting_file]

    def references(self, other: "Project") -> bool:
        """True if this project has a project reference to `other`."""
        return other.path in self.referenced_projects


@dataclass
class Solution:
    """A solution file and the projects associated with it.

    `projects` is filled in by reconciliation, either because the project is
    mentioned in the solution file (Linked) or because it sits next to the
    solution without being mentioned (Orphaned).
    """

    file_record: FileRecord
    version: str = VisualStudioVersion.UNKNOWN
    git_info: Optional[GitInfo] = None
    projects: List[Project] = field(default_factory=list)
    # Normalized project paths mentioned inside the solution file.
    mentioned_projects: List[str] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.mentioned_projects = sorted(set(self.mentioned_projects))

    @property
    def path(self) -> str:
        return self.file_record.path

    @property
    def directory(self) -> str:
        return self.file_record.directory

    def refers_to_project(self, project_path: str) -> bool:
        return any(eq_ignoring_case(mp, project_path) for mp in self.mentioned_projects)

    def linked_projects(self) -> Iterator[Project]:
        return (p for p in self.projects if p.ownership == ProjectOwnership.LINKED)

    def orphaned_projects(self) -> Iterator[Project]:
        return (p for p in self.projects if p.ownership == ProjectOwnership.ORPHANED)

    def sort(self) -> None:
        self.projects.sort(key=lambda p: p.path)


@dataclass
class SolutionDirectory:
    """A directory that contains one or more solution files."""

    directory: str
    solutions: List[Solution] = field(default_factory=list)
    git_info: Optional[GitInfo] = None

    def sort(self) -> None:
        self.solutions.sort(key=lambda s: s.path)
        for sln in self.solutions:
            sln.sort()

    def num_solutions(self) -> int:
        return len(self.solutions)

    def num_linked_projects(self) -> int:
        return sum(1 for sln in self.solutions for _ in sln.linked_projects())

    def num_orphaned_projects(self) -> int:
        return sum(1 for sln in self.solutions for _ in sln.orphaned_projects())


@dataclass
class DiscoveredPaths:
    """Raw results of the directory walk.

    No attempt is made to relate projects to solutions here; that requires
    reading file contents and happens during reconciliation.
    """

    sln_files: List[str] = field(default_factory=list)
    csproj_files: List[str] = field(default_factory=list)
    other_files: List[str] = field(default_factory=list)
    # Only populated when the caller asked to collect version-control roots.
    git_dirs: List[str] = field(default_factory=list)

    def sort(self) -> None:
        self.sln_files.sort()
        self.csproj_files.sort()
        self.other_files.sort()
        self.git_dirs.sort()

    def __len__(self) -> int:
        return len(self.sln_files) + len(self.csproj_files) + len(self.other_files)


@dataclass
class AnalysisResult:
    """The reconciled model for a single scan root."""

    root_path: str
    paths: DiscoveredPaths = field(default_factory=DiscoveredPaths)
    solution_directories: List[SolutionDirectory] = field(default_factory=list)
    disk_walk_seconds: float = 0.0
    solution_load_seconds: float = 0.0
    project_load_seconds: float = 0.0

    def sort(self) -> None:
        self.solution_directories.sort(key=lambda sd: sd.directory)
        for sd in self.solution_directories:
            sd.sort()

    def is_empty(self) -> bool:
        return not self.solution_directories

    def solutions(self) -> Iterator[Solution]:
        for sd in self.solution_directories:
            yield from sd.solutions

    def projects(self) -> Iterator[Project]:
        for sln in self.solutions():
            yield from sln.projects

    def num_solutions(self) -> int:
        return sum(sd.num_solutions() for sd in self.solution_directories)

    def num_linked_projects(self) -> int:
        return sum(sd.num_linked_projects() for sd in self.solution_directories)

    def num_orphaned_projects(self) -> int:
        return sum(sd.num_orphaned_projects() for sd in self.solution_directories)
