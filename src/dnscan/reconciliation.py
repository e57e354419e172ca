# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Turns the raw path inventory into a reconciled AnalysisResult.

Pipeline:
1. Walk the tree (unless a DiscoveredPaths is supplied)
2. Parse every solution file, in parallel
3. Group solutions by directory, in discovery order
4. Parse every project file, in parallel, handing each one the other files
   of interest from its own directory
5. Assign each project to one owning solution (single-threaded)
6. Optionally attach version-control metadata
7. Sort

Workers in the parallel stages never share mutable state: each returns its
own Solution or Project and results are merged afterwards in input order.

Ownership is decided first-match-wins, in the order solutions were
discovered (the walk output is sorted, so this is sorted solution path order
grouped by directory). A project is:
- Linked to the first solution whose text mentions its path (compared
  case-insensitively); no further solutions are considered
- Otherwise Orphaned to the first solution in the project's own directory
- Otherwise Orphaned to the first solution in the project's parent directory
- Otherwise unassociated: a warning is logged and it is dropped from the model
"""

import copy
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from dnscan.config import Config
from dnscan.extractors import ExtractionPatterns, PackageClassifier, load_project, load_solution
from dnscan.file_loader import DiskFileLoader, FileLoader
from dnscan.git_info import GitReader
from dnscan.models import (
    AnalysisResult,
    DiscoveredPaths,
    Project,
    ProjectOwnership,
    Solution,
    SolutionDirectory,
)
from dnscan.path_classifier import ascii_lower, eq_ignoring_case
from dnscan.timing import LoggingTimer
from dnscan.tree_walker import find_files

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(func: Callable[[T], R], items: Sequence[T], max_workers: int) -> List[R]:
    """Apply `func` to every item on a worker pool, preserving input order."""
    if not items:
        return []
    if max_workers <= 1 or len(items) == 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        return list(executor.map(func, items))


def _dir_key(path: str) -> str:
    return ascii_lower(os.path.normpath(path))


def group_solutions(solutions: Iterable[Solution]) -> List[SolutionDirectory]:
    """Group solutions by parent directory.

    The first solution seen in a directory creates its SolutionDirectory;
    later ones append to it, so list order follows input order.
    """
    by_dir: Dict[str, SolutionDirectory] = {}
    for sln in solutions:
        sln_dir = by_dir.get(sln.directory)
        if sln_dir is None:
            sln_dir = SolutionDirectory(directory=sln.directory)
            by_dir[sln.directory] = sln_dir
        sln_dir.solutions.append(sln)
    return list(by_dir.values())


def other_files_by_directory(other_files: Iterable[str]) -> Dict[str, List[str]]:
    """Index other files of interest by (case-folded) containing directory."""
    index: Dict[str, List[str]] = {}
    for path in other_files:
        index.setdefault(_dir_key(os.path.dirname(path)), []).append(path)
    return index


def find_linked_solution(
    solution_directories: Iterable[SolutionDirectory], project_path: str
) -> Optional[Solution]:
    for sd in solution_directories:
        for sln in sd.solutions:
            if sln.refers_to_project(project_path):
                return sln
    return None


def find_solution_in_directory(
    solution_directories: Iterable[SolutionDirectory], directory: str
) -> Optional[Solution]:
    """First solution whose file lives directly in `directory`."""
    for sd in solution_directories:
        for sln in sd.solutions:
            if eq_ignoring_case(os.path.normpath(sln.directory), os.path.normpath(directory)):
                return sln
    return None


def assign_project(solution_directories: List[SolutionDirectory], project: Project) -> bool:
    """Attach `project` to its owning solution.

    Returns:
        False if no solution claims the project.
    """
    sln = find_linked_solution(solution_directories, project.path)
    if sln is not None:
        project.ownership = ProjectOwnership.LINKED
        sln.projects.append(project)
        return True

    project_dir = os.path.dirname(project.path)
    for directory in (project_dir, os.path.dirname(project_dir)):
        sln = find_solution_in_directory(solution_directories, directory)
        if sln is not None:
            project.ownership = ProjectOwnership.ORPHANED
            sln.projects.append(project)
            return True

    return False


def assign_projects(
    solution_directories: List[SolutionDirectory], projects: Iterable[Project]
) -> List[Project]:
    """Attach every project to a solution, returning the unassociated ones."""
    unassociated = []
    for project in projects:
        if not assign_project(solution_directories, project):
            logger.warning(
                f"Project {project.path} is not associated with any solution and will be ignored"
            )
            unassociated.append(project)
    return unassociated


def attach_git_info(
    solution_directories: Iterable[SolutionDirectory], git_reader: GitReader, ceiling: str
) -> None:
    for sd in solution_directories:
        sd.git_info = git_reader.read(sd.directory, ceiling)
        for sln in sd.solutions:
            sln.git_info = sd.git_info


class Analyzer:
    """Runs one scan with a fixed configuration and file loader.

    Usage:
        analyzer = Analyzer(Config(scan_directory=root))
        result = analyzer.analyze(root)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        file_loader: Optional[FileLoader] = None,
        git_reader: Optional[GitReader] = None,
    ):
        """Initialize the analyzer.

        Args:
            config: Scan configuration. Defaults are used if None.
            file_loader: Source of file text. Reads from disk if None.
            git_reader: Version-control reader. No metadata is collected if None.
        """
        self.config = config or Config()
        self.file_loader = file_loader or DiskFileLoader()
        self.git_reader = git_reader
        self.patterns = ExtractionPatterns()
        self.classifier = PackageClassifier(self.config.package_groups)

    def analyze(self, root: str, paths: Optional[DiscoveredPaths] = None) -> AnalysisResult:
        """Scan `root` (or use the supplied inventory) and reconcile it.

        A supplied `paths` is copied before sorting and is left unchanged.

        Raises:
            RootDirectoryNotFoundError: If `paths` is None and `root` does not exist.
        """
        if paths is None:
            root = os.path.abspath(root)
            with LoggingTimer("Disk Walk", extra_info=f"Dir={root}") as tmr:
                paths = find_files(root)
            disk_walk_seconds = tmr.elapsed
        else:
            paths = copy.deepcopy(paths)
            paths.sort()
            disk_walk_seconds = 0.0

        result = AnalysisResult(root_path=root, paths=paths, disk_walk_seconds=disk_walk_seconds)

        with LoggingTimer("Load Solutions", extra_info=f"Count={len(paths.sln_files)}") as tmr:
            solutions = parallel_map(self._load_solution, paths.sln_files, self.config.max_workers)
            result.solution_directories = group_solutions(solutions)
        result.solution_load_seconds = tmr.elapsed

        with LoggingTimer("Load Projects", extra_info=f"Count={len(paths.csproj_files)}") as tmr:
            other_files = other_files_by_directory(paths.other_files)

            def load(path: str) -> Project:
                siblings = other_files.get(_dir_key(os.path.dirname(path)), [])
                return load_project(path, siblings, self.file_loader, self.classifier, self.patterns)

            projects = parallel_map(load, paths.csproj_files, self.config.max_workers)
        result.project_load_seconds = tmr.elapsed

        with LoggingTimer("Assign Projects") as tmr:
            unassociated = assign_projects(result.solution_directories, projects)
            tmr.finish(f"Unassociated={len(unassociated)}")

        if self.git_reader is not None:
            with LoggingTimer("Git Info"):
                attach_git_info(result.solution_directories, self.git_reader, root)

        result.sort()

        logger.info(
            f"Analyzed {root}: {result.num_solutions()} solutions, "
            f"{result.num_linked_projects()} linked projects, "
            f"{result.num_orphaned_projects()} orphaned projects"
        )
        return result

    def _load_solution(self, path: str) -> Solution:
        return load_solution(path, self.file_loader, self.patterns)


def analyze(
    root: str,
    config: Optional[Config] = None,
    file_loader: Optional[FileLoader] = None,
    paths: Optional[DiscoveredPaths] = None,
    git_reader: Optional[GitReader] = None,
) -> AnalysisResult:
    """Convenience wrapper around Analyzer.analyze()."""
    return Analyzer(config, file_loader, git_reader).analyze(root, paths)
