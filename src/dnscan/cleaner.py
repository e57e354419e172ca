# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Deletion of derived build artifacts and IDE caches.

Candidates are collected in a single walk of the scan root:
- Build output, package caches and test results (`clean`)
- Stale files: SolutionInfo.cs, VERSION.txt.out, *.suo, UpgradeLog.htm and
  *.orig merge backups (`clean`)
- .git directories (`git_delete`)
- IDE component and solution caches under the user's profile (`ide_clean`)

Deletion is best-effort and runs on a worker pool: one failure is logged and
reported but does not stop the others. IDE cache directories ("other"
directories) are emptied rather than removed.
"""

import logging
import os
import shutil
import stat
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Tuple

from dnscan import path_classifier as pc
from dnscan.errors import RootDirectoryNotFoundError
from dnscan.timing import LoggingTimer
from dnscan.tree_walker import walk_tree

logger = logging.getLogger(__name__)

# Relative to the home directory.
MEF_CACHE_ROOT = "AppData/Local/Microsoft/VisualStudio"
JETBRAINS_CACHE_ROOT = "AppData/Local/JetBrains"
WEBSITE_CACHE_DIR = "AppData/Microsoft/WebsiteCache"


@dataclass
class CleanOptions:
    directory: str
    clean: bool = False
    ide_clean: bool = False
    git_delete: bool = False
    verbose: bool = False
    prompt_for_confirmation: bool = False
    max_workers: int = 8


@dataclass
class PathsToClean:
    git_dirs: List[str] = field(default_factory=list)
    sln_dirs_to_delete: List[str] = field(default_factory=list)
    other_dirs_to_delete: List[str] = field(default_factory=list)
    files_to_delete: List[str] = field(default_factory=list)

    def sort(self) -> None:
        self.git_dirs.sort()
        self.sln_dirs_to_delete.sort()
        self.other_dirs_to_delete.sort()
        self.files_to_delete.sort()

    def is_empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        return (
            len(self.git_dirs)
            + len(self.sln_dirs_to_delete)
            + len(self.other_dirs_to_delete)
            + len(self.files_to_delete)
        )


class DeletionType:
    FILE = "File"
    DIRECTORY = "Directory"
    DIRECTORY_CONTENTS = "DirectoryContents"


def _collect_from_solution_tree(options: CleanOptions, paths: PathsToClean) -> None:
    def descend(path: str) -> bool:
        if pc.is_git_dir(path):
            if options.git_delete:
                paths.git_dirs.append(path)
            return False

        if pc.is_bin_or_obj_dir(path) or pc.is_packages_dir(path) or pc.is_test_results_dir(path):
            if options.clean:
                paths.sln_dirs_to_delete.append(path)
            return False

        return not (pc.is_hidden_dir(path) or pc.is_node_modules_dir(path))

    def visit_file(path: str) -> None:
        if options.clean and pc.is_stale_build_file(path):
            paths.files_to_delete.append(path)

    walk_tree(os.path.abspath(options.directory), descend, visit_file)


def _collect_cache_dirs(root: Path, is_cache_dir: Callable[[str], bool], found: List[str]) -> None:
    if not root.is_dir():
        logger.debug(f"IDE cache root {root} does not exist")
        return

    def descend(path: str) -> bool:
        if is_cache_dir(path):
            found.append(path)
            return False
        return True

    walk_tree(str(root), descend, lambda path: None)


def collect_paths(options: CleanOptions, home: Optional[Path] = None) -> PathsToClean:
    """Gather every deletion candidate selected by `options`, sorted.

    Raises:
        RootDirectoryNotFoundError: If the directory to clean does not exist.
    """
    if not os.path.isdir(options.directory):
        raise RootDirectoryNotFoundError(options.directory)

    paths = PathsToClean()
    with LoggingTimer("Collect Paths To Clean", extra_info=f"Dir={options.directory}") as tmr:
        _collect_from_solution_tree(options, paths)

        if options.ide_clean:
            home = home or Path.home()
            _collect_cache_dirs(home / MEF_CACHE_ROOT, pc.is_mef_cache_dir, paths.other_dirs_to_delete)
            _collect_cache_dirs(
                home / JETBRAINS_CACHE_ROOT, pc.is_jetbrains_cache_dir, paths.other_dirs_to_delete
            )
            website_cache = home / WEBSITE_CACHE_DIR
            if website_cache.is_dir():
                paths.other_dirs_to_delete.append(str(website_cache))

        paths.sort()
        tmr.finish(f"Candidates={len(paths)}")

    return paths


def print_deletion_candidates(paths: PathsToClean, out: Optional[TextIO] = None) -> None:
    out = out or sys.stdout
    sections = [
        ("Delete these miscellaneous directories?", paths.other_dirs_to_delete),
        ("Delete these solution directories?", paths.sln_dirs_to_delete),
        ("Delete these files?", paths.files_to_delete),
        ("DELETE THESE GIT DIRECTORIES?", paths.git_dirs),
    ]
    for heading, items in sections:
        if items:
            out.write(f"{heading}\n")
            for item in items:
                out.write(f"    {item}\n")
    out.flush()


def get_confirmation(read_line: Callable[[str], str] = input) -> bool:
    """Ask once; only an answer starting with y or Y confirms."""
    try:
        answer = read_line("Continue? (y/n) ")
    except EOFError:
        return False
    return answer.strip().lower().startswith("y")


def _make_writable(path: str) -> None:
    mode = os.lstat(path).st_mode
    if not stat.S_ISLNK(mode) and not mode & stat.S_IWRITE:
        os.chmod(path, mode | stat.S_IWRITE)


def _make_tree_writable(path: str) -> None:
    _make_writable(path)
    for dirpath, dirnames, filenames in os.walk(path):
        for name in dirnames + filenames:
            _make_writable(os.path.join(dirpath, name))


def delete_file(path: str) -> None:
    _make_writable(path)
    os.remove(path)


def delete_directory(path: str) -> None:
    """Remove a directory tree, clearing read-only flags first."""
    if os.path.islink(path):
        os.remove(path)
        return
    _make_tree_writable(path)
    shutil.rmtree(path)


def delete_directory_contents(path: str) -> None:
    """Remove everything inside `path` but keep `path` itself."""
    with os.scandir(path) as it:
        entries = list(it)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            delete_directory(entry.path)
        else:
            delete_file(entry.path)


_DELETERS = {
    DeletionType.FILE: delete_file,
    DeletionType.DIRECTORY: delete_directory,
    DeletionType.DIRECTORY_CONTENTS: delete_directory_contents,
}


def deletion_plan(paths: PathsToClean) -> List[Tuple[str, str]]:
    return (
        [(DeletionType.FILE, p) for p in paths.files_to_delete]
        + [(DeletionType.DIRECTORY, p) for p in paths.git_dirs]
        + [(DeletionType.DIRECTORY, p) for p in paths.sln_dirs_to_delete]
        + [(DeletionType.DIRECTORY_CONTENTS, p) for p in paths.other_dirs_to_delete]
    )


def _delete_one(item: Tuple[str, str], verbose: bool) -> Optional[Tuple[str, str]]:
    deletion_type, path = item
    try:
        _DELETERS[deletion_type](path)
    except OSError as e:
        logger.error(f"Could not delete {path} ({deletion_type}): {e}")
        return (path, str(e))
    if verbose:
        logger.info(f"Deleted {path}")
    return None


def delete_candidates(
    paths: PathsToClean, verbose: bool = False, max_workers: int = 8
) -> List[Tuple[str, str]]:
    """Delete every candidate in parallel.

    Returns:
        (path, error message) for each deletion that failed.
    """
    plan = deletion_plan(paths)
    if not plan:
        return []

    with LoggingTimer("Delete Candidates", extra_info=f"Count={len(plan)}") as tmr:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(plan)))) as executor:
            results = list(executor.map(lambda item: _delete_one(item, verbose), plan))
        failures = [r for r in results if r is not None]
        tmr.finish(f"Failures={len(failures)}")

    return failures


def run_clean(
    options: CleanOptions,
    home: Optional[Path] = None,
    read_line: Callable[[str], str] = input,
    out: Optional[TextIO] = None,
) -> List[Tuple[str, str]]:
    """Collect, optionally confirm, then delete.

    Returns:
        Deletion failures; empty if nothing failed or nothing was deleted.

    Raises:
        RootDirectoryNotFoundError: If the directory to clean does not exist.
    """
    out = out or sys.stdout
    paths = collect_paths(options, home)
    if paths.is_empty():
        out.write("Nothing to clean.\n")
        return []

    if options.prompt_for_confirmation:
        print_deletion_candidates(paths, out)
        if not get_confirmation(read_line):
            out.write("Nothing deleted.\n")
            return []

    out.write("Deleting...\n")
    return delete_candidates(paths, options.verbose, options.max_workers)
