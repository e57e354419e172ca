# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Filtered directory walk that produces the raw path inventory.

The walk:
- Never descends into build output, package caches, test results,
  node_modules, version-control or other hidden directories
- Classifies every visited file as a solution, a project, an "other file of
  interest" (see InterestingFile) or ignored
- Treats unreadable entries (permission denied, broken links) as non-fatal:
  they are logged and skipped

The scan root itself is always entered, even if its name looks hidden.
"""

import logging
import os
from typing import Callable, List, Optional

from dnscan import path_classifier as pc
from dnscan.errors import RootDirectoryNotFoundError
from dnscan.models import DiscoveredPaths, InterestingFile
from dnscan.timing import LoggingTimer

logger = logging.getLogger(__name__)

# Called for each subdirectory before descending; return False to prune it.
DirectoryFilter = Callable[[str], bool]
# Called for each regular file that was reached.
FileVisitor = Callable[[str], None]


def walk_tree(
    root: str,
    descend: DirectoryFilter,
    visit_file: FileVisitor,
    errors: Optional[List[str]] = None,
) -> None:
    """Depth-first walk of `root`, consulting `descend` for every subdirectory.

    Args:
        root: Directory to start from. Must exist.
        descend: Directory filter; pruned directories are not entered.
        visit_file: Callback for every file found.
        errors: If given, paths that could not be read are appended here.
    """
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Cannot read directory {directory}: {e}")
            if errors is not None:
                errors.append(directory)
            continue

        subdirs = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if descend(entry.path):
                        subdirs.append(entry.path)
                elif entry.is_file():
                    visit_file(entry.path)
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {entry.path}: {e}")
                if errors is not None:
                    errors.append(entry.path)

        # Reversed so the stack pops subdirectories in name order.
        stack.extend(reversed(subdirs))


def is_file_of_interest(path: str) -> bool:
    return InterestingFile.from_name(pc.filename(path)) is not None


def find_files(root: str, collect_git_dirs: bool = False) -> DiscoveredPaths:
    """Walk `root` and return every solution, project and interesting file.

    Args:
        root: Directory to scan.
        collect_git_dirs: Record .git directories (they are still not entered).

    Returns:
        DiscoveredPaths with each collection sorted.

    Raises:
        RootDirectoryNotFoundError: If `root` is not an existing directory.
    """
    root = os.path.abspath(root)
    if not os.path.isdir(root):
        raise RootDirectoryNotFoundError(root)

    paths = DiscoveredPaths()

    def descend(path: str) -> bool:
        if pc.is_git_dir(path):
            if collect_git_dirs:
                paths.git_dirs.append(path)
            return False
        return not pc.is_pruned_dir(path)

    def visit_file(path: str) -> None:
        if pc.is_sln_file(path):
            paths.sln_files.append(path)
        elif pc.is_csproj_file(path):
            paths.csproj_files.append(path)
        elif is_file_of_interest(path):
            paths.other_files.append(path)

    with LoggingTimer("Find Files", extra_info=f"Dir={root}") as tmr:
        walk_tree(root, descend, visit_file)
        paths.sort()
        tmr.finish(
            f"NumSolutions={len(paths.sln_files)} NumCsProj={len(paths.csproj_files)} "
            f"NumOtherFiles={len(paths.other_files)}"
        )

    return paths
