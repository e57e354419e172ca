# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Path predicates used by the directory walk and the cleaner.

Paths embedded in solution and project files frequently differ in case from
what is on disk, so every comparison here is an ASCII case-insensitive match on
the final path component (or its extension). Directory predicates require the
path to be an existing directory and file predicates an existing file, so a
nonexistent path is never classified as anything. No predicate raises.
"""

import os
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

# Directory names that are never descended into during analysis.
BUILD_OUTPUT_DIRS = ("bin", "obj")
PACKAGES_DIR = "packages"
TEST_RESULTS_DIR = "TestResults"
NODE_MODULES_DIR = "node_modules"
GIT_DIR = ".git"
MEF_CACHE_DIR = "ComponentModelCache"
JETBRAINS_CACHE_DIR = "SolutionCaches"

SOLUTION_EXTENSION = "sln"
PROJECT_EXTENSION = "csproj"
SOLUTION_INFO_FILE = "SolutionInfo.cs"
VERSION_OUT_FILE = "VERSION.txt.out"
SUO_EXTENSION = "suo"
UPGRADE_LOG_FILE = "UpgradeLog.htm"
ORIG_EXTENSION = "orig"


def ascii_lower(value: str) -> str:
    """Lower-case ASCII letters only, leaving every other character alone."""
    return value.translate(_ASCII_LOWER)


_ASCII_LOWER = {c: c + 32 for c in range(ord("A"), ord("Z") + 1)}


def eq_ignoring_case(a: PathLike, b: PathLike) -> bool:
    """Compare two paths (or names) with ASCII case folding."""
    return ascii_lower(os.fspath(a)) == ascii_lower(os.fspath(b))


def filename(path: PathLike) -> str:
    """Final path component, or "" if there is none."""
    try:
        return os.path.basename(os.fspath(path).rstrip("/\\")) if path else ""
    except (TypeError, ValueError):
        return ""


def extension(path: PathLike) -> str:
    """Extension of the final component without the dot, or ""."""
    name = filename(path)
    _, ext = os.path.splitext(name)
    return ext[1:] if ext else ""


def _is_dir(path: PathLike) -> bool:
    try:
        return os.path.isdir(path)
    except (OSError, TypeError, ValueError):
        return False


def _is_file(path: PathLike) -> bool:
    try:
        return os.path.isfile(path)
    except (OSError, TypeError, ValueError):
        return False


def _dir_named(path: PathLike, *names: str) -> bool:
    last = ascii_lower(filename(path))
    return _is_dir(path) and any(last == ascii_lower(n) for n in names)


def _file_named(path: PathLike, name: str) -> bool:
    return _is_file(path) and ascii_lower(filename(path)) == ascii_lower(name)


def _file_with_extension(path: PathLike, ext: str) -> bool:
    return _is_file(path) and ascii_lower(extension(path)) == ascii_lower(ext)


# Directory predicates


def is_hidden_dir(path: PathLike) -> bool:
    return _is_dir(path) and filename(path).startswith(".")


def is_bin_or_obj_dir(path: PathLike) -> bool:
    return _dir_named(path, *BUILD_OUTPUT_DIRS)


def is_packages_dir(path: PathLike) -> bool:
    return _dir_named(path, PACKAGES_DIR)


def is_test_results_dir(path: PathLike) -> bool:
    return _dir_named(path, TEST_RESULTS_DIR)


def is_node_modules_dir(path: PathLike) -> bool:
    return _dir_named(path, NODE_MODULES_DIR)


def is_git_dir(path: PathLike) -> bool:
    return _dir_named(path, GIT_DIR)


def is_mef_cache_dir(path: PathLike) -> bool:
    """Visual Studio's MEF component cache."""
    return _dir_named(path, MEF_CACHE_DIR)


def is_jetbrains_cache_dir(path: PathLike) -> bool:
    """JetBrains solution caches."""
    return _dir_named(path, JETBRAINS_CACHE_DIR)


def is_pruned_dir(path: PathLike) -> bool:
    """True for any directory the analysis walk must not descend into."""
    return (
        is_hidden_dir(path)
        or is_bin_or_obj_dir(path)
        or is_packages_dir(path)
        or is_test_results_dir(path)
        or is_node_modules_dir(path)
        or is_git_dir(path)
    )


# File predicates


def is_sln_file(path: PathLike) -> bool:
    return _file_with_extension(path, SOLUTION_EXTENSION)


def is_csproj_file(path: PathLike) -> bool:
    return _file_with_extension(path, PROJECT_EXTENSION)


def is_solution_info_file(path: PathLike) -> bool:
    return _file_named(path, SOLUTION_INFO_FILE)


def is_version_out_file(path: PathLike) -> bool:
    return _file_named(path, VERSION_OUT_FILE)


def is_suo_file(path: PathLike) -> bool:
    return _file_with_extension(path, SUO_EXTENSION)


def is_upgrade_log_file(path: PathLike) -> bool:
    return _file_named(path, UPGRADE_LOG_FILE)


def is_git_orig_file(path: PathLike) -> bool:
    return _file_with_extension(path, ORIG_EXTENSION)


def is_stale_build_file(path: PathLike) -> bool:
    """Files the cleaner removes alongside build output."""
    return (
        is_solution_info_file(path)
        or is_version_out_file(path)
        or is_suo_file(path)
        or is_upgrade_log_file(path)
        or is_git_orig_file(path)
    )
