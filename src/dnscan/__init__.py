# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""dnscan: discovery and reconciliation of .NET solution trees."""

from .config import Config, PackageGroup
from .errors import (
    ConfigurationError,
    CycleError,
    DnScanError,
    OutputWriteError,
    RootDirectoryNotFoundError,
)
from .file_loader import DiskFileLoader, FileLoader, MemoryFileLoader
from .graph import GraphOptions, NodeKind, ReferenceGraph, build_analysis_graph
from .models import (
    AnalysisResult,
    DiscoveredPaths,
    FileRecord,
    Package,
    Project,
    Solution,
    SolutionDirectory,
)
from .reconciliation import Analyzer, analyze
from .transitive_reduction import PathMatrix, transitive_reduction
from .tree_walker import find_files

__version__ = "0.1.0"

__all__ = [
    "Config",
    "PackageGroup",
    "DnScanError",
    "RootDirectoryNotFoundError",
    "OutputWriteError",
    "CycleError",
    "ConfigurationError",
    "FileLoader",
    "DiskFileLoader",
    "MemoryFileLoader",
    "AnalysisResult",
    "DiscoveredPaths",
    "FileRecord",
    "Package",
    "Project",
    "Solution",
    "SolutionDirectory",
    "Analyzer",
    "analyze",
    "find_files",
    "ReferenceGraph",
    "GraphOptions",
    "NodeKind",
    "build_analysis_graph",
    "PathMatrix",
    "transitive_reduction",
]
