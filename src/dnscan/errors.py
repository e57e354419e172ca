# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Exception hierarchy for dnscan.

Only conditions that stop a scan are raised. Everything else (unreadable
files, unassociated projects, walk errors, missing git metadata) is logged
and recorded as data on the model.
"""

from typing import Iterable, Tuple


class DnScanError(Exception):
    """Base class for all dnscan errors."""

    pass


class RootDirectoryNotFoundError(DnScanError):
    """Raised when the directory to scan does not exist."""

    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(f"The directory {directory!r} does not exist.")


class OutputWriteError(DnScanError):
    """Raised when a CSV or graph output file cannot be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not write {path}: {reason}")


class ConfigurationError(DnScanError):
    """Raised when configuration validation fails critically."""

    pass


class CycleError(DnScanError):
    """Raised when a graph handed to transitive reduction contains a cycle.

    Attributes:
        nodes: Pairs of node indices that reach each other.
    """

    def __init__(self, nodes: Iterable[Tuple[int, int]]):
        self.nodes = sorted(set(nodes))
        shown = ", ".join(f"{a}<->{b}" for a, b in self.nodes[:5])
        super().__init__(f"Graph contains a cycle, cannot reduce it ({shown})")
