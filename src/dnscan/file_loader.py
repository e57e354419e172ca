# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Content loading abstraction.

Extraction code never touches the filesystem directly; it asks a FileLoader
for text. This keeps the analysis testable without disk I/O.

Components:
- FileLoader: Abstract interface
- DiskFileLoader: Reads from the real filesystem
- MemoryFileLoader: Resolves paths from an in-memory dict (used by tests)
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from dnscan.models import FileRecord

logger = logging.getLogger(__name__)


class FileLoader(ABC):
    """Abstract source of file text.

    Implementations must be safe to call from several worker threads at once.
    """

    @abstractmethod
    def read_to_string(self, path: str) -> str:
        """Return the UTF-8 decoded text of `path`.

        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file is not valid UTF-8.
        """
        pass

    def try_read(self, path: str) -> Optional[str]:
        """Like read_to_string, but returns None instead of raising."""
        try:
            return self.read_to_string(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

    def load_record(self, path: str) -> FileRecord:
        """Read `path` into a FileRecord, flagging unreadable content."""
        contents = self.try_read(path)
        if contents is None:
            return FileRecord(path=path, contents="", is_valid_utf8=False)
        return FileRecord(path=path, contents=contents, is_valid_utf8=True)


class DiskFileLoader(FileLoader):
    """Passes reads through to the operating system."""

    def read_to_string(self, path: str) -> str:
        with open(path, encoding="utf-8") as f:
            return f.read()


class MemoryFileLoader(FileLoader):
    """Resolves reads from a dict of path -> contents.

    Usage:
        loader = MemoryFileLoader({"/temp/foo.sln": '"p1.csproj"'})
        loader.files["/temp/p1.csproj"] = ""
    """

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self.files: Dict[str, str] = dict(files or {})

    def read_to_string(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None
