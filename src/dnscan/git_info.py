# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Version-control metadata for solution directories.

Metadata is read by running the `git` executable. The upward search for a
repository stops at a ceiling directory (normally the scan root), so a scan
of a non-repository subtree of a larger checkout does not pick up metadata
from the enclosing repository.

Any failure (git not installed, not a repository, no commits, timeout) yields
None; it is never an error.
"""

import logging
import os
import subprocess
from datetime import datetime
from typing import Dict, List, Optional

from dnscan.models import GitInfo

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
COMMIT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Fields of the last commit, NUL separated.
_LOG_FORMAT = "%H%x00%s%x00%ct%x00%an%x00%ae"


class GitReader:
    """Reads GitInfo for a directory by invoking git.

    Results are cached per repository top-level directory, since every
    solution directory in one checkout shares the same metadata.
    """

    def __init__(self, git_executable: str = "git", timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.git_executable = git_executable
        self.timeout = timeout
        self._cache: Dict[str, Optional[GitInfo]] = {}

    def _run(self, directory: str, args: List[str], ceiling: Optional[str]) -> Optional[str]:
        """Run one git command, returning stripped stdout or None on any failure."""
        env = dict(os.environ)
        if ceiling:
            # git never enters a ceiling directory itself, so use its parent
            # to allow a repository rooted exactly at the ceiling.
            env["GIT_CEILING_DIRECTORIES"] = os.path.dirname(os.path.abspath(ceiling))

        try:
            result = subprocess.run(
                [self.git_executable, *args],
                cwd=directory,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"git {' '.join(args)} timed out in {directory}")
            return None
        except subprocess.CalledProcessError as e:
            logger.debug(f"git {' '.join(args)} failed in {directory}: {e.stderr.strip()}")
            return None
        except OSError as e:
            logger.debug(f"Could not run git in {directory}: {e}")
            return None

        return result.stdout.strip()

    def read(self, directory: str, ceiling: Optional[str] = None) -> Optional[GitInfo]:
        """Return metadata for the repository containing `directory`, if any.

        Args:
            directory: Directory to start searching from.
            ceiling: Directory beyond which the upward search does not go.
        """
        toplevel = self._run(directory, ["rev-parse", "--show-toplevel"], ceiling)
        if not toplevel:
            return None

        if toplevel in self._cache:
            return self._cache[toplevel]

        info = self._read_repository(directory, ceiling)
        self._cache[toplevel] = info
        return info

    def _read_repository(self, directory: str, ceiling: Optional[str]) -> Optional[GitInfo]:
        log = self._run(directory, ["log", "-1", f"--format={_LOG_FORMAT}"], ceiling)
        if not log:
            logger.debug(f"Repository at {directory} has no commits")
            return None

        fields = log.split("\x00")
        if len(fields) != 5:
            logger.warning(f"Unexpected git log output in {directory}: {log!r}")
            return None
        sha, summary, commit_time, author_name, author_email = fields

        info = GitInfo(
            branch=self._run(directory, ["rev-parse", "--abbrev-ref", "HEAD"], ceiling) or "",
            sha=sha,
            summary=summary,
            commit_time=format_commit_time(commit_time),
            author_name=author_name,
            author_email=author_email,
        )

        remotes = self._run(directory, ["remote"], ceiling)
        if remotes:
            info.remote_name = remotes.splitlines()[0].strip()
            info.remote_url = (
                self._run(directory, ["remote", "get-url", info.remote_name], ceiling) or ""
            )

        return info


def format_commit_time(epoch_seconds: str) -> str:
    """Format a unix timestamp as local time, or return "" if it is not a number."""
    try:
        return datetime.fromtimestamp(int(epoch_seconds)).strftime(COMMIT_TIME_FORMAT)
    except (ValueError, OverflowError, OSError):
        return ""
