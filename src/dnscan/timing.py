# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Scoped execution timers that log their own completion.

Usage:
    with LoggingTimer("Find Files", extra_info=f"Dir={root}") as tmr:
        paths = walk(root)
        tmr.finish(f"NumSolutions={len(paths.sln_files)}")

The completion record is emitted exactly once on every exit path, including
when the block raises. Calling finish() emits it early with extra text.
"""

import logging
import time
from types import TracebackType
from typing import Optional, Type

_default_logger = logging.getLogger(__name__)


class LoggingTimer:
    """Context manager that logs TimerStarting/TimerCompleted records."""

    def __init__(
        self,
        name: str,
        extra_info: Optional[str] = None,
        level: int = logging.DEBUG,
        logger: Optional[logging.Logger] = None,
        quiet: bool = False,
    ):
        self.name = name
        self.extra_info = extra_info
        self.level = level
        self.logger = logger or _default_logger
        self.quiet = quiet
        self._start: Optional[float] = None
        self._stopped_at: Optional[float] = None
        self._finished = False

    def __enter__(self) -> "LoggingTimer":
        self._start = time.perf_counter()
        if not self.quiet:
            self._log("TimerStarting", self._describe())
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if not self._finished:
            suffix = f" (raised {exc_type.__name__})" if exc_type is not None else ""
            self._complete(suffix)

    @property
    def elapsed(self) -> float:
        """Seconds since entry, frozen once the timer has completed."""
        if self._start is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else time.perf_counter()
        return end - self._start

    def finish(self, message: str = "") -> None:
        """Log the completion record now, with `message` appended."""
        if self._finished:
            return
        self._complete(f" {message}" if message else "")

    def _complete(self, suffix: str) -> None:
        self._stopped_at = time.perf_counter()
        self._finished = True
        self._log(
            "TimerCompleted",
            f"{self.name}, Elapsed={self.elapsed * 1000:.3f}ms"
            f"{' ' + self.extra_info if self.extra_info else ''}{suffix}",
        )

    def _describe(self) -> str:
        return f"{self.name}{', ' + self.extra_info if self.extra_info else ''}"

    def _log(self, event: str, message: str) -> None:
        self.logger.log(
            self.level,
            f"[{event}] {message}",
            extra={"extra_fields": {"event": event, "timer": self.name}},
        )


def quiet_timer(name: str, extra_info: Optional[str] = None, **kwargs) -> LoggingTimer:
    """A timer that only logs its completion."""
    return LoggingTimer(name, extra_info=extra_info, quiet=True, **kwargs)
