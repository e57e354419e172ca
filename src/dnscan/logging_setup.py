# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured logging setup for dnscan."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_LOG_DIR_NAME = ".dnscan_logs"


class StructuredFormatter(logging.Formatter):
    """JSON lines formatter.

    Fields passed as `extra={"extra_fields": {...}}` (as LoggingTimer does)
    are merged into the top-level object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


def log_file_name(when: Optional[datetime] = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"dnscan_{when.strftime('%Y%m%d')}.log"


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: int = logging.INFO,
    console_output: bool = True,
    console_level: Optional[int] = None,
) -> Optional[Path]:
    """Set up structured logging for a dnscan run.

    Args:
        log_dir: Directory for log files. If None, uses ./.dnscan_logs/
        log_level: Level for the JSON log file (default: INFO)
        console_output: Whether to also log to stderr (default: True)
        console_level: Level for the console handler, defaults to `log_level`

    Returns:
        Path of the log file being written, or None if the log directory or
        file could not be created. Logging then goes to the console only.
    """
    if log_dir is None:
        log_dir = Path.cwd() / DEFAULT_LOG_DIR_NAME

    root_logger = logging.getLogger()
    root_logger.setLevel(min(log_level, console_level or log_level))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    log_file = log_dir / log_file_name()
    file_handler: Optional[logging.FileHandler] = None
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        sys.stderr.write(f"Warning: cannot write log file in {log_dir}: {e}\n")
    else:
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # stdout is reserved for reports and the scan summary.
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level or log_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(console_handler)

    if file_handler is None:
        return None
    logging.getLogger(__name__).info(f"Logging initialized. Log file: {log_file}")
    return log_file
