from __future__ import annotations

"""
Logging Configuration Model.

A single frozen dataclass describes where records go (stderr, a rotating
file or both) and how they are rendered. Level names are resolved here so
that every caller shares the same fallback rules.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """
    Settings for `configure_logging`.

    Attributes:
        level: Level name; unknown names resolve to INFO.
        console: Write records to stderr (stdout stays free for reports).
        log_file: Optional rotating log file.
        max_bytes: Size of one log segment before rollover.
        backup_count: Rolled-over segments to keep.
        console_fmt: Format of stderr records.
        file_fmt: Format of file records; includes the thread so cache
                  worker records can be told apart.
        datefmt: Timestamp format of file records.
    """
    level: str = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 2

    console_fmt: str = "%(levelname)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"

    @property
    def level_number(self) -> int:
        if not self.level:
            return logging.INFO
        return _LEVEL_MAP.get(str(self.level).strip().upper(), logging.INFO)

    @classmethod
    def for_cli(cls, debug: bool = False, log_file: Optional[str] = None) -> "LoggingConfig":
        """Console logging for terminal runs, optionally mirrored to a file."""
        return cls(level="DEBUG" if debug else "INFO", console=True, log_file=log_file)
