from __future__ import annotations

"""
Logging Handler Factories.

Builds the sink handlers fed by the queue listener. Every handler created
here carries a marker attribute so that reconfiguration only ever detaches
handlers this package installed.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from assetcleaner.infra.fs import ensure_parent_dir
from assetcleaner.infra.logging.config import LoggingConfig

_HANDLER_TAG_ATTR: str = "_assetcleaner_handler"


def _tag_handler(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG_ATTR, True)
    return handler


def _is_our_handler(handler: logging.Handler) -> bool:
    return bool(getattr(handler, _HANDLER_TAG_ATTR, False))


def _console_handler(cfg: LoggingConfig) -> logging.Handler:
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(cfg.level_number)
    sh.setFormatter(logging.Formatter(cfg.console_fmt))
    return _tag_handler(sh)


def _file_handler(cfg: LoggingConfig) -> Optional[logging.Handler]:
    """
    Open the rotating log file.

    Returns:
        Optional[logging.Handler]: None if the file cannot be opened; the
                                   failure is reported on stderr.
    """
    assert cfg.log_file is not None
    try:
        ensure_parent_dir(cfg.log_file)
        fh = RotatingFileHandler(
            cfg.log_file,
            maxBytes=int(cfg.max_bytes),
            backupCount=int(cfg.backup_count),
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"WARNING: Cannot open log file '{cfg.log_file}': {e}\n")
        return None

    fh.setLevel(cfg.level_number)
    fh.setFormatter(logging.Formatter(cfg.file_fmt, datefmt=cfg.datefmt))
    return _tag_handler(fh)


def build_sink_handlers(cfg: LoggingConfig) -> List[logging.Handler]:
    """Create the handlers requested by the configuration."""
    sinks: List[logging.Handler] = []
    if cfg.console:
        sinks.append(_console_handler(cfg))
    if cfg.log_file:
        fh = _file_handler(cfg)
        if fh is not None:
            sinks.append(fh)
    return sinks
