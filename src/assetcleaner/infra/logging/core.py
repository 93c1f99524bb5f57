from __future__ import annotations

"""
Logging Lifecycle.

The root logger gets exactly one QueueHandler. A QueueListener thread drains
the queue into the sink handlers, so the thread driving the indexer ticks
never waits on terminal or file I/O. Configuration is idempotent and can be
torn down explicitly, which the CLI does before printing its report.
"""

import atexit
import logging
import os
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from typing import Optional

from assetcleaner.infra.fs import get_user_data_dir
from assetcleaner.infra.logging.config import LoggingConfig
from assetcleaner.infra.logging.handlers import _is_our_handler, _tag_handler, build_sink_handlers

_CONFIGURED_FLAG_ATTR: str = "_assetcleaner_configured"
_QUEUE_LISTENER_ATTR: str = "_assetcleaner_queue_listener"


# ==============================================================================
# PUBLIC API
# ==============================================================================

def get_default_log_path(file_name: str = "assetcleaner.log") -> str:
    """Log file location inside the user data directory."""
    return os.path.join(get_user_data_dir(), "logs", file_name)


def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """
    Route all records through a queue to the configured sinks.

    Args:
        cfg: Sink and format settings.
        force: Replace an existing configuration instead of keeping it.

    Returns:
        logging.Logger: The root logger.
    """
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG_ATTR, False) and not force:
        return root

    try:
        shutdown_logging()
        root.setLevel(cfg.level_number)

        sinks = build_sink_handlers(cfg)
        if not sinks:
            return root

        log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(-1)
        listener = QueueListener(log_queue, *sinks, respect_handler_level=True)
        listener.start()

        root.addHandler(_tag_handler(QueueHandler(log_queue)))
        setattr(root, _QUEUE_LISTENER_ATTR, listener)
        setattr(root, _CONFIGURED_FLAG_ATTR, True)

        atexit.register(_stop_listener, listener)
        return root

    except Exception:
        # Emergency console: never leave the process without diagnostics
        _detach_our_handlers(root)
        root.setLevel(logging.INFO)
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(logging.Formatter("CRITICAL FALLBACK | %(levelname)s | %(message)s"))
        root.addHandler(_tag_handler(sh))
        root.warning("Logging infrastructure failed. Switched to emergency console.")
        return root


def shutdown_logging() -> None:
    """
    Flush queued records and detach the handlers installed by this package.

    Safe to call when logging was never configured.
    """
    root = logging.getLogger()
    _stop_listener(getattr(root, _QUEUE_LISTENER_ATTR, None))
    setattr(root, _QUEUE_LISTENER_ATTR, None)
    _detach_our_handlers(root)
    if hasattr(root, _CONFIGURED_FLAG_ATTR):
        delattr(root, _CONFIGURED_FLAG_ATTR)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_recent_logs(n_lines: int = 100, log_path: Optional[str] = None) -> str:
    """
    Return the last lines of a log file.

    Args:
        n_lines: Number of trailing lines.
        log_path: Log file; defaults to `get_default_log_path()`.

    Returns:
        str: The tail, or a short message when the file is missing or unreadable.
    """
    path = log_path or get_default_log_path()
    if not os.path.exists(path):
        return "Log file not found."

    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return "".join(f.readlines()[-n_lines:])
    except OSError as e:
        return f"Error retrieving logs: {e}"


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _detach_our_handlers(root: logging.Logger) -> None:
    for h in list(root.handlers):
        if _is_our_handler(h):
            root.removeHandler(h)
            h.close()


def _stop_listener(listener: Optional[QueueListener]) -> None:
    # atexit and shutdown_logging may both reach the same listener
    if listener is not None and getattr(listener, "_thread", None) is not None:
        listener.stop()
