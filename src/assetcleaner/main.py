from __future__ import annotations

"""
Process entry point.

Makes the source tree importable when run as a script, installs a crash
supervisor on `sys.excepthook` and hands over to the CLI controller. A crash
report ends with the tail of the default log file (see `--log-file`).
"""

import logging
import os
import sys
import traceback
from types import TracebackType
from typing import Optional, Type

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
SRC_DIR = os.path.dirname(_PACKAGE_DIR)
if not getattr(sys, "frozen", False) and SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from assetcleaner.infra.logging import get_default_log_path, get_recent_logs  # noqa: E402

_CRASH_LOG_LINES = 20


def global_exception_handler(
        exctype: Type[BaseException],
        value: BaseException,
        tb: Optional[TracebackType],
) -> None:
    """
    Log an uncaught exception as critical and print its trace to stderr.

    When the default log file exists, its last lines follow the trace.
    """
    trace = "".join(traceback.format_exception(exctype, value, tb))
    logging.getLogger("assetcleaner.supervisor").critical(f"Unhandled exception: {value}\n{trace}")

    banner = "=" * 80
    sys.stderr.write(f"\n{banner}\nASSETCLEANER CRASHED\n{banner}\n{trace}\n")

    log_path = get_default_log_path()
    if os.path.exists(log_path):
        sys.stderr.write(f"Recent log ({log_path}):\n{get_recent_logs(_CRASH_LOG_LINES, log_path)}\n")


sys.excepthook = global_exception_handler


def main() -> int:
    """Run the CLI; unexpected errors are reported by the supervisor."""
    try:
        from assetcleaner.interface.cli.app import main as cli_main
        return cli_main()
    except Exception as e:
        global_exception_handler(type(e), e, e.__traceback__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
