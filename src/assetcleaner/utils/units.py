from __future__ import annotations

"""
Human-readable Unit Formatting.

Renders byte counts for reports and log lines using binary multiples.
"""

from typing import List

_UNITS: List[str] = ["B", "KB", "MB", "GB", "TB"]


def bytes_to_string(num_bytes: int) -> str:
    """
    Format a byte count, e.g. 1536 -> '1.5 KB'.

    Plain bytes are printed without decimals; negative input counts as 0.
    """
    size = float(max(0, num_bytes))
    unit = 0
    while size >= 1024 and unit < len(_UNITS) - 1:
        size /= 1024
        unit += 1

    if unit == 0:
        return f"{int(size)} {_UNITS[0]}"
    return f"{size:.1f} {_UNITS[unit]}"
