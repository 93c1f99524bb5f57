from __future__ import annotations

"""
Unused Asset Classification.

An asset is unused when no other node of the graph depends on it and the
host does not ignore it. Root status is irrelevant: an entry point nobody
references is reported like any other orphan.

The scheduler applies these rules one graph key at a time, in graph order,
so that the classification and the sizing I/O can be spread over many ticks.
"""

import logging
from typing import Callable

from assetcleaner.core.graph.store import GraphStore

logger = logging.getLogger(__name__)

PathPredicate = Callable[[str], bool]
StatFunction = Callable[[str], int]


def is_unreferenced(graph: GraphStore, path: str) -> bool:
    """True if the path has an empty or absent backward entry."""
    return not graph.has_dependents(path)


def is_unused_candidate(graph: GraphStore, path: str, is_ignored: PathPredicate) -> bool:
    """Apply the full unused rule to one graph key."""
    return is_unreferenced(graph, path) and not is_ignored(path)


def safe_stat(stat_bytes: StatFunction, path: str) -> int:
    """
    Query the size of an asset, degrading to 0 on I/O failure.

    Args:
        stat_bytes: Host size function.
        path: Project path.

    Returns:
        int: Size in bytes, or 0 if the file could not be inspected.
    """
    try:
        return int(stat_bytes(path))
    except OSError as e:
        logger.debug(f"Cannot stat '{path}': {e}. Counting as 0 bytes.")
        return 0
