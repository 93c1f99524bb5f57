from __future__ import annotations

"""
Host Boundary Contracts.

The indexer never touches the content repository directly. Everything it
needs from the host (enumeration, dependency extraction, classification and
sizing) is passed in as plain callables bundled in `HostEnvironment`.
"""

from dataclasses import dataclass
from typing import Callable, Iterable


def _never(path: str) -> bool:
    return False


def _always(path: str) -> bool:
    return True


@dataclass(frozen=True)
class HostEnvironment:
    """
    Callables supplied by the host application.

    Attributes:
        enumerate_paths: Lists every candidate content path (unordered snapshot).
        resolve: Returns the paths a given path references. May raise; a
                 failure counts as "no dependencies" for the current cycle.
        stat_bytes: Size of a path in bytes; raises OSError when missing.
        is_ignored: Paths never reported as unused.
        is_container_kind: Separates container assets (scenes) from plain files.
        accepts: Filtering-phase predicate; rejected paths stay out of the graph.
    """
    enumerate_paths: Callable[[], Iterable[str]]
    resolve: Callable[[str], Iterable[str]]
    stat_bytes: Callable[[str], int]
    is_ignored: Callable[[str], bool] = _never
    is_container_kind: Callable[[str], bool] = _never
    accepts: Callable[[str], bool] = _always
