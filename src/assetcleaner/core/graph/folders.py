from __future__ import annotations

"""
Folder Aggregation.

Derives the folder set from path syntax and computes, for every folder, how
many unused files and scenes live anywhere below it and how many bytes they
occupy.

A folder F is an ancestor of a path P iff P starts with F and the match ends
on a boundary: either P == F or the next character of P is '/'. Plain prefix
matching would wrongly count 'Assets/ArtOther/y.png' under 'Assets/Art'.
"""

from typing import Dict, List

from assetcleaner.domain.graph_models import FolderStats

_SEPARATOR = "/"


def folders_of_path(path: str) -> List[str]:
    """
    List the folder chain of a path, outermost first.

    Every prefix ending right before a '/' is a folder; the path itself is
    not included. Empty prefixes (leading '/') are skipped.

    Examples:
        'Assets/Art/x.png' -> ['Assets', 'Assets/Art']
    """
    result: List[str] = []
    i = path.find(_SEPARATOR)
    while i != -1:
        if i > 0:
            result.append(path[:i])
        i = path.find(_SEPARATOR, i + 1)
    return result


class FolderIndex:
    """
    Running per-folder totals of the unused entries.

    Each entry is credited to every folder it lies in under the boundary
    rule: the proper folders of its path plus the path itself, which covers
    an unused entry that shares its name with a folder. Adding one entry
    costs one step per path segment, so the scheduler can feed the index an
    entry at a time.
    """

    def __init__(self) -> None:
        self._totals: Dict[str, List[int]] = {}
        self._entries = 0

    def __len__(self) -> int:
        return self._entries

    def add(self, path: str, size: int, *, is_scene: bool = False) -> None:
        """Credit one unused entry to its folder chain."""
        self._entries += 1
        for folder in folders_of_path(path) + [path]:
            totals = self._totals.get(folder)
            if totals is None:
                totals = self._totals[folder] = [0, 0, 0]
            totals[1 if is_scene else 0] += 1
            totals[2] += size

    def stats_for(self, folder: str) -> FolderStats:
        """
        Totals of all unused entries below `folder`.

        Returns:
            FolderStats: Zero when nothing below the folder is unused.
        """
        totals = self._totals.get(folder)
        if totals is None:
            return FolderStats()
        return FolderStats(*totals)
