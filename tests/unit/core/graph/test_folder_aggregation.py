from __future__ import annotations

"""
Unit tests for Folder Aggregation.

Verifies the prefix-with-boundary rule, folder chain derivation, and that
the running per-folder totals equal a naive scan over every unused entry.
"""

import random
from typing import Dict

from assetcleaner.core.graph.folders import FolderIndex, folders_of_path
from assetcleaner.domain.graph_models import FolderStats


def _is_below(folder: str, path: str) -> bool:
    return path == folder or path.startswith(folder + "/")


def _index(files: Dict[str, int], scenes: Dict[str, int]) -> FolderIndex:
    index = FolderIndex()
    for path, size in files.items():
        index.add(path, size)
    for path, size in scenes.items():
        index.add(path, size, is_scene=True)
    return index


def test_folders_of_path_lists_chain_without_the_path() -> None:
    assert folders_of_path("Assets/Art/x.png") == ["Assets", "Assets/Art"]
    assert folders_of_path("README") == []
    assert folders_of_path("/Assets/x.png") == ["/Assets"]


def test_folder_boundary_excludes_sibling_with_shared_prefix() -> None:
    """'Assets/Art' must not count 'Assets/ArtOther' content."""
    index = _index({"Assets/Art/x.png": 10, "Assets/ArtOther/y.png": 20}, {})

    assert index.stats_for("Assets/Art") == FolderStats(1, 0, 10)
    assert index.stats_for("Assets/ArtOther") == FolderStats(1, 0, 20)
    assert index.stats_for("Assets") == FolderStats(2, 0, 30)
    assert index.stats_for("Assets/Ar") == FolderStats()


def test_folder_stats_split_files_and_scenes() -> None:
    index = _index(
        {"Assets/Levels/notes.txt": 5},
        {"Assets/Levels/Old.unity": 300, "Assets/Levels/Sub/Test.unity": 200},
    )

    assert index.stats_for("Assets/Levels") == FolderStats(1, 2, 505)
    assert index.stats_for("Assets/Levels/Sub") == FolderStats(0, 1, 200)
    assert len(index) == 3


def test_folder_without_unused_content_is_empty() -> None:
    index = _index({"Assets/A/x.png": 1}, {})
    stats = index.stats_for("Assets/B")
    assert stats == FolderStats()
    assert stats.is_empty


def test_unused_entry_equal_to_folder_name_is_counted() -> None:
    index = _index({"Assets/Art": 7, "Assets/Art/x.png": 3}, {})
    assert index.stats_for("Assets/Art") == FolderStats(2, 0, 10)


def _naive(folder: str, files: Dict[str, int], scenes: Dict[str, int]) -> FolderStats:
    f = [s for p, s in files.items() if _is_below(folder, p)]
    sc = [s for p, s in scenes.items() if _is_below(folder, p)]
    return FolderStats(len(f), len(sc), sum(f) + sum(sc))


def test_index_matches_naive_scan() -> None:
    rng = random.Random(7)
    segments = ["Art", "ArtOther", "Art-Old", "Art.v2", "Audio", "a", "A"]
    files: Dict[str, int] = {}
    scenes: Dict[str, int] = {}
    folders = set()

    for i in range(200):
        parts = ["Assets"] + [rng.choice(segments) for _ in range(rng.randint(0, 3))]
        path = "/".join(parts + [f"item{i}.asset"])
        folders.update(folders_of_path(path))
        target = scenes if i % 5 == 0 else files
        target[path] = rng.randint(0, 1000)

    index = _index(files, scenes)
    for folder in folders:
        assert index.stats_for(folder) == _naive(folder, files, scenes), folder
