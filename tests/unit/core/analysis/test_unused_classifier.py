from __future__ import annotations

"""
Unit tests for Unused Asset Classification.

Covers the unreferenced rule on a graph with a cycle, an isolated node and
an ignored node, and fail-safe sizing.
"""

from unittest.mock import MagicMock

from assetcleaner.core.analysis.classifier import is_unreferenced, is_unused_candidate, safe_stat
from assetcleaner.core.graph.store import GraphStore


def _build_graph() -> GraphStore:
    """
    Twelve nodes:
        Boot.unity -> Menu.unity -> ui.prefab -> button.png
        cycle: a.mat -> b.mat -> a.mat
        Lone.unity, orphan.png (isolated), keep.txt (ignored)
        tool.asset -> orphan2.png
        shared.shader <- a.mat, ui.prefab
    """
    links = {
        "Assets/Boot.unity": {"Assets/Menu.unity"},
        "Assets/Menu.unity": {"Assets/UI/ui.prefab"},
        "Assets/UI/ui.prefab": {"Assets/UI/button.png", "Assets/Shaders/shared.shader"},
        "Assets/UI/button.png": set(),
        "Assets/Mats/a.mat": {"Assets/Mats/b.mat", "Assets/Shaders/shared.shader"},
        "Assets/Mats/b.mat": {"Assets/Mats/a.mat"},
        "Assets/Shaders/shared.shader": set(),
        "Assets/Lone.unity": set(),
        "Assets/orphan.png": set(),
        "Assets/keep.txt": set(),
        "Assets/Tools/tool.asset": {"Assets/Tools/orphan2.png"},
        "Assets/Tools/orphan2.png": set(),
    }
    graph = GraphStore()
    for path, deps in links.items():
        graph.add_or_update(path, deps)
    return graph


def test_unused_set_on_mixed_graph() -> None:
    graph = _build_graph()
    ignored = {"Assets/keep.txt"}

    unused = {p for p in graph if is_unused_candidate(graph, p, ignored.__contains__)}

    assert unused == {
        "Assets/Boot.unity",
        "Assets/Lone.unity",
        "Assets/Tools/tool.asset",
        "Assets/orphan.png",
    }


def test_cycle_members_are_referenced() -> None:
    graph = _build_graph()
    assert not is_unreferenced(graph, "Assets/Mats/a.mat")
    assert not is_unreferenced(graph, "Assets/Mats/b.mat")


def test_path_absent_from_backward_map_is_unreferenced() -> None:
    graph = GraphStore()
    graph.add_or_update("A", set())
    assert is_unreferenced(graph, "A")


def test_ignored_path_is_never_a_candidate() -> None:
    graph = _build_graph()
    assert is_unreferenced(graph, "Assets/keep.txt")
    assert not is_unused_candidate(graph, "Assets/keep.txt", lambda p: p.endswith(".txt"))
    assert is_unused_candidate(graph, "Assets/keep.txt", lambda p: False)


def test_safe_stat_returns_size() -> None:
    assert safe_stat(lambda p: 2048, "Assets/a.png") == 2048


def test_safe_stat_degrades_to_zero_on_io_error() -> None:
    stat = MagicMock(side_effect=FileNotFoundError("gone"))
    assert safe_stat(stat, "Assets/gone.png") == 0
    stat.assert_called_once_with("Assets/gone.png")
