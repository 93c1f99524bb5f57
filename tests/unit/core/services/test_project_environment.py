from __future__ import annotations

"""
Unit tests for the Project Host Adapter.

Validates enumeration of content roots, the filtering predicate, GUID
reference resolution through '.meta' files, and file sizing.
"""

import os
from pathlib import Path
from typing import Any, Dict

import pytest

from assetcleaner.core.services.project import ProjectEnvironment, build_project_environment


@pytest.fixture
def env(unity_project: Path) -> ProjectEnvironment:
    return ProjectEnvironment(
        str(unity_project),
        root_prefixes=["Assets", "ProjectSettings", "Packages"],
        exclude_patterns=[r"\.asmdef$"],
        ignore_patterns=[r"^ProjectSettings/"],
        scene_extensions=[".unity"],
    )


def test_enumerate_lists_assets_and_folders_without_meta(env: ProjectEnvironment) -> None:
    paths = set(env.enumerate_paths())

    assert "Assets/Art" in paths
    assert "Assets/Art/hero.png" in paths
    assert "Assets/Prefabs/Game.asmdef" in paths
    assert "ProjectSettings/EditorBuildSettings.asset" in paths
    assert not any(p.endswith(".meta") for p in paths)
    assert len(paths) == 11


def test_missing_root_is_skipped(env: ProjectEnvironment) -> None:
    assert not any(p.startswith("Packages") for p in env.enumerate_paths())


def test_accepts_rejects_folders_and_excluded_kinds(env: ProjectEnvironment) -> None:
    assert env.accepts("Assets/Art/hero.png")
    assert not env.accepts("Assets/Art")
    assert not env.accepts("Assets/Prefabs/Game.asmdef")
    assert not env.accepts("Library/foo.asset")


def test_resolve_maps_guids_to_paths(env: ProjectEnvironment) -> None:
    assert env.resolve("Assets/Main.unity") == {"Assets/Prefabs/Hero.prefab", "Assets/Art/hero.png"}
    assert env.resolve("Assets/Prefabs/Hero.prefab") == {"Assets/Art/hero.png"}
    assert env.resolve("ProjectSettings/EditorBuildSettings.asset") == {"Assets/Main.unity"}


def test_resolve_binary_kinds_have_no_dependencies(env: ProjectEnvironment) -> None:
    assert env.resolve("Assets/Art/hero.png") == set()


def test_resolve_drops_unknown_guids(env: ProjectEnvironment, unity_project: Path, asset_writer: Any) -> None:
    asset_writer(unity_project, "Assets/Broken.prefab", "m_Mesh: {guid: " + "f" * 32 + "}\n", 50)
    env.invalidate()
    assert env.resolve("Assets/Broken.prefab") == set()


def test_resolve_missing_file_raises(env: ProjectEnvironment) -> None:
    with pytest.raises(OSError):
        env.resolve("Assets/Nope.prefab")


def test_guid_index_is_cached_until_invalidated(env: ProjectEnvironment, unity_project: Path,
                                                asset_writer: Any) -> None:
    first = env.guid_index()
    guid = asset_writer(unity_project, "Assets/Late.png", "PNG", 60)

    assert guid not in env.guid_index()
    env.invalidate()
    assert env.guid_index()[guid] == "Assets/Late.png"
    assert first is not env.guid_index()


def test_resolve_records_the_guid_of_a_new_asset(env: ProjectEnvironment, unity_project: Path,
                                                  asset_writer: Any) -> None:
    env.guid_index()
    guid = asset_writer(unity_project, "Assets/Art/new.png", "PNG", 61)

    assert env.resolve("Assets/Art/new.png") == set()
    assert env.guid_index()[guid] == "Assets/Art/new.png"


def test_resolve_rebuilds_index_when_a_target_moved(env: ProjectEnvironment, unity_project: Path) -> None:
    assert env.resolve("Assets/Prefabs/Hero.prefab") == {"Assets/Art/hero.png"}

    art = unity_project / "Assets" / "Art"
    (art / "hero.png").rename(art / "hero2.png")
    (art / "hero.png.meta").rename(art / "hero2.png.meta")

    assert env.resolve("Assets/Prefabs/Hero.prefab") == {"Assets/Art/hero2.png"}


def test_enumeration_drops_the_guid_index(env: ProjectEnvironment, unity_project: Path,
                                          asset_writer: Any) -> None:
    env.guid_index()
    guid = asset_writer(unity_project, "Assets/Late.png", "PNG", 62)

    assert "Assets/Late.png" in list(env.enumerate_paths())
    assert env.guid_index()[guid] == "Assets/Late.png"


def test_predicates_and_sizes(env: ProjectEnvironment, unity_project: Path) -> None:
    assert env.is_container_kind("Assets/Main.unity")
    assert env.is_container_kind("Assets/MAIN.UNITY")
    assert not env.is_container_kind("Assets/Art/hero.png")
    assert env.is_ignored("ProjectSettings/EditorBuildSettings.asset")
    assert not env.is_ignored("Assets/Main.unity")
    assert env.stat_bytes("Assets/Art/unused.png") == (unity_project / "Assets/Art/unused.png").stat().st_size


def test_host_bundles_adapter_methods(env: ProjectEnvironment) -> None:
    host = env.host()
    assert host.accepts("Assets/Art/hero.png")
    assert host.resolve("Assets/Prefabs/Hero.prefab") == {"Assets/Art/hero.png"}


def test_build_from_config(unity_project: Path, mock_config_dict: Dict[str, Any]) -> None:
    mock_config_dict["project_path"] = str(unity_project)
    env = build_project_environment(mock_config_dict)

    assert env.project_root == os.path.abspath(str(unity_project))
    assert all(p.startswith("Assets") for p in env.enumerate_paths())
