from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. In-memory host doubles for driving the indexer without a filesystem.
3. An on-disk Unity-style project with '.meta' files and GUID references.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from assetcleaner.core.pipeline.host import HostEnvironment  # noqa: E402


# -----------------------------------------------------------------------------
# Host Doubles
# -----------------------------------------------------------------------------
class FakeHost:
    """
    Mutable in-memory content repository.

    `links` maps every existing path to the paths it references; sizes default
    to 100 bytes. Paths listed in `broken` raise on resolve, paths listed in
    `missing` raise on stat.
    """

    def __init__(
            self,
            links: Dict[str, Iterable[str]],
            *,
            sizes: Optional[Dict[str, int]] = None,
            ignored: Iterable[str] = (),
            rejected: Iterable[str] = (),
            broken: Iterable[str] = (),
            missing: Iterable[str] = (),
    ) -> None:
        self.links: Dict[str, Set[str]] = {k: set(v) for k, v in links.items()}
        self.sizes: Dict[str, int] = dict(sizes or {})
        self.ignored: Set[str] = set(ignored)
        self.rejected: Set[str] = set(rejected)
        self.broken: Set[str] = set(broken)
        self.missing: Set[str] = set(missing)
        self.resolve_calls: List[str] = []

    def enumerate_paths(self) -> List[str]:
        return list(self.links)

    def resolve(self, path: str) -> Set[str]:
        self.resolve_calls.append(path)
        if path in self.broken:
            raise RuntimeError(f"cannot parse {path}")
        return set(self.links.get(path, ()))

    def stat_bytes(self, path: str) -> int:
        if path in self.missing:
            raise FileNotFoundError(path)
        return self.sizes.get(path, 100)

    def is_ignored(self, path: str) -> bool:
        return path in self.ignored

    def is_container_kind(self, path: str) -> bool:
        return path.endswith(".unity")

    def accepts(self, path: str) -> bool:
        return path not in self.rejected

    def host(self) -> HostEnvironment:
        return HostEnvironment(
            enumerate_paths=self.enumerate_paths,
            resolve=self.resolve,
            stat_bytes=self.stat_bytes,
            is_ignored=self.is_ignored,
            is_container_kind=self.is_container_kind,
            accepts=self.accepts,
        )


class ManualClock:
    """Deterministic clock advancing by `step` seconds on every read."""

    def __init__(self, step: float = 0.0) -> None:
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def fake_host_factory():
    """Return the FakeHost class so tests can build custom repositories."""
    return FakeHost


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def mock_config_dict(tmp_path: Path) -> Dict[str, Any]:
    """
    Return a valid, complete configuration dictionary for testing.

    Reflects the structure defined in 'assetcleaner.domain.config'.
    """
    return {
        # IO Paths
        "project_path": str(tmp_path),
        "cache_path": "",

        # Cache
        "use_cache": True,

        # Scheduling
        "frame_budget_ms": 16.0,

        # Filtering
        "root_prefixes": ["Assets"],
        "exclude_patterns": [r"\.asmdef$"],
        "ignore_patterns": [],
        "scene_extensions": [".unity"],

        # Diagnostics
        "verify_graph": True,

        # Reporting
        "top_folders": 20,
    }


def _guid(n: int) -> str:
    return f"{n:032x}"


def write_asset(root: Path, rel_path: str, content: str, guid_number: int) -> str:
    """Create an asset plus its '.meta' companion; return the asset GUID."""
    guid = _guid(guid_number)
    target = root / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    Path(str(target) + ".meta").write_text(
        f"fileFormatVersion: 2\nguid: {guid}\n", encoding="utf-8"
    )
    return guid


@pytest.fixture
def asset_writer():
    """Expose `write_asset` to tests that build their own projects."""
    return write_asset


@pytest.fixture
def unity_project(tmp_path: Path) -> Path:
    """
    Create a small Unity-style project.

    Structure (-> means 'references'):
    /project
      /Assets
        Main.unity        -> Art/hero.png, Prefabs/Hero.prefab
        Old.unity
        /Art
          hero.png
          unused.png
        /ArtOther
          stray.png
        /Prefabs
          Hero.prefab     -> Art/hero.png
          Game.asmdef
      /ProjectSettings
        EditorBuildSettings.asset -> Assets/Main.unity
    """
    root = tmp_path / "project"
    root.mkdir()

    hero_png = write_asset(root, "Assets/Art/hero.png", "PNG" * 10, 1)
    write_asset(root, "Assets/Art/unused.png", "PNG" * 20, 2)
    write_asset(root, "Assets/ArtOther/stray.png", "PNG" * 5, 3)
    hero_prefab = write_asset(
        root, "Assets/Prefabs/Hero.prefab",
        f"--- !u!1 &1\nGameObject:\n  m_Texture: {{fileID: 2800000, guid: {hero_png}, type: 3}}\n",
        4,
    )
    write_asset(root, "Assets/Prefabs/Game.asmdef", '{"name": "Game"}', 5)
    main_scene = write_asset(
        root, "Assets/Main.unity",
        f"--- !u!1001 &2\nPrefabInstance:\n  m_SourcePrefab: {{fileID: 100100000, guid: {hero_prefab}, type: 3}}\n"
        f"  m_Sprite: {{fileID: 21300000, guid: {hero_png}, type: 3}}\n",
        6,
    )
    write_asset(root, "Assets/Old.unity", "--- !u!29 &1\nOcclusionCullingSettings:\n", 7)
    write_asset(
        root, "ProjectSettings/EditorBuildSettings.asset",
        f"EditorBuildSettings:\n  m_Scenes:\n  - enabled: 1\n    guid: {main_scene}\n",
        8,
    )

    # Folders carry '.meta' files in real projects too
    for i, folder in enumerate(("Assets", "Assets/Art", "Assets/ArtOther", "Assets/Prefabs")):
        Path(str(root / folder) + ".meta").write_text(
            f"fileFormatVersion: 2\nguid: {_guid(100 + i)}\nfolderAsset: yes\n",
            encoding="utf-8",
        )

    return root
