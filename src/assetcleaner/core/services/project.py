from __future__ import annotations

"""
Project Host Adapter.

Implements the host callables of the indexer for a Unity-style project on
disk: every asset has a sibling '.meta' file declaring its GUID, and
text-serialized assets reference other assets by GUID. The adapter walks the
content roots, resolves GUID references back to project paths and sizes
files, all through '/'-delimited project paths.
"""

import logging
import os
import re
from typing import Any, Dict, Iterator, Optional, Sequence, Set

from assetcleaner.core.pipeline.filters import build_ignore_filter, build_path_filter
from assetcleaner.core.pipeline.host import HostEnvironment
from assetcleaner.domain.constants import META_SUFFIX, TEXT_ASSET_EXTENSIONS
from assetcleaner.infra.fs import to_os_path, to_project_path

logger = logging.getLogger(__name__)

META_GUID_PATTERN = re.compile(r"^guid:\s*([a-f0-9]{32})\s*$", re.MULTILINE)
GUID_REFERENCE_PATTERN = re.compile(r"guid:\s*([0-9a-f]{32})")

_TEXT_EXTENSIONS = {ext.lower() for ext in TEXT_ASSET_EXTENSIONS}


class ProjectEnvironment:
    """
    Filesystem-backed host for one project root.

    The GUID index is built on first use and kept until `invalidate` is called
    or the paths are enumerated again.
    """

    def __init__(
            self,
            project_root: str,
            *,
            root_prefixes: Sequence[str],
            exclude_patterns: Sequence[str],
            ignore_patterns: Sequence[str],
            scene_extensions: Sequence[str],
    ) -> None:
        self.project_root = os.path.abspath(project_root)
        self._root_prefixes = list(root_prefixes)
        self._scene_extensions = tuple(ext.lower() for ext in scene_extensions)
        self._accepts = build_path_filter(root_prefixes, exclude_patterns, extra=self._is_file)
        self._is_ignored = build_ignore_filter(ignore_patterns)
        self._guid_index: Optional[Dict[str, str]] = None

    # -------------------------------------------------------------------------
    # Enumeration
    # -------------------------------------------------------------------------

    def enumerate_paths(self) -> Iterator[str]:
        """
        Yield every asset path below the content roots, folders included.

        '.meta' companions are not assets and are skipped. A new enumeration
        starts a new cycle, so the GUID index is dropped as well.
        """
        self.invalidate()
        for prefix in self._root_prefixes:
            base = to_os_path(self.project_root, prefix)
            if not os.path.isdir(base):
                continue

            for root, dirs, files in os.walk(base):
                dirs[:] = [d for d in dirs if not d.startswith(".")]
                dirs.sort()
                files.sort()

                for d in dirs:
                    yield to_project_path(self.project_root, os.path.join(root, d))

                for file_name in files:
                    if file_name.endswith(META_SUFFIX) or file_name.startswith("."):
                        continue
                    yield to_project_path(self.project_root, os.path.join(root, file_name))

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def _is_file(self, path: str) -> bool:
        return not os.path.isdir(to_os_path(self.project_root, path))

    def accepts(self, path: str) -> bool:
        return self._accepts(path)

    def is_ignored(self, path: str) -> bool:
        return self._is_ignored(path)

    def is_container_kind(self, path: str) -> bool:
        return path.lower().endswith(self._scene_extensions)

    # -------------------------------------------------------------------------
    # Dependency resolution
    # -------------------------------------------------------------------------

    def invalidate(self) -> None:
        """Forget the GUID index; the next resolve rebuilds it."""
        self._guid_index = None

    def guid_index(self) -> Dict[str, str]:
        if self._guid_index is None:
            self._guid_index = self._build_guid_index()
            logger.debug(f"GUID index built with {len(self._guid_index)} entries.")
        return self._guid_index

    def _build_guid_index(self) -> Dict[str, str]:
        index: Dict[str, str] = {}
        for prefix in self._root_prefixes:
            base = to_os_path(self.project_root, prefix)
            if not os.path.isdir(base):
                continue
            for root, dirs, files in os.walk(base):
                dirs[:] = [d for d in dirs if not d.startswith(".")]
                for file_name in files:
                    if not file_name.endswith(META_SUFFIX):
                        continue
                    meta_path = os.path.join(root, file_name)
                    guid = _read_meta_guid(meta_path)
                    if guid:
                        asset_path = meta_path[: -len(META_SUFFIX)]
                        index[guid] = to_project_path(self.project_root, asset_path)
        return index

    def resolve(self, path: str) -> Set[str]:
        """
        Direct references of one asset.

        Only text-serialized kinds can reference other assets. GUIDs that do
        not belong to a known asset are dropped. The asset's own GUID is
        recorded first, so a path created after the index was built can be
        referenced once it has been resolved. A hit on a path that no longer
        exists means the index is stale; it is rebuilt once.

        Raises:
            OSError: If the asset cannot be read.
        """
        self._register_guid(path)

        _, ext = os.path.splitext(path)
        if ext.lower() not in _TEXT_EXTENSIONS:
            return set()

        with open(to_os_path(self.project_root, path), "r", encoding="utf-8", errors="ignore") as f:
            content = f.read()

        guids = GUID_REFERENCE_PATTERN.findall(content)
        deps = self._lookup(guids, path)
        if any(not os.path.exists(to_os_path(self.project_root, dep)) for dep in deps):
            logger.debug(f"Stale GUID index while resolving '{path}'. Rebuilding.")
            self.invalidate()
            deps = self._lookup(guids, path)
        return deps

    def _lookup(self, guids: Sequence[str], path: str) -> Set[str]:
        index = self.guid_index()
        deps: Set[str] = set()
        for guid in guids:
            target = index.get(guid)
            if target is not None and target != path:
                deps.add(target)
        return deps

    def _register_guid(self, path: str) -> None:
        if self._guid_index is None:
            return
        meta_path = to_os_path(self.project_root, path) + META_SUFFIX
        if not os.path.isfile(meta_path):
            return
        guid = _read_meta_guid(meta_path)
        if guid:
            self._guid_index[guid] = path

    def stat_bytes(self, path: str) -> int:
        return os.path.getsize(to_os_path(self.project_root, path))

    def host(self) -> HostEnvironment:
        """Bundle the adapter methods for the scheduler."""
        return HostEnvironment(
            enumerate_paths=self.enumerate_paths,
            resolve=self.resolve,
            stat_bytes=self.stat_bytes,
            is_ignored=self.is_ignored,
            is_container_kind=self.is_container_kind,
            accepts=self.accepts,
        )


def _read_meta_guid(meta_path: str) -> Optional[str]:
    try:
        with open(meta_path, "r", encoding="utf-8", errors="ignore") as f:
            match = META_GUID_PATTERN.search(f.read())
    except OSError as e:
        logger.warning(f"Unreadable meta file '{meta_path}': {e}")
        return None
    return match.group(1) if match else None


def build_project_environment(config: Dict[str, Any]) -> ProjectEnvironment:
    """Create the adapter from a validated configuration dictionary."""
    return ProjectEnvironment(
        config["project_path"],
        root_prefixes=config["root_prefixes"],
        exclude_patterns=config["exclude_patterns"],
        ignore_patterns=config["ignore_patterns"],
        scene_extensions=config["scene_extensions"],
    )
