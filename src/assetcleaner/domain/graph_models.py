from __future__ import annotations

"""
Dependency Graph Domain Models.

Defines the value objects exchanged between the indexer phases, the cache
codec and the host: per-folder statistics, immutable state snapshots, cache
read results, and the plain-data representation of the scheduler state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set

# -----------------------------------------------------------------------------
# CORE DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class FolderStats:
    """
    Reclaimable content below one folder (all descendants, not only children).

    Attributes:
        file_count: Number of unused plain files.
        scene_count: Number of unused container-kind assets.
        total_bytes: Combined size of both kinds.
    """
    file_count: int = 0
    scene_count: int = 0
    total_bytes: int = 0

    @property
    def is_empty(self) -> bool:
        return self.file_count == 0 and self.scene_count == 0


@dataclass
class CacheSnapshot:
    """
    Complete derived state of one index generation.

    Instances handed to the cache worker are private copies; the owner
    thread never mutates them after hand-off.
    """
    path_count: int
    forward: Dict[str, Set[str]] = field(default_factory=dict)
    backward: Dict[str, Set[str]] = field(default_factory=dict)
    folders: Set[str] = field(default_factory=set)
    unused_files: Dict[str, int] = field(default_factory=dict)
    unused_scenes: Dict[str, int] = field(default_factory=dict)
    folder_stats: Dict[str, FolderStats] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheReadResult:
    """
    Outcome of a cache load attempt.

    Attributes:
        ok: True when the file was read completely and its version is current.
        path_count: Fingerprint path count stored in the header (0 if unread).
        version: Format version stored in the header ("" if unread).
        snapshot: Deserialized state, only present when ok is True.
        error: Human-readable failure reason.
    """
    ok: bool
    path_count: int = 0
    version: str = ""
    snapshot: Optional[CacheSnapshot] = None
    error: str = ""

    def matches(self, path_count: int, version: str) -> bool:
        """Check the fingerprint against the live environment."""
        return self.ok and self.path_count == path_count and self.version == version


# -----------------------------------------------------------------------------
# SCHEDULER STATE
# -----------------------------------------------------------------------------

class IndexPhase(Enum):
    """Resumable stages of an index build, in execution order."""
    DONE = "done"
    LOADING_CACHE = "loading_cache"
    FILTERING_PATHS = "filtering_paths"
    BUILDING_GRAPH = "building_graph"
    CLASSIFYING_UNUSED = "classifying_unused"
    SIZING_FILES = "sizing_files"
    SIZING_SCENES = "sizing_scenes"
    AGGREGATING_FOLDERS = "aggregating_folders"


PHASE_LABELS: Dict[IndexPhase, str] = {
    IndexPhase.DONE: "Idle",
    IndexPhase.LOADING_CACHE: "Loading cache",
    IndexPhase.FILTERING_PATHS: "Filtering",
    IndexPhase.BUILDING_GRAPH: "Building graph",
    IndexPhase.CLASSIFYING_UNUSED: "Classifying unused",
    IndexPhase.SIZING_FILES: "Sizing files",
    IndexPhase.SIZING_SCENES: "Sizing scenes",
    IndexPhase.AGGREGATING_FOLDERS: "Aggregating folders",
}


@dataclass(frozen=True)
class IndexProgress:
    """Plain-data view of the scheduler: current phase plus its cursor."""
    phase: IndexPhase
    cursor: int = 0
    total: int = 0

    @property
    def fraction(self) -> float:
        if self.phase is IndexPhase.DONE:
            return 1.0
        if self.total <= 0:
            return 0.0
        return min(1.0, self.cursor / self.total)

    @property
    def status(self) -> str:
        label = PHASE_LABELS[self.phase]
        if self.phase in (IndexPhase.DONE, IndexPhase.LOADING_CACHE):
            return label if self.phase is IndexPhase.DONE else f"{label}..."
        return f"{label}... {self.cursor}/{self.total}"
