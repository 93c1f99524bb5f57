from __future__ import annotations

"""
Bidirectional Reference Graph.

Holds the forward map (path -> paths it depends on) and its mirror, the
backward map (path -> paths that depend on it), plus the folder set derived
from every path registered in the graph.

Invariant: A in backward[B] iff B in forward[A]. Every mutation primitive
keeps both maps in step; `verify_consistency` checks it.
"""

import logging
from typing import Dict, Iterable, Iterator, Optional, Set

from assetcleaner.core.graph.folders import folders_of_path
from assetcleaner.domain.graph_models import CacheSnapshot

logger = logging.getLogger(__name__)

_EMPTY: frozenset = frozenset()


class GraphConsistencyError(AssertionError):
    """Raised when the forward and backward maps disagree."""


class GraphStore:
    """
    In-memory forward/backward link maps with mutation primitives.

    Owned by a single thread; copies for background work are produced with
    `copy_snapshot`.
    """

    def __init__(
            self,
            forward: Optional[Dict[str, Set[str]]] = None,
            backward: Optional[Dict[str, Set[str]]] = None,
            folders: Optional[Set[str]] = None,
    ) -> None:
        self._forward: Dict[str, Set[str]] = forward if forward is not None else {}
        self._backward: Dict[str, Set[str]] = backward if backward is not None else {}
        self._folders: Set[str] = folders if folders is not None else set()

    @classmethod
    def from_snapshot(cls, snapshot: CacheSnapshot) -> "GraphStore":
        """Adopt the maps of a deserialized snapshot without copying them."""
        return cls(snapshot.forward, snapshot.backward, snapshot.folders)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    def __contains__(self, path: object) -> bool:
        return path in self._forward

    def __len__(self) -> int:
        return len(self._forward)

    def __iter__(self) -> Iterator[str]:
        return iter(self._forward)

    @property
    def folders(self) -> Set[str]:
        return self._folders

    def dependencies_of(self, path: str) -> frozenset:
        return frozenset(self._forward.get(path, _EMPTY))

    def dependents_of(self, path: str) -> frozenset:
        return frozenset(self._backward.get(path, _EMPTY))

    def has_dependents(self, path: str) -> bool:
        return bool(self._backward.get(path))

    def edge_count(self) -> int:
        return sum(len(deps) for deps in self._forward.values())

    # -------------------------------------------------------------------------
    # Mutation primitives
    # -------------------------------------------------------------------------

    def add_or_update(self, path: str, dependencies: Iterable[str]) -> None:
        """
        Replace the dependency set of a path and mirror the difference.

        Missing backward entries are created lazily.
        """
        new_deps = set(dependencies)
        old_deps = self._forward.get(path, _EMPTY)

        for dropped in old_deps - new_deps:
            dependents = self._backward.get(dropped)
            if dependents is not None:
                dependents.discard(path)

        for added in new_deps - old_deps:
            self._backward.setdefault(added, set()).add(path)

        self._forward[path] = new_deps

    def remove(self, path: str) -> None:
        """
        Delete the forward entry of a path and its mirrored backlinks.

        Nodes that still list `path` as a dependency keep that edge (and the
        matching backward[path] entry) until their own next resolve.
        """
        deps = self._forward.pop(path, None)
        if deps is None:
            return

        for dependency in deps:
            dependents = self._backward.get(dependency)
            if dependents is not None:
                dependents.discard(path)

    def replace(self, old_path: str, new_path: str) -> None:
        """
        Rename a node, keeping its edges in both directions.

        References to the node held by its dependents and references from the
        node held by its dependencies are rewritten to the new name.
        """
        if old_path == new_path:
            return
        if old_path not in self._forward and old_path not in self._backward:
            return

        deps = self._forward.get(old_path)
        if deps is not None:
            self.remove(old_path)

        # Redirect everyone that pointed at the old name
        for dependent in self._backward.pop(old_path, _EMPTY):
            if dependent == old_path:
                continue
            forward = self._forward.get(dependent)
            if forward is None:
                continue
            forward.discard(old_path)
            forward.add(new_path)
            self._backward.setdefault(new_path, set()).add(dependent)

        if deps is not None:
            self.add_or_update(new_path, (new_path if d == old_path else d for d in deps))

        self.register_folders(new_path)

    def register_folders(self, path: str) -> None:
        """Record every folder on the path's folder chain."""
        self._folders.update(folders_of_path(path))

    # -------------------------------------------------------------------------
    # Consistency & snapshots
    # -------------------------------------------------------------------------

    def verify_consistency(self) -> None:
        """
        Check the mirror invariant in both directions.

        Raises:
            GraphConsistencyError: On the first disagreement found.
        """
        for _ in self.iter_consistency_checks():
            pass

    def consistency_check_size(self) -> int:
        """Number of steps `iter_consistency_checks` yields."""
        return len(self._forward) + len(self._backward)

    def iter_consistency_checks(self) -> Iterator[None]:
        """
        Check the mirror invariant one map entry at a time.

        Yields once per forward and per backward entry, so a caller can spread
        the check over several ticks. The maps must not change while the
        iterator is alive.

        Raises:
            GraphConsistencyError: On the first disagreement found.
        """
        for source, deps in self._forward.items():
            for target in deps:
                if source not in self._backward.get(target, _EMPTY):
                    raise GraphConsistencyError(
                        f"Missing backlink: '{target}' <- '{source}'"
                    )
            yield

        for target, dependents in self._backward.items():
            for source in dependents:
                if target not in self._forward.get(source, _EMPTY):
                    raise GraphConsistencyError(
                        f"Leaked backlink: '{target}' <- '{source}' has no forward edge"
                    )
            yield

    def to_snapshot(self, path_count: int) -> CacheSnapshot:
        """
        Wrap the live maps in a snapshot without copying them.

        Consumers that outlive the current tick must copy it first
        (see `copy_snapshot`).
        """
        return CacheSnapshot(
            path_count=path_count,
            forward=self._forward,
            backward=self._backward,
            folders=self._folders,
        )


def copy_snapshot(snapshot: CacheSnapshot) -> CacheSnapshot:
    """Deep-copy a snapshot so it shares no mutable state with its source."""
    return CacheSnapshot(
        path_count=snapshot.path_count,
        forward={k: set(v) for k, v in snapshot.forward.items()},
        backward={k: set(v) for k, v in snapshot.backward.items()},
        folders=set(snapshot.folders),
        unused_files=dict(snapshot.unused_files),
        unused_scenes=dict(snapshot.unused_scenes),
        folder_stats=dict(snapshot.folder_stats),
    )
