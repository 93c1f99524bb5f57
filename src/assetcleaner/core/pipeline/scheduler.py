from __future__ import annotations

"""
Incremental Index Scheduler.

Drives the construction of the reference graph and the unused-asset report
as a sequence of resumable phases:

    LOADING_CACHE -> DONE                                   (cache hit)
    LOADING_CACHE -> FILTERING_PATHS -> BUILDING_GRAPH
                  -> CLASSIFYING_UNUSED -> SIZING_FILES
                  -> SIZING_SCENES -> AGGREGATING_FOLDERS -> DONE (+ save)

The host calls `process_incremental(budget_ms)` once per tick. Each call works
through the current phase one element at a time, checking the clock after
every element, and yields as soon as the budget is spent. Every phase keeps an
explicit cursor, so a pause between any two elements is safe.

Cache reads and writes run on the codec's worker thread; the scheduler only
polls their futures. Queries always reflect the last completed generation,
never the one being built.
"""

import logging
import time
from concurrent.futures import Future
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from assetcleaner.core.analysis.classifier import is_unused_candidate, safe_stat
from assetcleaner.core.graph.folders import FolderIndex
from assetcleaner.core.graph.store import GraphConsistencyError, GraphStore
from assetcleaner.core.pipeline.host import HostEnvironment
from assetcleaner.core.services.cache import CacheCodec
from assetcleaner.domain.constants import DEFAULT_FRAME_BUDGET_MS
from assetcleaner.domain.graph_models import (
    CacheReadResult,
    CacheSnapshot,
    FolderStats,
    IndexPhase,
    IndexProgress,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]

_CHANGED = "changed"
_REMOVED = "removed"
_RENAMED = "renamed"


class IncrementalScheduler:
    """
    Owner-thread state machine for building and maintaining the asset index.

    Not thread-safe: every method must be called from the thread that drives
    `process_incremental`.
    """

    def __init__(
            self,
            host: HostEnvironment,
            codec: Optional[CacheCodec] = None,
            *,
            verify_graph: bool = True,
            clock: Callable[[], float] = time.perf_counter,
            on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Args:
            host: Host callables (enumeration, resolution, predicates, sizing).
            codec: Cache persistence; None disables loading and saving.
            verify_graph: Run the mirror-invariant check before classification.
            clock: Monotonic time source in seconds.
            on_progress: Called after every tick with (progress, status).
        """
        self._host = host
        self._codec = codec
        self._verify_graph = verify_graph
        self._clock = clock
        self._on_progress = on_progress

        self._initialized = False
        self._path_count = 0
        self._known_paths: Set[str] = set()

        # Published generation
        self._graph = GraphStore()
        self._unused_files: Dict[str, int] = {}
        self._unused_scenes: Dict[str, int] = {}
        self._folder_stats: Dict[str, FolderStats] = {}

        # Cursor state
        self._phase = IndexPhase.DONE
        self._cursor = 0
        self._total = 0
        self._full_build = False
        self._cycle_started = 0.0

        # Work generation
        self._load_future: Optional["Future[CacheReadResult]"] = None
        self._save_future: Optional["Future[bool]"] = None
        self._raw_paths: List[str] = []
        self._pending_paths: List[str] = []
        self._work_graph: Optional[GraphStore] = None
        self._files_list: List[str] = []
        self._scenes_list: List[str] = []
        self._work_files: Dict[str, int] = {}
        self._work_scenes: Dict[str, int] = {}
        self._steps: Optional[Iterator[None]] = None
        self._work_folder_stats: Dict[str, FolderStats] = {}

        self._queued_events: List[Tuple[str, Tuple[str, ...]]] = []

        self._handlers: Dict[IndexPhase, Callable[[float], bool]] = {
            IndexPhase.LOADING_CACHE: self._run_loading_cache,
            IndexPhase.FILTERING_PATHS: self._run_filtering,
            IndexPhase.BUILDING_GRAPH: self._run_building,
            IndexPhase.CLASSIFYING_UNUSED: self._run_classifying,
            IndexPhase.SIZING_FILES: self._run_sizing_files,
            IndexPhase.SIZING_SCENES: self._run_sizing_scenes,
            IndexPhase.AGGREGATING_FOLDERS: self._run_aggregating,
        }

    # ==========================================================================
    # LIFECYCLE
    # ==========================================================================

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def is_processing(self) -> bool:
        return self._phase is not IndexPhase.DONE

    @property
    def state(self) -> IndexProgress:
        return IndexProgress(self._phase, self._cursor, self._total)

    @property
    def progress(self) -> float:
        return self.state.fraction

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def path_count(self) -> int:
        return self._path_count

    @property
    def last_save(self) -> Optional["Future[bool]"]:
        """Future of the most recent background save, if any."""
        return self._save_future

    def init(self, use_cache: bool = True) -> bool:
        """
        Start a new build cycle.

        Takes the path snapshot that fingerprints this cycle and starts the
        background cache read.

        Args:
            use_cache: If False, skip the cache read. The finished cycle is
                still saved.

        Returns:
            bool: False if a cycle is still running (nothing is changed).
        """
        if self.is_processing:
            logger.warning(f"Init ignored: a cycle is still running ({self.status}).")
            return False

        self._reset_work()
        self._raw_paths = list(self._host.enumerate_paths())
        self._path_count = len(self._raw_paths)
        self._known_paths = set(self._raw_paths)
        self._full_build = True
        self._cycle_started = self._clock()
        self._initialized = True

        logger.info(f"Index cycle started for {self._path_count} paths.")

        if self._codec is not None and use_cache:
            self._load_future = self._codec.load_async()
            self._enter(IndexPhase.LOADING_CACHE, 0)
        else:
            self._enter(IndexPhase.FILTERING_PATHS, len(self._raw_paths))
        return True

    def process_incremental(self, budget_ms: float = DEFAULT_FRAME_BUDGET_MS) -> bool:
        """
        Advance the state machine within a wall-clock budget.

        At least one element is processed per call, so repeated calls with a
        zero budget still reach DONE.

        Args:
            budget_ms: Time budget of this call in milliseconds.

        Returns:
            bool: True while work remains.

        Raises:
            GraphConsistencyError: If the forward/backward mirror is broken.
                The cycle is cancelled before the error propagates.
        """
        deadline = self._clock() + max(0.0, budget_ms) / 1000.0

        try:
            still_working = self._advance(deadline)
        except GraphConsistencyError as e:
            logger.critical(f"Reference graph corrupted, cycle aborted: {e}")
            self.cancel()
            raise

        if self._on_progress is not None:
            self._on_progress(self.progress, self.status)

        return still_working

    def cancel(self) -> None:
        """
        Abort the current cycle and return to idle without saving.

        Notifications queued during the cycle are applied to the live graph.
        """
        if self._load_future is not None:
            self._load_future.cancel()

        was_processing = self.is_processing
        self._reset_work()
        self._phase = IndexPhase.DONE
        self._cursor = 0
        self._total = 0

        if was_processing:
            logger.info("Index cycle cancelled.")

        events, self._queued_events = self._queued_events, []
        for kind, args in events:
            self._apply_event(kind, args)

    def close(self) -> None:
        """Cancel any cycle and wait for pending cache writes."""
        self.cancel()
        if self._codec is not None:
            self._codec.shutdown(wait=True)

    # ==========================================================================
    # QUERIES (LAST COMPLETED GENERATION)
    # ==========================================================================

    @property
    def graph(self) -> GraphStore:
        return self._graph

    @property
    def unused_files(self) -> Mapping[str, int]:
        return MappingProxyType(self._unused_files)

    @property
    def unused_scenes(self) -> Mapping[str, int]:
        return MappingProxyType(self._unused_scenes)

    @property
    def folders_with_stats(self) -> Mapping[str, FolderStats]:
        return MappingProxyType(self._folder_stats)

    def is_unused(self, path: str) -> bool:
        return path in self._unused_files or path in self._unused_scenes

    def unused_bytes(self, path: str) -> Optional[int]:
        size = self._unused_files.get(path)
        if size is None:
            size = self._unused_scenes.get(path)
        return size

    def folder_stats(self, folder: str) -> Optional[FolderStats]:
        return self._folder_stats.get(folder)

    def total_unused_bytes(self) -> int:
        return sum(self._unused_files.values()) + sum(self._unused_scenes.values())

    def snapshot(self) -> CacheSnapshot:
        """Published generation as a snapshot sharing the live maps."""
        snap = self._graph.to_snapshot(self._path_count)
        snap.unused_files = self._unused_files
        snap.unused_scenes = self._unused_scenes
        snap.folder_stats = self._folder_stats
        return snap

    # ==========================================================================
    # SINGLE-PATH NOTIFICATIONS
    # ==========================================================================

    def notify_created_or_changed(self, path: str) -> None:
        """Re-resolve one path and refresh the unused report."""
        self._on_event(_CHANGED, (path,))

    def notify_removed(self, path: str) -> None:
        """Drop one path from the graph and refresh the unused report."""
        self._on_event(_REMOVED, (path,))

    def notify_renamed(self, old_path: str, new_path: str) -> None:
        """Move one node to a new path and refresh the unused report."""
        self._on_event(_RENAMED, (old_path, new_path))

    def _on_event(self, kind: str, args: Tuple[str, ...]) -> None:
        if not self._initialized:
            logger.debug(f"Ignoring '{kind}' event for {args}: index not initialized.")
            return

        if self.is_processing:
            self._queued_events.append((kind, args))
            return

        self._apply_event(kind, args)
        self._start_refresh()

    def _apply_event(self, kind: str, args: Tuple[str, ...]) -> None:
        graph = self._graph
        if kind == _CHANGED:
            path = args[0]
            self._known_paths.add(path)
            if not self._host.accepts(path):
                graph.remove(path)
                return
            graph.add_or_update(path, self._resolve(path))
            graph.register_folders(path)
        elif kind == _REMOVED:
            self._known_paths.discard(args[0])
            graph.remove(args[0])
        elif kind == _RENAMED:
            self._known_paths.discard(args[0])
            self._known_paths.add(args[1])
            graph.replace(args[0], args[1])

    def _start_refresh(self) -> None:
        """Enter classification over the live graph; the work runs in ticks."""
        self._reset_work()
        self._full_build = False
        self._cycle_started = self._clock()
        self._begin_classification(self._graph)

    # ==========================================================================
    # PHASE EXECUTION
    # ==========================================================================

    def _advance(self, deadline: float) -> bool:
        while self._phase is not IndexPhase.DONE:
            completed = self._handlers[self._phase](deadline)
            if not completed:
                return True
            if self._phase is not IndexPhase.DONE and self._expired(deadline):
                return True
        return False

    def _expired(self, deadline: float) -> bool:
        return self._clock() >= deadline

    def _enter(self, phase: IndexPhase, total: int) -> None:
        logger.debug(f"Entering phase {phase.value} ({total} items).")
        self._phase = phase
        self._cursor = 0
        self._total = total

    def _run_loading_cache(self, deadline: float) -> bool:
        future = self._load_future
        if future is not None and not future.done():
            return False
        self._load_future = None

        result: Optional[CacheReadResult] = None
        if future is not None:
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"Cache load task failed: {e}")

        if (
                self._codec is not None
                and result is not None
                and result.snapshot is not None
                and result.matches(self._path_count, self._codec.version)
        ):
            self._adopt(result.snapshot)
            logger.info(
                f"Cache hit: restored {len(self._graph)} nodes, "
                f"{len(self._unused_files) + len(self._unused_scenes)} unused assets."
            )
            return True

        if result is not None and result.ok:
            logger.info(
                f"Cache fingerprint mismatch (cached {result.path_count} paths, "
                f"live {self._path_count}). Rebuilding."
            )
        else:
            logger.info("No usable cache. Rebuilding.")

        self._enter(IndexPhase.FILTERING_PATHS, len(self._raw_paths))
        return True

    def _run_filtering(self, deadline: float) -> bool:
        accepts = self._host.accepts
        while self._cursor < self._total:
            path = self._raw_paths[self._cursor]
            self._cursor += 1
            if accepts(path):
                self._pending_paths.append(path)
            if self._cursor < self._total and self._expired(deadline):
                return False

        self._raw_paths = []
        self._work_graph = GraphStore()
        self._enter(IndexPhase.BUILDING_GRAPH, len(self._pending_paths))
        return True

    def _run_building(self, deadline: float) -> bool:
        graph = self._work_graph
        assert graph is not None
        while self._cursor < self._total:
            path = self._pending_paths[self._cursor]
            self._cursor += 1
            graph.add_or_update(path, self._resolve(path))
            graph.register_folders(path)
            if self._cursor < self._total and self._expired(deadline):
                return False

        self._pending_paths = []
        self._begin_classification(graph)
        return True

    def _begin_classification(self, graph: GraphStore) -> None:
        """Enter classification; the mirror check runs as its first steps."""
        self._work_graph = graph
        self._files_list = []
        self._scenes_list = []
        self._work_files = {}
        self._work_scenes = {}

        total = len(graph)
        if self._verify_graph:
            total += graph.consistency_check_size()
        self._steps = self._classification_steps(graph)
        self._enter(IndexPhase.CLASSIFYING_UNUSED, total)

    def _classification_steps(self, graph: GraphStore) -> Iterator[None]:
        if self._verify_graph:
            yield from graph.iter_consistency_checks()

        is_ignored = self._host.is_ignored
        is_container_kind = self._host.is_container_kind
        for path in graph:
            if is_unused_candidate(graph, path, is_ignored):
                if is_container_kind(path):
                    self._scenes_list.append(path)
                else:
                    self._files_list.append(path)
            yield

    def _run_classifying(self, deadline: float) -> bool:
        if not self._run_steps(deadline):
            return False
        self._enter(IndexPhase.SIZING_FILES, len(self._files_list))
        return True

    def _run_sizing_files(self, deadline: float) -> bool:
        if not self._run_sizing(self._files_list, self._work_files, deadline):
            return False
        self._enter(IndexPhase.SIZING_SCENES, len(self._scenes_list))
        return True

    def _run_sizing_scenes(self, deadline: float) -> bool:
        if not self._run_sizing(self._scenes_list, self._work_scenes, deadline):
            return False

        graph = self._work_graph
        assert graph is not None
        self._work_folder_stats = {}
        self._steps = self._aggregation_steps(graph)
        self._enter(
            IndexPhase.AGGREGATING_FOLDERS,
            len(self._work_files) + len(self._work_scenes) + len(graph.folders),
        )
        return True

    def _run_sizing(self, paths: List[str], sizes: Dict[str, int], deadline: float) -> bool:
        stat_bytes = self._host.stat_bytes
        while self._cursor < self._total:
            path = paths[self._cursor]
            self._cursor += 1
            sizes[path] = safe_stat(stat_bytes, path)
            if self._cursor < self._total and self._expired(deadline):
                return False
        return True

    def _aggregation_steps(self, graph: GraphStore) -> Iterator[None]:
        index = FolderIndex()
        for path, size in self._work_files.items():
            index.add(path, size)
            yield
        for path, size in self._work_scenes.items():
            index.add(path, size, is_scene=True)
            yield
        for folder in graph.folders:
            self._work_folder_stats[folder] = index.stats_for(folder)
            yield

    def _run_aggregating(self, deadline: float) -> bool:
        if not self._run_steps(deadline):
            return False
        self._complete_cycle()
        return True

    def _run_steps(self, deadline: float) -> bool:
        """Advance the phase's step iterator, one cursor position per step."""
        steps = self._steps
        assert steps is not None
        for _ in steps:
            self._cursor += 1
            if self._cursor < self._total and self._expired(deadline):
                return False
        self._steps = None
        return True

    # ==========================================================================
    # GENERATION HAND-OVER
    # ==========================================================================

    def _complete_cycle(self) -> None:
        graph = self._work_graph
        assert graph is not None

        self._graph = graph
        self._unused_files = self._work_files
        self._unused_scenes = self._work_scenes
        self._folder_stats = self._work_folder_stats

        kind = "Build" if self._full_build else "Refresh"
        if not self._full_build:
            self._path_count = len(self._known_paths)

        self._reset_work()
        self._phase = IndexPhase.DONE
        self._cursor = 0
        self._total = 0

        elapsed = self._clock() - self._cycle_started
        logger.info(
            f"{kind} finished in {elapsed:.2f}s: {len(self._graph)} nodes, "
            f"{len(self._unused_files)} unused files, {len(self._unused_scenes)} unused scenes."
        )

        if self._codec is not None:
            self._save_future = self._codec.save_async(self.snapshot())
            self._save_future.add_done_callback(_log_save_failure)

        if self._queued_events:
            events, self._queued_events = self._queued_events, []
            logger.debug(f"Replaying {len(events)} queued change notifications.")
            for event_kind, args in events:
                self._apply_event(event_kind, args)
            self._start_refresh()

    def _adopt(self, snapshot: CacheSnapshot) -> None:
        self._graph = GraphStore.from_snapshot(snapshot)
        self._unused_files = snapshot.unused_files
        self._unused_scenes = snapshot.unused_scenes
        self._folder_stats = snapshot.folder_stats
        self._reset_work()
        self._phase = IndexPhase.DONE
        self._cursor = 0
        self._total = 0

        if self._queued_events:
            events, self._queued_events = self._queued_events, []
            for event_kind, args in events:
                self._apply_event(event_kind, args)
            self._start_refresh()

    def _reset_work(self) -> None:
        self._load_future = None
        self._raw_paths = []
        self._pending_paths = []
        self._work_graph = None
        self._steps = None
        self._files_list = []
        self._scenes_list = []
        self._work_files = {}
        self._work_scenes = {}
        self._work_folder_stats = {}

    def _resolve(self, path: str) -> Set[str]:
        """Run the host resolver, treating failures as 'no dependencies'."""
        try:
            deps = set(self._host.resolve(path))
        except Exception as e:
            logger.warning(f"Dependency extraction failed for '{path}': {e}")
            return set()
        deps.discard(path)
        return deps


def _log_save_failure(future: "Future[bool]") -> None:
    """Report a background save that raised instead of returning."""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Cache save task failed: {error!r}")
