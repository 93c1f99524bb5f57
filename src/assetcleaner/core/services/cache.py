from __future__ import annotations

"""
Binary Index Cache Service.

Persists a complete index generation (graph, folder set, unused entries and
folder statistics) to a single binary file so that a restart can skip graph
construction entirely. Reads and writes run on a dedicated worker thread and
are handed back as futures; the owner thread polls them and never waits.

Layout (little-endian, strings as 7-bit encoded byte length + UTF-8; paths
that are not valid UTF-8 on disk round-trip through surrogate escapes):

    int32 path_count, string version
    int32 n, n * (string path, int32 k, k * string dep)     forward links
    int32 n, n * (string path, int32 k, k * string dep)     backward links
    int32 n, n * string                                      folders
    int32 n, n * (string path, int64 bytes)                  unused files
    int32 n, n * (string path, int64 bytes)                  unused scenes
    int32 n, n * (string path, int32, int32, int64)          folder stats

The service is fail-safe: I/O and format errors are logged and reported as
results, never raised to the caller.
"""

import logging
import os
import struct
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Iterable, Optional, Set

from assetcleaner.core.graph.store import copy_snapshot
from assetcleaner.domain.constants import CACHE_FORMAT_VERSION
from assetcleaner.domain.graph_models import CacheReadResult, CacheSnapshot, FolderStats
from assetcleaner.infra.fs import ensure_parent_dir

logger = logging.getLogger(__name__)

_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")

# Undecodable file names come out of os.walk as lone surrogates
_STRING_ERRORS = "surrogateescape"


class CacheFormatError(ValueError):
    """Raised internally when the cache bytes do not follow the layout."""


# ==============================================================================
# LOW-LEVEL ENCODING
# ==============================================================================

class _BinaryWriter:
    """Append-only little-endian encoder."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def int32(self, value: int) -> None:
        self._buf += _INT32.pack(value)

    def int64(self, value: int) -> None:
        self._buf += _INT64.pack(value)

    def string(self, value: str) -> None:
        data = value.encode("utf-8", _STRING_ERRORS)
        length = len(data)
        # 7-bit encoded length, low groups first
        while length >= 0x80:
            self._buf.append((length & 0x7F) | 0x80)
            length >>= 7
        self._buf.append(length)
        self._buf += data

    def strings(self, values: Iterable[str]) -> None:
        items = list(values)
        self.int32(len(items))
        for item in items:
            self.string(item)

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class _BinaryReader:
    """Bounds-checked decoder over an in-memory buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if size < 0 or end > len(self._data):
            raise CacheFormatError(f"Unexpected end of data at offset {self._pos}")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def int32(self) -> int:
        return _INT32.unpack(self._take(_INT32.size))[0]

    def count(self) -> int:
        value = self.int32()
        if value < 0:
            raise CacheFormatError(f"Negative element count {value}")
        return value

    def int64(self) -> int:
        return _INT64.unpack(self._take(_INT64.size))[0]

    def string(self) -> str:
        length = 0
        shift = 0
        while True:
            byte = self._take(1)[0]
            length |= (byte & 0x7F) << shift
            if not byte & 0x80:
                break
            shift += 7
            if shift > 28:
                raise CacheFormatError("Malformed string length")
        return self._take(length).decode("utf-8", _STRING_ERRORS)

    def strings(self) -> Set[str]:
        return {self.string() for _ in range(self.count())}


# ==============================================================================
# ENCODE / DECODE
# ==============================================================================

def encode_snapshot(snapshot: CacheSnapshot, version: str = CACHE_FORMAT_VERSION) -> bytes:
    """Serialize a snapshot into the binary cache layout."""
    w = _BinaryWriter()
    w.int32(snapshot.path_count)
    w.string(version)

    for links in (snapshot.forward, snapshot.backward):
        w.int32(len(links))
        for path, targets in links.items():
            w.string(path)
            w.strings(targets)

    w.strings(snapshot.folders)

    for sizes in (snapshot.unused_files, snapshot.unused_scenes):
        w.int32(len(sizes))
        for path, size in sizes.items():
            w.string(path)
            w.int64(size)

    w.int32(len(snapshot.folder_stats))
    for folder, stats in snapshot.folder_stats.items():
        w.string(folder)
        w.int32(stats.file_count)
        w.int32(stats.scene_count)
        w.int64(stats.total_bytes)

    return w.getvalue()


def decode_snapshot(data: bytes, expected_version: str = CACHE_FORMAT_VERSION) -> CacheReadResult:
    """
    Deserialize the binary cache layout.

    A header with a foreign version stops decoding right after the header:
    the body of another format is never interpreted.

    Raises:
        CacheFormatError: On truncated or malformed data.
    """
    r = _BinaryReader(data)
    path_count = r.int32()
    version = r.string()

    if version != expected_version:
        return CacheReadResult(
            ok=False,
            path_count=path_count,
            version=version,
            error=f"Format version mismatch: found '{version}', expected '{expected_version}'",
        )

    def read_links() -> Dict[str, Set[str]]:
        links: Dict[str, Set[str]] = {}
        for _ in range(r.count()):
            key = r.string()
            links[key] = r.strings()
        return links

    def read_sizes() -> Dict[str, int]:
        sizes: Dict[str, int] = {}
        for _ in range(r.count()):
            key = r.string()
            sizes[key] = r.int64()
        return sizes

    forward = read_links()
    backward = read_links()
    folders = r.strings()
    unused_files = read_sizes()
    unused_scenes = read_sizes()

    folder_stats: Dict[str, FolderStats] = {}
    for _ in range(r.count()):
        key = r.string()
        folder_stats[key] = FolderStats(r.int32(), r.int32(), r.int64())

    snapshot = CacheSnapshot(
        path_count=path_count,
        forward=forward,
        backward=backward,
        folders=folders,
        unused_files=unused_files,
        unused_scenes=unused_scenes,
        folder_stats=folder_stats,
    )
    return CacheReadResult(ok=True, path_count=path_count, version=version, snapshot=snapshot)


# ==============================================================================
# SERVICE
# ==============================================================================

class CacheCodec:
    """
    Reads and writes the index cache file.

    Background operations share one worker thread so that a save and a later
    load of the same file are serialized.
    """

    def __init__(
            self,
            cache_path: str,
            *,
            version: str = CACHE_FORMAT_VERSION,
            executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._cache_path = cache_path
        self._version = version
        self._executor = executor
        self._owns_executor = executor is None

    @property
    def cache_path(self) -> str:
        return self._cache_path

    @property
    def version(self) -> str:
        return self._version

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="CacheWorker")
        return self._executor

    # -------------------------------------------------------------------------
    # Synchronous primitives
    # -------------------------------------------------------------------------

    def write(self, snapshot: CacheSnapshot) -> bool:
        """
        Serialize and persist a snapshot.

        The file is written next to its final location and swapped in with
        os.replace, so readers never observe a partial file.

        Returns:
            bool: True on success, False if the write failed (logged).
        """
        tmp_path = f"{self._cache_path}.tmp"
        try:
            payload = encode_snapshot(snapshot, self._version)
            ensure_parent_dir(self._cache_path)
            with open(tmp_path, "wb") as f:
                f.write(payload)
            os.replace(tmp_path, self._cache_path)
        except (OSError, ValueError, struct.error) as e:
            logger.error(f"CacheCodec: Cache save error for {self._cache_path}: {e}")
            return False

        logger.debug(
            f"CacheCodec: Saved {len(snapshot.forward)} nodes "
            f"({len(payload)} bytes) to {self._cache_path}"
        )
        return True

    def read(self) -> CacheReadResult:
        """
        Load the cache file.

        Returns:
            CacheReadResult: ok=False when the file is missing, unreadable,
                             truncated or written by another format version.
        """
        if not os.path.exists(self._cache_path):
            logger.debug(f"CacheCodec: No cache at {self._cache_path}")
            return CacheReadResult(ok=False, error="Cache file not found")

        try:
            with open(self._cache_path, "rb") as f:
                data = f.read()
            result = decode_snapshot(data, self._version)
        except (OSError, ValueError, struct.error) as e:
            logger.error(f"CacheCodec: Cache read error for {self._cache_path}: {e}")
            return CacheReadResult(ok=False, error=str(e))

        if not result.ok:
            logger.info(f"CacheCodec: {result.error}")
        return result

    def clear(self) -> bool:
        """
        Delete the cache file if present.

        Returns:
            bool: False only if an existing file could not be removed.
        """
        try:
            if os.path.exists(self._cache_path):
                os.remove(self._cache_path)
                logger.info(f"CacheCodec: Removed {self._cache_path}")
            return True
        except OSError as e:
            logger.warning(f"CacheCodec: Failed to clear cache: {e}")
            return False

    # -------------------------------------------------------------------------
    # Background operations
    # -------------------------------------------------------------------------

    def save_async(self, snapshot: CacheSnapshot) -> "Future[bool]":
        """
        Persist a snapshot on the worker thread.

        The snapshot is copied on the calling thread before submission, so
        mutations made after this call never reach the file.
        """
        private = copy_snapshot(snapshot)
        return self._get_executor().submit(self.write, private)

    def load_async(self) -> "Future[CacheReadResult]":
        """Read the cache file on the worker thread."""
        return self._get_executor().submit(self.read)

    def shutdown(self, wait: bool = True) -> None:
        """Release the worker thread if this codec created it."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
