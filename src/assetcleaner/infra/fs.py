from __future__ import annotations

"""
Filesystem helpers.

Two path vocabularies meet here. OS paths are absolute and use the platform
separator. Project paths are relative to the project root and always use
'/', which is what the dependency graph, the cache and the folder
statistics store.
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

APP_DIR_NAME = "AssetCleaner"
UNIX_APP_DIR_NAME = ".assetcleaner"

# Machine-local derived data of a Unity project lives here
PROJECT_CACHE_SUBDIR = "Library"


# -----------------------------------------------------------------------------
# APPLICATION DIRECTORIES
# -----------------------------------------------------------------------------

def get_user_data_dir() -> str:
    """
    Directory for the saved session and log files.

    `%LOCALAPPDATA%/AssetCleaner` (or `%APPDATA%`) on Windows and
    `~/.assetcleaner` elsewhere. Created on demand.
    """
    base = None
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")

    if base:
        path = os.path.join(base, APP_DIR_NAME)
    else:
        path = os.path.join(os.path.expanduser("~"), UNIX_APP_DIR_NAME)

    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create user data directory '{path}': {e}")

    return os.path.abspath(path)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """Expand `~` and environment variables; blank input selects `fallback`."""
    raw = (path or "").strip() or fallback
    return os.path.abspath(os.path.expandvars(os.path.expanduser(raw)))


def resolve_cache_path(project_root: str, cache_path: Optional[str], file_name: str) -> str:
    """
    Location of a project's index cache.

    Args:
        project_root: Absolute project root.
        cache_path: Explicit cache file; blank means the default location.
        file_name: File name used inside `<project_root>/Library`.

    Returns:
        str: Absolute cache file path.
    """
    if cache_path and cache_path.strip():
        return normalize_path(cache_path, cache_path)
    return os.path.join(project_root, PROJECT_CACHE_SUBDIR, file_name)


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)


# -----------------------------------------------------------------------------
# PROJECT PATHS
# -----------------------------------------------------------------------------

def to_project_path(root: str, abs_path: str) -> str:
    return os.path.relpath(abs_path, root).replace(os.sep, "/")


def to_os_path(root: str, project_path: str) -> str:
    return os.path.join(root, *project_path.split("/"))
