from __future__ import annotations

"""
Domain Constants.

Centralizes the cache format identifiers, scheduling defaults, and the
project-layout conventions shared by the indexer and its host adapters.
"""

from typing import List

CURRENT_CONFIG_VERSION = "1.0.0"

# -----------------------------------------------------------------------------
# CACHE FORMAT
# -----------------------------------------------------------------------------
CACHE_FORMAT_VERSION = "v3"
CACHE_FILE_NAME = "AssetCleanerCache.bin"

# -----------------------------------------------------------------------------
# SCHEDULING
# -----------------------------------------------------------------------------
DEFAULT_FRAME_BUDGET_MS = 16.0

# -----------------------------------------------------------------------------
# REPORTING
# -----------------------------------------------------------------------------
DEFAULT_TOP_FOLDERS = 20

# -----------------------------------------------------------------------------
# PROJECT LAYOUT
# -----------------------------------------------------------------------------
DEFAULT_ROOT_PREFIXES: List[str] = ["Assets", "ProjectSettings", "Packages"]

# Folder-like and assembly-definition assets never take part in the graph
DEFAULT_EXCLUDE_PATTERNS: List[str] = [
    r"\.asmdef$",
    r"\.asmref$",
]

DEFAULT_SCENE_EXTENSIONS: List[str] = [".unity"]

# Text-serialized asset kinds whose content can reference other assets by GUID
TEXT_ASSET_EXTENSIONS: List[str] = [
    ".unity", ".prefab", ".asset", ".mat", ".controller", ".overrideController",
    ".anim", ".mask", ".physicMaterial", ".physicsMaterial2D", ".mixer",
    ".spriteatlas", ".spriteatlasv2", ".playable", ".lighting", ".guiskin",
    ".fontsettings", ".shadervariants", ".terrainlayer", ".brush", ".flare",
    ".renderTexture", ".cubemap", ".giparams", ".preset", ".signal",
]

META_SUFFIX = ".meta"
