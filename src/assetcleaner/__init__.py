from __future__ import annotations

"""
AssetCleaner.

Incremental dependency-graph indexer that finds unreferenced assets in a
content repository and reports how much disk space each folder could reclaim.
"""

__version__ = "1.5.0"
