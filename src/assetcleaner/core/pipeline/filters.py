from __future__ import annotations

"""
Path Filtering Rules.

Implements the rules of the filtering phase: a path takes part in the graph
only if it lives under one of the configured content roots and does not match
any exclusion regex. Also compiles the ignore rules used by the unused
classifier.
"""

import logging
import re
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

PathPredicate = Callable[[str], bool]

# -----------------------------------------------------------------------------
# PATTERN COMPILATION AND MATCHING
# -----------------------------------------------------------------------------

def compile_patterns(patterns: Sequence[str]) -> List[re.Pattern]:
    """
    Transform raw regex strings into compiled Pattern objects.

    Malformed regex strings are logged and skipped.

    Args:
        patterns: List of raw regex strings.

    Returns:
        List[re.Pattern]: Compiled regex objects.
    """
    compiled: List[re.Pattern] = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error as e:
            logger.warning(f"Skipping invalid pattern '{p}': {e}")
    return compiled


def matches_any(path: str, compiled_patterns: Sequence[re.Pattern]) -> bool:
    """
    Verify if a path matches at least one compiled regex pattern.

    Args:
        path: Project path to evaluate.
        compiled_patterns: Pre-compiled regex objects.

    Returns:
        bool: True if any match is found, False otherwise.
    """
    return any(rx.search(path) for rx in compiled_patterns)


def has_root_prefix(path: str, root_prefixes: Sequence[str]) -> bool:
    """
    Check whether a path starts with one of the content roots.

    The comparison ignores case, like the asset database the roots come from.
    An empty root list accepts everything.
    """
    if not root_prefixes:
        return True
    lowered = path.lower()
    return any(lowered.startswith(prefix.lower()) for prefix in root_prefixes)

# -----------------------------------------------------------------------------
# PREDICATE FACTORIES
# -----------------------------------------------------------------------------

def build_path_filter(
        root_prefixes: Sequence[str],
        exclude_patterns: Sequence[str],
        extra: Optional[PathPredicate] = None,
) -> PathPredicate:
    """
    Compose the filtering-phase predicate.

    Args:
        root_prefixes: Accepted content roots.
        exclude_patterns: Regexes of paths that never enter the graph.
        extra: Optional additional host check, evaluated last.

    Returns:
        PathPredicate: True for paths that take part in the graph.
    """
    exclude_rx = compile_patterns(exclude_patterns)

    def accepts(path: str) -> bool:
        if not has_root_prefix(path, root_prefixes):
            return False
        if matches_any(path, exclude_rx):
            return False
        return extra(path) if extra is not None else True

    return accepts


def build_ignore_filter(ignore_patterns: Sequence[str]) -> PathPredicate:
    """Compose the ignore predicate of the unused classifier."""
    ignore_rx = compile_patterns(ignore_patterns)
    return lambda path: matches_any(path, ignore_rx)
