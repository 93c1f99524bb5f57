from __future__ import annotations

"""
Configuration Validation Service.

Turns an untrusted configuration mapping (CLI overrides merged over a
hand-editable session file) into the typed dictionary the indexer expects.
Each field has one coercion rule. In lenient mode every correction is
reported as a warning; in strict mode the first problem raises.
"""

import logging
from typing import Any, Callable, Dict, List, Tuple, Type

from assetcleaner.domain.config import get_default_config

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "n", "off"})


class _Issues:
    """Warning sink that escalates to exceptions in strict mode."""

    def __init__(self, strict: bool) -> None:
        self.strict = strict
        self.warnings: List[str] = []

    def note(self, msg: str) -> None:
        self.warnings.append(msg)

    def reject(self, msg: str, consequence: str, error: Type[Exception] = TypeError) -> None:
        if self.strict:
            raise error(msg)
        self.warnings.append(f"{msg} {consequence}")


Rule = Callable[[Any, Any, str, _Issues], Any]


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize an indexing configuration.

    Missing keys take their default. Unknown keys pass through untouched.

    Args:
        config: Raw configuration, normally a dictionary.
        strict: Raise on the first invalid value instead of falling back.

    Returns:
        Tuple[Dict[str, Any], List[str]]: Normalized configuration and warnings.

    Raises:
        TypeError: In strict mode, for values of the wrong type.
        ValueError: In strict mode, for out-of-range values and bad extensions.
    """
    issues = _Issues(strict)
    defaults = get_default_config()

    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        issues.reject(msg, "Using defaults.")
        logger.warning(msg)
        return defaults, issues.warnings

    clean: Dict[str, Any] = {**defaults, **config}
    for field, rule in _FIELD_RULES.items():
        clean[field] = rule(clean.get(field), defaults[field], field, issues)

    return clean, issues.warnings


# -----------------------------------------------------------------------------
# FIELD RULES
# -----------------------------------------------------------------------------

def _text(value: Any, fallback: str, field: str, issues: _Issues) -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value.strip() or fallback
    issues.reject(f"Invalid field '{field}': expected str, received {type(value).__name__}.", "Using fallback.")
    return fallback


def _flag(value: Any, fallback: bool, field: str, issues: _Issues) -> bool:
    if value is None or isinstance(value, bool):
        return fallback if value is None else value

    if not issues.strict:
        word = value.strip().lower() if isinstance(value, str) else None
        if isinstance(value, (int, float)) and value in (0, 1):
            issues.note(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if word in _TRUE_WORDS or word in _FALSE_WORDS:
            result = word in _TRUE_WORDS
            issues.note(f"Field '{field}' converted from '{value}' to {result}.")
            return result

    issues.reject(f"Invalid field '{field}': expected bool, received {type(value).__name__}.", "Using fallback.")
    return fallback


def _string_list(value: Any, fallback: List[str], field: str, issues: _Issues) -> List[str]:
    if value is None:
        return list(fallback)

    if isinstance(value, str) and not issues.strict:
        issues.note(f"Field '{field}' converted from CSV string to list.")
        return [part.strip() for part in value.split(",") if part.strip()]

    if not isinstance(value, (list, tuple)):
        issues.reject(
            f"Invalid field '{field}': expected list[str], received {type(value).__name__}.",
            "Using fallback.",
        )
        return list(fallback)

    items: List[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str):
            issues.reject(f"Invalid item in '{field}[{i}]': expected str.", "Item discarded.")
        elif item.strip():
            items.append(item.strip())
    return items


def _budget(value: Any, fallback: float, field: str, issues: _Issues) -> float:
    if value is None:
        return fallback

    number: Any = value
    if isinstance(value, str) and not issues.strict:
        try:
            number = float(value.strip())
        except ValueError:
            number = None
        else:
            issues.note(f"Field '{field}' converted from '{value}' to {number}.")

    if isinstance(number, (int, float)) and not isinstance(number, bool) and number >= 0:
        return float(number)

    issues.reject(
        f"Invalid field '{field}': expected a non-negative number, received {value!r}.",
        "Using fallback.",
        ValueError,
    )
    return fallback


def _count(value: Any, fallback: int, field: str, issues: _Issues) -> int:
    if value is None:
        return fallback
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    if isinstance(value, str) and not issues.strict and value.strip().isdigit() and int(value) > 0:
        issues.note(f"Field '{field}' converted from '{value}' to int.")
        return int(value)

    issues.reject(
        f"Invalid field '{field}': expected a positive int, received {value!r}.",
        "Using fallback.",
        ValueError,
    )
    return fallback


def _extensions(value: Any, fallback: List[str], field: str, issues: _Issues) -> List[str]:
    """Lowercase each extension and make sure it starts with a dot."""
    normalized: List[str] = []
    for ext in _string_list(value, fallback, field, issues):
        e = ext.lower()
        if not e.startswith("."):
            if issues.strict:
                raise ValueError(f"Invalid extension '{ext}': must start with '.'.")
            issues.note(f"Extension '{ext}' corrected to '.{e}'.")
            e = "." + e
        normalized.append(e)
    return normalized


_FIELD_RULES: Dict[str, Rule] = {
    "project_path": _text,
    "cache_path": _text,
    "use_cache": _flag,
    "verify_graph": _flag,
    "root_prefixes": _string_list,
    "exclude_patterns": _string_list,
    "ignore_patterns": _string_list,
    "scene_extensions": _extensions,
    "frame_budget_ms": _budget,
    "top_folders": _count,
}
