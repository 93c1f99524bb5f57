from __future__ import annotations

"""
Session Configuration.

The CLI remembers the last indexing session in `config.json` inside the user
data directory:

    {"version": "<config version>", "last_session": {<indexing options>}}

Reading never fails: a missing, unreadable or malformed file yields the
defaults. Stored sessions are layered over the defaults, so keys added in
newer releases always exist.
"""

import json
import logging
import os
from typing import Any, Dict

from assetcleaner.domain.constants import (
    CURRENT_CONFIG_VERSION,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_FRAME_BUDGET_MS,
    DEFAULT_ROOT_PREFIXES,
    DEFAULT_SCENE_EXTENSIONS,
    DEFAULT_TOP_FOLDERS,
)
from assetcleaner.infra.fs import get_user_data_dir

logger = logging.getLogger(__name__)

CONFIG_FILE = os.path.join(get_user_data_dir(), "config.json")


def get_default_config() -> Dict[str, Any]:
    """Fresh indexing options; list values are never shared between calls."""
    return {
        "project_path": os.getcwd(),
        "cache_path": "",
        "use_cache": True,
        "frame_budget_ms": DEFAULT_FRAME_BUDGET_MS,
        "root_prefixes": list(DEFAULT_ROOT_PREFIXES),
        "exclude_patterns": list(DEFAULT_EXCLUDE_PATTERNS),
        "ignore_patterns": [],
        "scene_extensions": list(DEFAULT_SCENE_EXTENSIONS),
        "verify_graph": True,
        "top_folders": DEFAULT_TOP_FOLDERS,
    }


def get_default_app_state() -> Dict[str, Any]:
    return {"version": CURRENT_CONFIG_VERSION, "last_session": get_default_config()}


def load_app_state() -> Dict[str, Any]:
    """
    Read the persisted state.

    Returns:
        Dict[str, Any]: The stored session layered over the defaults.
    """
    state = get_default_app_state()
    raw = _read_json(CONFIG_FILE)
    if raw is None:
        return state

    if not isinstance(raw, dict):
        logger.warning(f"Ignoring malformed config file '{CONFIG_FILE}'.")
        return state

    stored_version = raw.get("version")
    if stored_version != CURRENT_CONFIG_VERSION:
        logger.info(f"Upgrading config from version {stored_version!r} to {CURRENT_CONFIG_VERSION}.")

    session = raw.get("last_session")
    if isinstance(session, dict):
        state["last_session"].update(session)
    return state


def save_app_state(state: Dict[str, Any]) -> None:
    """Write the state stamped with the current version. Failures are logged."""
    payload = dict(state, version=CURRENT_CONFIG_VERSION)
    try:
        os.makedirs(os.path.dirname(CONFIG_FILE), exist_ok=True)
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=4)
    except OSError as e:
        logger.error(f"Could not write config file '{CONFIG_FILE}': {e}")
        return
    logger.debug(f"Session saved to {CONFIG_FILE}")


def load_config() -> Dict[str, Any]:
    return load_app_state()["last_session"]


def save_config(config: Dict[str, Any]) -> None:
    """Persist `config` as the last session."""
    state = load_app_state()
    state["last_session"] = config
    save_app_state(state)


def _read_json(path: str) -> Any:
    if not os.path.exists(path):
        logger.debug("No saved session found.")
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read config file '{path}': {e}. Using defaults.")
        return None
