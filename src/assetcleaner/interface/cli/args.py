from __future__ import annotations

"""
CLI argument schema.

`build_parser` declares the options in argparse groups. `args_to_overrides`
maps the parsed namespace onto configuration keys, leaving out anything the
user did not set so that the saved session stays in effect.
"""

import argparse
from typing import Any, Dict, List, Optional

# Options given as comma-separated lists, by configuration key
_CSV_OPTIONS = ("root_prefixes", "exclude_patterns", "ignore_patterns", "scene_extensions")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="assetcleaner",
        description="Index asset references of a project and report unused assets.",
    )

    paths = p.add_argument_group("paths")
    paths.add_argument("-p", "--project", dest="project_path",
                       help="Project root directory (default: last session or current directory).")
    paths.add_argument("--cache", dest="cache_path",
                       help="Cache file location (default: <project>/Library/AssetCleanerCache.bin).")

    scope = p.add_argument_group("indexing scope")
    scope.add_argument("--roots", dest="root_prefixes",
                       help="Comma-separated content roots, e.g. 'Assets,Packages'.")
    scope.add_argument("--exclude", dest="exclude_patterns",
                       help="Comma-separated regexes of paths kept out of the graph.")
    scope.add_argument("--ignore", dest="ignore_patterns",
                       help="Comma-separated regexes of paths never reported as unused.")
    scope.add_argument("--scene-ext", dest="scene_extensions",
                       help="Comma-separated extensions reported as scenes (default: .unity).")

    run = p.add_argument_group("scheduling and cache")
    run.add_argument("--budget-ms", dest="frame_budget_ms", type=float,
                     help="Time budget of each indexing tick in milliseconds.")
    run.add_argument("--no-cache", action="store_true",
                     help="Skip loading the index cache; a fresh cache is still written.")
    run.add_argument("--clear-cache", action="store_true",
                     help="Delete the index cache before indexing.")
    run.add_argument("--no-verify", action="store_true",
                     help="Skip the reference graph consistency check.")

    report = p.add_argument_group("report")
    report.add_argument("--top", dest="top_folders", type=int,
                        help="Number of folders listed in the report.")
    report.add_argument("--list", dest="list_unused", action="store_true",
                        help="List every unused asset.")
    report.add_argument("--json", dest="json_output", action="store_true",
                        help="Print the report as JSON.")

    session = p.add_argument_group("session and diagnostics")
    session.add_argument("--use-defaults", action="store_true",
                         help="Ignore the saved session and start from the defaults.")
    session.add_argument("--save-session", action="store_true",
                         help="Remember the effective configuration as the last session.")
    session.add_argument("--dump-config", action="store_true",
                         help="Print the effective configuration and exit.")
    session.add_argument("--debug", action="store_true",
                         help="Log at DEBUG level.")
    session.add_argument("--log-file", dest="log_file", nargs="?", const="", metavar="PATH",
                         help="Also write log records to a rotating file "
                              "(the user data directory when PATH is omitted).")

    return p


def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Map parsed arguments onto configuration keys.

    Path, budget and count keys are always present (None when unset); list
    and switch keys only when given.
    """
    overrides: Dict[str, Any] = {
        key: getattr(args, key)
        for key in ("project_path", "cache_path", "frame_budget_ms", "top_folders")
    }

    for key in _CSV_OPTIONS:
        value = getattr(args, key)
        if value:
            overrides[key] = _split_csv(value)

    if args.no_cache:
        overrides["use_cache"] = False
    if args.no_verify:
        overrides["verify_graph"] = False

    return overrides


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]
