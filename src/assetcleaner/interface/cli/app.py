from __future__ import annotations

"""
CLI controller.

Resolves the effective configuration (defaults or saved session, then
command-line overrides, then validation), drives one indexing cycle through
budgeted ticks and prints the unused-asset report as text or JSON.

Exit codes: 0 success, 1 indexing failure, 2 missing project directory,
130 interrupted.
"""

import json
import os
import sys
from typing import Any, Dict, List, Optional

from assetcleaner.core.pipeline.scheduler import IncrementalScheduler
from assetcleaner.core.pipeline.validator import validate_config
from assetcleaner.core.services.cache import CacheCodec
from assetcleaner.core.services.project import build_project_environment
from assetcleaner.domain.config import get_default_config, load_config, save_config
from assetcleaner.domain.constants import CACHE_FILE_NAME
from assetcleaner.infra.fs import resolve_cache_path
from assetcleaner.infra.logging import (
    LoggingConfig,
    configure_logging,
    get_default_log_path,
    get_logger,
    shutdown_logging,
)
from assetcleaner.interface.cli import args as cli_args
from assetcleaner.utils.units import bytes_to_string

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_PROJECT = 2
EXIT_INTERRUPTED = 130

_MERGEABLE_KEYS = (
    "project_path", "cache_path", "use_cache", "frame_budget_ms",
    "root_prefixes", "exclude_patterns", "ignore_patterns",
    "scene_extensions", "verify_graph", "top_folders",
)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the CLI.

    Args:
        argv: Arguments without the program name; defaults to sys.argv[1:].

    Returns:
        int: Process exit code.
    """
    _force_utf8_streams()

    args = cli_args.build_parser().parse_args(argv)
    log_file = get_default_log_path() if args.log_file == "" else args.log_file
    configure_logging(LoggingConfig.for_cli(debug=args.debug, log_file=log_file))

    base = get_default_config() if args.use_defaults else load_config()
    conf, warnings = validate_config(_merge_config(base, cli_args.args_to_overrides(args)), strict=False)
    for w in warnings:
        logger.warning(f"Configuration: {w}")

    if args.dump_config:
        print(json.dumps(conf, ensure_ascii=False, indent=2))
        return EXIT_OK

    project_path = conf["project_path"] = os.path.abspath(conf["project_path"])
    if not os.path.isdir(project_path):
        msg = f"Project directory does not exist: {project_path}"
        logger.error(msg)
        print(f"ERROR: {msg}", file=sys.stderr)
        return EXIT_NO_PROJECT

    if args.save_session:
        save_config(conf)

    cache_path = resolve_cache_path(project_path, conf["cache_path"], CACHE_FILE_NAME)
    codec = CacheCodec(cache_path)
    if args.clear_cache:
        codec.clear()

    scheduler = IncrementalScheduler(
        build_project_environment(conf).host(),
        codec,
        verify_graph=conf["verify_graph"],
        on_progress=_PhaseLogger(),
    )

    logger.info(f"Indexing project: {project_path}")
    try:
        _run_index(scheduler, use_cache=conf["use_cache"], budget_ms=conf["frame_budget_ms"])
    except KeyboardInterrupt:
        scheduler.cancel()
        logger.warning("Indexing interrupted by user.")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.critical(f"Indexing failed: {e}", exc_info=True)
        print(f"ERROR: Indexing failed: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        scheduler.close()
        shutdown_logging()

    report = build_report(
        scheduler,
        project_path=project_path,
        cache_path=cache_path,
        top_folders=conf["top_folders"],
        list_unused=args.list_unused,
    )
    if args.json_output:
        print(json.dumps(report, ensure_ascii=False, indent=2))
    else:
        _print_human_summary(report)
    return EXIT_OK


def _force_utf8_streams() -> None:
    if sys.platform != "win32":
        return
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(encoding="utf-8")


def _run_index(scheduler: IncrementalScheduler, *, use_cache: bool, budget_ms: float) -> None:
    scheduler.init(use_cache=use_cache)
    ticks = 1
    while scheduler.process_incremental(budget_ms):
        ticks += 1
    logger.debug(f"Index cycle completed in {ticks} ticks.")


class _PhaseLogger:
    """Progress callback that logs once per phase."""

    def __init__(self) -> None:
        self._phase = ""

    def __call__(self, progress: float, status: str) -> None:
        phase = status.split("...")[0]
        if phase != self._phase:
            self._phase = phase
            logger.debug(f"Progress {progress:.0%}: {status}")


def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay the known override keys that carry a value."""
    merged = dict(base)
    merged.update({k: overrides[k] for k in _MERGEABLE_KEYS if overrides.get(k) is not None})
    return merged


# -----------------------------------------------------------------------------
# REPORT
# -----------------------------------------------------------------------------

def build_report(
        scheduler: IncrementalScheduler,
        *,
        project_path: str,
        cache_path: str,
        top_folders: int,
        list_unused: bool = False,
) -> Dict[str, Any]:
    """
    Collect the published index state into a JSON-compatible report.

    Folders without unused assets are left out. The rest are ranked by
    reclaimable bytes, ties broken by name. With `list_unused`, an `unused`
    entry lists every unused asset sorted by path.
    """
    stats_by_folder = [(f, s) for f, s in scheduler.folders_with_stats.items() if not s.is_empty]
    stats_by_folder.sort(key=lambda item: (-item[1].total_bytes, item[0]))

    report: Dict[str, Any] = {
        "project_path": project_path,
        "cache_path": cache_path,
        "nodes": len(scheduler.graph),
        "edges": scheduler.graph.edge_count(),
        "unused_files": len(scheduler.unused_files),
        "unused_scenes": len(scheduler.unused_scenes),
        "unused_bytes": scheduler.total_unused_bytes(),
        "top_folders": [
            {"folder": f, "files": s.file_count, "scenes": s.scene_count, "bytes": s.total_bytes}
            for f, s in stats_by_folder[:top_folders]
        ],
    }

    if list_unused:
        entries = [{"path": p, "kind": "file", "bytes": b} for p, b in scheduler.unused_files.items()]
        entries += [{"path": p, "kind": "scene", "bytes": b} for p, b in scheduler.unused_scenes.items()]
        report["unused"] = sorted(entries, key=lambda e: e["path"])

    return report


def _print_human_summary(report: Dict[str, Any]) -> None:
    lines = [
        f"Project: {report['project_path']}",
        f"Indexed assets: {report['nodes']} ({report['edges']} references)",
        f"Unused files: {report['unused_files']}",
        f"Unused scenes: {report['unused_scenes']}",
        f"Reclaimable: {bytes_to_string(report['unused_bytes'])}",
    ]

    if report["top_folders"]:
        lines.append("\nTop folders by reclaimable size:")
        lines.extend(
            f"  - {e['folder']}: {bytes_to_string(e['bytes'])} ({e['files']} files, {e['scenes']} scenes)"
            for e in report["top_folders"]
        )

    if report.get("unused"):
        lines.append("\nUnused assets:")
        lines.extend(
            f"  - [{e['kind']}] {e['path']} ({bytes_to_string(e['bytes'])})"
            for e in report["unused"]
        )

    print("\n".join(lines))


if __name__ == "__main__":
    sys.exit(main())
