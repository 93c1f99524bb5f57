from __future__ import annotations

"""
Unit tests for CLI Argument Parsing.

Verifies:
1. Mapping of CLI flags to configuration keys.
2. CSV string parsing logic.
3. Handling of boolean flags (store_true).
"""

from assetcleaner.interface.cli.args import args_to_overrides, build_parser


def parse_args(arg_list):
    """Helper to simulate CLI argument parsing."""
    parser = build_parser()
    return parser.parse_args(arg_list)


def test_cli_simple_flags_mapping():
    """Verify boolean flags are mapped correctly to config overrides."""
    args = parse_args(["--no-cache", "--no-verify", "--json", "--list"])

    overrides = args_to_overrides(args)

    assert overrides["use_cache"] is False
    assert overrides["verify_graph"] is False
    assert args.json_output is True
    assert args.list_unused is True


def test_cli_csv_list_parsing():
    """Verify comma-separated strings are parsed into lists."""
    args = parse_args([
        "--roots", "Assets, Packages",
        "--ignore", "^Assets/Plugins/,,\\.txt$",
        "--scene-ext", ".unity,.scene",
    ])

    overrides = args_to_overrides(args)

    assert overrides["root_prefixes"] == ["Assets", "Packages"]
    assert overrides["ignore_patterns"] == ["^Assets/Plugins/", "\\.txt$"]
    assert overrides["scene_extensions"] == [".unity", ".scene"]
    assert "exclude_patterns" not in overrides


def test_cli_typed_values():
    args = parse_args(["-p", "/tmp/project", "--budget-ms", "2.5", "--top", "3"])

    overrides = args_to_overrides(args)

    assert overrides["project_path"] == "/tmp/project"
    assert overrides["frame_budget_ms"] == 2.5
    assert overrides["top_folders"] == 3


def test_cli_defaults_leave_config_untouched():
    overrides = args_to_overrides(parse_args([]))

    assert overrides["project_path"] is None
    assert overrides["cache_path"] is None
    assert "use_cache" not in overrides
    assert "verify_graph" not in overrides


def test_cli_log_file_is_not_a_config_override():
    args = parse_args(["--debug", "--log-file", "/tmp/assetcleaner.log"])

    overrides = args_to_overrides(args)

    assert args.debug is True
    assert args.log_file == "/tmp/assetcleaner.log"
    assert "log_file" not in overrides


def test_cli_log_file_without_path_selects_default_location():
    assert parse_args(["--log-file"]).log_file == ""
    assert parse_args([]).log_file is None
