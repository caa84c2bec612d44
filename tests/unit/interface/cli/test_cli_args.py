from __future__ import annotations

"""
Unit tests for CLI Argument Parsing.

Verifies:
1. Mapping of CLI flags to configuration keys.
2. Omitted options leave the configuration file values alone.
3. Handling of boolean flags (store_true).
"""

import pytest

from pyinitramfs.interface.cli.args import args_to_overrides, build_parser


def parse_args(arg_list):
    """Helper to simulate CLI argument parsing."""
    parser = build_parser()
    return parser.parse_args(arg_list)


def test_cli_no_arguments_gives_no_overrides():
    assert args_to_overrides(parse_args([])) == {}


def test_cli_full_mapping():
    args = parse_args([
        "/bin/app",
        "-f", "/bin/sh",
        "--file", "/etc/motd",
        "-l",
        "--lib-search-path", "/opt/app/lib",
        "--discoverer", "elf",
        "--source-root", "/srv/sysroot",
        "-o", "out.cpio",
        "--dry-run",
    ])

    assert args_to_overrides(args) == {
        "init_path": "/bin/app",
        "files": ["/bin/sh", "/etc/motd"],
        "resolve_libs": True,
        "lib_search_path": "/opt/app/lib",
        "discoverer": "elf",
        "source_root": "/srv/sysroot",
        "output": "out.cpio",
        "dry_run": True,
    }


def test_cli_diagnostic_flags_are_not_overrides():
    args = parse_args(["--debug", "--dump-config", "--log-file", "b.log", "-c", "b.json"])

    assert args.debug is True
    assert args.dump_config is True
    assert args.log_file == "b.log"
    assert args.config_file == "b.json"
    assert args_to_overrides(args) == {}


def test_cli_rejects_unknown_discoverer():
    with pytest.raises(SystemExit):
        parse_args(["--discoverer", "objdump"])
