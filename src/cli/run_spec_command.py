"""Run-spec CLI command wiring.

This module registers the run-spec and poll subcommands and delegates
execution to the shared run-spec engine used by CLI and SDK entry points.
"""

from __future__ import annotations

import argparse
from typing import Any

from store.flow_sdk import ConduitClient


def add_run_spec_command(subparsers: Any) -> None:
    """Register run-spec subcommand."""
    parser = subparsers.add_parser(
        "run-spec",
        help="Process every pending file of a declarative YAML stage chain once",
    )
    parser.add_argument("spec_file", help="Path to YAML run-spec file")


def run_run_spec_command(client: ConduitClient, args: argparse.Namespace) -> int:
    """Handle run-spec command invocation."""
    output_lines = client.run_spec(args.spec_file)
    for line in output_lines:
        print(line)
    return 0


def add_poll_command(subparsers: Any) -> None:
    """Register poll subcommand."""
    parser = subparsers.add_parser(
        "poll",
        help="Poll the stages of a YAML run-spec on a timer",
    )
    parser.add_argument("spec_file", help="Path to YAML run-spec file")
    parser.add_argument(
        "--duration",
        type=float,
        required=True,
        help="Seconds to keep polling before stopping",
    )


def run_poll_command(client: ConduitClient, args: argparse.Namespace) -> int:
    """Handle poll command invocation."""
    if args.duration <= 0:
        print("--duration must be greater than 0")
        return 2
    output_lines = client.poll(args.spec_file, args.duration)
    for line in output_lines:
        print(line)
    return 0
