"""Conduit CLI entry points.
This module exposes commands for stage chains, snapshots, and intake logs.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from cli.run_spec_command import (
    add_poll_command,
    add_run_spec_command,
    run_poll_command,
    run_run_spec_command,
)
from core.config import ConduitConfig
from core.errors import ConduitError
from store.flow_sdk import ConduitClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="conduit", description="Conduit ETL pipeline CLI")
    parser.add_argument("--data-root", help="Override CONDUIT_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_run_spec_command(subparsers)
    add_poll_command(subparsers)
    _add_snapshots_command(subparsers)
    _add_intake_command(subparsers)
    _add_next_batch_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Conduit CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root)
        return _dispatch(parser, client, args)
    except ConduitError as error:
        print(f"error: {error}")
        return 1


def _dispatch(
    parser: argparse.ArgumentParser,
    client: ConduitClient,
    args: argparse.Namespace,
) -> int:
    if args.command == "run-spec":
        return run_run_spec_command(client, args)
    if args.command == "poll":
        return run_poll_command(client, args)
    if args.command == "snapshots":
        return _run_snapshots_command(client, args)
    if args.command == "intake":
        return _run_intake_command(client, args)
    if args.command == "next-batch":
        return _run_next_batch_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None) -> ConduitClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = ConduitConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return ConduitClient(config)


def _run_snapshots_command(client: ConduitClient, args: argparse.Namespace) -> int:
    """Handle snapshots command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    for snapshot in client.list_snapshots(args.dir, args.pipeline):
        print(
            f"{snapshot.process_name}\t"
            f"{snapshot.batch.batch_id}\t"
            f"{snapshot.processed_count}\t"
            f"{len(snapshot.valid_items)}\t"
            f"{len(snapshot.errors)}\t"
            f"{snapshot.target_address or '-'}"
        )
    return 0


def _run_intake_command(client: ConduitClient, args: argparse.Namespace) -> int:
    """Handle intake command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    for entry in client.intake_entries(args.entity, args.code):
        print(
            f"{entry.address_id}\t"
            f"{entry.batch_id}\t"
            f"{entry.date_last_updated.isoformat()}\t"
            f"{entry.target_address_id or '-'}"
        )
    return 0


def _run_next_batch_command(client: ConduitClient, args: argparse.Namespace) -> int:
    """Handle next-batch command."""
    batch = client.next_batch(args.code)
    print(batch.batch_id)
    return 0


def _add_snapshots_command(subparsers: Any) -> None:
    """Register snapshots subcommand."""
    parser = subparsers.add_parser("snapshots", help="List snapshots in a stage output directory")
    parser.add_argument("dir", help="Stage output directory")
    parser.add_argument("--pipeline", help="Only list snapshots of this pipeline")


def _add_intake_command(subparsers: Any) -> None:
    """Register intake subcommand."""
    parser = subparsers.add_parser("intake", help="List intake log entries")
    parser.add_argument("--entity", required=True, help="Entity type id")
    parser.add_argument("--code", required=True, help="Flow code")


def _add_next_batch_command(subparsers: Any) -> None:
    """Register next-batch subcommand."""
    parser = subparsers.add_parser("next-batch", help="Mint the next batch id for a flow code")
    parser.add_argument("code", help="Flow code")
