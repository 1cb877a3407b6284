"""Command-line interface for docsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- status: Show auth state and pending local changes
- sync: Run one synchronization cycle
- watch: Keep syncing on a schedule until interrupted
- sign-in: Allow synchronization cycles to run
- sign-out: Stop synchronization cycles from running
"""

from __future__ import annotations

import logging

import click

from docsync.client.cli.auth import sign_in, sign_out
from docsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_documents,
    get_server_config,
    get_store_path,
    get_sync_interval,
    load_config,
    save_config,
)
from docsync.client.cli.sync import status, sync, watch

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(package_name="docsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """docsync - Local-first JSON document synchronization."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


# Sync commands
cli.add_command(status)
cli.add_command(sync)
cli.add_command(watch)

# Auth commands
cli.add_command(sign_in)
cli.add_command(sign_out)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_documents",
    "get_server_config",
    "get_store_path",
    "get_sync_interval",
    "load_config",
    "save_config",
]
