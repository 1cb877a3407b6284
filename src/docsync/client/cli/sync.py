"""Sync commands for the docsync CLI.

Commands:
- status: Show auth state and pending local changes
- sync: Run one synchronization cycle
- watch: Keep syncing on a schedule until interrupted
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import sys
from collections.abc import AsyncIterator
from typing import Any

import click

from docsync.client.api import HTTPTransport, RemoteTransport, StoreTransport
from docsync.client.cli.config import (
    get_documents,
    get_server_config,
    get_store_path,
    get_sync_interval,
    load_config,
)
from docsync.client.store import SqliteStore, load_json_object
from docsync.client.sync import SyncEngine, SyncSnapshot
from docsync.core.config import AUTH_STORAGE_KEY, SHADOW_STORAGE_KEY
from docsync.core.types import AuthStatus, SyncStatus


@contextlib.asynccontextmanager
async def open_transport(
    config: dict[str, Any], store: SqliteStore
) -> AsyncIterator[RemoteTransport]:
    """Open the configured remote transport.

    Uses the HTTP server when one is configured, otherwise the remote root
    kept in the local store.
    """
    server_config = get_server_config(config)
    if server_config is None:
        yield StoreTransport(store)
        return

    async with HTTPTransport(server_config) as transport:
        yield transport


def format_snapshot(snapshot: SyncSnapshot) -> str:
    """Render a snapshot as a single status line."""
    line = (
        f"[{snapshot.status.value}] pending={snapshot.pending_changes} "
        f"conflicts={snapshot.conflict_count} retries={snapshot.retries}"
    )
    if snapshot.error_message:
        line += f" error={snapshot.error_message!r}"
    return line


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print status as JSON.")
def status(as_json: bool) -> None:
    """Show auth state and pending local changes."""
    config = load_config()
    documents = get_documents(config)

    with SqliteStore(get_store_path(config)) as store:
        engine = SyncEngine(store, StoreTransport(store), documents)
        snapshot = engine.snapshot
        shadow = load_json_object(store, SHADOW_STORAGE_KEY)

    if as_json:
        data = snapshot.to_dict()
        data["synced_documents"] = sorted(shadow)
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"Auth:            {snapshot.auth_status.value}")
    click.echo(f"Pending changes: {snapshot.pending_changes}")
    click.echo(f"Synced docs:     {len(shadow)}/{len(documents)}")


async def _sync_once(config: dict[str, Any], store: SqliteStore, reason: str) -> SyncSnapshot:
    async with open_transport(config, store) as transport:
        engine = SyncEngine(store, transport, get_documents(config))
        return await engine.sync_now(reason)


@click.command()
@click.option("--reason", default="manual", show_default=True, help="Reason shown in error messages.")
def sync(reason: str) -> None:
    """Run one synchronization cycle.

    Pulls every registered document, merges it with the local copy and
    pushes the result back.
    """
    config = load_config()

    with SqliteStore(get_store_path(config)) as store:
        if AuthStatus.parse(store.get(AUTH_STORAGE_KEY)) != AuthStatus.SIGNED_IN:
            click.echo("Error: Not signed in. Run 'docsync sign-in' first.", err=True)
            sys.exit(1)

        snapshot = asyncio.run(_sync_once(config, store, reason))

    if snapshot.status == SyncStatus.ERROR:
        click.echo(f"Error: {snapshot.error_message}", err=True)
        sys.exit(1)

    click.echo(
        f"Sync complete: {snapshot.conflict_count} conflict(s) resolved, "
        f"{snapshot.pending_changes} pending change(s)."
    )


async def _watch(config: dict[str, Any], store: SqliteStore, interval: float) -> None:
    async with open_transport(config, store) as transport:
        engine = SyncEngine(
            store, transport, get_documents(config), sync_interval=interval
        )
        unsubscribe = engine.subscribe(lambda snapshot: click.echo(format_snapshot(snapshot)))
        engine.start()
        try:
            await asyncio.Event().wait()
        finally:
            await engine.stop()
            unsubscribe()


@click.command()
@click.option("--interval", type=float, default=None, help="Seconds between cycles.")
def watch(interval: float | None) -> None:
    """Keep syncing on a schedule until interrupted."""
    config = load_config()
    interval = interval if interval is not None else get_sync_interval(config)

    with SqliteStore(get_store_path(config)) as store:
        click.echo(f"Watching (every {interval:.0f}s). Press Ctrl+C to stop.")
        try:
            asyncio.run(_watch(config, store, interval))
        except KeyboardInterrupt:
            click.echo("Stopped.")
