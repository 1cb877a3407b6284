"""Auth commands for the docsync CLI.

Commands:
- sign-in: Allow synchronization cycles to run, optionally against a server
- sign-out: Stop synchronization cycles from running
"""

from __future__ import annotations

from typing import Any

import click

from docsync.client.cli.config import get_store_path, load_config, save_config
from docsync.client.store import SqliteStore
from docsync.core.config import AUTH_STORAGE_KEY, ServerConfig
from docsync.core.types import AuthStatus


def _set_auth(config: dict[str, Any], status: AuthStatus) -> None:
    with SqliteStore(get_store_path(config)) as store:
        store.set(AUTH_STORAGE_KEY, status.value)


@click.command("sign-in")
@click.option("--server", default=None, help="Document server URL (e.g., https://docs.example.com).")
@click.option("--token", default=None, help="Bearer token for the server account.")
def sign_in(server: str | None, token: str | None) -> None:
    """Allow synchronization cycles to run.

    With --server and --token, documents sync with that server from now on.
    Without them, the previously configured remote is kept.
    """
    if (server is None) != (token is None):
        raise click.UsageError("--server and --token must be given together.")

    config = load_config()
    if server is not None and token is not None:
        server_config = ServerConfig(server_url=server, token=token)
        if not server_config.is_secure:
            click.echo("Warning: Server uses plain HTTP; the token is sent unencrypted.", err=True)
        config["server_url"] = server_config.server_url
        config["auth_token"] = server_config.token
        save_config(config)

    _set_auth(config, AuthStatus.SIGNED_IN)
    click.echo("Signed in. Run 'docsync sync' to synchronize now.")


@click.command("sign-out")
def sign_out() -> None:
    """Stop synchronization cycles from running.

    Local documents are kept; they sync again after signing back in.
    """
    _set_auth(load_config(), AuthStatus.SIGNED_OUT)
    click.echo("Signed out.")
