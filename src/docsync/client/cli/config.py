"""Configuration utilities for the docsync CLI.

This module provides shared configuration functions used across CLI commands.
The config file is optional; every setting has a default.

Example ~/.docsync/config.json:
    {
        "server_url": "https://docs.example.com",
        "auth_token": "...",
        "sync_interval": 60,
        "documents": [{"id": "work.tasks", "local_key": "tasks.v1"}]
    }
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from docsync.core.config import (
    DEFAULT_SYNC_INTERVAL,
    SYNCABLE_DOCUMENTS,
    DocumentDescriptor,
    ServerConfig,
)

# Overrides the config directory (tests, multiple accounts)
CONFIG_DIR_ENV = "DOCSYNC_HOME"


def get_config_dir() -> Path:
    """Get the configuration directory for docsync.

    Returns:
        Path from $DOCSYNC_HOME, or ~/.docsync.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".docsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_store_path(config: dict[str, Any]) -> Path:
    """Get the local store database path.

    Returns:
        Configured store_path, or store.db in the config directory.
    """
    if config.get("store_path"):
        return Path(config["store_path"]).expanduser().resolve()
    return get_config_dir() / "store.db"


def get_documents(config: dict[str, Any]) -> tuple[DocumentDescriptor, ...]:
    """Get the registered document table (configured or built-in)."""
    entries = config.get("documents")
    if not entries:
        return SYNCABLE_DOCUMENTS
    return tuple(DocumentDescriptor.from_dict(entry) for entry in entries)


def get_sync_interval(config: dict[str, Any]) -> float:
    """Get seconds between scheduled cycles."""
    return float(config.get("sync_interval", DEFAULT_SYNC_INTERVAL))


def get_server_config(config: dict[str, Any]) -> ServerConfig | None:
    """Get remote server settings.

    Returns:
        ServerConfig if a server is configured, None to use the local remote.
    """
    if not config.get("server_url") or not config.get("auth_token"):
        return None
    return ServerConfig(
        server_url=config["server_url"],
        token=config["auth_token"],
        timeout=float(config.get("timeout", 30.0)),
        verify_ssl=bool(config.get("verify_ssl", True)),
    )
