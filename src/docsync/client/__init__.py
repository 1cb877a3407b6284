"""Client side: local stores, remote transports, sync engine and CLI."""
