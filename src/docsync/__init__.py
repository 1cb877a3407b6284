"""docsync - Local-first JSON document synchronization."""

__version__ = "0.1.0"
