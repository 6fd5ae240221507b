"""Bootstrap a directory into a GitHub-backed git repository and keep it pushed."""

from ghsync.api import create_remote, synchronize

__all__ = ["create_remote", "synchronize"]

__version__ = "0.1.0"
