"""Session API routes."""

from . import deps, reconstruction, sessions, sync

__all__ = ["deps", "reconstruction", "sessions", "sync"]
