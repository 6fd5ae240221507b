"""Caller-facing entry points shared by the CLI and the editor bridge."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ghsync.core.engine import InvalidInputError, build_create_request, build_engine
from ghsync.core.errors import HINTS
from ghsync.core.models import ErrorKind, SyncResult

if TYPE_CHECKING:
    from pathlib import Path

    from ghsync.core.engine import ConvergenceEngine
    from ghsync.core.models import CreateRequest, Visibility


def synchronize(
    path: Path | str,
    request: CreateRequest | None = None,
    *,
    engine: ConvergenceEngine | None = None,
) -> SyncResult:
    """Commit and push ``path``, creating the hosted repository from ``request`` when absent."""
    return (engine or build_engine()).synchronize(path, request)


def create_remote(
    path: Path | str,
    *,
    name: str,
    visibility: Visibility | str | None,
    description: str | None = None,
    engine: ConvergenceEngine | None = None,
) -> SyncResult:
    """Create the hosted repository for ``path`` with explicit metadata.

    The name and visibility are validated before any subprocess runs.
    """
    try:
        request = build_create_request(name, visibility, description)
    except InvalidInputError as exc:
        return SyncResult.failure(ErrorKind.INVALID_INPUT, str(exc), hint=HINTS[ErrorKind.INVALID_INPUT])
    return (engine or build_engine()).create_remote(path, request)


__all__ = ["create_remote", "synchronize"]
