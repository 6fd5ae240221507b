"""Classification of external tool failures into :class:`ErrorKind` values."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ghsync.core.models import ErrorKind, SyncError
from ghsync.git.facade import CommandError, ToolNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable

_TOOL_MISSING_MARKERS = (
    "command not found",
    "not recognized as an internal or external command",
)

_AUTH_MARKERS = (
    "gh auth login",
    "not logged in",
    "not logged into",
    "authentication required",
    "authentication failed",
    "bad credentials",
    "http 401",
    "requires authentication",
)

_LOCAL_CONFLICT_MARKERS = (
    "merge conflict",
    "conflict (",
    "unmerged",
    "not a git repository",
    "index.lock",
    "please tell me who you are",
    "author identity unknown",
    "you have not concluded your merge",
    "rebase in progress",
    "src refspec",
)

_REMOTE_MARKERS = (
    "name already exists",
    "already exists on this account",
    "permission denied",
    "permission to",
    "http 403",
    "http 404",
    "http 422",
    "could not resolve host",
    "unable to access",
    "could not read from remote repository",
    "[rejected]",
    "failed to push",
    "connection refused",
    "connection timed out",
    "network is unreachable",
    "repository not found",
    "timed out",
)

_HTTP_5XX = re.compile(r"http 5\d\d")

HINTS: dict[ErrorKind, str] = {
    ErrorKind.TOOL_MISSING: "Install the required command line tool (GitHub CLI: https://cli.github.com).",
    ErrorKind.AUTH_UNAVAILABLE: "Run: gh auth login",
    ErrorKind.INVALID_INPUT: "Check the working directory and repository name, then try again.",
    ErrorKind.NETWORK_OR_REMOTE_REJECTED: (
        "Check connectivity and permissions, or choose another repository name if it already exists."
    ),
    ErrorKind.LOCAL_STATE_CONFLICT: "Resolve the local git state (conflicts, locks, identity) and retry.",
    ErrorKind.UNKNOWN: "Inspect the execution log for the failing command.",
}


def _contains_any(text: str, markers: Iterable[str]) -> bool:
    return any(marker in text for marker in markers)


def classify_output(text: str) -> ErrorKind:
    """Return the error kind suggested by a tool's combined output."""
    lowered = text.lower()
    if _contains_any(lowered, _TOOL_MISSING_MARKERS):
        return ErrorKind.TOOL_MISSING
    if _contains_any(lowered, _AUTH_MARKERS):
        return ErrorKind.AUTH_UNAVAILABLE
    if _contains_any(lowered, _LOCAL_CONFLICT_MARKERS):
        return ErrorKind.LOCAL_STATE_CONFLICT
    if _contains_any(lowered, _REMOTE_MARKERS) or _HTTP_5XX.search(lowered):
        return ErrorKind.NETWORK_OR_REMOTE_REJECTED
    return ErrorKind.UNKNOWN


def classify_failure(error: BaseException) -> SyncError:
    """Translate an exception raised while running a step into a :class:`SyncError`."""
    if isinstance(error, ToolNotFoundError):
        kind = ErrorKind.TOOL_MISSING
        message = str(error)
    elif isinstance(error, CommandError):
        kind = classify_output(error.output)
        message = error.stderr.strip() or error.stdout.strip() or str(error)
    elif isinstance(error, OSError):
        kind = ErrorKind.LOCAL_STATE_CONFLICT
        message = error.strerror or str(error)
    else:
        kind = ErrorKind.UNKNOWN
        message = str(error) or type(error).__name__
    return SyncError(kind=kind, message=message, hint=HINTS[kind])


__all__ = ["HINTS", "classify_failure", "classify_output"]
