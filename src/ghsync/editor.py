"""Interactive flows used by editor integrations.

The editor owns its widgets; it hands them to these flows through the
:class:`Prompter` protocol. Every flow ends in the same engine calls the CLI
uses, so both surfaces converge on the same repository state.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from ghsync.core.engine import InvalidInputError, build_create_request, build_engine, validate_repo_name
from ghsync.core.models import IdentityStatus, SyncResult, Visibility
from ghsync.core.planner import REMOTE_MISSING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ghsync.core.engine import ConvergenceEngine


CREATE_ACTION = "Create Repository"
CANCEL_ACTION = "Cancel"
LOGIN_ACTION = "Login Now"
INSTALL_ACTION = "Install Instructions"

VISIBILITY_CHOICES: tuple[tuple[str, str], ...] = (
    (Visibility.PUBLIC.value, "Anyone can see this repository"),
    (Visibility.PRIVATE.value, "Only you can see this repository"),
)


class Prompter(Protocol):
    """Widgets supplied by the editor. ``None`` means the user dismissed the prompt."""

    def ask_text(
        self,
        prompt: str,
        *,
        value: str = "",
        placeholder: str = "",
        validate: Callable[[str], str | None] | None = None,
    ) -> str | None: ...

    def pick(self, prompt: str, choices: Sequence[tuple[str, str]]) -> str | None: ...

    def choose_action(self, message: str, actions: Sequence[str], *, error: bool = False) -> str | None: ...

    def show_info(self, message: str) -> None: ...

    def show_error(self, message: str) -> None: ...


def validate_name_input(value: str) -> str | None:
    """Return an error message for the name input box, or ``None`` when valid."""
    if not value:
        return "Name is required"
    try:
        validate_repo_name(value)
    except InvalidInputError:
        return "Invalid characters in name"
    return None


def _report_failure(prompter: Prompter, prefix: str, result: SyncResult) -> None:
    error = result.error
    if error is None:
        return
    message = f"{prefix}: {error.message}"
    if error.hint:
        message = f"{message} ({error.hint})"
    prompter.show_error(message)


def _ensure_identity(prompter: Prompter, engine: ConvergenceEngine) -> bool:
    probe = engine.probe_identity()
    if probe.status is IdentityStatus.TOOL_MISSING:
        prompter.choose_action("GitHub CLI not installed", [INSTALL_ACTION], error=True)
        return False
    if not probe.authenticated:
        prompter.choose_action("Not logged into GitHub CLI. Run: gh auth login", [LOGIN_ACTION], error=True)
        return False
    return True


def create_repository_interactive(
    workspace: Path | str | None,
    prompter: Prompter,
    *,
    engine: ConvergenceEngine | None = None,
) -> SyncResult | None:
    """Ask for name, description and visibility, then create the hosted repository.

    Returns ``None`` when the flow was cancelled or could not start.
    """
    if workspace is None:
        prompter.show_error("Open a workspace first")
        return None
    engine = engine or build_engine()
    if not _ensure_identity(prompter, engine):
        return None

    name = prompter.ask_text("Repository name", value=Path(workspace).name, validate=validate_name_input)
    if not name:
        return None
    description = prompter.ask_text(
        "Description (optional)",
        placeholder="A brief description of your project",
    )
    # No default visibility: dismissing the picker aborts.
    visibility = prompter.pick("Repository visibility", VISIBILITY_CHOICES)
    if visibility is None:
        return None

    try:
        request = build_create_request(name, visibility, description)
    except InvalidInputError as exc:
        prompter.show_error(str(exc))
        return None

    result = engine.create_remote(workspace, request)
    if result.succeeded:
        prompter.show_info(f"Repository created: {result.url}")
    else:
        _report_failure(prompter, "Failed to create repo", result)
    return result


def quick_push(
    workspace: Path | str | None,
    prompter: Prompter,
    *,
    engine: ConvergenceEngine | None = None,
) -> SyncResult | None:
    """Synchronize the workspace, offering to create the remote when none exists."""
    if workspace is None:
        prompter.show_error("Open a workspace first")
        return None
    engine = engine or build_engine()
    result = engine.synchronize(workspace)
    if result.succeeded:
        prompter.show_info(f"Pushed to {result.url}")
        return result

    if result.error is not None and result.error.code == REMOTE_MISSING:
        action = prompter.choose_action(
            "No GitHub remote found. Create a repository?",
            [CREATE_ACTION, CANCEL_ACTION],
        )
        if action == CREATE_ACTION:
            return create_repository_interactive(workspace, prompter, engine=engine)
        return result

    _report_failure(prompter, "Push failed", result)
    return result


__all__ = [
    "VISIBILITY_CHOICES",
    "Prompter",
    "create_repository_interactive",
    "quick_push",
    "validate_name_input",
]
