"""Compute the ordered remediation steps that converge a repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ghsync.core.errors import HINTS
from ghsync.core.models import (
    ActionPlan,
    ActionStep,
    CreateRequest,
    ErrorKind,
    IdentityStatus,
    RepositoryState,
    StepKind,
    SyncError,
)

if TYPE_CHECKING:
    from collections.abc import Callable


REMOTE_MISSING = "remote-missing"


@dataclass(frozen=True, slots=True)
class StepRule:
    """Bind a step kind to the function that decides whether it is needed."""

    kind: StepKind
    build: Callable[[RepositoryState, CreateRequest | None], ActionStep | None]


def _tree_changes(state: RepositoryState) -> bool:
    # Writing the ignore file dirties the tree within the same cycle.
    return state.has_pending_changes or not state.ignore_rules_present


def _needs_commit(state: RepositoryState) -> bool:
    return not state.has_commits or _tree_changes(state)


def _build_init(state: RepositoryState, _: CreateRequest | None) -> ActionStep | None:
    if state.version_control_initialized:
        return None
    return ActionStep(
        kind=StepKind.INITIALIZE_VERSION_CONTROL,
        rationale="The directory has no git metadata yet.",
    )


def _build_ignore(state: RepositoryState, _: CreateRequest | None) -> ActionStep | None:
    if state.ignore_rules_present:
        return None
    return ActionStep(
        kind=StepKind.WRITE_DEFAULT_IGNORE_RULES,
        rationale="No ignore file exists; write the universal rules plus detected ecosystems.",
        params={"ecosystems": ",".join(state.ecosystems)},
    )


def _build_stage(state: RepositoryState, _: CreateRequest | None) -> ActionStep | None:
    if not _needs_commit(state):
        return None
    return ActionStep(
        kind=StepKind.STAGE_ALL_CHANGES,
        rationale="Stage every tracked and untracked change ahead of the commit.",
    )


def _build_initial_commit(state: RepositoryState, _: CreateRequest | None) -> ActionStep | None:
    if state.has_commits:
        return None
    return ActionStep(
        kind=StepKind.CREATE_INITIAL_COMMIT,
        rationale="The branch has no commits to publish.",
    )


def _build_pending_commit(state: RepositoryState, _: CreateRequest | None) -> ActionStep | None:
    if not (state.has_commits and _tree_changes(state)):
        return None
    return ActionStep(
        kind=StepKind.COMMIT_PENDING_CHANGES,
        rationale="The working tree differs from the last commit.",
    )


def _build_create_remote(state: RepositoryState, request: CreateRequest | None) -> ActionStep | None:
    if state.remote_configured or request is None:
        return None
    params = {"name": request.name, "visibility": request.visibility.value}
    if request.description:
        params["description"] = request.description
    return ActionStep(
        kind=StepKind.CREATE_REMOTE_AND_PUSH,
        rationale="No remote is configured; create the hosted repository and push to it.",
        params=params,
    )


def _build_push(state: RepositoryState, _: CreateRequest | None) -> ActionStep | None:
    if not state.remote_configured:
        return None
    return ActionStep(
        kind=StepKind.PUSH_TO_EXISTING_REMOTE,
        rationale="Publish local history to the configured remote.",
        params={"url": state.remote_url or ""},
    )


STEP_RULES: tuple[StepRule, ...] = (
    StepRule(StepKind.INITIALIZE_VERSION_CONTROL, _build_init),
    StepRule(StepKind.WRITE_DEFAULT_IGNORE_RULES, _build_ignore),
    StepRule(StepKind.STAGE_ALL_CHANGES, _build_stage),
    StepRule(StepKind.CREATE_INITIAL_COMMIT, _build_initial_commit),
    StepRule(StepKind.COMMIT_PENDING_CHANGES, _build_pending_commit),
    StepRule(StepKind.CREATE_REMOTE_AND_PUSH, _build_create_remote),
    StepRule(StepKind.PUSH_TO_EXISTING_REMOTE, _build_push),
)


def _blocking_error(state: RepositoryState, request: CreateRequest | None) -> SyncError | None:
    if not state.version_control_available:
        return SyncError(
            kind=ErrorKind.TOOL_MISSING,
            message="git is not installed or not on PATH",
            hint="Install git: https://git-scm.com/downloads",
            code="git-missing",
        )
    identity = state.identity
    if identity.status is IdentityStatus.TOOL_MISSING:
        return SyncError(
            kind=ErrorKind.TOOL_MISSING,
            message=identity.detail or "GitHub CLI (gh) is not installed",
            hint=HINTS[ErrorKind.TOOL_MISSING],
            code="gh-missing",
        )
    if not identity.authenticated:
        return SyncError(
            kind=ErrorKind.AUTH_UNAVAILABLE,
            message=identity.detail or "Not logged into the GitHub CLI",
            hint=HINTS[ErrorKind.AUTH_UNAVAILABLE],
            code="not-authenticated",
        )
    if not state.remote_configured and request is None:
        return SyncError(
            kind=ErrorKind.INVALID_INPUT,
            message="No remote is configured and no repository name and visibility were supplied",
            hint="Create the repository first, passing a name and --visibility public|private.",
            code=REMOTE_MISSING,
        )
    return None


class ConvergencePlanner:
    """Turn a :class:`RepositoryState` into an :class:`ActionPlan`."""

    def __init__(self, rules: tuple[StepRule, ...] = STEP_RULES) -> None:
        self.rules = rules

    def plan(self, state: RepositoryState, request: CreateRequest | None = None) -> ActionPlan:
        """Return the minimal ordered plan, or a blocked plan with no steps."""
        error = _blocking_error(state, request)
        if error is not None:
            return ActionPlan(error=error, notes=[f"blocked: {error.kind.value}"])

        steps: list[ActionStep] = []
        for rule in self.rules:
            step = rule.build(state, request)
            if step is not None:
                steps.append(step)

        notes: list[str] = []
        if state.remote_configured and request is not None:
            notes.append(f"remote already configured; reusing {state.remote_url or 'existing remote'}")
        return ActionPlan(steps=steps, notes=notes)


__all__ = ["REMOTE_MISSING", "STEP_RULES", "ConvergencePlanner", "StepRule"]
