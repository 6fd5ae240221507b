"""Pydantic models describing repository state, plans, and results."""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

REPO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def is_valid_repo_name(name: str) -> bool:
    """Return ``True`` when ``name`` only contains letters, digits, ``.``, ``_`` or ``-``."""
    return bool(REPO_NAME_PATTERN.fullmatch(name))


class IdentityStatus(StrEnum):
    """Outcome of the hosting CLI identity probe."""

    AUTHENTICATED = "authenticated"
    TOOL_MISSING = "tool-missing"
    NOT_AUTHENTICATED = "not-authenticated"


class Identity(BaseModel):
    """Authenticated hosting user."""

    model_config = ConfigDict(frozen=True)

    login: str
    name: str = ""
    email: str = ""

    @classmethod
    def from_api_payload(cls, payload: dict[str, Any]) -> Identity:
        """Build an identity from ``gh api user`` JSON, defaulting optional fields."""
        login = payload.get("login")
        if not isinstance(login, str) or not login:
            message = "user payload is missing a login"
            raise ValueError(message)
        name = payload.get("name")
        email = payload.get("email")
        return cls(
            login=login,
            name=name if isinstance(name, str) and name else login,
            email=email if isinstance(email, str) and email else f"{login}@users.noreply.github.com",
        )


class IdentityProbe(BaseModel):
    """Identity record or the reason it is absent."""

    model_config = ConfigDict(frozen=True)

    status: IdentityStatus
    identity: Identity | None = None
    detail: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.status is IdentityStatus.AUTHENTICATED and self.identity is not None


class RepositoryState(BaseModel):
    """Snapshot of a working directory at the instant it was probed."""

    model_config = ConfigDict(frozen=True)

    path: Path
    identity: IdentityProbe
    version_control_available: bool = True
    version_control_initialized: bool = False
    ignore_rules_present: bool = False
    has_commits: bool = False
    has_pending_changes: bool = False
    remote_configured: bool = False
    remote_url: str | None = None
    ecosystems: tuple[str, ...] = ()


class Visibility(StrEnum):
    """Visibility of a newly created hosted repository."""

    PUBLIC = "public"
    PRIVATE = "private"


class CreateRequest(BaseModel):
    """Caller supplied metadata for creating the hosted repository."""

    model_config = ConfigDict(frozen=True)

    name: str
    visibility: Visibility
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not is_valid_repo_name(value):
            message = f"Invalid repository name {value!r}: use letters, digits, '.', '_' or '-'"
            raise ValueError(message)
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class StepKind(StrEnum):
    """Closed catalogue of remediation steps, in execution order."""

    INITIALIZE_VERSION_CONTROL = "initialize-version-control"
    WRITE_DEFAULT_IGNORE_RULES = "write-default-ignore-rules"
    STAGE_ALL_CHANGES = "stage-all-changes"
    CREATE_INITIAL_COMMIT = "create-initial-commit"
    COMMIT_PENDING_CHANGES = "commit-pending-changes"
    CREATE_REMOTE_AND_PUSH = "create-remote-and-push"
    PUSH_TO_EXISTING_REMOTE = "push-to-existing-remote"


_LOCAL_MUTATIONS = frozenset(
    {
        StepKind.INITIALIZE_VERSION_CONTROL,
        StepKind.WRITE_DEFAULT_IGNORE_RULES,
        StepKind.STAGE_ALL_CHANGES,
        StepKind.CREATE_INITIAL_COMMIT,
        StepKind.COMMIT_PENDING_CHANGES,
    },
)


class ActionStep(BaseModel):
    """One scheduled remediation step."""

    kind: StepKind
    rationale: str = ""
    params: dict[str, str] = Field(default_factory=dict)

    @property
    def mutates_local(self) -> bool:
        """Return ``True`` when the step changes the working directory or its history."""
        return self.kind in _LOCAL_MUTATIONS


class ErrorKind(StrEnum):
    """Classification of a failed convergence cycle."""

    TOOL_MISSING = "ToolMissing"
    AUTH_UNAVAILABLE = "AuthUnavailable"
    INVALID_INPUT = "InvalidInput"
    NETWORK_OR_REMOTE_REJECTED = "NetworkOrRemoteRejected"
    LOCAL_STATE_CONFLICT = "LocalStateConflict"
    UNKNOWN = "Unknown"


class SyncError(BaseModel):
    """Error kind, underlying message, and the next step a user can take."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    hint: str = ""
    code: str | None = None


class ActionPlan(BaseModel):
    """Ordered steps, or a plan-level error when convergence cannot start."""

    steps: list[ActionStep] = Field(default_factory=list)
    error: SyncError | None = None
    notes: list[str] = Field(default_factory=list)

    @property
    def kinds(self) -> list[StepKind]:
        return [step.kind for step in self.steps]

    @property
    def blocked(self) -> bool:
        return self.error is not None


class StepStatus(StrEnum):
    """Outcome of an executed step."""

    DONE = "done"
    FAILED = "failed"


class StepOutcome(BaseModel):
    """Diagnostic log entry for one executed step."""

    kind: StepKind
    status: StepStatus
    detail: str = ""


class SyncResult(BaseModel):
    """Terminal outcome of one convergence cycle."""

    succeeded: bool
    url: str | None = None
    error: SyncError | None = None
    log: list[StepOutcome] = Field(default_factory=list)
    command_history: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def success(cls, url: str | None, *, log: list[StepOutcome] | None = None) -> SyncResult:
        return cls(succeeded=True, url=url, log=list(log or []))

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        hint: str = "",
        code: str | None = None,
        log: list[StepOutcome] | None = None,
    ) -> SyncResult:
        return cls(
            succeeded=False,
            error=SyncError(kind=kind, message=message, hint=hint, code=code),
            log=list(log or []),
        )


class RemoteRepository(BaseModel):
    """Entry returned by ``gh repo list``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    url: str = ""
    private: bool = Field(default=False, alias="isPrivate")
    description: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


__all__ = [
    "REPO_NAME_PATTERN",
    "ActionPlan",
    "ActionStep",
    "CreateRequest",
    "ErrorKind",
    "Identity",
    "IdentityProbe",
    "IdentityStatus",
    "RemoteRepository",
    "RepositoryState",
    "StepKind",
    "StepOutcome",
    "StepStatus",
    "SyncError",
    "SyncResult",
    "Visibility",
    "is_valid_repo_name",
]
