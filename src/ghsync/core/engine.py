"""Probe, plan, and execute one convergence cycle."""

from __future__ import annotations

import io
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ghsync.core.errors import HINTS, classify_failure
from ghsync.core.executor import Executor
from ghsync.core.models import (
    ActionPlan,
    CreateRequest,
    ErrorKind,
    IdentityProbe,
    RemoteRepository,
    RepositoryState,
    SyncResult,
    Visibility,
    is_valid_repo_name,
)
from ghsync.core.planner import ConvergencePlanner
from ghsync.git.facade import CommandError, GitFacade
from ghsync.git.observe import EnvironmentProber
from ghsync.hosting.github import GitHubCLI, HostingResponseError, build_repository_url, repository_url
from ghsync.io.config import Config
from ghsync.io.logging import StructuredLogger

if TYPE_CHECKING:
    from collections.abc import Callable


class InvalidInputError(ValueError):
    """Raised when caller input is rejected before any subprocess runs."""


@dataclass(frozen=True, slots=True)
class PlanComputation:
    """Fresh state and the plan computed from it."""

    state: RepositoryState
    plan: ActionPlan


def resolve_working_directory(path: Path | str) -> Path:
    """Return ``path`` resolved, or raise :class:`InvalidInputError` if it is not a directory."""
    if isinstance(path, str) and not path.strip():
        message = "Working directory is required"
        raise InvalidInputError(message)
    candidate = Path(path).expanduser()
    if not candidate.exists():
        message = f"Working directory does not exist: {candidate}"
        raise InvalidInputError(message)
    if not candidate.is_dir():
        message = f"Working directory is not a directory: {candidate}"
        raise InvalidInputError(message)
    return candidate.resolve()


def validate_repo_name(name: str) -> str:
    """Return ``name`` unchanged, or raise :class:`InvalidInputError`."""
    if not is_valid_repo_name(name):
        message = f"Invalid repository name {name!r}: use letters, digits, '.', '_' or '-'"
        raise InvalidInputError(message)
    return name


def build_create_request(
    name: str,
    visibility: Visibility | str | None,
    description: str | None = None,
) -> CreateRequest:
    """Validate caller input into a :class:`CreateRequest`.

    Visibility has no default: a missing value is rejected like a bad name.
    """
    validate_repo_name(name)
    if visibility is None or visibility == "":
        message = "Repository visibility is required: choose public or private"
        raise InvalidInputError(message)
    try:
        resolved = Visibility(visibility)
    except ValueError as exc:
        message = f"Invalid visibility {visibility!r}: choose public or private"
        raise InvalidInputError(message) from exc
    return CreateRequest(name=name, visibility=resolved, description=description)


def _invalid(message: str) -> SyncResult:
    return SyncResult.failure(ErrorKind.INVALID_INPUT, message, hint=HINTS[ErrorKind.INVALID_INPUT])


@dataclass(slots=True)
class ConvergenceEngine:
    """Wire the prober, planner, and executor around a shared configuration.

    Every call builds fresh facades, so no state survives between cycles.
    """

    config: Config = field(default_factory=Config)
    logger: StructuredLogger = field(
        default_factory=lambda: StructuredLogger(name="ghsync", stream=sys.stderr),
    )
    dry_run: bool = False
    planner: ConvergencePlanner = field(default_factory=ConvergencePlanner)
    git_factory: Callable[[Path, bool], GitFacade] | None = None
    hosting_factory: Callable[[Path | None, bool], GitHubCLI] | None = None

    def _git(self, path: Path, *, dry_run: bool) -> GitFacade:
        if self.git_factory is not None:
            return self.git_factory(path, dry_run)
        return GitFacade(
            path,
            logger=self.logger,
            dry_run=dry_run,
            binary=self.config.git_binary,
            timeout=self.config.command_timeout_sec,
        )

    def _hosting(self, path: Path | None, *, dry_run: bool) -> GitHubCLI:
        if self.hosting_factory is not None:
            return self.hosting_factory(path, dry_run)
        return GitHubCLI(
            cwd=path,
            logger=self.logger,
            dry_run=dry_run,
            binary=self.config.gh_binary,
            host=self.config.host,
            timeout=self.config.command_timeout_sec,
        )

    def _prober(self, path: Path) -> EnvironmentProber:
        return EnvironmentProber(
            self._git(path, dry_run=False),
            self._hosting(path, dry_run=False),
            remote_name=self.config.remote_name,
            logger=self.logger,
        )

    def probe_identity(self) -> IdentityProbe:
        """Return the hosting identity without inspecting any working directory."""
        return self._prober(Path.cwd()).probe_identity()

    def compute_plan(self, path: Path, request: CreateRequest | None = None) -> PlanComputation:
        """Probe ``path`` and plan without executing anything."""
        state = self._prober(path).observe(path)
        plan = self.planner.plan(state, request)
        self.logger.info(
            "plan computed",
            steps=",".join(step.kind.value for step in plan.steps) or "none",
            blocked=plan.error.kind.value if plan.error else "no",
        )
        return PlanComputation(state=state, plan=plan)

    def _probe_failure(self, exc: Exception) -> SyncResult:
        error = classify_failure(exc)
        self.logger.error("probe failed", kind=error.kind.value, error=error.message)
        return SyncResult(succeeded=False, error=error)

    def _execute(self, path: Path, computation: PlanComputation) -> SyncResult:
        git = self._git(path, dry_run=self.dry_run)
        hosting = self._hosting(path, dry_run=self.dry_run)
        executor = Executor(git, hosting, self.config, self.logger)
        result = executor.execute(computation.plan, computation.state)
        result.command_history = [*git.command_history, *hosting.command_history]
        return result

    def synchronize(self, path: Path | str, request: CreateRequest | None = None) -> SyncResult:
        """Converge ``path`` to "committed and pushed", creating the remote when absent.

        ``request`` is required only when no remote is configured yet.
        """
        try:
            workdir = resolve_working_directory(path)
        except InvalidInputError as exc:
            return _invalid(str(exc))
        try:
            computation = self.compute_plan(workdir, request)
        except (CommandError, HostingResponseError, OSError) as exc:
            return self._probe_failure(exc)
        return self._execute(workdir, computation)

    def create_remote(self, path: Path | str, request: CreateRequest) -> SyncResult:
        """Create the hosted repository for ``path`` using caller supplied metadata."""
        try:
            workdir = resolve_working_directory(path)
            validate_repo_name(request.name)
        except InvalidInputError as exc:
            return _invalid(str(exc))

        try:
            computation = self.compute_plan(workdir, request)
        except (CommandError, HostingResponseError, OSError) as exc:
            return self._probe_failure(exc)
        if computation.plan.error is None and computation.state.remote_configured:
            remote = computation.state.remote_url or self.config.remote_name
            return SyncResult.failure(
                ErrorKind.LOCAL_STATE_CONFLICT,
                f"A remote named {self.config.remote_name!r} is already configured ({remote})",
                hint="Use sync to push to the existing remote, or remove it first.",
            )
        return self._execute(workdir, computation)

    def list_repositories(self, *, limit: int | None = None) -> list[RemoteRepository]:
        """Return the authenticated user's hosted repositories."""
        hosting = self._hosting(None, dry_run=False)
        return hosting.list_repositories(limit=limit or self.config.repo_list_limit)

    def _clone_url(self, hosting: GitHubCLI, repository: str) -> str | None:
        url = repository_url(repository, host=hosting.host)
        if url is not None:
            return url
        # A bare name refers to a repository of the authenticated user.
        try:
            login = hosting.current_user().login
        except (CommandError, HostingResponseError, OSError) as exc:
            self.logger.warning("could not resolve clone URL", repository=repository, error=str(exc))
            return None
        return build_repository_url(login, repository, host=hosting.host)

    def clone_repository(self, repository: str, target: Path | str) -> SyncResult:
        """Clone ``repository`` into ``target`` through the hosting CLI."""
        destination = Path(target).expanduser()
        if destination.exists() and (not destination.is_dir() or any(destination.iterdir())):
            return _invalid(f"Target directory is not empty: {destination}")
        hosting = self._hosting(None, dry_run=self.dry_run)
        try:
            hosting.clone_repository(repository, destination)
        except (CommandError, OSError) as exc:
            error = classify_failure(exc)
            self.logger.error("clone failed", repository=repository, kind=error.kind.value)
            result = SyncResult(succeeded=False, error=error)
        else:
            result = SyncResult.success(self._clone_url(hosting, repository))
        result.command_history = list(hosting.command_history)
        return result


def build_engine(
    config: Config | None = None,
    *,
    dry_run: bool = False,
    json_logs: bool = False,
    silence_logs: bool = False,
) -> ConvergenceEngine:
    """Assemble an engine with a structured logger writing to stderr."""
    stream = io.StringIO() if silence_logs else sys.stderr
    logger = StructuredLogger(name="ghsync", json_mode=json_logs, stream=stream)
    return ConvergenceEngine(config=config or Config(), logger=logger, dry_run=dry_run)


__all__ = [
    "ConvergenceEngine",
    "InvalidInputError",
    "PlanComputation",
    "build_create_request",
    "build_engine",
    "resolve_working_directory",
    "validate_repo_name",
]
