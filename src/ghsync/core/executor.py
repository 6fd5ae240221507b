"""Run an :class:`ActionPlan` against git and the hosting CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ghsync.core.errors import classify_failure
from ghsync.core.ignore import write_ignore_rules
from ghsync.core.models import (
    ActionPlan,
    ActionStep,
    CreateRequest,
    RepositoryState,
    StepKind,
    StepOutcome,
    StepStatus,
    SyncResult,
    Visibility,
)
from ghsync.git.facade import CommandError
from ghsync.hosting.github import build_repository_url, extract_repository_url

if TYPE_CHECKING:
    from collections.abc import Callable

    from ghsync.git.facade import GitFacade
    from ghsync.hosting.github import GitHubCLI
    from ghsync.io.config import Config
    from ghsync.io.logging import StructuredLogger

    StepHandler = Callable[[ActionStep, RepositoryState], str]


class StepFailedError(RuntimeError):
    """Raised by a step handler when it cannot complete without a tool error."""


class Executor:
    """Execute plan steps in order, stopping at the first failure."""

    def __init__(
        self,
        git: GitFacade,
        hosting: GitHubCLI,
        config: Config,
        logger: StructuredLogger,
    ) -> None:
        self.git = git
        self.hosting = hosting
        self.config = config
        self.logger = logger
        self.remote_url: str | None = None
        self._handlers: dict[StepKind, StepHandler] = {
            StepKind.INITIALIZE_VERSION_CONTROL: self._initialize,
            StepKind.WRITE_DEFAULT_IGNORE_RULES: self._write_ignore_rules,
            StepKind.STAGE_ALL_CHANGES: self._stage,
            StepKind.CREATE_INITIAL_COMMIT: self._initial_commit,
            StepKind.COMMIT_PENDING_CHANGES: self._commit_pending,
            StepKind.CREATE_REMOTE_AND_PUSH: self._create_remote,
            StepKind.PUSH_TO_EXISTING_REMOTE: self._push_existing,
        }

    def execute(self, plan: ActionPlan, state: RepositoryState) -> SyncResult:
        """Run ``plan`` for ``state`` and fold the step outcomes into a result."""
        if plan.error is not None:
            self.logger.warning("plan blocked", kind=plan.error.kind.value, reason=plan.error.message)
            return SyncResult(succeeded=False, error=plan.error)

        self.remote_url = state.remote_url
        log: list[StepOutcome] = []
        for step in plan.steps:
            handler = self._handlers[step.kind]
            try:
                detail = handler(step, state)
            except (CommandError, OSError, StepFailedError) as exc:
                error = classify_failure(exc)
                self.logger.error(
                    "step failed",
                    step=step.kind.value,
                    kind=error.kind.value,
                    error=error.message,
                )
                log.append(StepOutcome(kind=step.kind, status=StepStatus.FAILED, detail=error.message))
                return SyncResult(succeeded=False, error=error, log=log)
            self.logger.info("step completed", step=step.kind.value, detail=detail)
            log.append(StepOutcome(kind=step.kind, status=StepStatus.DONE, detail=detail))

        return SyncResult.success(self.remote_url, log=log)

    def _initialize(self, _: ActionStep, __: RepositoryState) -> str:
        self.git.init()
        return "initialized git repository"

    def _write_ignore_rules(self, step: ActionStep, state: RepositoryState) -> str:
        ecosystems = [key for key in step.params.get("ecosystems", "").split(",") if key]
        label = ", ".join(ecosystems) or "universal only"
        if self.git.dry_run:
            return f"would write ignore rules ({label})"
        if not write_ignore_rules(state.path, ecosystems):
            return "ignore rules already present"
        return f"wrote ignore rules ({label})"

    def _stage(self, _: ActionStep, __: RepositoryState) -> str:
        self.git.add_all()
        return "staged all changes"

    def _initial_commit(self, _: ActionStep, __: RepositoryState) -> str:
        # An empty commit keeps directories whose files are all ignored convergent.
        self.git.commit(self.config.initial_commit_message, allow_empty=True)
        return "created initial commit"

    def _commit_pending(self, _: ActionStep, __: RepositoryState) -> str:
        self.git.commit(self.config.update_commit_message)
        return "committed pending changes"

    def _create_remote(self, step: ActionStep, state: RepositoryState) -> str:
        identity = state.identity.identity
        if identity is None:
            message = "cannot create a remote without an authenticated identity"
            raise StepFailedError(message)
        request = CreateRequest(
            name=step.params["name"],
            visibility=Visibility(step.params["visibility"]),
            description=step.params.get("description"),
        )
        completed = self.hosting.create_repository(
            request,
            source=state.path,
            remote=self.config.remote_name,
        )
        output = "\n".join(part for part in (completed.stdout, completed.stderr) if part)
        url = extract_repository_url(output, host=self.hosting.host)
        if url is None:
            url = build_repository_url(identity.login, request.name, host=self.hosting.host)
            self.logger.warning("repository URL not found in gh output; using constructed URL", url=url)
        self.remote_url = url
        return f"created {request.visibility.value} repository {url}"

    def _push_existing(self, _: ActionStep, __: RepositoryState) -> str:
        self.git.push(self.config.remote_name)
        return f"pushed to {self.config.remote_name}"


__all__ = ["Executor", "StepFailedError"]
