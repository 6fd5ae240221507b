"""Read-only probes that build a :class:`RepositoryState` snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ghsync.core.ignore import IGNORE_FILENAME, detect_ecosystems
from ghsync.core.models import Identity, IdentityProbe, IdentityStatus, RepositoryState
from ghsync.git.facade import CommandError, GitFacade, ToolNotFoundError
from ghsync.hosting.github import HostingResponseError, canonical_remote_url

if TYPE_CHECKING:
    from pathlib import Path

    from ghsync.hosting.github import GitHubCLI
    from ghsync.io.logging import StructuredLogger


class EnvironmentProber:
    """Inspect a working directory and the hosting CLI without mutating either."""

    def __init__(
        self,
        git: GitFacade,
        hosting: GitHubCLI,
        *,
        remote_name: str = "origin",
        logger: StructuredLogger | None = None,
    ) -> None:
        self.git = git
        self.hosting = hosting
        self.remote_name = remote_name
        self.logger = logger

    def probe_identity(self) -> IdentityProbe:
        """Return the authenticated user, or why there is none."""
        try:
            self.hosting.version()
        except ToolNotFoundError as exc:
            return IdentityProbe(status=IdentityStatus.TOOL_MISSING, detail=str(exc))
        except CommandError as exc:
            return IdentityProbe(status=IdentityStatus.TOOL_MISSING, detail=str(exc))

        status = self.hosting.auth_status()
        if status.returncode != 0:
            detail = (status.stderr or status.stdout).strip() or "Not logged in"
            return IdentityProbe(status=IdentityStatus.NOT_AUTHENTICATED, detail=detail)

        try:
            identity: Identity = self.hosting.current_user()
        except (CommandError, HostingResponseError) as exc:
            return IdentityProbe(status=IdentityStatus.NOT_AUTHENTICATED, detail=str(exc))
        return IdentityProbe(status=IdentityStatus.AUTHENTICATED, identity=identity)

    def probe_working_directory(self, path: Path, identity: IdentityProbe) -> RepositoryState:
        """Return the repository state of ``path`` combined with ``identity``."""
        initialized = (path / ".git").exists()
        ignore_present = (path / IGNORE_FILENAME).exists()
        ecosystems = detect_ecosystems(path)

        if not initialized:
            # Every entry of an untracked directory counts as a pending change.
            pending = any(True for _ in path.iterdir())
            return RepositoryState(
                path=path,
                identity=identity,
                version_control_available=self._git_available(),
                version_control_initialized=False,
                ignore_rules_present=ignore_present,
                has_pending_changes=pending,
                ecosystems=ecosystems,
            )

        try:
            has_commits = self.git.has_commits()
            remote_url: str | None = None
            remote_configured = self.remote_name in self.git.remotes()
            if remote_configured:
                raw_url = self.git.remote_url(self.remote_name)
                remote_url = canonical_remote_url(raw_url, host=self.hosting.host) if raw_url else None
            pending = bool(self.git.status_porcelain().strip())
        except ToolNotFoundError as exc:
            if self.logger is not None:
                self.logger.warning("git is not available", error=str(exc))
            return RepositoryState(
                path=path,
                identity=identity,
                version_control_available=False,
                version_control_initialized=True,
                ignore_rules_present=ignore_present,
                ecosystems=ecosystems,
            )

        return RepositoryState(
            path=path,
            identity=identity,
            version_control_initialized=True,
            ignore_rules_present=ignore_present,
            has_commits=has_commits,
            has_pending_changes=pending,
            remote_configured=remote_configured,
            remote_url=remote_url,
            ecosystems=ecosystems,
        )

    def observe(self, path: Path) -> RepositoryState:
        """Probe identity and working directory into one snapshot."""
        identity = self.probe_identity()
        state = self.probe_working_directory(path, identity)
        if self.logger is not None:
            self.logger.info(
                "repository state observed",
                path=str(path),
                identity=identity.status.value,
                initialized=state.version_control_initialized,
                ignore_rules=state.ignore_rules_present,
                commits=state.has_commits,
                pending=state.has_pending_changes,
                remote=state.remote_url or "none",
            )
        return state

    def _git_available(self) -> bool:
        try:
            self.git.run(["--version"], check=False)
        except ToolNotFoundError:
            return False
        return True


__all__ = ["EnvironmentProber"]
