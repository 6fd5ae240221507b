"""Subprocess facades for the git and hosting command line tools."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from ghsync.io.logging import StructuredLogger


class ToolNotFoundError(OSError):
    """Raised when an external binary cannot be located or executed."""

    def __init__(self, binary: str, detail: str | None = None) -> None:
        self.binary = binary
        message = f"{binary} is not installed or not on PATH"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CommandError(RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip()
        message = f"{' '.join(self.command)} exited with {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def output(self) -> str:
        """Combined stdout and stderr, in that order."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class GitCommandError(CommandError):
    """A failed ``git`` invocation."""


class CommandFacade:
    """Run one external binary inside a working directory and record each call."""

    error_class: type[CommandError] = CommandError

    def __init__(
        self,
        binary: str,
        *,
        cwd: Path | None = None,
        logger: StructuredLogger | None = None,
        dry_run: bool = False,
        timeout: float | None = None,
    ) -> None:
        self.binary = binary
        self.cwd = cwd
        self.logger = logger
        self.dry_run = dry_run
        self.timeout = timeout
        self.command_history: list[dict[str, Any]] = []

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        mutating: bool = False,
        cwd: Path | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Execute ``binary args`` and return the completed process.

        Mutating commands are only recorded when the facade is in dry-run
        mode. A missing binary raises :class:`ToolNotFoundError`; a non-zero
        exit raises :attr:`error_class` when ``check`` is true.
        """
        command = [self.binary, *args]
        workdir = cwd if cwd is not None else self.cwd
        if self.dry_run and mutating:
            self._record(command, 0, dry_run=True)
            if self.logger is not None:
                self.logger.info("dry-run command skipped", command=" ".join(command))
            return subprocess.CompletedProcess(command, 0, "", "")

        if self.logger is not None:
            self.logger.debug("running command", command=" ".join(command), cwd=str(workdir))
        try:
            completed = subprocess.run(  # noqa: S603
                command,
                cwd=workdir,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(self.binary, exc.strerror) from exc
        except PermissionError as exc:
            raise ToolNotFoundError(self.binary, exc.strerror) from exc
        except subprocess.TimeoutExpired as exc:
            self._record(command, -1, dry_run=False)
            raise self.error_class(command, -1, "", f"timed out after {exc.timeout} seconds") from exc

        self._record(command, completed.returncode, dry_run=False)
        if check and completed.returncode != 0:
            raise self.error_class(command, completed.returncode, completed.stdout, completed.stderr)
        return completed

    def _record(self, command: list[str], returncode: int, *, dry_run: bool) -> None:
        self.command_history.append({"command": command, "returncode": returncode, "dry_run": dry_run})


class GitFacade(CommandFacade):
    """Facade over the ``git`` binary for one repository."""

    error_class = GitCommandError

    def __init__(
        self,
        repo_path: Path,
        *,
        logger: StructuredLogger | None = None,
        dry_run: bool = False,
        binary: str = "git",
        timeout: float | None = None,
    ) -> None:
        super().__init__(binary, cwd=repo_path, logger=logger, dry_run=dry_run, timeout=timeout)
        self.repo_path = repo_path

    def init(self) -> None:
        self.run(["init"], mutating=True)

    def add_all(self) -> None:
        self.run(["add", "-A"], mutating=True)

    def commit(self, message: str, *, allow_empty: bool = False) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self.run(args, mutating=True)

    def has_commits(self) -> bool:
        return self.run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False).returncode == 0

    def remotes(self) -> list[str]:
        result = self.run(["remote"], check=False)
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def remote_url(self, remote: str) -> str | None:
        result = self.run(["remote", "get-url", remote], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def status_porcelain(self) -> str:
        return self.run(["status", "--porcelain"], check=False).stdout

    def push(self, remote: str, refspec: str = "HEAD") -> subprocess.CompletedProcess[str]:
        return self.run(["push", remote, refspec], mutating=True)


__all__ = [
    "CommandError",
    "CommandFacade",
    "GitCommandError",
    "GitFacade",
    "ToolNotFoundError",
]
