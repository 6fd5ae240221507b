"""Wrapper around the GitHub CLI (``gh``)."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError

from ghsync.core.models import CreateRequest, Identity, RemoteRepository
from ghsync.git.facade import CommandError, CommandFacade

if TYPE_CHECKING:
    import subprocess
    from pathlib import Path

    from ghsync.io.logging import StructuredLogger


DEFAULT_HOST = "github.com"
REPO_LIST_FIELDS = "name,url,isPrivate,description"


class HostingCommandError(CommandError):
    """A failed ``gh`` invocation."""


class HostingResponseError(ValueError):
    """Raised when ``gh`` succeeds but prints a payload that cannot be used."""


class GitHubCLI(CommandFacade):
    """Facade over the ``gh`` binary."""

    error_class = HostingCommandError

    def __init__(
        self,
        *,
        cwd: Path | None = None,
        logger: StructuredLogger | None = None,
        dry_run: bool = False,
        binary: str = "gh",
        host: str = DEFAULT_HOST,
        timeout: float | None = None,
    ) -> None:
        super().__init__(binary, cwd=cwd, logger=logger, dry_run=dry_run, timeout=timeout)
        self.host = host

    def version(self) -> str:
        result = self.run(["--version"])
        return result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""

    def auth_status(self) -> subprocess.CompletedProcess[str]:
        """Return the raw ``gh auth status`` result without raising on failure."""
        return self.run(["auth", "status", "--hostname", self.host], check=False)

    def current_user(self) -> Identity:
        """Return the authenticated user's profile."""
        result = self.run(["api", "user", "--hostname", self.host])
        payload = _load_json(result.stdout)
        if not isinstance(payload, dict):
            message = "gh api user did not return a JSON object"
            raise HostingResponseError(message)
        try:
            return Identity.from_api_payload(cast("dict[str, Any]", payload))
        except (ValueError, ValidationError) as exc:
            raise HostingResponseError(str(exc)) from exc

    def create_repository(
        self,
        request: CreateRequest,
        *,
        source: Path,
        remote: str,
    ) -> subprocess.CompletedProcess[str]:
        """Create the hosted repository from ``source`` and push it."""
        args = [
            "repo",
            "create",
            request.name,
            f"--{request.visibility.value}",
            f"--source={source}",
            f"--remote={remote}",
            "--push",
        ]
        if request.description:
            args.append(f"--description={request.description}")
        return self.run(args, mutating=True, cwd=source)

    def list_repositories(self, *, limit: int = 50) -> list[RemoteRepository]:
        result = self.run(["repo", "list", "--json", REPO_LIST_FIELDS, "--limit", str(limit)])
        payload = _load_json(result.stdout)
        if not isinstance(payload, list):
            message = "gh repo list did not return a JSON array"
            raise HostingResponseError(message)
        repositories: list[RemoteRepository] = []
        for entry in cast("list[object]", payload):
            if not isinstance(entry, dict):
                continue
            try:
                repositories.append(RemoteRepository.model_validate(entry))
            except ValidationError:
                if self.logger is not None:
                    self.logger.warning("skipping malformed repository entry", entry=str(entry))
        return repositories

    def clone_repository(self, repository: str, target: Path) -> subprocess.CompletedProcess[str]:
        return self.run(["repo", "clone", repository, str(target)], mutating=True)


def _load_json(text: str) -> object:
    try:
        return json.loads(text or "null")
    except json.JSONDecodeError as exc:
        message = f"invalid JSON from gh: {exc.msg}"
        raise HostingResponseError(message) from exc


def extract_repository_url(output: str, *, host: str = DEFAULT_HOST) -> str | None:
    """Return the first ``https://<host>/owner/name`` URL found in ``output``.

    Longer URLs, such as the pull request hint git prints after a push, are skipped.
    """
    pattern = re.compile(rf"https://{re.escape(host)}/[^/\s'\"<>]+/[^/\s'\"<>]+(?=$|[\s'\"<>])")
    match = pattern.search(output)
    if match is None:
        return None
    url = match.group(0).rstrip(".,;:)")
    return url.removesuffix(".git")


def build_repository_url(login: str, name: str, *, host: str = DEFAULT_HOST) -> str:
    """Construct the canonical repository URL from its owner and name."""
    return f"https://{host}/{login}/{name}"


_SCP_REMOTE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/][^:]*)$")
_SSH_REMOTE = re.compile(r"^ssh://(?:[\w.-]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$")
_HTTPS_REMOTE = re.compile(r"^https?://(?:[^@/]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$")


def canonical_remote_url(url: str, *, host: str = DEFAULT_HOST) -> str:
    """Return the browsable ``https`` form of a remote URL on ``host``.

    URLs on other hosts and local paths are returned unchanged.
    """
    candidate = url.strip()
    for pattern in (_HTTPS_REMOTE, _SSH_REMOTE, _SCP_REMOTE):
        match = pattern.match(candidate)
        if match is None:
            continue
        if match.group("host") != host:
            return candidate
        path = match.group("path").rstrip("/").removesuffix(".git")
        return f"https://{host}/{path}"
    return candidate


_OWNER_NAME = re.compile(r"^(?P<owner>[\w.-]+)/(?P<name>[\w.-]+)$")


def repository_url(repository: str, *, host: str = DEFAULT_HOST) -> str | None:
    """Return the browsable URL for a clone argument.

    Accepts remote URLs and ``owner/name``; a bare name yields ``None`` because
    its owner is not known here.
    """
    candidate = repository.strip()
    match = _OWNER_NAME.match(candidate)
    if match is not None:
        return build_repository_url(match.group("owner"), match.group("name").removesuffix(".git"), host=host)
    if "/" in candidate or ":" in candidate:
        return canonical_remote_url(candidate, host=host)
    return None


__all__ = [
    "DEFAULT_HOST",
    "GitHubCLI",
    "HostingCommandError",
    "HostingResponseError",
    "build_repository_url",
    "canonical_remote_url",
    "extract_repository_url",
    "repository_url",
]
