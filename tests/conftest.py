"""Shared fixtures: isolated git identity, a bare remote, and a scripted ``gh``."""

from __future__ import annotations

import io
import stat
import subprocess
from textwrap import dedent
from typing import TYPE_CHECKING

import pytest

from ghsync.core.engine import ConvergenceEngine
from ghsync.io.config import Config
from ghsync.io.logging import StructuredLogger

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


FAKE_GH_SCRIPT = dedent(
    """\
    #!/bin/sh
    if [ -n "$FAKE_GH_LOG" ]; then
      echo "$*" >> "$FAKE_GH_LOG"
    fi
    case "$1" in
      --version)
        echo "gh version 2.45.0 (2024-03-04)"
        ;;
      auth)
        if [ -n "$FAKE_GH_UNAUTHENTICATED" ]; then
          echo "You are not logged into any GitHub hosts. To log in, run: gh auth login" >&2
          exit 1
        fi
        echo "github.com"
        echo "  Logged in to github.com account octocat (keyring)"
        ;;
      api)
        echo '{"login": "octocat", "name": null, "email": null}'
        ;;
      repo)
        case "$2" in
          create)
            name="$3"
            source="."
            remote="origin"
            for arg in "$@"; do
              case "$arg" in
                --source=*) source="${arg#--source=}" ;;
                --remote=*) remote="${arg#--remote=}" ;;
              esac
            done
            if [ -n "$FAKE_GH_NAME_TAKEN" ]; then
              echo "GraphQL: Name already exists on this account (createRepository)" >&2
              exit 1
            fi
            git -C "$source" remote add "$remote" "$FAKE_GH_REMOTE" || exit 1
            git -C "$source" push --quiet "$remote" HEAD || exit 1
            if [ -z "$FAKE_GH_QUIET" ]; then
              echo "https://github.com/octocat/$name"
            fi
            ;;
          list)
            echo '[{"name": "demo", "url": "https://github.com/octocat/demo", "isPrivate": false, "description": null}]'
            ;;
          clone)
            git clone --quiet "$FAKE_GH_REMOTE" "$4" || exit 1
            ;;
        esac
        ;;
      *)
        echo "unknown command: $1" >&2
        exit 1
        ;;
    esac
    """,
)


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Prepare git identity and configuration for isolated repositories."""
    config_file = tmp_path / "gitconfig"
    config_file.write_text(
        """
[user]
    name = Test User
    email = test@example.com
[init]
    defaultBranch = main
        """.strip()
        + "\n",
        encoding="utf-8",
    )

    env = {
        "GIT_CONFIG_GLOBAL": str(config_file),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    for name in ("FAKE_GH_UNAUTHENTICATED", "FAKE_GH_NAME_TAKEN", "FAKE_GH_QUIET", "FAKE_GH_LOG"):
        monkeypatch.delenv(name, raising=False)
    for name in ("GHSYNC_HOST", "GHSYNC_GH_BINARY", "GHSYNC_GIT_BINARY", "GHSYNC_REMOTE_NAME"):
        monkeypatch.delenv(name, raising=False)
    return env


@pytest.fixture
def bare_remote(tmp_path: Path, git_env: dict[str, str]) -> Path:
    """Create an empty bare repository standing in for the hosted remote."""
    _ = git_env
    remote = tmp_path / "remote.git"
    subprocess.run(("git", "init", "--bare", "--quiet", str(remote)), check=True)
    return remote


@pytest.fixture
def fake_gh(tmp_path: Path, bare_remote: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write an executable ``gh`` stand-in that pushes to ``bare_remote``."""
    script = tmp_path / "bin" / "gh"
    script.parent.mkdir()
    script.write_text(FAKE_GH_SCRIPT, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("FAKE_GH_REMOTE", str(bare_remote))
    monkeypatch.setenv("FAKE_GH_LOG", str(tmp_path / "gh.log"))
    return script


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Return an empty working directory."""
    path = tmp_path / "demo"
    path.mkdir()
    return path


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_engine(fake_gh: Path, log_stream: io.StringIO) -> Callable[..., ConvergenceEngine]:
    """Return a factory building engines wired to the scripted ``gh``."""

    def factory(*, dry_run: bool = False, gh_binary: str | None = None) -> ConvergenceEngine:
        config = Config(gh_binary=gh_binary or str(fake_gh))
        logger = StructuredLogger(name="test", stream=log_stream)
        return ConvergenceEngine(config=config, logger=logger, dry_run=dry_run)

    return factory


@pytest.fixture
def git_output(git_env: dict[str, str]) -> Callable[..., str]:
    """Return a helper reading stdout of a git command run in a repository."""
    _ = git_env

    def run(repo: Path, *args: str) -> str:
        return subprocess.run(
            ("git", *args),
            cwd=repo,
            check=True,
            capture_output=True,
            text=True,
        ).stdout

    return run
