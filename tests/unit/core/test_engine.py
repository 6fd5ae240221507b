"""End-to-end convergence cycles against real git and a scripted ``gh``."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ghsync.core.engine import (
    ConvergenceEngine,
    InvalidInputError,
    build_create_request,
    resolve_working_directory,
)
from ghsync.core.models import CreateRequest, ErrorKind, StepKind, StepOutcome, StepStatus, Visibility
from ghsync.core.planner import REMOTE_MISSING
from ghsync.hosting.github import GitHubCLI, HostingCommandError
from ghsync.io.logging import StructuredLogger

if TYPE_CHECKING:
    import io
    from collections.abc import Callable
    from pathlib import Path

    from pytest_mock import MockerFixture

    EngineFactory = Callable[..., ConvergenceEngine]
    GitOutput = Callable[..., str]


REQUEST = CreateRequest(name="demo", visibility=Visibility.PUBLIC)


def _kinds(log: list[StepOutcome]) -> list[StepKind]:
    return [outcome.kind for outcome in log]


def test_fresh_directory_is_published(
    make_engine: EngineFactory,
    workdir: Path,
    bare_remote: Path,
    git_output: GitOutput,
) -> None:
    """An unversioned directory ends up committed, with a remote and a URL."""
    (workdir / "package.json").write_text("{}\n", encoding="utf-8")

    result = make_engine().synchronize(workdir, REQUEST)

    assert result.succeeded, result.error
    assert result.url == "https://github.com/octocat/demo"
    assert _kinds(result.log) == [
        StepKind.INITIALIZE_VERSION_CONTROL,
        StepKind.WRITE_DEFAULT_IGNORE_RULES,
        StepKind.STAGE_ALL_CHANGES,
        StepKind.CREATE_INITIAL_COMMIT,
        StepKind.CREATE_REMOTE_AND_PUSH,
    ]
    ignore = (workdir / ".gitignore").read_text(encoding="utf-8")
    assert "# Node" in ignore
    assert "# Python" not in ignore
    assert git_output(workdir, "remote").split() == ["origin"]
    assert git_output(bare_remote, "log", "--all", "-1", "--format=%s").strip() == "Initial commit"


def test_second_cycle_only_pushes(make_engine: EngineFactory, workdir: Path, bare_remote: Path) -> None:
    """Running again on a clean published tree schedules no local mutation."""
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")
    engine = make_engine()
    assert engine.synchronize(workdir, REQUEST).succeeded

    result = engine.synchronize(workdir)

    assert result.succeeded, result.error
    assert _kinds(result.log) == [StepKind.PUSH_TO_EXISTING_REMOTE]
    assert result.url == str(bare_remote)


def test_pending_changes_are_committed_and_pushed(
    make_engine: EngineFactory,
    workdir: Path,
    bare_remote: Path,
    git_output: GitOutput,
) -> None:
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")
    engine = make_engine()
    assert engine.synchronize(workdir, REQUEST).succeeded
    (workdir / "README.md").write_text("demo v2\n", encoding="utf-8")

    result = engine.synchronize(workdir)

    assert result.succeeded, result.error
    assert _kinds(result.log) == [
        StepKind.STAGE_ALL_CHANGES,
        StepKind.COMMIT_PENDING_CHANGES,
        StepKind.PUSH_TO_EXISTING_REMOTE,
    ]
    assert git_output(bare_remote, "log", "--all", "-1", "--format=%s").strip() == "Update"
    assert git_output(workdir, "status", "--porcelain") == ""


def test_missing_hosting_cli_mutates_nothing(
    make_engine: EngineFactory,
    workdir: Path,
    tmp_path: Path,
) -> None:
    """A missing ``gh`` binary fails the cycle before any local change."""
    (workdir / "main.py").write_text("print('hi')\n", encoding="utf-8")
    engine = make_engine(gh_binary=str(tmp_path / "missing" / "gh"))

    result = engine.synchronize(workdir, REQUEST)

    assert not result.succeeded
    assert result.error is not None
    assert result.error.kind is ErrorKind.TOOL_MISSING
    assert result.error.hint
    assert not (workdir / ".git").exists()
    assert not (workdir / ".gitignore").exists()


def test_unauthenticated_mutates_nothing(
    make_engine: EngineFactory,
    workdir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("FAKE_GH_UNAUTHENTICATED", "1")
    (workdir / "main.py").write_text("print('hi')\n", encoding="utf-8")

    result = make_engine().synchronize(workdir, REQUEST)

    assert result.error is not None
    assert result.error.kind is ErrorKind.AUTH_UNAVAILABLE
    assert result.error.hint == "Run: gh auth login"
    assert not (workdir / ".git").exists()


def test_name_collision_reports_remote_rejection(
    make_engine: EngineFactory,
    workdir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Local steps stay done; the creation step carries the rejection."""
    monkeypatch.setenv("FAKE_GH_NAME_TAKEN", "1")
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")

    result = make_engine().synchronize(workdir, REQUEST)

    assert result.error is not None
    assert result.error.kind is ErrorKind.NETWORK_OR_REMOTE_REJECTED
    assert "Name already exists" in result.error.message
    assert result.log[-1].kind is StepKind.CREATE_REMOTE_AND_PUSH
    assert result.log[-1].status is StepStatus.FAILED
    assert (workdir / ".git").exists()


def test_constructed_url_when_output_is_silent(
    make_engine: EngineFactory,
    workdir: Path,
    monkeypatch: pytest.MonkeyPatch,
    log_stream: io.StringIO,
) -> None:
    monkeypatch.setenv("FAKE_GH_QUIET", "1")
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")

    result = make_engine().synchronize(workdir, REQUEST)

    assert result.url == "https://github.com/octocat/demo"
    assert "using constructed URL" in log_stream.getvalue()


def test_missing_request_without_remote(make_engine: EngineFactory, workdir: Path) -> None:
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")

    result = make_engine().synchronize(workdir)

    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_INPUT
    assert result.error.code == REMOTE_MISSING
    assert not (workdir / ".git").exists()


def test_nonexistent_directory_is_invalid_input(make_engine: EngineFactory, tmp_path: Path) -> None:
    """Path validation happens before any command is run."""
    engine = make_engine()

    result = engine.synchronize(tmp_path / "nowhere", REQUEST)

    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_INPUT
    assert result.command_history == []
    assert not (tmp_path / "gh.log").exists()


@pytest.mark.parametrize("path", ["", "   "])
def test_blank_directory_is_invalid_input(make_engine: EngineFactory, path: str) -> None:
    """A blank path is rejected rather than falling back to the current directory."""
    engine = make_engine()

    result = engine.synchronize(path, REQUEST)
    created = engine.create_remote(path, REQUEST)

    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_INPUT
    assert created.error is not None
    assert created.error.kind is ErrorKind.INVALID_INPUT
    assert result.command_history == []


def test_seeded_repository_without_ignore_file_converges_in_one_cycle(
    make_engine: EngineFactory,
    workdir: Path,
    bare_remote: Path,
    git_output: GitOutput,
) -> None:
    """The ignore file written into a committed repository is committed and pushed in the same cycle."""
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")
    git_output(workdir, "init", "--quiet")
    git_output(workdir, "add", "-A")
    git_output(workdir, "commit", "--quiet", "-m", "seed")
    git_output(workdir, "remote", "add", "origin", str(bare_remote))
    git_output(workdir, "push", "--quiet", "origin", "HEAD")
    engine = make_engine()

    first = engine.synchronize(workdir)

    assert first.succeeded, first.error
    assert _kinds(first.log) == [
        StepKind.WRITE_DEFAULT_IGNORE_RULES,
        StepKind.STAGE_ALL_CHANGES,
        StepKind.COMMIT_PENDING_CHANGES,
        StepKind.PUSH_TO_EXISTING_REMOTE,
    ]
    assert git_output(workdir, "status", "--porcelain") == ""
    assert ".gitignore" in git_output(bare_remote, "ls-tree", "--name-only", "-r", "main")

    second = engine.synchronize(workdir)

    assert second.succeeded, second.error
    assert _kinds(second.log) == [StepKind.PUSH_TO_EXISTING_REMOTE]


def test_create_remote_rejects_existing_remote(make_engine: EngineFactory, workdir: Path) -> None:
    (workdir / "README.md").write_text("demo\n", encoding="utf-8")
    engine = make_engine()
    assert engine.create_remote(workdir, REQUEST).succeeded

    result = engine.create_remote(workdir, CreateRequest(name="other", visibility=Visibility.PRIVATE))

    assert result.error is not None
    assert result.error.kind is ErrorKind.LOCAL_STATE_CONFLICT


def test_dry_run_records_without_mutating(make_engine: EngineFactory, workdir: Path) -> None:
    """Dry-run lists mutating commands but leaves the directory untouched."""
    (workdir / "main.go").write_text("package main\n", encoding="utf-8")

    result = make_engine(dry_run=True).synchronize(workdir, REQUEST)

    assert result.succeeded, result.error
    assert not (workdir / ".git").exists()
    assert not (workdir / ".gitignore").exists()
    recorded = [entry["command"][1:3] for entry in result.command_history if entry["dry_run"]]
    assert ["init"] in recorded
    assert ["repo", "create"] in recorded


def test_list_and_clone(make_engine: EngineFactory, tmp_path: Path) -> None:
    engine = make_engine()
    target = tmp_path / "clone"

    repositories = engine.list_repositories()
    result = engine.clone_repository("octocat/demo", target)

    assert [repository.name for repository in repositories] == ["demo"]
    assert result.succeeded, result.error
    assert (target / ".git").exists()
    assert result.url == "https://github.com/octocat/demo"


def test_clone_into_non_empty_directory_is_rejected(make_engine: EngineFactory, workdir: Path) -> None:
    (workdir / "file.txt").write_text("x", encoding="utf-8")

    result = make_engine().clone_repository("octocat/demo", workdir)

    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_INPUT


def test_build_create_request_requires_visibility() -> None:
    with pytest.raises(InvalidInputError, match="visibility is required"):
        build_create_request("demo", None)


def test_build_create_request_rejects_bad_name() -> None:
    with pytest.raises(InvalidInputError, match="Invalid repository name"):
        build_create_request("my repo!", "public")


def test_resolve_rejects_files(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(InvalidInputError, match="not a directory"):
        resolve_working_directory(target)


def test_probe_timeout_is_classified(workdir: Path, log_stream: io.StringIO, mocker: MockerFixture) -> None:
    """A hosting CLI that hangs during the probe yields a failed result, not an exception."""
    hosting = mocker.create_autospec(GitHubCLI, instance=True)
    hosting.host = "github.com"
    hosting.command_history = []
    hosting.version.return_value = "gh version 2.45.0"
    hosting.auth_status.side_effect = HostingCommandError(
        ["gh", "auth", "status"],
        -1,
        "",
        "timed out after 5 seconds",
    )
    engine = ConvergenceEngine(
        logger=StructuredLogger(name="test", stream=log_stream),
        hosting_factory=lambda _path, _dry_run: hosting,
    )

    result = engine.synchronize(workdir, REQUEST)

    assert result.error is not None
    assert result.error.kind is ErrorKind.NETWORK_OR_REMOTE_REJECTED
    assert "probe failed" in log_stream.getvalue()
    assert not (workdir / ".git").exists()
