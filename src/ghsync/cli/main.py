"""CLI entry point for ghsync built with Typer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, Callable, Sequence, TypeVar, cast  # noqa: UP035

import typer
from pydantic import ValidationError

from ghsync.core.engine import (
    ConvergenceEngine,
    InvalidInputError,
    build_create_request,
    build_engine,
    resolve_working_directory,
)
from ghsync.core.errors import classify_failure
from ghsync.core.models import CreateRequest, Visibility
from ghsync.git.facade import CommandError
from ghsync.hosting.github import HostingResponseError
from ghsync.io import load_config

if TYPE_CHECKING:
    from ghsync.core.models import SyncResult

T = TypeVar("T")

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _resolve_repo(repo: Path | None) -> Path:
    return repo.resolve() if repo is not None else Path.cwd()


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False))


def _format_command(parts: Sequence[str]) -> str:
    """Render a command sequence with escaped control characters."""

    def _format_part(part: str) -> str:
        escaped = part.encode("unicode_escape").decode("ascii")
        if any(char.isspace() for char in part):
            escaped = escaped.replace('"', r"\"")
            return f'"{escaped}"'
        return escaped

    return " ".join(_format_part(part) for part in parts)


def _format_validation_error(exc: ValidationError) -> str:
    """Return a concise summary describing ``exc``."""
    fragments: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "config"
        message = error.get("msg") or str(exc)
        fragments.append(f"{location}: {message}")
    return "; ".join(fragments)


def _prepare_engine(
    config_path: Path | None,
    *,
    json_logs: bool,
    dry_run: bool,
    silence_logs: bool,
) -> ConvergenceEngine:
    try:
        config = load_config(config_path)
    except FileNotFoundError as exc:
        typer.echo(f"Configuration file not found: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except ValidationError as exc:
        message = _format_validation_error(exc) or str(exc)
        typer.echo(f"Invalid configuration: {message}", err=True)
        raise typer.Exit(code=2) from exc
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    return build_engine(config, dry_run=dry_run, json_logs=json_logs, silence_logs=silence_logs)


def _build_request(
    repo_path: Path,
    name: str | None,
    visibility: Visibility | None,
    description: str | None,
    *,
    required: bool,
) -> CreateRequest | None:
    """Return a creation request, or ``None`` when none was asked for and none is required."""
    if not required and name is None and visibility is None and description is None:
        return None
    try:
        return build_create_request(name or repo_path.name, visibility, description)
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc


def _handle_tool_failures(operation: Callable[[], T]) -> T:
    """Execute ``operation`` and convert tool failures into CLI exits."""
    try:
        return operation()
    except (CommandError, HostingResponseError, OSError) as exc:
        error = classify_failure(exc)
        typer.echo(f"{error.kind.value}: {error.message}", err=True)
        if error.hint:
            typer.echo(error.hint, err=True)
        raise typer.Exit(code=1) from exc


def _render_result(result: SyncResult, *, json_output: bool, dry_run: bool) -> None:
    if json_output:
        payload = result.model_dump(mode="json")
        payload["dry_run"] = dry_run
        _emit_json(payload)
    else:
        lines: list[str] = [f"Mode: {'dry-run' if dry_run else 'confirmed'}"]
        for index, outcome in enumerate(result.log, start=1):
            lines.append(f"  {index}. {outcome.kind.value} [{outcome.status.value}] {outcome.detail}")
        if dry_run and result.command_history:
            lines.append("Command history:")
            for entry in result.command_history:
                command = _format_command(tuple(str(part) for part in entry.get("command", [])))
                lines.append(f"  - {command} (dry_run={entry.get('dry_run')})")
        if result.succeeded:
            lines.append(f"Synchronized: {result.url or 'remote URL unknown'}")
        typer.echo("\n".join(lines))
        if result.error is not None:
            typer.echo(f"{result.error.kind.value}: {result.error.message}", err=True)
            if result.error.hint:
                typer.echo(result.error.hint, err=True)

    if not result.succeeded:
        raise typer.Exit(code=1)


@app.callback()
def cli_root() -> None:
    """Bootstrap a directory into a GitHub repository and keep it pushed."""


RepoOption = Annotated[Path | None, typer.Option(help="Path to the working directory.")]
ConfigOption = Annotated[Path | None, typer.Option(help="Path to a configuration TOML.")]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", "--json-output", help="Emit JSON instead of text."),
]
DryRunFlag = Annotated[
    bool,
    typer.Option("--dry-run", help="Record mutating commands without running them."),
]
NameOption = Annotated[
    str | None,
    typer.Option("--name", help="Repository name (defaults to the directory name)."),
]
DescriptionOption = Annotated[str | None, typer.Option("--description", help="Repository description.")]
VisibilityOption = Annotated[
    Visibility | None,
    typer.Option("--visibility", case_sensitive=False, help="Repository visibility."),
]


@app.command("status")
def status_command(
    repo: RepoOption = None,
    config: ConfigOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Show the probed repository state."""
    engine = _prepare_engine(config, json_logs=json_output, dry_run=True, silence_logs=json_output)
    try:
        repo_path = resolve_working_directory(_resolve_repo(repo))
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    computation = _handle_tool_failures(lambda: engine.compute_plan(repo_path))
    state = computation.state

    if json_output:
        _emit_json(state.model_dump(mode="json"))
        return

    identity = state.identity
    who = identity.identity.login if identity.identity else identity.status.value
    lines = [
        f"Repository: {state.path}",
        f"Identity: {who}",
        f"Initialized: {'yes' if state.version_control_initialized else 'no'}",
        f"Ignore rules: {'yes' if state.ignore_rules_present else 'no'}",
        f"Commits: {'yes' if state.has_commits else 'no'}",
        f"Pending changes: {'yes' if state.has_pending_changes else 'no'}",
        f"Remote: {state.remote_url or 'none'}",
        f"Ecosystems: {', '.join(state.ecosystems) or 'none'}",
    ]
    typer.echo("\n".join(lines))


@app.command("plan")
def plan_command(
    repo: RepoOption = None,
    config: ConfigOption = None,
    name: NameOption = None,
    description: DescriptionOption = None,
    visibility: VisibilityOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Display the steps a sync would run, without running them."""
    engine = _prepare_engine(config, json_logs=json_output, dry_run=True, silence_logs=json_output)
    try:
        repo_path = resolve_working_directory(_resolve_repo(repo))
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    request = _build_request(repo_path, name, visibility, description, required=False)
    computation = _handle_tool_failures(lambda: engine.compute_plan(repo_path, request))
    plan = computation.plan

    if json_output:
        _emit_json(
            {
                "repository": str(repo_path),
                "state": computation.state.model_dump(mode="json"),
                "plan": plan.model_dump(mode="json"),
            },
        )
        return

    lines = [f"Repository: {repo_path}"]
    if plan.error is not None:
        lines.append(f"Blocked: {plan.error.kind.value}: {plan.error.message}")
        if plan.error.hint:
            lines.append(f"  next: {plan.error.hint}")
    else:
        lines.append("Steps:")
        for index, step in enumerate(plan.steps, start=1):
            lines.append(f"  {index}. {step.kind.value}")
            if step.rationale:
                lines.append(f"     reason: {step.rationale}")
            if step.params:
                lines.append(f"     params: {json.dumps(step.params, ensure_ascii=False)}")
    if plan.notes:
        lines.append("Notes:")
        lines.extend(f"  - {note}" for note in plan.notes)
    typer.echo("\n".join(lines))


@app.command("sync")
def sync_command(
    repo: RepoOption = None,
    config: ConfigOption = None,
    name: NameOption = None,
    description: DescriptionOption = None,
    visibility: VisibilityOption = None,
    json_output: JsonFlag = False,
    dry_run: DryRunFlag = False,
) -> None:
    """Commit and push, creating the GitHub repository when no remote exists."""
    engine = _prepare_engine(config, json_logs=json_output, dry_run=dry_run, silence_logs=json_output)
    repo_path = _resolve_repo(repo)
    request = _build_request(repo_path, name, visibility, description, required=False)
    result = engine.synchronize(repo_path, request)
    _render_result(result, json_output=json_output, dry_run=dry_run)


@app.command("create")
def create_command(
    visibility: Annotated[
        Visibility,
        typer.Option("--visibility", case_sensitive=False, help="Repository visibility (required)."),
    ],
    repo: RepoOption = None,
    config: ConfigOption = None,
    name: NameOption = None,
    description: DescriptionOption = None,
    json_output: JsonFlag = False,
    dry_run: DryRunFlag = False,
) -> None:
    """Create the GitHub repository for the directory and push it."""
    engine = _prepare_engine(config, json_logs=json_output, dry_run=dry_run, silence_logs=json_output)
    repo_path = _resolve_repo(repo)
    request = _build_request(repo_path, name, visibility, description, required=True)
    result = engine.create_remote(repo_path, cast("CreateRequest", request))
    _render_result(result, json_output=json_output, dry_run=dry_run)


@app.command("repos")
def repos_command(
    config: ConfigOption = None,
    limit: Annotated[int | None, typer.Option("--limit", min=1, help="Maximum repositories to list.")] = None,
    json_output: JsonFlag = False,
) -> None:
    """List repositories owned by the authenticated user."""
    engine = _prepare_engine(config, json_logs=json_output, dry_run=False, silence_logs=json_output)
    repositories = _handle_tool_failures(lambda: engine.list_repositories(limit=limit))

    if json_output:
        _emit_json([repository.model_dump(mode="json") for repository in repositories])
        return

    lines: list[str] = []
    for repository in repositories:
        label = "private" if repository.private else "public"
        line = f"{repository.name} ({label}) {repository.url}"
        if repository.description:
            line = f"{line} - {repository.description}"
        lines.append(line)
    typer.echo("\n".join(lines) if lines else "No repositories found.")


@app.command("clone")
def clone_command(
    repository: Annotated[str, typer.Argument(help="Repository URL or owner/name.")],
    target: Annotated[Path, typer.Argument(help="Directory to clone into.")],
    config: ConfigOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Clone a repository through the GitHub CLI."""
    engine = _prepare_engine(config, json_logs=json_output, dry_run=False, silence_logs=json_output)
    result = engine.clone_repository(repository, target)
    if json_output:
        _emit_json(result.model_dump(mode="json"))
    elif result.succeeded:
        typer.echo(f"Cloned {repository} into {target}")
    elif result.error is not None:
        typer.echo(f"{result.error.kind.value}: {result.error.message}", err=True)
    if not result.succeeded:
        raise typer.Exit(code=1)


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the ghsync CLI and return the exit status."""
    command = typer.main.get_command(app)
    try:
        command.main(
            args=list(argv) if argv is not None else None,
            prog_name="ghsync",
            standalone_mode=True,
        )
    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
