"""Ignore-rule templates selected by ecosystem marker files."""

from __future__ import annotations

from dataclasses import dataclass
from textwrap import dedent
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

IGNORE_FILENAME = ".gitignore"

UNIVERSAL_TEMPLATE = dedent(
    """\
    # OS
    .DS_Store
    Thumbs.db
    *.swp
    *.swo
    *~

    # IDE
    .idea/
    .vscode/settings.json
    *.sublime-*
    """,
)


@dataclass(frozen=True, slots=True)
class EcosystemTemplate:
    """Ignore section emitted when any of its markers is present."""

    key: str
    marker_files: tuple[str, ...]
    marker_suffixes: tuple[str, ...]
    body: str

    def matches(self, names: Iterable[str]) -> bool:
        return any(name in self.marker_files or name.endswith(self.marker_suffixes) for name in names)


ECOSYSTEM_TEMPLATES: tuple[EcosystemTemplate, ...] = (
    EcosystemTemplate(
        key="node",
        marker_files=("package.json",),
        marker_suffixes=(),
        body=dedent(
            """\
            # Node
            node_modules/
            npm-debug.log*
            yarn-error.log
            .env
            .env.local
            .env.*.local
            dist/
            build/
            coverage/
            .cache/
            """,
        ),
    ),
    EcosystemTemplate(
        key="python",
        marker_files=("requirements.txt", "setup.py", "pyproject.toml"),
        marker_suffixes=(".py",),
        body=dedent(
            """\
            # Python
            __pycache__/
            *.py[cod]
            *$py.class
            .env
            venv/
            .venv/
            env/
            *.egg-info/
            dist/
            build/
            .pytest_cache/
            .coverage
            htmlcov/
            """,
        ),
    ),
    EcosystemTemplate(
        key="rust",
        marker_files=("Cargo.toml",),
        marker_suffixes=(),
        body=dedent(
            """\
            # Rust
            /target/
            Cargo.lock
            """,
        ),
    ),
    EcosystemTemplate(
        key="go",
        marker_files=("go.mod",),
        marker_suffixes=(),
        body=dedent(
            """\
            # Go
            /vendor/
            *.exe
            """,
        ),
    ),
    EcosystemTemplate(
        key="java",
        marker_files=("pom.xml", "build.gradle"),
        marker_suffixes=(".java",),
        body=dedent(
            """\
            # Java
            *.class
            *.jar
            *.war
            target/
            build/
            .gradle/
            """,
        ),
    ),
    EcosystemTemplate(
        key="c",
        marker_files=(),
        marker_suffixes=(".c", ".cpp", ".h"),
        body=dedent(
            """\
            # C/C++
            *.o
            *.obj
            *.exe
            *.out
            *.a
            *.so
            *.dylib
            """,
        ),
    ),
)


def detect_ecosystems(directory: Path) -> tuple[str, ...]:
    """Return ecosystem keys whose marker files sit at the top of ``directory``."""
    try:
        names = [entry.name for entry in directory.iterdir() if entry.is_file()]
    except (FileNotFoundError, NotADirectoryError):
        return ()
    return tuple(template.key for template in ECOSYSTEM_TEMPLATES if template.matches(names))


def compose_ignore_rules(ecosystems: Sequence[str]) -> str:
    """Concatenate the universal template with the sections for ``ecosystems``.

    Unknown keys are ignored; sections keep catalogue order regardless of the
    order of ``ecosystems``.
    """
    wanted = set(ecosystems)
    sections = [UNIVERSAL_TEMPLATE]
    sections.extend(template.body for template in ECOSYSTEM_TEMPLATES if template.key in wanted)
    return "\n".join(sections)


def write_ignore_rules(directory: Path, ecosystems: Sequence[str]) -> bool:
    """Create the ignore file in ``directory`` unless one already exists.

    Returns ``True`` when the file was written.
    """
    target = directory / IGNORE_FILENAME
    try:
        with target.open("x", encoding="utf-8") as stream:
            stream.write(compose_ignore_rules(ecosystems))
    except FileExistsError:
        return False
    return True


__all__ = [
    "ECOSYSTEM_TEMPLATES",
    "IGNORE_FILENAME",
    "UNIVERSAL_TEMPLATE",
    "EcosystemTemplate",
    "compose_ignore_rules",
    "detect_ecosystems",
    "write_ignore_rules",
]
