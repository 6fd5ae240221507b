"""Configuration loading for ghsync."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Runtime settings resolved from keyword arguments, then ``GHSYNC_*`` variables."""

    model_config = SettingsConfigDict(env_prefix="GHSYNC_", extra="forbid", validate_default=True)

    host: str = "github.com"
    remote_name: str = "origin"
    initial_commit_message: str = "Initial commit"
    update_commit_message: str = "Update"
    git_binary: str = "git"
    gh_binary: str = "gh"
    command_timeout_sec: float | None = Field(default=None, gt=0)
    repo_list_limit: int = Field(default=50, ge=1, le=1000)

    @field_validator("host", mode="before")
    @classmethod
    def _normalise_host(cls, value: object) -> object:
        """Strip schemes and trailing slashes so ``host`` is a bare hostname."""
        if isinstance(value, str):
            host = value.strip()
            for prefix in ("https://", "http://"):
                host = host.removeprefix(prefix)
            host = host.rstrip("/")
            if not host:
                message = "host must not be empty"
                raise ValueError(message)
            return host
        return value

    @field_validator("remote_name", "initial_commit_message", "update_commit_message")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            message = "value must not be blank"
            raise ValueError(message)
        return value


def load_config(path: Path | None = None, **overrides: Any) -> Config:
    """Load configuration from the TOML file at ``path``.

    Values from the file take precedence over ``GHSYNC_*`` environment
    variables; ``overrides`` take precedence over both.
    """
    data: dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise FileNotFoundError(str(path))
        if not path.is_file():
            message = f"Configuration path is not a file: {path}"
            raise ValueError(message)
        with path.open("rb") as stream:
            raw = tomllib.load(stream)
        # Both a flat file and a [ghsync] table are accepted.
        section = raw.get("ghsync", raw)
        if not isinstance(section, dict):
            message = f"Configuration section 'ghsync' must be a table: {path}"
            raise ValueError(message)
        data.update(section)
    data.update({key: value for key, value in overrides.items() if value is not None})
    return Config(**data)


__all__ = ["Config", "load_config"]
