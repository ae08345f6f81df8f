"""XDG config loading/saving."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path
from typing import Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("~/.config/ohlrun/config.toml").expanduser()
DEFAULT_SHELL = "/bin/sh"
DEFAULT_TERMINAL_TITLE = "OHL"
DEFAULT_MAX_TERMINALS = 4
DEFAULT_LOG_LEVEL: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "INFO"
SHELL_ENV = "OHLRUN_SHELL"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "ERROR"}


def default_shell() -> str:
    return os.environ.get("SHELL", "").strip() or DEFAULT_SHELL


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    shell: str = Field(default_factory=default_shell)
    terminal_title: str = DEFAULT_TERMINAL_TITLE
    max_terminals: int = Field(default=DEFAULT_MAX_TERMINALS, ge=1, le=16)
    log_level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = DEFAULT_LOG_LEVEL

    @field_validator("shell", "terminal_title")
    @classmethod
    def _validate_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Value cannot be empty")
        return value.strip()


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    shell = raw.get("shell", cfg.shell)
    if isinstance(shell, str) and shell.strip():
        cfg.shell = shell
    env_shell = os.getenv(SHELL_ENV, "").strip()
    if env_shell:
        cfg.shell = env_shell

    terminal_title = raw.get("terminal_title", cfg.terminal_title)
    if isinstance(terminal_title, str) and terminal_title.strip():
        cfg.terminal_title = terminal_title

    max_terminals = raw.get("max_terminals", cfg.max_terminals)
    if isinstance(max_terminals, int) and not isinstance(max_terminals, bool) and 1 <= max_terminals <= 16:
        cfg.max_terminals = max_terminals

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str):
        normalized = log_level.strip().upper()
        if normalized == "WARNING":
            normalized = "WARN"
        if normalized in _VALID_LOG_LEVELS:
            cfg.log_level = cast(Literal["DEBUG", "INFO", "WARN", "ERROR"], normalized)

    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _sanitize({})
    if not isinstance(raw, dict):
        return _sanitize({})
    return _sanitize(raw)


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        f"shell = {_toml_scalar(config.shell)}",
        f"terminal_title = {_toml_scalar(config.terminal_title)}",
        f"max_terminals = {_toml_scalar(config.max_terminals)}",
        f"log_level = {_toml_scalar(config.log_level)}",
    ]
    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved
