"""Errors raised by the run-file command's local host, and the CLI exit codes they map to.

The command itself never catches; whoever invokes it decides how an
``OhlRunError`` is presented. Save and terminal failures keep separate codes
so a wrapper can tell a stale-file risk apart from a shell problem.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    SAVE_ERROR = 5
    TERMINAL_ERROR = 6
    VALIDATION_ERROR = 7


@dataclass
class OhlRunError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        return f"{self.message} Hint: {self.hint}" if self.hint else self.message

    @property
    def is_save_failure(self) -> bool:
        return self.code == ExitCode.SAVE_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    body = message.rstrip(".")
    if hint:
        return f"Error: {body}. Next step: {hint}"
    return f"Error: {body}."


def describe(error: OhlRunError) -> str:
    """Stderr line for a handled error; save failures say nothing was run."""
    message = error.message
    if error.is_save_failure:
        message = f"{message.rstrip('.')} (file was not run)"
    return user_facing_error(message, hint=error.hint)
