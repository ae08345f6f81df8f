"""Subprocess-backed shell sessions fed through a piped stdin."""

from __future__ import annotations

import atexit
import shlex
import subprocess
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import IO, Protocol

from ohlrun.errors import ExitCode, OhlRunError


class ShellProcess(Protocol):
    stdin: IO[str] | None

    def poll(self) -> int | None: ...

    def wait(self, timeout: float | None = None) -> int: ...

    def terminate(self) -> None: ...


@dataclass(frozen=True)
class ShellHandle:
    terminal_id: str
    command: tuple[str, ...]
    cwd: str | None = None


ShellSpawn = Callable[[list[str], str | None, dict[str, str] | None], ShellProcess]


def build_shell_command(shell: str) -> list[str]:
    try:
        argv = shlex.split(shell)
    except ValueError as exc:
        raise OhlRunError(
            f"Invalid shell command: {shell}",
            code=ExitCode.VALIDATION_ERROR,
            hint=str(exc),
        ) from exc
    if not argv:
        raise OhlRunError(
            "Shell command cannot be empty.",
            code=ExitCode.VALIDATION_ERROR,
            hint="Set a shell such as /bin/sh or bash.",
        )
    return argv


def _spawn_with_subprocess(
    command: list[str], cwd: str | None, env: dict[str, str] | None
) -> ShellProcess:
    return subprocess.Popen(
        command,
        stdin=subprocess.PIPE,
        cwd=cwd or None,
        env=env,
        text=True,
        encoding="utf-8",
    )


class ShellBackend:
    def __init__(self, spawn: ShellSpawn | None = None) -> None:
        self._spawn = spawn or _spawn_with_subprocess
        self._sessions: dict[str, ShellProcess] = {}
        self._handles: dict[str, ShellHandle] = {}
        atexit.register(self.stop_all)

    def start(
        self,
        terminal_id: str,
        *,
        shell: str,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> ShellHandle:
        if terminal_id in self._sessions:
            raise OhlRunError(
                f"Terminal already started: {terminal_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Stop the current shell session before starting a new one.",
            )
        command = build_shell_command(shell)
        try:
            process = self._spawn(command, cwd, env)
        except OhlRunError:
            raise
        except Exception as exc:
            raise OhlRunError(
                "Failed to start shell process.",
                code=ExitCode.TERMINAL_ERROR,
                hint=str(exc) or "Check the configured shell.",
            ) from exc

        handle = ShellHandle(terminal_id=terminal_id, command=tuple(command), cwd=cwd)
        self._sessions[terminal_id] = process
        self._handles[terminal_id] = handle
        return handle

    def is_running(self, terminal_id: str) -> bool:
        process = self._sessions.get(terminal_id)
        return process is not None and process.poll() is None

    def write(self, terminal_id: str, payload: str) -> None:
        process = self._require_session(terminal_id)
        if process.stdin is None or process.stdin.closed:
            raise OhlRunError(
                f"Terminal input is closed: {terminal_id}",
                code=ExitCode.TERMINAL_ERROR,
                hint="Open a new terminal.",
            )
        try:
            process.stdin.write(payload)
            process.stdin.flush()
        except (OSError, ValueError) as exc:
            raise OhlRunError(
                f"Failed to write to terminal {terminal_id}.",
                code=ExitCode.TERMINAL_ERROR,
                hint=str(exc) or "Verify the shell process is still alive.",
            ) from exc

    def close_input(self, terminal_id: str) -> None:
        process = self._require_session(terminal_id)
        if process.stdin is not None and not process.stdin.closed:
            with suppress(OSError):
                process.stdin.close()

    def wait(self, terminal_id: str, *, timeout: float | None = None) -> int:
        process = self._require_session(terminal_id)
        try:
            return process.wait(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            raise OhlRunError(
                f"Terminal did not exit in time: {terminal_id}",
                code=ExitCode.TERMINAL_ERROR,
                hint="Stop the terminal manually.",
            ) from exc

    def stop(self, terminal_id: str) -> None:
        process = self._sessions.pop(terminal_id, None)
        self._handles.pop(terminal_id, None)
        if process is None:
            raise OhlRunError(
                f"Terminal not running: {terminal_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Select an active terminal session.",
            )
        self._close_session(process)

    def stop_all(self) -> None:
        for terminal_id in list(self._sessions):
            process = self._sessions.pop(terminal_id, None)
            self._handles.pop(terminal_id, None)
            if process is None:
                continue
            self._close_session(process)

    def shutdown(self) -> None:
        self.stop_all()
        atexit.unregister(self.stop_all)

    def list_handles(self) -> list[ShellHandle]:
        return [self._handles[key] for key in sorted(self._handles)]

    def _require_session(self, terminal_id: str) -> ShellProcess:
        process = self._sessions.get(terminal_id)
        if process is None:
            raise OhlRunError(
                f"Terminal not running: {terminal_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Start the terminal before sending input.",
            )
        return process

    def _close_session(self, process: ShellProcess) -> None:
        if process.stdin is not None:
            with suppress(OSError):
                process.stdin.close()
        if process.poll() is None:
            with suppress(OSError):
                process.terminate()
