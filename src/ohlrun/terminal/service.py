"""Terminal lifecycle and active-terminal tracking for the local host."""

from __future__ import annotations

import logging as py_logging
import threading
from collections import deque
from contextlib import suppress
from dataclasses import dataclass

from ohlrun.errors import ExitCode, OhlRunError
from ohlrun.terminal.backend import ShellBackend
from ohlrun.terminal.models import TerminalInstance, TerminalSpec, TerminalState

logger = py_logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"
DEFAULT_TITLE = "OHL"
DEFAULT_MAX_EVENTS = 1000
_LIVE_STATES = (TerminalState.CREATED, TerminalState.RUNNING)


@dataclass(frozen=True)
class TerminalEvent:
    terminal_id: str
    step: str
    message: str


class ShellTerminal:
    """Handle passed to commands; delegates to its owning service."""

    def __init__(self, service: TerminalService, terminal_id: str) -> None:
        self._service = service
        self.terminal_id = terminal_id

    @property
    def instance(self) -> TerminalInstance:
        return self._service.get_instance(self.terminal_id)

    def show(self) -> None:
        self._service.show(self.terminal_id)

    def send_text(self, line: str) -> None:
        self._service.send_text(self.terminal_id, line)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShellTerminal):
            return NotImplemented
        return self._service is other._service and self.terminal_id == other.terminal_id

    def __hash__(self) -> int:
        return hash((id(self._service), self.terminal_id))

    def __repr__(self) -> str:
        return f"ShellTerminal({self.terminal_id!r})"


class TerminalService:
    def __init__(
        self,
        *,
        max_terminals: int = 4,
        shell: str = DEFAULT_SHELL,
        title: str = DEFAULT_TITLE,
        cwd: str = "",
        backend: ShellBackend | None = None,
        max_events: int = DEFAULT_MAX_EVENTS,
    ) -> None:
        if max_terminals < 1 or max_terminals > 16:
            raise OhlRunError(
                f"Invalid max terminal count: {max_terminals}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Use a value between 1 and 16.",
            )
        self.max_terminals = max_terminals
        self.shell = shell
        self.title = title
        self.cwd = cwd
        self._backend = backend or ShellBackend()
        self._instances: dict[str, TerminalInstance] = {}
        self._active_id: str | None = None
        self._next_index = 1
        self._events: deque[TerminalEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def get_active_terminal(self) -> ShellTerminal | None:
        terminal_id = self._active_id
        if terminal_id is None:
            return None
        instance = self._instances.get(terminal_id)
        if instance is None or not self._is_live(terminal_id, instance):
            self._active_id = None
            return None
        return ShellTerminal(self, terminal_id)

    def create_terminal(self) -> ShellTerminal:
        live = [key for key, instance in self._instances.items() if self._is_live(key, instance)]
        if len(live) >= self.max_terminals:
            raise OhlRunError(
                f"Terminal limit reached: {self.max_terminals}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Close another terminal before creating a new one.",
            )
        terminal_id = f"t{self._next_index}"
        self._next_index += 1
        title = self.title if terminal_id == "t1" else f"{self.title} ({terminal_id})"
        spec = TerminalSpec(terminal_id=terminal_id, title=title, shell=self.shell, cwd=self.cwd)
        self._instances[terminal_id] = TerminalInstance(spec=spec)
        self._active_id = terminal_id
        self._record(terminal_id, "create", f"Created terminal '{title}'.")
        return ShellTerminal(self, terminal_id)

    def activate(self, terminal_id: str) -> ShellTerminal:
        self._must_get(terminal_id)
        self._active_id = terminal_id
        self._record(terminal_id, "activate", "Terminal is active.")
        return ShellTerminal(self, terminal_id)

    def get_instance(self, terminal_id: str) -> TerminalInstance:
        return self._must_get(terminal_id)

    def list_instances(self) -> list[TerminalInstance]:
        return [self._instances[key] for key in sorted(self._instances)]

    def list_events(self) -> list[TerminalEvent]:
        with self._lock:
            return list(self._events)

    def show(self, terminal_id: str) -> None:
        instance = self._ensure_started(terminal_id)
        instance.visible = True
        self._record(terminal_id, "show", "Terminal shown.")

    def send_text(self, terminal_id: str, line: str) -> None:
        self._ensure_started(terminal_id)
        self._backend.write(terminal_id, f"{line}\n")
        self._record(terminal_id, "send", line)

    def wait(self, terminal_id: str, *, timeout: float | None = None) -> int:
        instance = self._must_get(terminal_id)
        if instance.state != TerminalState.RUNNING:
            return 0
        self._backend.close_input(terminal_id)
        returncode = self._backend.wait(terminal_id, timeout=timeout)
        self._backend.stop(terminal_id)
        instance.state = TerminalState.STOPPED
        instance.metadata["returncode"] = str(returncode)
        if self._active_id == terminal_id:
            self._active_id = None
        self._record(terminal_id, "exit", f"Shell exited with code {returncode}.")
        return returncode

    def close(self, terminal_id: str) -> None:
        instance = self._must_get(terminal_id)
        if instance.state == TerminalState.RUNNING:
            self._backend.stop(terminal_id)
            instance.state = TerminalState.STOPPED
        del self._instances[terminal_id]
        if self._active_id == terminal_id:
            self._active_id = max(self._instances, default=None, key=_terminal_order)
        self._record(terminal_id, "close", "Terminal closed.")

    def close_all(self) -> None:
        for terminal_id in list(self._instances):
            self.close(terminal_id)

    def dispose(self) -> None:
        self.close_all()
        self._backend.shutdown()

    def _is_live(self, terminal_id: str, instance: TerminalInstance) -> bool:
        if instance.state not in _LIVE_STATES:
            return False
        if instance.state == TerminalState.CREATED or self._backend.is_running(terminal_id):
            return True
        # Shell exited on its own (e.g. `exit` was sent).
        with suppress(OhlRunError):
            self._backend.stop(terminal_id)
        instance.state = TerminalState.STOPPED
        self._record(terminal_id, "exit", "Shell exited.")
        return False

    def _ensure_started(self, terminal_id: str) -> TerminalInstance:
        instance = self._must_get(terminal_id)
        if instance.state == TerminalState.RUNNING:
            return instance
        if instance.state in (TerminalState.STOPPED, TerminalState.FAILED):
            raise OhlRunError(
                f"Terminal is not running: {terminal_id}",
                code=ExitCode.TERMINAL_ERROR,
                hint="Create a new terminal.",
            )
        try:
            self._backend.start(
                terminal_id,
                shell=instance.spec.shell,
                cwd=instance.spec.cwd or None,
            )
        except OhlRunError as exc:
            instance.state = TerminalState.FAILED
            instance.metadata["failure_reason"] = exc.message
            self._record(terminal_id, "start-failed", exc.message)
            raise
        instance.state = TerminalState.RUNNING
        self._record(terminal_id, "start", "Terminal is running.")
        return instance

    def _must_get(self, terminal_id: str) -> TerminalInstance:
        instance = self._instances.get(terminal_id)
        if instance is None:
            raise OhlRunError(
                f"Terminal not found: {terminal_id}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Select an existing terminal.",
            )
        return instance

    def _record(self, terminal_id: str, step: str, message: str) -> None:
        with self._lock:
            self._events.append(TerminalEvent(terminal_id=terminal_id, step=step, message=message))
        logger.info("runtime-event terminal=%s step=%s message=%s", terminal_id, step, message)


def _terminal_order(terminal_id: str) -> int:
    return int(terminal_id.lstrip("t") or 0)
