"""Local shell terminals backing the run-file command."""

from .backend import ShellBackend, ShellHandle, build_shell_command
from .models import TerminalInstance, TerminalSpec, TerminalState
from .service import ShellTerminal, TerminalEvent, TerminalService

__all__ = [
    "build_shell_command",
    "ShellBackend",
    "ShellHandle",
    "ShellTerminal",
    "TerminalEvent",
    "TerminalInstance",
    "TerminalService",
    "TerminalSpec",
    "TerminalState",
]
