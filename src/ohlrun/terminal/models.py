"""Terminal domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TerminalState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class TerminalSpec:
    terminal_id: str
    title: str
    shell: str = "/bin/sh"
    cwd: str = ""


@dataclass
class TerminalInstance:
    spec: TerminalSpec
    state: TerminalState = TerminalState.CREATED
    visible: bool = False
    metadata: dict[str, str] = field(default_factory=dict)
