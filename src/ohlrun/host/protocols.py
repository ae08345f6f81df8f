"""Capability interfaces the run-file command consumes from its host."""

from __future__ import annotations

from typing import Protocol


class Editor(Protocol):
    def is_dirty(self) -> bool: ...

    async def save(self) -> None: ...

    def file_path(self) -> str: ...


class EditorProvider(Protocol):
    def get_active_editor(self) -> Editor | None: ...


class Terminal(Protocol):
    def show(self) -> None: ...

    def send_text(self, line: str) -> None: ...


class TerminalProvider(Protocol):
    def get_active_terminal(self) -> Terminal | None: ...

    def create_terminal(self) -> Terminal: ...
