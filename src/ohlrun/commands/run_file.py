"""Save-then-run command for the focused OHL file."""

from __future__ import annotations

import logging as py_logging

from ohlrun.host.protocols import EditorProvider, TerminalProvider

logger = py_logging.getLogger(__name__)

RUN_FILE_COMMAND_ID = "ohl.runFile"
RUN_FILE_COMMAND_TITLE = "Run OHL File"


def build_run_text(path: str) -> str:
    # Embedded double quotes are passed through unescaped.
    return f'oo run "{path}"'


class RunFileCommand:
    """Persist the active editor when dirty, then hand its path to ``oo run``.

    The handler keeps no state between invocations: the active editor and
    terminal are read from the injected providers on every call. A failing
    save propagates to the caller and nothing is sent to a terminal.
    """

    command_id = RUN_FILE_COMMAND_ID

    def __init__(self, editors: EditorProvider, terminals: TerminalProvider) -> None:
        self._editors = editors
        self._terminals = terminals

    async def __call__(self) -> None:
        editor = self._editors.get_active_editor()
        if editor is None:
            logger.debug("No active editor; %s skipped", self.command_id)
            return

        if editor.is_dirty():
            logger.debug("Saving dirty buffer before run: %s", editor.file_path())
            await editor.save()

        terminal = self._terminals.get_active_terminal()
        if terminal is None:
            logger.debug("No active terminal; creating one")
            terminal = self._terminals.create_terminal()

        terminal.show()
        text = build_run_text(editor.file_path())
        terminal.send_text(text)
        logger.info("Dispatched run text: %s", text)
