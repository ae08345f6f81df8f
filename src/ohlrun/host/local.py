"""File-backed editor documents for running outside an editor host."""

from __future__ import annotations

import asyncio
import logging as py_logging
from pathlib import Path

from ohlrun.errors import ExitCode, OhlRunError

logger = py_logging.getLogger(__name__)


class FileDocument:
    def __init__(self, path: str | Path, text: str | None = None) -> None:
        self.path = Path(path).expanduser().resolve()
        self._saved_text = self._read() if self.path.exists() else ""
        self.text = self._saved_text if text is None else text

    def _read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise OhlRunError(
                f"Failed to read file: {self.path}",
                code=ExitCode.VALIDATION_ERROR,
                hint=str(exc) or "Check file permissions.",
            ) from exc

    def file_path(self) -> str:
        return str(self.path)

    def is_dirty(self) -> bool:
        return self.text != self._saved_text

    def update(self, text: str) -> None:
        self.text = text

    async def save(self) -> None:
        snapshot = self.text
        try:
            await asyncio.to_thread(self.path.write_text, snapshot, encoding="utf-8")
        except OSError as exc:
            logger.error("Save failed path=%s error=%s", self.path, exc)
            raise OhlRunError(
                f"Failed to save file: {self.path}",
                code=ExitCode.SAVE_ERROR,
                hint=str(exc) or "Check disk space and file permissions.",
            ) from exc
        self._saved_text = snapshot
        logger.debug("Saved %s (%s chars)", self.path, len(snapshot))


class LocalWorkspace:
    """Tracks open documents and which one is focused."""

    def __init__(self) -> None:
        self._documents: dict[Path, FileDocument] = {}
        self._active: FileDocument | None = None

    def open(self, path: str | Path) -> FileDocument:
        resolved = Path(path).expanduser().resolve()
        if resolved.is_dir():
            raise OhlRunError(
                f"Expected a file, got a directory: {resolved}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Pass the path of an OHL source file.",
            )
        document = self._documents.get(resolved)
        if document is None:
            document = FileDocument(resolved)
            self._documents[resolved] = document
        self._active = document
        return document

    def list_documents(self) -> list[FileDocument]:
        return [self._documents[key] for key in sorted(self._documents)]

    def close_active(self) -> None:
        if self._active is None:
            return
        self._documents.pop(self._active.path, None)
        self._active = None

    def get_active_editor(self) -> FileDocument | None:
        return self._active
