"""Host capability interfaces and the local file-backed host."""

from .local import FileDocument, LocalWorkspace
from .protocols import Editor, EditorProvider, Terminal, TerminalProvider

__all__ = [
    "Editor",
    "EditorProvider",
    "FileDocument",
    "LocalWorkspace",
    "Terminal",
    "TerminalProvider",
]
