"""Editor commands contributed by ohlrun."""

from .registry import CommandHandler, CommandRegistry, Disposable
from .run_file import RUN_FILE_COMMAND_ID, RUN_FILE_COMMAND_TITLE, RunFileCommand, build_run_text

__all__ = [
    "build_run_text",
    "CommandHandler",
    "CommandRegistry",
    "Disposable",
    "RUN_FILE_COMMAND_ID",
    "RUN_FILE_COMMAND_TITLE",
    "RunFileCommand",
]
