"""Extension activation: wires the run-file command into a host registry."""

from __future__ import annotations

import logging as py_logging
from dataclasses import dataclass, field

from typing_extensions import TypedDict

from ohlrun.commands.registry import CommandRegistry, Disposable
from ohlrun.commands.run_file import RUN_FILE_COMMAND_ID, RUN_FILE_COMMAND_TITLE, RunFileCommand
from ohlrun.host.protocols import EditorProvider, TerminalProvider

logger = py_logging.getLogger(__name__)


class CommandContribution(TypedDict):
    command: str
    title: str


CONTRIBUTIONS: tuple[CommandContribution, ...] = (
    CommandContribution(command=RUN_FILE_COMMAND_ID, title=RUN_FILE_COMMAND_TITLE),
)


@dataclass
class ExtensionContext:
    registry: CommandRegistry
    editors: EditorProvider
    terminals: TerminalProvider
    subscriptions: list[Disposable] = field(default_factory=list)


def activate(context: ExtensionContext) -> RunFileCommand:
    command = RunFileCommand(context.editors, context.terminals)
    context.subscriptions.append(context.registry.register(RUN_FILE_COMMAND_ID, command))
    logger.debug("Activated with commands: %s", ", ".join(item["command"] for item in CONTRIBUTIONS))
    return command


def deactivate(context: ExtensionContext) -> None:
    while context.subscriptions:
        context.subscriptions.pop().dispose()
