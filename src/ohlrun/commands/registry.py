"""Host command registry: identifiers mapped to async handlers."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Awaitable, Callable

from ohlrun.errors import ExitCode, OhlRunError

logger = py_logging.getLogger(__name__)

CommandHandler = Callable[[], Awaitable[None]]


def _normalize_id(command_id: str) -> str:
    return command_id.strip()


class Disposable:
    def __init__(self, on_dispose: Callable[[], None]) -> None:
        self._on_dispose: Callable[[], None] | None = on_dispose

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None

    def dispose(self) -> None:
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


class CommandRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}

    def register(self, command_id: str, handler: CommandHandler) -> Disposable:
        key = _normalize_id(command_id)
        if not key:
            raise OhlRunError(
                "Command identifier is required.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Register the command under a non-empty identifier.",
            )
        if key in self._handlers:
            raise OhlRunError(
                f"Command already registered: {key}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Dispose the existing registration first.",
            )
        self._handlers[key] = handler
        logger.debug("Registered command %s", key)

        def _unregister() -> None:
            if self._handlers.get(key) is handler:
                del self._handlers[key]
                logger.debug("Unregistered command %s", key)

        return Disposable(_unregister)

    def has(self, command_id: str) -> bool:
        return _normalize_id(command_id) in self._handlers

    def list_commands(self) -> list[str]:
        return sorted(self._handlers)

    async def execute(self, command_id: str) -> None:
        key = _normalize_id(command_id)
        handler = self._handlers.get(key)
        if handler is None:
            raise OhlRunError(
                f"Command not found: {key}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Activate the extension before invoking its commands.",
            )
        logger.debug("Executing command %s", key)
        await handler()
