"""Command-line host: opens a file and invokes the run-file command on it."""

from __future__ import annotations

import argparse
import asyncio
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .commands.registry import CommandRegistry
from .commands.run_file import RUN_FILE_COMMAND_ID
from .config import AppConfig, load_config
from .errors import ExitCode, OhlRunError, describe, user_facing_error
from .extension import ExtensionContext, activate, deactivate
from .host.local import LocalWorkspace
from .logging import configure_logging, default_log_path, normalize_level
from .terminal.backend import build_shell_command
from .terminal.service import TerminalService

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


@dataclass
class LocalHost:
    workspace: LocalWorkspace
    terminals: TerminalService


HostFactory = Callable[[AppConfig], LocalHost]


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _shell_type(value: str) -> str:
    shell = value.strip()
    if not shell:
        raise argparse.ArgumentTypeError("--shell cannot be empty")
    try:
        build_shell_command(shell)
    except OhlRunError as exc:
        raise argparse.ArgumentTypeError(f"--shell is invalid: {exc.hint or exc.message}") from exc
    return shell


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ohlrun",
        description="Save an OHL file and run it with `oo run` in a shell terminal.",
    )
    parser.add_argument("file", type=Path)
    parser.add_argument("--shell", type=_shell_type, default=None, help="Shell used for new terminals")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Return right after dispatching instead of waiting for the shell",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_local_host(config: AppConfig) -> LocalHost:
    terminals = TerminalService(
        max_terminals=config.max_terminals,
        shell=config.shell,
        title=config.terminal_title,
        cwd=str(Path.cwd()),
    )
    return LocalHost(workspace=LocalWorkspace(), terminals=terminals)


def validate_target(path: Path) -> Path:
    resolved = path.expanduser()
    if not resolved.exists():
        raise OhlRunError(
            f"File not found: {resolved}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Pass the path of an existing OHL source file.",
        )
    if resolved.is_dir():
        raise OhlRunError(
            f"Expected a file, got a directory: {resolved}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Pass the path of an OHL source file.",
        )
    return resolved.resolve()


def run_file(namespace: argparse.Namespace, config: AppConfig, host_factory: HostFactory) -> int:
    logger = py_logging.getLogger("ohlrun.cli")
    target = validate_target(namespace.file)
    host = host_factory(config)
    context = ExtensionContext(
        registry=CommandRegistry(),
        editors=host.workspace,
        terminals=host.terminals,
    )
    activate(context)
    try:
        host.workspace.open(target)
        asyncio.run(context.registry.execute(RUN_FILE_COMMAND_ID))
        if not namespace.no_wait:
            terminal = host.terminals.get_active_terminal()
            if terminal is not None:
                returncode = host.terminals.wait(terminal.terminal_id)
                logger.debug("Shell %s exited with code %s", terminal.terminal_id, returncode)
    finally:
        deactivate(context)
        if not namespace.no_wait:
            host.terminals.dispose()
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    host_factory: HostFactory | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    config = load_config(namespace.config)
    if namespace.shell:
        config.shell = namespace.shell
    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level or config.log_level, log_file=log_path)

    try:
        logger.debug("Running %s for %s", RUN_FILE_COMMAND_ID, namespace.file)
        return run_file(namespace, config, host_factory or build_local_host)
    except OhlRunError as exc:
        logger.error(
            "Handled OhlRunError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(describe(exc), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        hint = f"Inspect logs: {log_path}"
        print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
