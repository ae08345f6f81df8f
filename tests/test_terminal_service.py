from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from ohlrun.commands import RunFileCommand
from ohlrun.errors import ExitCode, OhlRunError
from ohlrun.terminal import ShellBackend, TerminalService, TerminalState


class _SpyBackend(ShellBackend):
    def __init__(self, *, fail_start: bool = False) -> None:
        super().__init__(spawn=self._spawn_fake)
        self.fail_start = fail_start
        self.started: list[tuple[str, str, str | None]] = []
        self.writes: list[tuple[str, str]] = []
        self.stopped: list[str] = []
        self.closed_inputs: list[str] = []
        self.running: set[str] = set()

    @staticmethod
    def _spawn_fake(_command: list[str], _cwd: str | None, _env: dict[str, str] | None) -> object:
        raise AssertionError("spawn is not used by the spy backend")

    def start(self, terminal_id: str, *, shell: str, cwd: str | None = None, env=None):
        if self.fail_start:
            raise OhlRunError("Failed to start shell process.", code=ExitCode.TERMINAL_ERROR)
        self.started.append((terminal_id, shell, cwd))
        self.running.add(terminal_id)

    def write(self, terminal_id: str, payload: str) -> None:
        self.writes.append((terminal_id, payload))

    def close_input(self, terminal_id: str) -> None:
        self.closed_inputs.append(terminal_id)

    def wait(self, terminal_id: str, *, timeout: float | None = None) -> int:
        return 3

    def stop(self, terminal_id: str) -> None:
        self.stopped.append(terminal_id)
        self.running.discard(terminal_id)

    def is_running(self, terminal_id: str) -> bool:
        return terminal_id in self.running


def test_no_active_terminal_until_one_is_created() -> None:
    service = TerminalService(backend=_SpyBackend())

    assert service.get_active_terminal() is None


def test_create_terminal_becomes_active_and_is_lazy() -> None:
    backend = _SpyBackend()
    service = TerminalService(shell="/bin/bash", title="OHL", cwd="/work", backend=backend)

    terminal = service.create_terminal()

    assert service.get_active_terminal() == terminal
    assert terminal.instance.state == TerminalState.CREATED
    assert terminal.instance.spec.title == "OHL"
    assert backend.started == []


def test_show_starts_shell_and_marks_visible() -> None:
    backend = _SpyBackend()
    service = TerminalService(shell="/bin/bash", cwd="/work", backend=backend)
    terminal = service.create_terminal()

    terminal.show()

    assert backend.started == [("t1", "/bin/bash", "/work")]
    assert terminal.instance.visible is True
    assert terminal.instance.state == TerminalState.RUNNING


def test_send_text_appends_newline_so_the_shell_executes_it() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    terminal = service.create_terminal()

    terminal.send_text('oo run "/a/b/my file.ts"')

    assert backend.writes == [("t1", 'oo run "/a/b/my file.ts"\n')]
    assert [event.step for event in service.list_events()] == ["create", "start", "send"]


def test_terminal_limit_is_enforced() -> None:
    service = TerminalService(max_terminals=1, backend=_SpyBackend())
    service.create_terminal()

    with pytest.raises(OhlRunError) as exc:
        service.create_terminal()

    assert exc.value.code == ExitCode.VALIDATION_ERROR


@pytest.mark.parametrize("count", [0, 17])
def test_invalid_max_terminals_is_rejected(count: int) -> None:
    with pytest.raises(OhlRunError):
        TerminalService(max_terminals=count, backend=_SpyBackend())


def test_second_terminal_gets_suffixed_title_and_becomes_active() -> None:
    service = TerminalService(title="OHL", backend=_SpyBackend())
    service.create_terminal()

    second = service.create_terminal()

    assert second.terminal_id == "t2"
    assert second.instance.spec.title == "OHL (t2)"
    assert service.get_active_terminal() == second


def test_close_active_falls_back_to_latest_remaining_terminal() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    service.create_terminal()
    second = service.create_terminal()
    second.show()

    service.close("t2")

    assert backend.stopped == ["t2"]
    assert service.get_active_terminal().terminal_id == "t1"
    service.close("t1")
    assert service.get_active_terminal() is None


def test_activate_switches_active_terminal() -> None:
    service = TerminalService(backend=_SpyBackend())
    service.create_terminal()
    service.create_terminal()

    service.activate("t1")

    assert service.get_active_terminal().terminal_id == "t1"
    with pytest.raises(OhlRunError):
        service.activate("t9")


def test_failed_start_marks_instance_failed() -> None:
    service = TerminalService(backend=_SpyBackend(fail_start=True))
    terminal = service.create_terminal()

    with pytest.raises(OhlRunError) as exc:
        terminal.show()

    assert exc.value.code == ExitCode.TERMINAL_ERROR
    assert terminal.instance.state == TerminalState.FAILED
    with pytest.raises(OhlRunError):
        terminal.send_text("echo")


def test_wait_closes_input_and_records_exit_code() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    terminal = service.create_terminal()
    terminal.show()

    returncode = service.wait("t1")

    assert returncode == 3
    assert backend.closed_inputs == ["t1"]
    assert terminal.instance.state == TerminalState.STOPPED
    assert terminal.instance.metadata["returncode"] == "3"


def test_wait_on_never_started_terminal_is_noop() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    service.create_terminal()

    assert service.wait("t1") == 0
    assert backend.closed_inputs == []


def test_concurrent_event_writers_do_not_drop_events() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    terminal = service.create_terminal()
    terminal.show()

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda index: terminal.send_text(f"echo {index}"), range(200)))

    sends = [event for event in service.list_events() if event.step == "send"]
    assert len(sends) == 200


def _run_file(service: TerminalService, path: str) -> None:
    class _Editor:
        def is_dirty(self) -> bool:
            return False

        async def save(self) -> None:
            return None

        def file_path(self) -> str:
            return path

    class _Editors:
        def get_active_editor(self) -> _Editor:
            return _Editor()

    asyncio.run(RunFileCommand(_Editors(), service)())


def test_waited_terminal_is_not_reused_by_next_run() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    _run_file(service, "/a/main.ohl")
    service.wait("t1")

    assert service.get_active_terminal() is None
    _run_file(service, "/a/main.ohl")

    assert backend.writes == [
        ("t1", 'oo run "/a/main.ohl"\n'),
        ("t2", 'oo run "/a/main.ohl"\n'),
    ]


def test_shell_that_exited_on_its_own_is_replaced() -> None:
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    _run_file(service, "/a/main.ohl")
    backend.running.discard("t1")

    _run_file(service, "/a/other.ohl")

    assert backend.writes[-1] == ("t2", 'oo run "/a/other.ohl"\n')
    assert service.get_instance("t1").state == TerminalState.STOPPED
    assert service.get_active_terminal().terminal_id == "t2"


def test_stopped_terminals_do_not_count_toward_limit() -> None:
    service = TerminalService(max_terminals=1, backend=_SpyBackend())
    service.create_terminal().show()
    service.wait("t1")

    assert service.create_terminal().terminal_id == "t2"


def test_event_log_keeps_only_most_recent_entries() -> None:
    service = TerminalService(backend=_SpyBackend(), max_events=5)
    terminal = service.create_terminal()

    for index in range(20):
        terminal.send_text(f"echo {index}")

    events = service.list_events()
    assert len(events) == 5
    assert events[-1].message == "echo 19"


def test_dispose_closes_terminals_and_releases_exit_hook(monkeypatch: pytest.MonkeyPatch) -> None:
    released: list[object] = []
    monkeypatch.setattr("ohlrun.terminal.backend.atexit.unregister", released.append)
    backend = _SpyBackend()
    service = TerminalService(backend=backend)
    service.create_terminal().show()

    service.dispose()

    assert service.list_instances() == []
    assert backend.stopped == ["t1"]
    assert released == [backend.stop_all]
