"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
import structlog

from droidlink.core.orchestrator import ConnectionOrchestrator
from droidlink.exceptions import ErrorKind
from droidlink.models.config import ToolConfig
from droidlink.models.result import OperationResult

SAMPLE_DEVICES_OUTPUT = (
    "List of devices attached\n"
    "emulator-5554          device product:sdk_gphone64 model:sdk_gphone64 device:emu64 transport_id:1\n"
    "192.168.1.20:5555      device product:panther model:Pixel_7 device:panther transport_id:3\n"
    "R58M12ABCDE            unauthorized usb:1-1 transport_id:4\n"
    "\n"
)


class ScriptedRunner:
    """Stand-in for CommandRunner that answers from a table of canned results.

    Keys are the space-joined argument list. A value may be an
    OperationResult, a list of them (consumed in order), or an exception
    to raise. Unknown commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.threads: list[int] = []
        self._responses: dict[str, object] = {}
        self._lock = threading.Lock()

    def respond(self, command: str, response: object) -> None:
        self._responses[command] = response

    def ok(self, command: str, output: str = "") -> None:
        self.respond(command, OperationResult.ok(output))

    def fail(self, command: str, reason: str = "error: device offline") -> None:
        self.respond(command, OperationResult.fail(reason, kind=ErrorKind.PROCESS_FAILURE))

    @property
    def commands(self) -> list[str]:
        return [" ".join(c) for c in self.calls]

    def run(self, executable, arguments, log=None) -> OperationResult:
        args = tuple(arguments)
        key = " ".join(args)
        with self._lock:
            self.calls.append(args)
            self.threads.append(threading.get_ident())
            response = self._responses.get(key, OperationResult.ok(""))
            if isinstance(response, list):
                response = response.pop(0) if len(response) > 1 else response[0]
        if log is not None:
            log(f"Running bridge command: {key}", False)
        if isinstance(response, Exception):
            raise response
        if log is not None and response.failed:
            log(f"Bridge command error: {response.reason}", True)
        return response


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any setup_logging() call so later tests never write to a closed stream."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def adb_path(tmp_path: Path) -> str:
    """An existing file standing in for the adb executable."""
    path = tmp_path / "platform-tools" / "adb"
    path.parent.mkdir()
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return str(path)


@pytest.fixture()
def runner() -> ScriptedRunner:
    runner = ScriptedRunner()
    runner.ok("devices -l", SAMPLE_DEVICES_OUTPUT)
    return runner


@pytest.fixture()
def orchestrator(adb_path: str, runner: ScriptedRunner):
    orch = ConnectionOrchestrator(
        ToolConfig(bridge_executable_path=adb_path),
        runner=runner,
        auto_refresh=False,
    )
    yield orch
    orch.close()


@pytest.fixture()
def devices_output() -> str:
    return SAMPLE_DEVICES_OUTPUT
