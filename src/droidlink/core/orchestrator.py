"""Connection orchestrator -- runs bridge commands off the owner thread.

Every public operation goes through the same three phases:

1. Admission, on the caller's thread. Missing inputs or a missing bridge
   executable are rejected immediately; nothing is dispatched and the busy
   flag is never raised.
2. Execution, on a worker thread. The operation's bridge commands run
   strictly in order. Results and log lines are collected locally.
3. Completion, on the owner thread when it drains the completion queue.
   The busy flag drops, log lines are appended, parsed output is applied to
   the registry and status text, and refresh-implying operations schedule a
   follow-up refresh.

The owner thread is whichever thread calls ``process_completions()`` or
``wait_idle()``. All orchestrator state is mutated only there.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from droidlink.bridge import parser
from droidlink.bridge.paths import resolve_executable
from droidlink.bridge.runner import CommandRunner
from droidlink.core.dispatch import CompletionQueue, WorkerPool
from droidlink.core.log_sink import LogEntry, LogSink
from droidlink.core.registry import DeviceRegistry
from droidlink.exceptions import (
    DroidlinkError,
    ErrorKind,
    ToolNotFoundError,
    ValidationError,
)
from droidlink.models.config import ToolConfig
from droidlink.models.device import DeviceInfo
from droidlink.models.result import OperationResult
from droidlink.utils.logging import get_logger

logger = get_logger(__name__)

# Interfaces probed by resolve_ip, in order.
NETWORK_INTERFACES = ("wlan0", "eth0", "eth1")

DEFAULT_REFRESH_INTERVAL_S = 5.0

_PROP_MODEL = "ro.product.model"
_PROP_OS_VERSION = "ro.build.version.release"
_PROP_MANUFACTURER = "ro.product.manufacturer"

ERROR_PREFIX = "Error: "


class OperationName(str, Enum):
    REFRESH = "refresh"
    CONNECT = "connect"
    DISCONNECT_ONE = "disconnect_one"
    DISCONNECT_ALL = "disconnect_all"
    INSTALL = "install"
    QUERY_STATE = "query_state"
    VALIDATE_TOOL = "validate_tool"
    RESTART_SERVICE = "restart_service"
    RESOLVE_IP = "resolve_ip"


@dataclass
class Operation:
    """Handle for one orchestrator call. ``result`` is set on completion."""

    name: OperationName
    user_triggered: bool = True
    result: OperationResult | None = None
    message: str = ""

    @property
    def done(self) -> bool:
        return self.result is not None

    @property
    def requires_ack(self) -> bool:
        """Failures of user-triggered operations warrant a blocking prompt."""
        return self.user_triggered and self.result is not None and self.result.failed


@dataclass(frozen=True)
class _Step:
    args: tuple[str, ...]
    critical: bool = False


@dataclass(frozen=True)
class _Outcome:
    result: OperationResult
    message: str
    refresh: bool = False


@dataclass
class _BridgeSession:
    """Worker-side handle: runs commands and buffers their log lines."""

    runner: CommandRunner
    executable: str
    entries: list[LogEntry] = field(default_factory=list)

    def run(self, *args: str) -> OperationResult:
        return self.runner.run(self.executable, args, log=self._record)

    def run_pipeline(self, steps: Sequence[_Step]) -> list[OperationResult]:
        """Run steps in order, stopping after the first failed critical step."""
        results: list[OperationResult] = []
        for step in steps:
            result = self.run(*step.args)
            results.append(result)
            if step.critical and result.failed:
                break
        return results

    def _record(self, message: str, is_error: bool) -> None:
        self.entries.append(LogEntry(message=message, is_error=is_error))


class ConnectionOrchestrator:
    """Coordinates adb calls against shared device state.

    Only one coarse operation should be in flight at a time; callers check
    ``busy`` before starting another. Operations are not queued internally.
    """

    def __init__(
        self,
        config: ToolConfig | None = None,
        runner: CommandRunner | None = None,
        log_sink: LogSink | None = None,
        max_workers: int = 1,
        auto_refresh: bool = True,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ToolConfig()
        self.auto_refresh = auto_refresh
        self.refresh_interval = refresh_interval
        self._runner = runner or CommandRunner()
        self._log = log_sink or LogSink()
        self._clock = clock
        self._completions = CompletionQueue()
        self._workers = WorkerPool(self._completions, max_workers=max_workers)
        self._registry = DeviceRegistry()
        self._busy = False
        self._status_message = ""
        self._device_output = ""
        self._device_info: DeviceInfo | None = None
        self._resolved_address: str | None = None
        self._last_refresh_at: float | None = None
        self._closing = False
        self._listeners: list[Callable[[Operation], None]] = []

    # ------------------------------------------------------------------
    # Published state (read on the owner thread)
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def log(self) -> LogSink:
        return self._log

    @property
    def device_output(self) -> str:
        """Raw device list after a refresh, or the summary after a state query."""
        return self._device_output

    @property
    def device_info(self) -> DeviceInfo | None:
        return self._device_info

    @property
    def resolved_address(self) -> str | None:
        return self._resolved_address

    def add_listener(self, callback: Callable[[Operation], None]) -> None:
        """Call *callback* on the owner thread whenever an operation finishes."""
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Owner-thread pumping
    # ------------------------------------------------------------------

    def process_completions(self) -> int:
        """Apply every finished worker result. Call from the owner's poll loop."""
        return self._completions.drain()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Pump completions until no operation is in flight.

        Follow-up refreshes are waited for too. Returns False on timeout.
        """
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            self._completions.drain()
            if not self._busy:
                return True
            remaining = None
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return False
            self._completions.wait(remaining)

    def tick(self, now: float | None = None) -> Operation | None:
        """Drain completions and start an automatic refresh when one is due."""
        self._completions.drain()
        if not self.auto_refresh or self._busy or self._closing:
            return None
        if resolve_executable(self.config.bridge_executable_path) is None:
            return None
        now = self._clock() if now is None else now
        if (
            self._last_refresh_at is not None
            and now - self._last_refresh_at < self.refresh_interval
        ):
            return None
        return self._refresh(user_triggered=False)

    def close(self) -> None:
        """Wait for in-flight work and apply it. Follow-up refreshes are skipped."""
        self._closing = True
        self._workers.shutdown(wait=True)
        self._completions.drain()

    def __enter__(self) -> ConnectionOrchestrator:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def refresh(self) -> Operation:
        """Re-read the device list and replace the registry."""
        return self._refresh(user_triggered=True)

    def connect(self, address: str, port: int | None = None) -> Operation:
        """Switch the device to network mode and connect to ``address:port``.

        Always disconnects first and issues ``tcpip <port>``; the bridge
        needs both before a network connect succeeds.
        """
        op = Operation(OperationName.CONNECT)
        try:
            executable = self._admit()
            address = _require(address, "Device address")
            port = self.config.default_port if port is None else port
            if not 0 < port < 65536:
                raise ValidationError(f"Port must be between 1 and 65535, got {port}.")
        except DroidlinkError as exc:
            return self._reject(op, exc)

        target = f"{address}:{port}"
        steps = (
            _Step(("disconnect",)),
            _Step(("tcpip", str(port))),
            _Step(("connect", target), critical=True),
        )

        def job(session: _BridgeSession) -> OperationResult:
            return session.run_pipeline(steps)[-1]

        def complete(final: OperationResult) -> _Outcome:
            if final.success and parser.is_connect_success(final.output):
                return _Outcome(
                    OperationResult.ok(final.output),
                    f"Connected to device {target}.",
                    refresh=True,
                )
            detail = final.text.strip()
            return _Outcome(
                OperationResult.fail(
                    f"Failed to connect to {target}: {detail}",
                    kind=final.kind or ErrorKind.PROCESS_FAILURE,
                    output=final.output,
                ),
                "",
                refresh=True,
            )

        return self._dispatch(op, executable, f"Connecting to {target}...", job, complete)

    def disconnect_one(self, identifier: str) -> Operation:
        op = Operation(OperationName.DISCONNECT_ONE)
        try:
            executable = self._admit()
            identifier = _require(identifier, "Device identifier")
        except DroidlinkError as exc:
            return self._reject(op, exc)

        def job(session: _BridgeSession) -> OperationResult:
            return session.run("disconnect", identifier)

        def complete(result: OperationResult) -> _Outcome:
            # A failed disconnect is already in the log; the refresh still runs.
            return _Outcome(
                OperationResult.ok(result.output),
                f"Device {identifier} disconnected.",
                refresh=True,
            )

        return self._dispatch(
            op, executable, f"Disconnecting device {identifier}...", job, complete
        )

    def disconnect_all(self) -> Operation:
        op = Operation(OperationName.DISCONNECT_ALL)
        try:
            executable = self._admit()
        except DroidlinkError as exc:
            return self._reject(op, exc)

        def job(session: _BridgeSession) -> OperationResult:
            return session.run("disconnect")

        def complete(result: OperationResult) -> _Outcome:
            return _Outcome(
                OperationResult.ok(result.output),
                "All devices disconnected.",
                refresh=True,
            )

        return self._dispatch(op, executable, "Disconnecting all devices...", job, complete)

    def install(self, package_path: str, serial: str | None = None) -> Operation:
        """Install (or reinstall) an APK on *serial*, or the only attached device."""
        op = Operation(OperationName.INSTALL)
        try:
            executable = self._admit()
            package_path = _require(package_path, "Package file path")
            if not Path(package_path).expanduser().is_file():
                raise ValidationError(f"Package file not found: {package_path}")
        except DroidlinkError as exc:
            return self._reject(op, exc)

        args = (*_target_args(serial), "install", "-r", package_path)

        def job(session: _BridgeSession) -> OperationResult:
            return session.run(*args)

        def complete(result: OperationResult) -> _Outcome:
            if result.success and parser.is_install_success(result.output):
                return _Outcome(
                    OperationResult.ok(result.output),
                    "Package installed successfully.",
                )
            return _Outcome(
                OperationResult.fail(
                    f"Package install failed: {result.text.strip()}",
                    kind=result.kind or ErrorKind.PROCESS_FAILURE,
                    output=result.output,
                ),
                "",
            )

        return self._dispatch(op, executable, "Installing package...", job, complete)

    def query_state(self, identifier: str) -> Operation:
        """Read model, OS version, manufacturer and battery level.

        Each query may fail on its own; the summary leaves that field out.
        """
        op = Operation(OperationName.QUERY_STATE)
        try:
            executable = self._admit()
            identifier = _require(identifier, "Device identifier")
        except DroidlinkError as exc:
            return self._reject(op, exc)

        target = _target_args(identifier)

        def job(session: _BridgeSession) -> dict[str, OperationResult]:
            return {
                "model": session.run(*target, "shell", "getprop", _PROP_MODEL),
                "os_version": session.run(*target, "shell", "getprop", _PROP_OS_VERSION),
                "manufacturer": session.run(*target, "shell", "getprop", _PROP_MANUFACTURER),
                "battery": session.run(*target, "shell", "dumpsys", "battery"),
            }

        def complete(results: dict[str, OperationResult]) -> _Outcome:
            if all(r.failed for r in results.values()):
                return _Outcome(
                    OperationResult.fail(
                        f"Could not query state of device {identifier}: "
                        f"{results['model'].reason}",
                    ),
                    "",
                )

            def prop(key: str) -> str | None:
                r = results[key]
                return parser.parse_property(r.output) if r.success else None

            battery = results["battery"]
            info = DeviceInfo(
                identifier=identifier,
                model=prop("model"),
                os_version=prop("os_version"),
                manufacturer=prop("manufacturer"),
                battery_level=(
                    parser.parse_battery_level(battery.output) if battery.success else None
                ),
            )
            summary = info.summary()
            self._device_info = info
            self._device_output = summary
            return _Outcome(OperationResult.ok(summary), "Device state updated.")

        return self._dispatch(
            op, executable, f"Checking state of device {identifier}...", job, complete
        )

    def validate_tool(self) -> Operation:
        """Run ``adb version``; its first line confirms the executable works."""
        op = Operation(OperationName.VALIDATE_TOOL)
        try:
            executable = self._admit()
        except DroidlinkError as exc:
            return self._reject(op, exc)

        def job(session: _BridgeSession) -> OperationResult:
            return session.run("version")

        def complete(result: OperationResult) -> _Outcome:
            if result.failed:
                return _Outcome(
                    OperationResult.fail(
                        f"Bridge validation failed: {result.reason}",
                        kind=result.kind or ErrorKind.PROCESS_FAILURE,
                    ),
                    "",
                )
            version = parser.first_line(result.output)
            if not version:
                return _Outcome(
                    OperationResult.fail(
                        "Could not read bridge version information.",
                        kind=ErrorKind.PARSE_MISS,
                    ),
                    "",
                )
            return _Outcome(OperationResult.ok(version), f"Bridge executable is valid: {version}")

        return self._dispatch(op, executable, "Validating bridge executable...", job, complete)

    def restart_service(self) -> Operation:
        """Stop and start the adb server, then refresh regardless of either outcome."""
        op = Operation(OperationName.RESTART_SERVICE)
        try:
            executable = self._admit()
        except DroidlinkError as exc:
            return self._reject(op, exc)

        steps = (_Step(("kill-server",)), _Step(("start-server",)))

        def job(session: _BridgeSession) -> list[OperationResult]:
            return session.run_pipeline(steps)

        def complete(results: list[OperationResult]) -> _Outcome:
            output = "".join(r.output for r in results)
            return _Outcome(
                OperationResult.ok(output), "Bridge service restarted.", refresh=True
            )

        return self._dispatch(op, executable, "Restarting bridge service...", job, complete)

    def resolve_ip(self, serial: str | None = None) -> Operation:
        """Find the device's IPv4 address by probing its network interfaces."""
        op = Operation(OperationName.RESOLVE_IP)
        try:
            executable = self._admit()
        except DroidlinkError as exc:
            return self._reject(op, exc)

        target = _target_args(serial)

        def job(session: _BridgeSession) -> tuple[str, str] | None:
            for interface in NETWORK_INTERFACES:
                result = session.run(
                    *target, "shell", "ip", "-f", "inet", "addr", "show", interface
                )
                if result.failed:
                    continue
                address = parser.parse_ipv4(result.output)
                if address is not None:
                    return interface, address
            return None

        def complete(found: tuple[str, str] | None) -> _Outcome:
            if found is None:
                return _Outcome(
                    OperationResult.fail(
                        "Could not determine the device IP address. Make sure the "
                        "device is connected and USB debugging is enabled.",
                        kind=ErrorKind.PARSE_MISS,
                    ),
                    "",
                )
            interface, address = found
            self._resolved_address = address
            return _Outcome(
                OperationResult.ok(address), f"Device IP address ({interface}): {address}"
            )

        return self._dispatch(op, executable, "Checking device IP address...", job, complete)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh(self, user_triggered: bool) -> Operation:
        op = Operation(OperationName.REFRESH, user_triggered=user_triggered)
        try:
            executable = self._admit()
        except DroidlinkError as exc:
            return self._reject(op, exc)

        self._last_refresh_at = self._clock()

        def job(session: _BridgeSession) -> OperationResult:
            return session.run("devices", "-l")

        def complete(result: OperationResult) -> _Outcome:
            if result.failed:
                # Stale entries must not survive a refresh, even a failed one.
                self._registry.clear()
                self._device_output = ""
                return _Outcome(
                    OperationResult.fail(
                        f"Failed to list devices: {result.reason}",
                        kind=result.kind or ErrorKind.PROCESS_FAILURE,
                    ),
                    "",
                )
            devices = parser.parse_device_entries(result.output)
            self._registry.replace(devices)
            self._device_output = result.output
            return _Outcome(
                OperationResult.ok(result.output), f"Found {len(devices)} device(s)."
            )

        return self._dispatch(op, executable, "Refreshing device list...", job, complete)

    def _admit(self) -> str:
        """Validate the bridge path and return the executable to run."""
        if self._closing:
            raise ValidationError("Orchestrator is closed.")
        path = self.config.bridge_executable_path.strip()
        if not path:
            raise ValidationError("Bridge executable path is not set.")
        resolved = resolve_executable(path)
        if resolved is None:
            raise ToolNotFoundError(f"Bridge executable not found: {path}")
        return str(resolved)

    def _reject(self, op: Operation, exc: DroidlinkError) -> Operation:
        logger.info("operation_rejected", operation=op.name.value, error=str(exc))
        self._publish(op, _Outcome(OperationResult.from_error(exc), ""))
        return op

    def _dispatch(
        self,
        op: Operation,
        executable: str,
        status: str,
        job: Callable[[_BridgeSession], Any],
        complete: Callable[[Any], _Outcome],
    ) -> Operation:
        session = _BridgeSession(self._runner, executable)
        self._busy = True
        if op.user_triggered:
            self._status_message = status
        logger.info("operation_started", operation=op.name.value)

        self._workers.submit(
            lambda: job(session),
            on_complete=lambda value: self._complete(op, session, complete, value),
            on_error=lambda exc: self._complete_with_error(op, session, exc),
        )
        return op

    def _complete(
        self,
        op: Operation,
        session: _BridgeSession,
        complete: Callable[[Any], _Outcome],
        value: Any,
    ) -> None:
        self._busy = False
        self._log.extend(session.entries)
        try:
            outcome = complete(value)
        except Exception as exc:
            logger.error("operation_completion_error", operation=op.name.value, error=str(exc))
            outcome = _Outcome(
                OperationResult.fail(
                    f"Unexpected error in {op.name.value}: {exc}", kind=ErrorKind.INTERNAL
                ),
                "",
            )
        self._publish(op, outcome)
        if outcome.refresh and not self._closing:
            self._refresh(user_triggered=False)

    def _complete_with_error(
        self, op: Operation, session: _BridgeSession, exc: Exception
    ) -> None:
        self._busy = False
        self._log.extend(session.entries)
        logger.error("operation_worker_error", operation=op.name.value, error=str(exc))
        self._publish(
            op,
            _Outcome(
                OperationResult.fail(
                    f"Unexpected error in {op.name.value}: {exc}", kind=ErrorKind.INTERNAL
                ),
                "",
            ),
        )

    def _publish(self, op: Operation, outcome: _Outcome) -> None:
        result = outcome.result
        op.result = result
        op.message = outcome.message if result.success else result.reason

        if result.success:
            if op.user_triggered:
                self._status_message = op.message
            self._log.append(op.message)
        else:
            self._status_message = ERROR_PREFIX + result.reason
            self._log.append(ERROR_PREFIX + result.reason, is_error=True)

        logger.info(
            "operation_finished",
            operation=op.name.value,
            success=result.success,
            kind=result.kind.value if result.kind else None,
        )

        for listener in list(self._listeners):
            try:
                listener(op)
            except Exception as exc:
                logger.warning("operation_listener_error", operation=op.name.value, error=str(exc))


def _require(value: str | None, label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required.")
    return value.strip()


def _target_args(serial: str | None) -> tuple[str, ...]:
    return ("-s", serial) if serial else ()
