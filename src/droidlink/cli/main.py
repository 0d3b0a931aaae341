"""droidlink CLI - connect to and manage adb devices from the command line."""

from __future__ import annotations

import json
import time

import click

from droidlink.bridge.paths import ADB_PATH_ENV, find_bridge_executable
from droidlink.bridge.runner import CommandRunner
from droidlink.core.orchestrator import ConnectionOrchestrator, Operation
from droidlink.models.config import DEFAULT_PORT, ToolConfig
from droidlink.settings import SettingsStore
from droidlink.utils.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option(
    "--adb",
    "adb_path",
    envvar=ADB_PATH_ENV,
    default=None,
    help=f"Path to the adb executable (or set {ADB_PATH_ENV} env var)",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Kill any single adb command running longer than this many seconds (default: no limit)",
)
@click.option("--show-log", is_flag=True, help="Print the operation log afterwards")
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    json_output: bool,
    adb_path: str | None,
    timeout: float | None,
    show_log: bool,
) -> None:
    """droidlink - adb device connection manager."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_output"] = json_output
    ctx.obj["adb_path"] = adb_path
    ctx.obj["timeout"] = timeout
    ctx.obj["show_log"] = show_log
    setup_logging(level="DEBUG" if debug else "WARNING", json_output=json_output)


@cli.command()
@click.pass_context
def devices(ctx: click.Context) -> None:
    """List attached devices."""
    orch = _make_orchestrator(ctx)
    op = _run(orch, orch.refresh())

    if op.result is not None and op.result.failed:
        _report(ctx, op)
    elif ctx.obj.get("json_output"):
        click.echo(json.dumps(
            [d.model_dump(mode="json") for d in orch.registry.devices], indent=2
        ))
    else:
        click.echo(op.message)
        _print_devices(orch)
    _finish(ctx, orch, op)


@cli.command()
@click.argument("address", required=False)
@click.option("--port", type=int, default=None, help=f"adb TCP port (default {DEFAULT_PORT})")
@click.pass_context
def connect(ctx: click.Context, address: str | None, port: int | None) -> None:
    """Connect to a device over the network.

    ADDRESS defaults to the last address used.
    """
    store = _store(ctx)
    address = address or store.settings.device_address
    orch = _make_orchestrator(ctx)
    op = _run(orch, orch.connect(address or "", port))
    if op.result is not None and op.result.success:
        store.update(device_address=address)
    _report(ctx, op)
    if op.result is not None and op.result.success and not ctx.obj.get("json_output"):
        _print_devices(orch)
    _finish(ctx, orch, op)


@cli.command()
@click.argument("identifier", required=False)
@click.option("--all", "disconnect_all", is_flag=True, help="Disconnect every network device")
@click.pass_context
def disconnect(ctx: click.Context, identifier: str | None, disconnect_all: bool) -> None:
    """Disconnect one device, or all of them."""
    orch = _make_orchestrator(ctx)
    if disconnect_all or not identifier:
        op = _run(orch, orch.disconnect_all())
    else:
        op = _run(orch, orch.disconnect_one(identifier))
    _report(ctx, op)
    _finish(ctx, orch, op)


@cli.command()
@click.argument("package", type=click.Path(dir_okay=False))
@click.option("--serial", "-s", default=None, help="Target device identifier")
@click.pass_context
def install(ctx: click.Context, package: str, serial: str | None) -> None:
    """Install (or reinstall) an APK."""
    orch = _make_orchestrator(ctx)
    op = _run(orch, orch.install(package, serial=serial))
    _report(ctx, op)
    _finish(ctx, orch, op)


@cli.command()
@click.argument("identifier", required=False)
@click.pass_context
def state(ctx: click.Context, identifier: str | None) -> None:
    """Show model, Android version and battery level of a device.

    IDENTIFIER defaults to the first attached device.
    """
    orch = _make_orchestrator(ctx)
    if not identifier:
        _run(orch, orch.refresh())
        selected = orch.registry.selected
        identifier = selected.identifier if selected is not None else ""

    op = _run(orch, orch.query_state(identifier or ""))
    if ctx.obj.get("json_output"):
        payload = _operation_payload(op)
        payload["device"] = orch.device_info.model_dump() if orch.device_info else None
        click.echo(json.dumps(payload, indent=2))
    elif op.result is not None and op.result.success:
        click.echo(orch.device_output)
    else:
        _report(ctx, op)
    _finish(ctx, orch, op)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Check that the configured adb executable works."""
    orch = _make_orchestrator(ctx)
    op = _run(orch, orch.validate_tool())
    _report(ctx, op)
    _finish(ctx, orch, op)


@cli.command()
@click.pass_context
def restart(ctx: click.Context) -> None:
    """Restart the adb server."""
    orch = _make_orchestrator(ctx)
    op = _run(orch, orch.restart_service())
    _report(ctx, op)
    if not ctx.obj.get("json_output"):
        _print_devices(orch)
    _finish(ctx, orch, op)


@cli.command()
@click.option("--serial", "-s", default=None, help="Target device identifier")
@click.pass_context
def ip(ctx: click.Context, serial: str | None) -> None:
    """Look up a USB-attached device's IP address and remember it."""
    orch = _make_orchestrator(ctx)
    op = _run(orch, orch.resolve_ip(serial=serial))
    if op.result is not None and op.result.success:
        _store(ctx).update(device_address=op.result.output)
    _report(ctx, op)
    _finish(ctx, orch, op)


@cli.command()
@click.option("--interval", type=float, default=5.0, help="Refresh interval in seconds")
@click.option("--count", type=int, default=0, help="Number of refreshes (0=infinite)")
@click.pass_context
def watch(ctx: click.Context, interval: float, count: int) -> None:
    """Keep refreshing the device list."""
    orch = _make_orchestrator(ctx)
    orch.auto_refresh = True
    orch.refresh_interval = interval
    refreshes = 0

    def _on_finished(op: Operation) -> None:
        nonlocal refreshes
        refreshes += 1
        if ctx.obj.get("json_output"):
            click.echo(json.dumps(
                [d.model_dump(mode="json") for d in orch.registry.devices]
            ))
        else:
            click.echo(f"\n--- {time.strftime('%H:%M:%S')} {op.message} ---")
            _print_devices(orch)

    orch.add_listener(_on_finished)
    try:
        while count == 0 or refreshes < count:
            orch.tick()
            time.sleep(0.1)
        orch.wait_idle()
    except KeyboardInterrupt:
        pass
    finally:
        _finish(ctx, orch)


@cli.group()
def config() -> None:
    """Show or change persisted settings."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the persisted settings."""
    store = _store(ctx)
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(store.settings.model_dump(), indent=2))
        return
    click.echo(f"Settings file:  {store.path}")
    click.echo(f"  adb path:       {store.settings.bridge_path or '(auto)'}")
    click.echo(f"  device address: {store.settings.device_address or '(none)'}")


@config.command("set-path")
@click.argument("path")
@click.pass_context
def config_set_path(ctx: click.Context, path: str) -> None:
    """Remember the adb executable path."""
    _store(ctx).update(bridge_path=path)
    click.echo(f"adb path set to {path}")


@config.command("set-address")
@click.argument("address")
@click.pass_context
def config_set_address(ctx: click.Context, address: str) -> None:
    """Remember the device address used by 'connect'."""
    _store(ctx).update(device_address=address)
    click.echo(f"Device address set to {address}")


def _store(ctx: click.Context) -> SettingsStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = SettingsStore()
    return ctx.obj["store"]


def _make_orchestrator(ctx: click.Context) -> ConnectionOrchestrator:
    """Build an orchestrator from the CLI override, saved settings, or SDK lookup."""
    path = ctx.obj.get("adb_path") or _store(ctx).settings.bridge_path
    if not path:
        found = find_bridge_executable()
        path = str(found) if found is not None else ""
    orch = ConnectionOrchestrator(
        ToolConfig(bridge_executable_path=path),
        runner=CommandRunner(timeout=ctx.obj.get("timeout")),
        auto_refresh=False,
    )
    ctx.call_on_close(orch.close)
    return orch


def _run(orch: ConnectionOrchestrator, op: Operation) -> Operation:
    """Block until *op* and any follow-up refresh have finished."""
    orch.wait_idle()
    return op


def _operation_payload(op: Operation) -> dict:
    result = op.result
    return {
        "operation": op.name.value,
        "success": bool(result and result.success),
        "message": op.message,
        "output": result.output if result else "",
        "kind": result.kind.value if result and result.kind else None,
    }


def _report(ctx: click.Context, op: Operation) -> None:
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(_operation_payload(op), indent=2))
    elif op.result is not None and op.result.success:
        click.echo(op.message)
    else:
        click.echo(f"ERROR: {op.message}", err=True)


def _print_devices(orch: ConnectionOrchestrator) -> None:
    if not orch.registry.devices:
        click.echo("  No devices attached.")
        return
    for i, device in enumerate(orch.registry.devices):
        marker = "*" if i == orch.registry.selected_index else " "
        click.echo(f" {marker}[{i}] {device.identifier:<24} {device.state.value}")


def _finish(
    ctx: click.Context,
    orch: ConnectionOrchestrator,
    op: Operation | None = None,
) -> None:
    if ctx.obj.get("show_log"):
        click.echo(orch.log.export_text(), nl=False, err=True)
    if op is not None and op.result is not None and op.result.failed:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
