"""Provisioning CLI commands: create, repair, probe, render, stop."""
from __future__ import annotations

import ipaddress
from contextlib import nullcontext
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from starlxc.cli_support import (
    confirm_action,
    handle_cli_error,
    load_settings,
    print_info,
    print_success,
    print_warning,
)
from starlxc.config import build_request, merge_request_fields
from starlxc.core.config import ProvisionSettings
from starlxc.core.errors import ProvisionError
from starlxc.core.lock import provision_lock
from starlxc.core.orchestrator import ProvisionDriver
from starlxc.core.runner import HostCommandRunner
from starlxc.models.profile import STARRUPTURE
from starlxc.models.request import Mode, OptionalPorts, ProvisionRequest
from starlxc.services.proxmox.containers import ContainerLifecycle
from starlxc.services.proxmox.probe import EnvironmentProbe
from starlxc.services.startup_script import StartupScript
from starlxc.services.systemd import ServiceUnitSpec

DEFAULT_BIND_ADDRESS = "192.168.1.208"
DEFAULT_GATEWAY = "192.168.1.1"
RENDER_CONTAINER_ID = 100


def runtime_overrides(
    ip: Optional[str] = None,
    port: Optional[int] = None,
    extra_ports: bool = False,
    query_port: Optional[int] = None,
    beacon_port: Optional[int] = None,
    update_on_start: Optional[bool] = None,
    restart_sec: Optional[int] = None,
) -> Dict[str, Any]:
    """Request fields shared by create, repair and render."""
    fields: Dict[str, Any] = {
        'server_bind_address': ip,
        'server_port': port,
        'update_on_start': update_on_start,
        'restart_interval_seconds': restart_sec,
    }
    if extra_ports or query_port is not None or beacon_port is not None:
        defaults = OptionalPorts()
        fields['optional_ports'] = {
            'query_port': query_port if query_port is not None else defaults.query_port,
            'beacon_port': beacon_port if beacon_port is not None else defaults.beacon_port,
        }
    return fields


def fill_create_defaults(fields: Dict[str, Any], probe: EnvironmentProbe) -> Dict[str, Any]:
    """Fill create-mode fields the operator left out from probed host defaults."""
    if fields.get('container_id') is None:
        fields['container_id'] = probe.next_container_id()
    if not fields.get('storage_pool'):
        fields['storage_pool'] = probe.detect_storage_pool()
    if not fields.get('network_bridge'):
        fields['network_bridge'] = probe.detect_network_bridge()

    bind = fields.get('server_bind_address') or DEFAULT_BIND_ADDRESS
    fields.setdefault('server_bind_address', bind)
    if not fields.get('static_address_cidr'):
        fields['static_address_cidr'] = f"{bind}/24"
    if not fields.get('gateway'):
        fields['gateway'] = default_gateway(fields['static_address_cidr'])
    return fields


def default_gateway(cidr: str) -> str:
    """First host address of the container's network (192.168.1.1 for the default address)."""
    try:
        return str(next(ipaddress.IPv4Interface(cidr).network.hosts()))
    except (ValueError, StopIteration):
        return DEFAULT_GATEWAY


def summary_table(request: ProvisionRequest, settings: ProvisionSettings) -> Table:
    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Mode", request.mode.value.capitalize())
    table.add_row("CTID", str(request.container_id))
    if request.is_create:
        table.add_row("Name", request.container_name)
        table.add_row("Storage", request.storage_pool or "")
        table.add_row("Bridge", request.network_bridge or "")
        table.add_row("Address", f"{request.static_address_cidr} via {request.gateway}")
        table.add_row("Resources", f"{request.cores} cores, {request.memory_mb} MB, {request.disk_gb} GB")
        table.add_row("Unprivileged", "yes" if request.unprivileged else "no")
    table.add_row("Server bind", request.server_bind_address)
    table.add_row("Server port", str(request.server_port))
    if request.optional_ports:
        ports = request.optional_ports
        table.add_row("Query/Beacon", f"QueryPort={ports.query_port}, BeaconPort={ports.beacon_port}")
    table.add_row("Update on start", "yes" if request.update_on_start else "no")
    table.add_row("Restart delay", f"{request.restart_interval_seconds}s")
    host_dirs = ", ".join(spec.host_path for spec in STARRUPTURE.mount_specs(settings.host_base))
    table.add_row("Host mounts", host_dirs)
    return table


def print_post_info(console: Console, request: ProvisionRequest, settings: ProvisionSettings) -> None:
    ctid = request.container_id
    service = STARRUPTURE.service_name

    console.print()
    print_success(console, "Installation complete")
    console.print(f"[bold]Container:[/bold] {ctid}")
    console.print(f"[bold]Server:[/bold]    {request.server_bind_address}:{request.server_port}")
    if request.optional_ports:
        ports = request.optional_ports
        console.print(f"[bold]Extra:[/bold]     QueryPort={ports.query_port}, BeaconPort={ports.beacon_port}")
    console.print(f"[bold]AppID:[/bold]     {STARRUPTURE.steam_app_id}")
    console.print("[bold]Mounts:[/bold]")
    for spec in STARRUPTURE.mount_specs(settings.host_base):
        console.print(f"  {spec.host_path} → {spec.container_path}")
    console.print("\n[bold]Logs:[/bold]")
    console.print(f"  pct exec {ctid} -- journalctl -u {service} -f")
    console.print("\n[bold]Service Control:[/bold]")
    console.print(f"  pct exec {ctid} -- systemctl restart {service}")
    console.print(f"  pct exec {ctid} -- systemctl stop {service}")


def execute(console: Console, request: ProvisionRequest, settings: ProvisionSettings,
            yes: bool, verbose: bool) -> None:
    """Confirm, then drive one provisioning pass under the host lock."""
    console.print(summary_table(request, settings))
    if request.mode == Mode.REPAIR:
        print_warning(console, "Repair mode: container network, rootfs and mount points are left as they are")

    if not confirm_action("Proceed?", yes_flag=yes, mock=settings.mock):
        print_info(console, "Aborted")
        raise typer.Exit(0)

    try:
        driver = ProvisionDriver(settings)
        driver.preflight.check()
        with nullcontext() if settings.mock else provision_lock(settings.lock_file):
            driver.run(request)
    except ProvisionError as e:
        handle_cli_error(e, console, verbose)

    print_post_info(console, request, settings)


def register_provision_commands(root: typer.Typer, console: Console) -> None:
    """Attach provisioning commands to the main CLI."""

    @root.command("create")
    def create_command(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML request file; CLI options override it."),
        ctid: Optional[int] = typer.Option(None, "--ctid", help="Container ID (default: next free VMID)."),
        name: Optional[str] = typer.Option(None, "--name", help="Container hostname (default: starrupture)."),
        storage: Optional[str] = typer.Option(None, "--storage", help="Storage pool for the root disk (default: first rootdir storage)."),
        bridge: Optional[str] = typer.Option(None, "--bridge", help="Network bridge (default: first vmbrN)."),
        ip: Optional[str] = typer.Option(None, "--ip", help=f"Server bind IP (multihome, default: {DEFAULT_BIND_ADDRESS})."),
        cidr: Optional[str] = typer.Option(None, "--cidr", help="Static container address in CIDR form (default: <ip>/24)."),
        gateway: Optional[str] = typer.Option(None, "--gateway", help="Default gateway (default: first host of the container network)."),
        cores: Optional[int] = typer.Option(None, "--cores", help="CPU cores (default: 2)."),
        memory: Optional[int] = typer.Option(None, "--memory", help="Memory in MB (default: 4096)."),
        disk: Optional[int] = typer.Option(None, "--disk", help="Root disk size in GB (default: 16)."),
        unprivileged: Optional[int] = typer.Option(None, "--unprivileged", help="1 = unprivileged (default), 0 = privileged."),
        port: Optional[int] = typer.Option(None, "--port", help="Game port (default: 7777)."),
        extra_ports: bool = typer.Option(False, "--extra-ports", help="Pass -QueryPort/-BeaconPort to the server."),
        query_port: Optional[int] = typer.Option(None, "--query-port", help="QueryPort (implies --extra-ports, default: 27015)."),
        beacon_port: Optional[int] = typer.Option(None, "--beacon-port", help="BeaconPort (implies --extra-ports, default: 7778)."),
        update_on_start: Optional[bool] = typer.Option(None, "--update-on-start/--no-update-on-start", help="Run SteamCMD update before each start."),
        restart_sec: Optional[int] = typer.Option(None, "--restart-sec", help="systemd RestartSec (default: 10)."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path."),
    ) -> None:
        """Create a new container and provision the dedicated server in it."""
        settings = load_settings(console, verbose, log_file)
        overrides = runtime_overrides(ip, port, extra_ports, query_port, beacon_port, update_on_start, restart_sec)
        overrides.update({
            'mode': Mode.CREATE.value,
            'container_id': ctid,
            'container_name': name,
            'storage_pool': storage,
            'network_bridge': bridge,
            'static_address_cidr': cidr,
            'gateway': gateway,
            'cores': cores,
            'memory_mb': memory,
            'disk_gb': disk,
            'unprivileged': unprivileged,
        })

        try:
            fields = merge_request_fields(config, overrides)
            probe = EnvironmentProbe(HostCommandRunner(mock=settings.mock))
            request = build_request(fill_create_defaults(fields, probe))
        except ProvisionError as e:
            handle_cli_error(e, console, verbose)

        execute(console, request, settings, yes, verbose)

    @root.command("repair")
    def repair_command(
        ctid: int = typer.Argument(..., help="ID of the existing container."),
        config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML request file; CLI options override it."),
        ip: Optional[str] = typer.Option(None, "--ip", help=f"Server bind IP (multihome, default: {DEFAULT_BIND_ADDRESS})."),
        port: Optional[int] = typer.Option(None, "--port", help="Game port (default: 7777)."),
        extra_ports: bool = typer.Option(False, "--extra-ports", help="Pass -QueryPort/-BeaconPort to the server."),
        query_port: Optional[int] = typer.Option(None, "--query-port", help="QueryPort (implies --extra-ports)."),
        beacon_port: Optional[int] = typer.Option(None, "--beacon-port", help="BeaconPort (implies --extra-ports)."),
        update_on_start: Optional[bool] = typer.Option(None, "--update-on-start/--no-update-on-start", help="Run SteamCMD update before each start."),
        restart_sec: Optional[int] = typer.Option(None, "--restart-sec", help="systemd RestartSec (default: 10)."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path."),
    ) -> None:
        """Re-run provisioning inside an existing container (no recreate, no remount)."""
        settings = load_settings(console, verbose, log_file)
        overrides = runtime_overrides(ip, port, extra_ports, query_port, beacon_port, update_on_start, restart_sec)
        overrides.update({'mode': Mode.REPAIR.value, 'container_id': ctid})

        try:
            request = build_request(merge_request_fields(config, overrides))
        except ProvisionError as e:
            handle_cli_error(e, console, verbose)

        execute(console, request, settings, yes, verbose)

    @root.command("probe")
    def probe_command(
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    ) -> None:
        """Show storage pools, bridges and the next free container ID."""
        settings = load_settings(console, verbose)
        probe = EnvironmentProbe(HostCommandRunner(mock=settings.mock))

        pools = probe.list_storage_pools()
        table = Table(title="Storage pools (rootdir)")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        for pool in pools:
            table.add_row(pool['name'], pool['type'])
        if pools:
            console.print(table)
        else:
            print_warning(console, "No rootdir storage reported")

        bridges = probe.list_network_bridges()
        if bridges:
            console.print(f"[bold]Bridges:[/bold] {', '.join(bridges)}")
        else:
            print_warning(console, "No vmbrN bridges reported")

        console.print(f"[bold]Default storage:[/bold] {probe.detect_storage_pool()}")
        console.print(f"[bold]Default bridge:[/bold]  {probe.detect_network_bridge()}")
        console.print(f"[bold]Next CTID:[/bold]       {probe.next_container_id()}")

    @root.command("render")
    def render_command(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML request file; CLI options override it."),
        ip: Optional[str] = typer.Option(None, "--ip", help=f"Server bind IP (default: {DEFAULT_BIND_ADDRESS})."),
        port: Optional[int] = typer.Option(None, "--port", help="Game port (default: 7777)."),
        extra_ports: bool = typer.Option(False, "--extra-ports", help="Pass -QueryPort/-BeaconPort to the server."),
        query_port: Optional[int] = typer.Option(None, "--query-port", help="QueryPort (implies --extra-ports)."),
        beacon_port: Optional[int] = typer.Option(None, "--beacon-port", help="BeaconPort (implies --extra-ports)."),
        update_on_start: Optional[bool] = typer.Option(None, "--update-on-start/--no-update-on-start", help="Run SteamCMD update before each start."),
        restart_sec: Optional[int] = typer.Option(None, "--restart-sec", help="systemd RestartSec (default: 10)."),
        script_only: bool = typer.Option(False, "--script", help="Only print the startup script."),
        unit_only: bool = typer.Option(False, "--unit", help="Only print the systemd unit."),
    ) -> None:
        """Print the startup script and service unit for a request without touching the host."""
        overrides = runtime_overrides(ip, port, extra_ports, query_port, beacon_port, update_on_start, restart_sec)
        try:
            fields = merge_request_fields(config, overrides)
            # Only the launch and service fields matter here
            fields['mode'] = Mode.REPAIR.value
            fields.setdefault('container_id', RENDER_CONTAINER_ID)
            request = build_request(fields)
        except ProvisionError as e:
            handle_cli_error(e, console)

        show_script = not unit_only or script_only
        show_unit = not script_only or unit_only
        if show_script:
            script = StartupScript.from_request(request, STARRUPTURE)
            typer.echo(f"# {script.path}")
            typer.echo(script.render(), nl=False)
        if show_script and show_unit:
            typer.echo()
        if show_unit:
            unit = ServiceUnitSpec.from_request(request, STARRUPTURE)
            typer.echo(f"# {unit.path}")
            typer.echo(unit.render(), nl=False)

    @root.command("stop")
    def stop_command(
        ctid: int = typer.Argument(..., help="Container ID."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    ) -> None:
        """Stop the server container (best effort)."""
        settings = load_settings(console, verbose)
        lifecycle = ContainerLifecycle(HostCommandRunner(mock=settings.mock))

        handle = lifecycle.validate_existing(ctid)
        if handle is None:
            handle_cli_error(ProvisionError(f"Container {ctid} not found"), console, verbose)

        console.print(f"[dim]Stopping container {ctid}...[/dim]")
        if lifecycle.stop(handle):
            print_success(console, f"Stopped container {ctid}")
        else:
            print_warning(console, f"Container {ctid} is still running")
