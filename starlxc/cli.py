#!/usr/bin/env python3
"""starlxc CLI - StarRupture dedicated server in a Proxmox LXC container."""

import typer
from rich.console import Console

from starlxc.cli_provision_commands import register_provision_commands

app = typer.Typer(
    name="starlxc",
    help="""starlxc - StarRupture Dedicated Server on Proxmox VE

Debian 12 LXC + Wine + Xvfb + SteamCMD + systemd.
Persistent mounts: /srv/starrupture/server + /srv/starrupture/savegame

Quick start:
  starlxc probe                 # Show detected storage, bridges, next CTID
  starlxc create --ip 10.0.0.5  # Create and provision a new container
  starlxc repair 105            # Reinstall inside an existing container
""",
    add_completion=False,
)

console = Console()

register_provision_commands(app, console)

if __name__ == "__main__":
    app()
