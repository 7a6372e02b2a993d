"""In-container provisioning for the StarRupture server.

Runs inside the container via `pct exec`. Every step is safe to repeat:
apt no-ops on installed packages, SteamCMD is re-extracted over itself, and
the startup script and unit file are overwritten, never merged.
"""
from typing import Optional, Sequence

from starlxc.core.logger import get_logger
from starlxc.core.runner import CommandResult
from starlxc.models.profile import STARRUPTURE, ServerProfile
from starlxc.models.request import ProvisionRequest
from starlxc.services.proxmox.containers.lifecycle import ContainerLifecycle
from starlxc.services.script_builder import ScriptBuilder
from starlxc.services.startup_script import StartupScript
from starlxc.services.systemd import ServiceUnitSpec

logger = get_logger(__name__)

# Wine, Xvfb, SteamCMD's 32-bit runtime and tmux for interactive debugging
SERVER_PACKAGES = (
    'ca-certificates', 'curl', 'tar', 'bash',
    'xvfb', 'xauth', 'x11-xserver-utils',
    'wine', 'wine32', 'wine64',
    'lib32gcc-s1', 'lib32stdc++6',
    'tmux',
)


def dependencies_script(packages: Sequence[str] = SERVER_PACKAGES) -> str:
    b = ScriptBuilder()
    b.lines(
        'set -e',
        'export DEBIAN_FRONTEND=noninteractive',
        'dpkg --add-architecture i386',
        'apt-get update',
        f'apt-get install -y --no-install-recommends {" ".join(packages)}',
        'rm -rf /var/lib/apt/lists/*',
    )
    return b.render()


def update_client_script(profile: ServerProfile = STARRUPTURE) -> str:
    archive = '/tmp/steamcmd.tgz'
    b = ScriptBuilder()
    b.lines(
        'set -e',
        f'mkdir -p {profile.steamcmd_dir}',
        # download-level retry only; the provisioning run itself never retries
        f'curl -4 -fL --retry 8 --retry-delay 2 --connect-timeout 15 {profile.steamcmd_url} -o {archive}',
        f'tar -xzf {archive} -C {profile.steamcmd_dir}',
        f'rm -f {archive}',
        f'chmod +x {profile.steamcmd}',
        # first run lets SteamCMD update itself; it exits non-zero on a fresh install
        f'{profile.steamcmd} +quit || true',
    )
    return b.render()


class Provisioner:
    """Installs and wires up the server inside a running container.

    Each step returns True on success; the caller decides what a failure means.
    The output of the last failed command is kept in `last_failure`.
    """

    def __init__(self, lifecycle: ContainerLifecycle, profile: ServerProfile = STARRUPTURE):
        self.lifecycle = lifecycle
        self.profile = profile
        self.last_failure: Optional[CommandResult] = None

    def _check(self, result: CommandResult, what: str) -> bool:
        if result.ok:
            return True
        self.last_failure = result
        logger.error(f"✗ {what} failed (exit code {result.returncode})")
        if result.output:
            logger.error(f"Error output: {result.tail()}")
        return False

    def install_dependencies(self, vmid: int) -> bool:
        """Step 1: Wine, Xvfb and SteamCMD prerequisites."""
        logger.info("Installing packages (Wine/Xvfb/SteamCMD deps)...")
        result = self.lifecycle.exec_script(vmid, dependencies_script())
        if not self._check(result, "Package installation"):
            return False
        logger.info("✓ Packages installed")
        return True

    def install_update_client(self, vmid: int) -> bool:
        """Step 2: SteamCMD under /opt/steamcmd."""
        logger.info(f"Installing SteamCMD to {self.profile.steamcmd_dir}...")
        result = self.lifecycle.exec_script(vmid, update_client_script(self.profile))
        if not self._check(result, "SteamCMD installation"):
            return False
        logger.info("✓ SteamCMD installed")
        return True

    def write_startup_script(self, vmid: int, request: ProvisionRequest) -> bool:
        """Step 3: render and install the startup script."""
        script = StartupScript.from_request(request, self.profile)
        logger.info(f"Writing {script.path}...")
        result = self.lifecycle.write_file(vmid, script.path, script.render(), mode='0755')
        if not self._check(result, f"Writing {script.path}"):
            return False
        logger.info(f"✓ {script.path} written")
        return True

    def register_service(self, vmid: int, request: ProvisionRequest) -> bool:
        """Step 4: install the systemd unit, enable it and (re)start it."""
        unit = ServiceUnitSpec.from_request(request, self.profile)
        logger.info(f"Installing systemd unit {unit.unit_name}...")

        result = self.lifecycle.write_file(vmid, unit.path, unit.render(), mode='0644')
        if not self._check(result, f"Writing {unit.path}"):
            return False

        result = self.lifecycle.exec_script(vmid, unit.activation_script())
        if not self._check(result, f"Activating {unit.unit_name}"):
            return False

        logger.info(f"✓ Service {unit.name} installed and started")
        return True
