"""Mount management for the server container."""
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from starlxc.core.logger import get_logger
from starlxc.core.runner import HostCommandRunner
from starlxc.models.container import ContainerHandle, MountSpec
from .discovery import ContainerDiscovery

logger = get_logger(__name__)


class MountManager:
    """Keeps host directories bind-mounted into the container.

    Mount specs are positional: the Nth spec is always `mpN`.
    """

    def __init__(self, runner: Optional[HostCommandRunner] = None):
        self.runner = runner or HostCommandRunner()
        self.discovery = ContainerDiscovery(self.runner)

    def ensure_host_dirs(self, specs: Sequence[MountSpec]) -> bool:
        """Create the host side of every mount (mkdir -p semantics).

        Returns:
            True if every directory exists afterwards
        """
        ok = True
        for spec in specs:
            if self.runner.mock:
                logger.info(f"MOCK: Would create host directory {spec.host_path}")
                continue
            try:
                Path(spec.host_path).mkdir(parents=True, exist_ok=True)
                logger.info(f"  {spec.host_path}")
            except OSError as e:
                logger.error(f"✗ Could not create host directory {spec.host_path}: {e}")
                ok = False
        return ok

    def get_container_mounts(self, vmid: int) -> Dict[str, Dict[str, str]]:
        """Get all mount points configured for a container.

        Returns:
            Dict of mount point IDs to their configuration
            Example: {'mp0': {'volume': '/srv/starrupture/server', 'mp': '/share/starrupture/server'}}
        """
        mounts = {}
        config = self.discovery.get_container_config(vmid)

        for key, value in config.items():
            if key.startswith('mp') and key[2:].isdigit():
                parts = value.split(',')
                mount_info = {'volume': parts[0].strip()}
                for part in parts[1:]:
                    if '=' in part:
                        k, v = part.split('=', 1)
                        mount_info[k.strip()] = v.strip()
                mounts[key] = mount_info

        return mounts

    def bind_mount(self, vmid: int, index: int, spec: MountSpec,
                   existing: Optional[Dict[str, Dict[str, str]]] = None) -> bool:
        """Bind one host directory into the container as mp<index>.

        A mount point already configured with the same paths is left alone.
        """
        key = f"mp{index}"
        current = (existing or {}).get(key)
        if current and current.get('volume') == spec.host_path and current.get('mp') == spec.container_path:
            logger.info(f"Mount {key} already configured: {spec.host_path} → {spec.container_path}")
            return True

        logger.info(f"Adding mount point {key}: {spec.host_path} → {spec.container_path}")
        result = self.runner.run(['pct', 'set', str(vmid), f'-{key}', spec.pct_value()])
        if not result.ok:
            logger.error(f"✗ Failed to add mount point {key}: {result.tail()}")
            return False
        return True

    def ensure_mounts(self, handle: ContainerHandle, specs: List[MountSpec]) -> bool:
        """Create host directories and bind each into the container.

        Returns:
            True if every mount is in place
        """
        logger.info("Creating persistent host directories...")
        if not self.ensure_host_dirs(specs):
            return False

        existing = self.get_container_mounts(handle.vmid)
        for index, spec in enumerate(specs):
            if not self.bind_mount(handle.vmid, index, spec, existing):
                return False

        logger.info(f"✓ Mount points configured for container {handle.vmid}")
        return True
