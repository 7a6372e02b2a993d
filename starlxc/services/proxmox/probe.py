"""Environment probing: storage pools, bridges and the next free VMID."""
import re
from typing import Dict, List, Optional

from starlxc.core.logger import get_logger
from starlxc.core.runner import HostCommandRunner

logger = get_logger(__name__)

DEFAULT_STORAGE_POOL = "local-lvm"
DEFAULT_BRIDGE = "vmbr0"
DEFAULT_CONTAINER_ID = 100

_BRIDGE_RE = re.compile(r'^vmbr\d+$')


class EnvironmentProbe:
    """Read-only discovery of host defaults.

    Every answer is advisory: when the platform reports nothing, a fixed
    fallback is returned and the operator can override it anyway.
    """

    def __init__(self, runner: Optional[HostCommandRunner] = None):
        self.runner = runner or HostCommandRunner()

    def list_storage_pools(self) -> List[Dict[str, str]]:
        """List storages that can hold container root filesystems.

        Returns:
            List of dicts with 'name' and 'type', in `pvesm status` order
        """
        result = self.runner.run(['pvesm', 'status', '-content', 'rootdir'])
        if not result.ok:
            return []

        pools = []
        # Skip header: "Name Type Status Total Used Available %"
        for line in result.output.strip().splitlines()[1:]:
            parts = line.split()
            if len(parts) >= 2:
                pools.append({'name': parts[0], 'type': parts[1]})
        return pools

    def list_network_bridges(self) -> List[str]:
        """List Linux bridges named vmbrN."""
        result = self.runner.run(['ip', '-o', 'link', 'show'])
        if not result.ok:
            return []

        bridges = []
        for line in result.output.splitlines():
            # "3: vmbr0: <BROADCAST,MULTICAST,UP> mtu 1500 ..."
            parts = line.split(': ')
            if len(parts) < 2:
                continue
            name = parts[1].split('@', 1)[0].strip()
            if _BRIDGE_RE.match(name):
                bridges.append(name)
        return bridges

    def detect_storage_pool(self) -> str:
        pools = self.list_storage_pools()
        if pools:
            return pools[0]['name']
        logger.debug(f"No rootdir storage reported, using {DEFAULT_STORAGE_POOL}")
        return DEFAULT_STORAGE_POOL

    def detect_network_bridge(self) -> str:
        bridges = self.list_network_bridges()
        if bridges:
            return bridges[0]
        logger.debug(f"No vmbr bridge reported, using {DEFAULT_BRIDGE}")
        return DEFAULT_BRIDGE

    def next_container_id(self) -> int:
        """Ask the cluster for the next free VMID."""
        result = self.runner.run(['pvesh', 'get', '/cluster/nextid'])
        value = result.output.strip().strip('"') if result.ok else ""
        if value.isdigit():
            return int(value)
        logger.debug(f"Cluster did not report a free VMID, using {DEFAULT_CONTAINER_ID}")
        return DEFAULT_CONTAINER_ID
