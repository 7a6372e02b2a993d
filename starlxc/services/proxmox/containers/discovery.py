"""Container status and configuration queries."""
from typing import Dict, Optional

from starlxc.core.logger import get_logger
from starlxc.core.runner import HostCommandRunner
from starlxc.models.container import ContainerState

logger = get_logger(__name__)


class ContainerDiscovery:
    """Reads container state from the platform without changing it."""

    def __init__(self, runner: Optional[HostCommandRunner] = None):
        self.runner = runner or HostCommandRunner()

    def get_state(self, vmid: int) -> ContainerState:
        """Return the lifecycle state of a container.

        Args:
            vmid: Container ID

        Returns:
            NOT_CREATED when `pct status` does not know the ID
        """
        if self.runner.mock:
            return ContainerState.RUNNING

        result = self.runner.run(['pct', 'status', str(vmid)])
        if not result.ok:
            return ContainerState.NOT_CREATED

        # "status: running"
        status = result.output.split(':', 1)[-1].strip().lower()
        if status == 'running':
            return ContainerState.RUNNING
        return ContainerState.STOPPED

    def container_exists(self, vmid: int) -> bool:
        return self.get_state(vmid) != ContainerState.NOT_CREATED

    def get_container_config(self, vmid: int) -> Dict[str, str]:
        """Get the current configuration of a container via `pct config`.

        Returns:
            Dict of config key/value pairs (empty if the container is unknown)
        """
        if self.runner.mock:
            logger.info(f"MOCK: Would read config of container {vmid}")
            return {}

        result = self.runner.run(['pct', 'config', str(vmid), '--current'])
        if not result.ok:
            logger.warning(f"Could not read config of container {vmid}")
            return {}

        config = {}
        for line in result.output.splitlines():
            line = line.strip()
            if line and not line.startswith('#') and ':' in line:
                key, value = line.split(':', 1)
                config[key.strip()] = value.strip()
        return config
