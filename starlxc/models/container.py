"""Container configuration models."""
from dataclasses import dataclass
from enum import Enum
from typing import List

from starlxc.models.request import ProvisionRequest


class ContainerState(str, Enum):
    """Lifecycle state as reported by `pct status`."""

    NOT_CREATED = "not-created"
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class ContainerHandle:
    """A container known to the platform.

    Only ContainerLifecycle updates `state`; everything else reads it.
    """
    vmid: int
    state: ContainerState = ContainerState.NOT_CREATED

    @property
    def is_running(self) -> bool:
        return self.state == ContainerState.RUNNING


@dataclass(frozen=True)
class MountSpec:
    """A host directory bound into the container."""
    host_path: str
    container_path: str

    def pct_value(self) -> str:
        """Mount point value for `pct set -mpN`."""
        return f"{self.host_path},mp={self.container_path}"


@dataclass(frozen=True)
class ContainerCreateSpec:
    """Everything `pct create` needs for a new server container."""
    vmid: int
    hostname: str
    ostemplate: str  # e.g. "local:vztmpl/debian-12-standard_12.7-1_amd64.tar.zst"
    storage_pool: str
    disk_gb: int
    cores: int
    memory_mb: int
    bridge: str
    ip_cidr: str
    gateway: str
    unprivileged: bool = True

    @classmethod
    def from_request(cls, request: ProvisionRequest, ostemplate: str) -> "ContainerCreateSpec":
        return cls(
            vmid=request.container_id,
            hostname=request.container_name,
            ostemplate=ostemplate,
            storage_pool=request.storage_pool,
            disk_gb=request.disk_gb,
            cores=request.cores,
            memory_mb=request.memory_mb,
            bridge=request.network_bridge,
            ip_cidr=request.static_address_cidr,
            gateway=request.gateway,
            unprivileged=request.unprivileged,
        )

    def net0(self) -> str:
        return f"name=eth0,bridge={self.bridge},ip={self.ip_cidr},gw={self.gateway}"

    def pct_args(self, password: str) -> List[str]:
        """Build the `pct create` argument list."""
        return [
            'pct', 'create', str(self.vmid), self.ostemplate,
            '--hostname', self.hostname,
            '--cores', str(self.cores),
            '--memory', str(self.memory_mb),
            '--swap', '0',
            '--rootfs', f'{self.storage_pool}:{self.disk_gb}',
            '--net0', self.net0(),
            '--onboot', '1',
            '--unprivileged', '1' if self.unprivileged else '0',
            # the container runs Wine under systemd, which needs nesting
            '--features', 'nesting=1',
            '--password', password,
        ]
