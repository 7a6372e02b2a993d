"""Provisioning request model."""
import ipaddress
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CREATE_ONLY_FIELDS = ('storage_pool', 'network_bridge', 'static_address_cidr', 'gateway')


class Mode(str, Enum):
    """Provisioning mode selected by the operator."""

    CREATE = "create"
    REPAIR = "repair"


class OptionalPorts(BaseModel):
    """Extra ports passed to the server as launch arguments."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    query_port: int = Field(27015, ge=1, le=65535)
    beacon_port: int = Field(7778, ge=1, le=65535)


class ProvisionRequest(BaseModel):
    """A complete, validated provisioning request.

    Built once from operator input and never mutated afterwards. Network and
    storage fields only matter when creating a container; repair mode leaves
    the existing container's configuration alone.
    """

    model_config = ConfigDict(
        extra='forbid',
        frozen=True,
        json_schema_extra={
            "example": {
                "mode": "create",
                "container_id": 105,
                "container_name": "starrupture",
                "storage_pool": "local-lvm",
                "network_bridge": "vmbr0",
                "cores": 2,
                "memory_mb": 4096,
                "disk_gb": 16,
                "static_address_cidr": "10.0.0.5/24",
                "gateway": "10.0.0.1",
                "unprivileged": True,
                "server_bind_address": "10.0.0.5",
                "server_port": 7777,
                "update_on_start": True,
                "restart_interval_seconds": 10,
            }
        },
    )

    mode: Mode = Mode.CREATE
    container_id: int = Field(..., gt=0)
    container_name: str = "starrupture"
    storage_pool: Optional[str] = None
    network_bridge: Optional[str] = None
    cores: int = Field(2, gt=0)
    memory_mb: int = Field(4096, gt=0)
    disk_gb: int = Field(16, gt=0)
    static_address_cidr: Optional[str] = None
    gateway: Optional[str] = None
    unprivileged: bool = True
    server_bind_address: str = "192.168.1.208"
    server_port: int = Field(7777, ge=1, le=65535)
    optional_ports: Optional[OptionalPorts] = None
    update_on_start: bool = True
    restart_interval_seconds: int = Field(10, gt=0)

    @field_validator('unprivileged', mode='before')
    @classmethod
    def validate_unprivileged(cls, v: Any) -> bool:
        """Accept only the two encodings of the flag: 1/0 or true/false."""
        if isinstance(v, bool):
            return v
        if v in (1, "1"):
            return True
        if v in (0, "0"):
            return False
        raise ValueError(f"unprivileged must be 0 or 1. Got: {v!r}")

    @field_validator('container_name')
    @classmethod
    def validate_container_name(cls, v: str) -> str:
        """Container names become hostnames, so keep them DNS-safe."""
        label = v.strip()
        if not label or len(label) > 63 or not all(c.isalnum() or c == '-' for c in label):
            raise ValueError(
                f"Container name must be a hostname label (letters, digits, hyphens). Got: {v}"
            )
        if label.startswith('-') or label.endswith('-'):
            raise ValueError(f"Container name cannot start or end with a hyphen. Got: {v}")
        return label

    @field_validator('static_address_cidr')
    @classmethod
    def validate_cidr(cls, v: Optional[str]) -> Optional[str]:
        """Validate static address is IPv4 in CIDR notation (e.g., 192.168.1.208/24)."""
        if v is None:
            return v
        address, _, prefix = v.partition('/')
        if not prefix.isdigit():
            raise ValueError(f"Static address must include a prefix length (e.g., '{address}/24')")
        try:
            ipaddress.IPv4Interface(v)
        except ValueError as e:
            raise ValueError(f"Invalid static IPv4 address '{v}': {e}")
        return v

    @field_validator('gateway')
    @classmethod
    def validate_gateway(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ipaddress.IPv4Address(v)
        except ValueError:
            raise ValueError(f"Invalid IPv4 gateway: {v}")
        return v

    @field_validator('server_bind_address')
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate a plain IP address."""
        try:
            ipaddress.ip_address(v)
        except ValueError:
            raise ValueError(f"Invalid IP address: {v}")
        return v

    @model_validator(mode='after')
    def validate_create_fields(self) -> 'ProvisionRequest':
        """Create mode needs storage and network settings for the new container."""
        if self.mode == Mode.CREATE:
            missing = [name for name in CREATE_ONLY_FIELDS if not getattr(self, name)]
            if missing:
                raise ValueError(f"Create mode requires: {', '.join(missing)}")

        if self.static_address_cidr and self.gateway:
            interface = ipaddress.IPv4Interface(self.static_address_cidr)
            gateway = ipaddress.IPv4Address(self.gateway)
            if gateway not in interface.network:
                raise ValueError(f"Gateway {gateway} is outside {interface.network}")
            if gateway == interface.ip:
                raise ValueError(f"Gateway {gateway} is the container's own address")
        return self

    @property
    def is_create(self) -> bool:
        return self.mode == Mode.CREATE
