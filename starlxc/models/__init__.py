"""Data models for starlxc."""
from starlxc.models.container import (
    ContainerCreateSpec,
    ContainerHandle,
    ContainerState,
    MountSpec,
)
from starlxc.models.profile import STARRUPTURE, ServerProfile
from starlxc.models.request import Mode, OptionalPorts, ProvisionRequest

__all__ = [
    'ContainerCreateSpec',
    'ContainerHandle',
    'ContainerState',
    'MountSpec',
    'Mode',
    'OptionalPorts',
    'ProvisionRequest',
    'ServerProfile',
    'STARRUPTURE',
]
