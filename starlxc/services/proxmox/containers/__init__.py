"""Proxmox LXC container management.

- ContainerDiscovery: Query container state and configuration
- ContainerLifecycle: Create, validate, start, stop, exec
- MountManager: Host directories and bind mounts
"""
from .discovery import ContainerDiscovery
from .lifecycle import ContainerLifecycle
from .mounts import MountManager

__all__ = [
    'ContainerDiscovery',
    'ContainerLifecycle',
    'MountManager',
]
