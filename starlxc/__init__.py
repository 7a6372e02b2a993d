"""starlxc - StarRupture dedicated server provisioning for Proxmox LXC."""

__version__ = "0.2.0"
