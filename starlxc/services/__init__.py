"""Provisioning services: Proxmox access, in-container provisioning, generated artifacts."""
