"""Proxmox host integration."""
