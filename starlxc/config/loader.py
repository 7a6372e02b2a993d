"""YAML request-file loader.

A request file holds the same fields as the CLI options, e.g.:

    mode: create
    container_id: 105
    storage_pool: local-lvm
    network_bridge: vmbr0
    static_address_cidr: 10.0.0.5/24
    gateway: 10.0.0.1
    server_bind_address: 10.0.0.5
    optional_ports:
      query_port: 27015
      beacon_port: 7778
"""
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from starlxc.core.errors import PreconditionError
from starlxc.models.request import ProvisionRequest


def read_request_file(path: str) -> Dict[str, Any]:
    """Read raw request fields from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        raise PreconditionError(f"Request file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PreconditionError(f"Invalid YAML in {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PreconditionError(f"{config_path} must contain a mapping of request fields")
    return data


def build_request(fields: Dict[str, Any]) -> ProvisionRequest:
    """Validate raw fields into a ProvisionRequest.

    Raises:
        PreconditionError: With one line per invalid field
    """
    try:
        return ProvisionRequest(**fields)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error['loc']) or "request"
            problems.append(f"{location}: {error['msg']}")
        raise PreconditionError("Invalid provisioning request:\n  " + "\n  ".join(problems))


def merge_request_fields(path: Optional[str] = None,
                         overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Raw request fields from an optional YAML file with explicit overrides on top.

    Args:
        path: Request file (optional)
        overrides: Field values that win over the file; None values are ignored
    """
    fields = read_request_file(path) if path else {}
    for key, value in (overrides or {}).items():
        if value is not None:
            fields[key] = value
    return fields


def load_request(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> ProvisionRequest:
    """Load and validate a request; see merge_request_fields for precedence."""
    return build_request(merge_request_fields(path, overrides))
