"""Request file loading."""
from starlxc.config.loader import build_request, load_request, merge_request_fields, read_request_file

__all__ = ['build_request', 'load_request', 'merge_request_fields', 'read_request_file']
