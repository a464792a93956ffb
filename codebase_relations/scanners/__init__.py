"""
Line-based scanners for codebase_relations.

These scanners look for HTTP endpoint declarations and the client calls
that reach them.
"""

from codebase_relations.scanners.routes import EndpointScanner
from codebase_relations.scanners.http_calls import ApiCallerScanner, normalize_api_path

__all__ = [
    "EndpointScanner",
    "ApiCallerScanner",
    "normalize_api_path",
]
