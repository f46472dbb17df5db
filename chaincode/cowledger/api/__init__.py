"""
API module for the Cow Ledger.

Provides the HTTP/JSON surface over the ledger dispatcher.
"""

from .http_server import STATUS_BY_CODE, create_http_app, run_http_server

__all__ = [
    "STATUS_BY_CODE",
    "create_http_app",
    "run_http_server",
]
