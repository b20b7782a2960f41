"""
=============================================================================
HANDLERS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ConnectionHandler (connection.py)                                    │
    │   parse ─► create_request_handler() ─► RequestHandler.handle()       │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RequestHandler (base.py)                                             │
    │   response writing, not-found fallback pages                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │ GetRequestHandler (get.py)                                           │
    │   GET and HEAD: send the resource at the request path                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .base import InternalServerError, RequestHandler
from .get import GetRequestHandler
from .connection import ConnectionHandler, create_request_handler

__all__ = [
    "ConnectionHandler",
    "create_request_handler",
    "RequestHandler",
    "GetRequestHandler",
    "InternalServerError",
]
