"""FastAPI routers for API endpoints.

This package contains all route handlers organized by resource type.
Each router module defines endpoints for a specific concern (health, metrics, rpc).
"""

from toolrpc_server.routers import health, metrics, rpc

__all__ = [
    "health",
    "metrics",
    "rpc",
]
