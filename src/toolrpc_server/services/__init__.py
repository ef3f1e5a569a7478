"""Request handling and background services for toolrpc-server.

This package contains the JSON-RPC handler and the description backfill
service that refreshes fallback tool descriptions after startup.
"""

from toolrpc_server.services.description_backfill import (
    BackfillReport,
    DescriptionBackfillService,
    DescriptionGenerator,
)
from toolrpc_server.services.jsonrpc import JsonRpcHandler

__all__ = [
    "BackfillReport",
    "DescriptionBackfillService",
    "DescriptionGenerator",
    "JsonRpcHandler",
]
