"""toolrpc-server: JSON-RPC 2.0 tool protocol server for AI client agents.

This package discovers ``@action`` callables, publishes them as tools with
generated input schemas, and executes ``tools/call`` requests with per-tool
timeouts and isolated failure handling.
"""

__version__ = "0.1.0"

# Imported after __version__ so that modules loaded by the app can read it
from toolrpc_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
