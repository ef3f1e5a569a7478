"""Pydantic models for API request and response schemas.

This package contains the JSON-RPC envelopes, published tool definitions,
tool result content and the health and metrics responses.
"""

from toolrpc_server.models.content import (
    ImageContent,
    TextContent,
    ToolCallResult,
)
from toolrpc_server.models.health import HealthResponse, MetricsResponse
from toolrpc_server.models.jsonrpc import (
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    ToolCallParams,
)
from toolrpc_server.models.tools import (
    ListToolsResult,
    Tool,
    ToolAnnotations,
    ToolInputSchema,
    ToolPropertySchema,
)

__all__ = [
    "HealthResponse",
    "ImageContent",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "ListToolsResult",
    "MetricsResponse",
    "TextContent",
    "Tool",
    "ToolAnnotations",
    "ToolCallParams",
    "ToolCallResult",
    "ToolInputSchema",
    "ToolPropertySchema",
]
