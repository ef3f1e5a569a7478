"""Tool discovery, schema generation and execution layer.

This package turns ``@action`` decorated callables into published tools,
validates and maps ``tools/call`` arguments, and runs tools with timeouts.
"""

from toolrpc_server.tools.actions import CancellationToken, Param, action, agent
from toolrpc_server.tools.builder import DescriptionSource, MethodToolBuilder, ToolMethod
from toolrpc_server.tools.discovery import DiscoveryResult, ToolDiscoveryService
from toolrpc_server.tools.executor import ToolExecutor
from toolrpc_server.tools.mapping import ParameterMapper
from toolrpc_server.tools.registry import ToolRegistry
from toolrpc_server.tools.schema import INSTRUCTIONS_KEY, SchemaGenerator
from toolrpc_server.tools.serializer import ResultSerializer

__all__ = [
    "CancellationToken",
    "DescriptionSource",
    "DiscoveryResult",
    "INSTRUCTIONS_KEY",
    "MethodToolBuilder",
    "Param",
    "ParameterMapper",
    "ResultSerializer",
    "SchemaGenerator",
    "ToolDiscoveryService",
    "ToolExecutor",
    "ToolMethod",
    "ToolRegistry",
    "action",
    "agent",
]
