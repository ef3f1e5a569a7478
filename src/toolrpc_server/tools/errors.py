"""Exception taxonomy for the tool protocol runtime.

Each exception maps to exactly one JSON-RPC error code. The handler in
``toolrpc_server.services.jsonrpc`` relies on the ``code`` attribute to build
error responses, so new subclasses only need to set it.
"""

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Application-reserved band (-32000 to -32099)
TOOL_EXECUTION_ERROR = -32000
TOOL_TIMEOUT_ERROR = -32001
TOOL_NOT_FOUND_ERROR = -32002
PARAMETER_VALIDATION_ERROR = -32003


class ToolRpcError(Exception):
    """Base class for all errors raised by the runtime."""

    code: int = INTERNAL_ERROR


class ProtocolError(ToolRpcError):
    """Raised when a request envelope is malformed."""

    def __init__(self, message: str, code: int = INVALID_REQUEST) -> None:
        self.code = code
        super().__init__(message)


class MethodNotFoundError(ToolRpcError):
    """Raised when a JSON-RPC method is not supported."""

    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class ArgumentValidationError(ToolRpcError):
    """Raised when call parameters do not match the tool schema."""

    code = INVALID_PARAMS

    def __init__(self, message: str, tool_name: str | None = None) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class DiscoveryError(ToolRpcError):
    """Raised when a single action cannot be turned into a tool."""

    def __init__(self, method_name: str, reason: str) -> None:
        self.method_name = method_name
        self.reason = reason
        super().__init__(f"Cannot build tool from '{method_name}': {reason}")


class DuplicateToolError(DiscoveryError):
    """Raised when a tool name is registered twice."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(tool_name, f"tool '{tool_name}' is already registered")


class ToolExecutionError(ToolRpcError):
    """Base class for failures while executing a tool call."""

    code = TOOL_EXECUTION_ERROR

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class ToolNotFoundError(ToolExecutionError):
    code = TOOL_NOT_FOUND_ERROR

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool not found: {tool_name}")


class ToolTimeoutError(ToolExecutionError):
    code = TOOL_TIMEOUT_ERROR

    def __init__(self, tool_name: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(tool_name, f"Tool '{tool_name}' timed out after {timeout_ms}ms")


class ToolInvocationError(ToolExecutionError):
    """Raised when the tool itself raised an exception."""

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            tool_name, f"Tool execution error in '{tool_name}': {cause}"
        )


class ResultSerializationError(ToolExecutionError):
    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(
            tool_name, f"Could not serialize result of '{tool_name}': {reason}"
        )


class ParameterMappingError(ToolExecutionError):
    """Raised when an argument violates a parameter constraint."""

    code = PARAMETER_VALIDATION_ERROR

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(tool_name, f"Parameter validation error: {message}")


class CacheError(ToolRpcError):
    """Raised by cache backends. Never propagated to protocol clients."""
