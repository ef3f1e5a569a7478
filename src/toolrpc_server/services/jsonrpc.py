"""JSON-RPC 2.0 request handling.

``JsonRpcHandler`` owns the Parse -> Validate -> Dispatch -> Invoke ->
Serialize -> Respond pipeline. It never raises for a client mistake: every
failure becomes a JSON-RPC error response whose ``data`` keeps the same
content envelope as a successful tool call.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from toolrpc_server.cache.provider import ToolDescriptionCacheProvider
from toolrpc_server.models.content import ToolCallResult
from toolrpc_server.models.jsonrpc import (
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
    ToolCallParams,
)
from toolrpc_server.tools.builder import DescriptionSource
from toolrpc_server.tools.errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    ArgumentValidationError,
    MethodNotFoundError,
    ProtocolError,
    ToolRpcError,
)
from toolrpc_server.tools.executor import ToolExecutor
from toolrpc_server.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

MethodHandler = Callable[[JsonRpcRequest], Awaitable[Any]]


@dataclass
class HandlerStatistics:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    notifications: int = 0
    total_time_ms: float = 0.0

    @property
    def average_response_time_ms(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.total_time_ms / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "notifications": self.notifications,
            "average_response_time_ms": round(self.average_response_time_ms, 2),
        }


def error_data(message: str, tool_name: str | None = None) -> dict[str, Any]:
    """Build ``error.data`` in the tool-result envelope shape."""
    data = ToolCallResult.error(message).to_wire()
    if tool_name:
        return {"tool": tool_name, **data}
    return data


def _payload_id(payload: Any) -> RequestId:
    if isinstance(payload, dict):
        request_id = payload.get("id")
        if isinstance(request_id, (str, int)) and not isinstance(request_id, bool):
            return request_id
    return None


class JsonRpcHandler:
    """Dispatches JSON-RPC requests to the tool runtime.

    Args:
        registry: Registry used by ``tools/list``.
        executor: Executor used by ``tools/call``.
        cache: Description cache; usage is recorded for cached descriptions.
        provider_model: Model key under which descriptions are cached.
        server_name: Name reported by ``initialize``.
        server_version: Version reported by ``initialize``.
        server_config: Extra values exposed through ``server/config``.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        executor: ToolExecutor,
        cache: ToolDescriptionCacheProvider | None = None,
        provider_model: str = "",
        server_name: str = "toolrpc-server",
        server_version: str = "0.1.0",
        server_config: dict[str, Any] | None = None,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.cache = cache
        self.provider_model = provider_model
        self.server_name = server_name
        self.server_version = server_version
        self.server_config = dict(server_config or {})
        self.client_initialized = False
        self.stats = HandlerStatistics()
        self._methods: dict[str, MethodHandler] = {
            "initialize": self._initialize,
            "notifications/initialized": self._initialized,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "prompts/list": self._list_prompts,
            "server/config": self._server_config,
        }

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    async def handle_raw(self, body: bytes | str) -> dict[str, Any] | list[Any] | None:
        """Handle an undecoded request body.

        Returns:
            The wire response, a list of them for batches, or None when
            nothing needs to be sent back (notifications only).
        """
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Rejected unparseable request: {e}")
            self.stats.total_requests += 1
            self.stats.failed_requests += 1
            message = f"Parse error: {e}"
            return JsonRpcResponse.failure(
                None, PARSE_ERROR, message, error_data(message)
            ).to_wire()
        return await self.handle_payload(payload)

    async def handle_payload(self, payload: Any) -> dict[str, Any] | list[Any] | None:
        """Handle a decoded single request or batch."""
        if isinstance(payload, list):
            if not payload:
                return self._invalid(None, "Invalid Request: empty batch").to_wire()
            responses = await asyncio.gather(*(self._handle_item(p) for p in payload))
            wire = [r.to_wire() for r in responses if r is not None]
            return wire or None

        response = await self._handle_item(payload)
        return response.to_wire() if response is not None else None

    async def handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse | None:
        """Dispatch a validated request.

        Returns:
            JsonRpcResponse | None: None for notifications.
        """
        start = time.perf_counter()
        self.stats.total_requests += 1

        try:
            method = self._methods.get(request.method)
            if method is None:
                raise MethodNotFoundError(request.method)
            response = JsonRpcResponse.success(request.id, await method(request))
        except ToolRpcError as e:
            response = self._error_response(request.id, e)
        except Exception as e:
            logger.error(f"Unexpected error handling '{request.method}': {e}", exc_info=True)
            message = f"Internal error: {e}"
            response = JsonRpcResponse.failure(
                request.id, INTERNAL_ERROR, message, error_data(message)
            )

        self.stats.total_time_ms += (time.perf_counter() - start) * 1000
        if response.is_success:
            self.stats.successful_requests += 1
        else:
            self.stats.failed_requests += 1

        if request.is_notification:
            self.stats.notifications += 1
            return None
        return response

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        request_id: RequestId = "call-tool",
    ) -> JsonRpcResponse:
        """Issue a ``tools/call`` through the full pipeline."""
        request = JsonRpcRequest(
            jsonrpc="2.0",
            method="tools/call",
            params={"name": name, "arguments": arguments or {}},
            id=request_id if request_id is not None else "call-tool",
        )
        response = await self.handle_request(request)
        if response is None:
            raise ProtocolError("tools/call must not be sent as a notification")
        return response

    def parse_request(self, payload: Any) -> JsonRpcRequest:
        """Validate a decoded request object.

        Raises:
            ProtocolError: If the envelope is not a valid JSON-RPC 2.0 request.
        """
        if not isinstance(payload, dict):
            raise ProtocolError("Invalid Request: expected a JSON object")
        try:
            return JsonRpcRequest.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "request"
            raise ProtocolError(f"Invalid Request: {location}: {first['msg']}") from e

    # --- methods ---

    async def _initialize(self, request: JsonRpcRequest) -> dict[str, Any]:
        client = request.params.get("clientInfo") if isinstance(request.params, dict) else None
        logger.info(f"Client initializing: {client or 'unknown client'}")
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    async def _initialized(self, request: JsonRpcRequest) -> None:
        self.client_initialized = True
        logger.debug("Client reported initialization complete")

    async def _ping(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {}

    async def _list_tools(self, request: JsonRpcRequest) -> dict[str, Any]:
        tools = self.registry.list_tools()
        logger.debug(f"Listing {len(tools)} tools")
        return {"tools": [tool.to_wire() for tool in tools]}

    async def _call_tool(self, request: JsonRpcRequest) -> dict[str, Any]:
        if not isinstance(request.params, dict):
            raise ArgumentValidationError("Invalid params: expected an object with 'name'")
        try:
            params = ToolCallParams.model_validate(request.params)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ArgumentValidationError(f"Invalid params: {location}: {first['msg']}") from e

        logger.debug(f"Processing tools/call for '{params.name}'")
        result = await self.executor.execute(params.name, params.arguments)
        self._record_usage(params.name)
        return result.to_wire()

    async def _list_resources(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {"resources": []}

    async def _list_prompts(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {"prompts": []}

    async def _server_config(self, request: JsonRpcRequest) -> dict[str, Any]:
        return {
            "serverName": self.server_name,
            "version": self.server_version,
            "protocolVersion": PROTOCOL_VERSION,
            "toolCount": len(self.registry),
            "defaultTimeoutMs": self.executor.default_timeout_ms,
            "providerModel": self.provider_model,
            "cacheBackend": self.cache.backend if self.cache else "none",
            **self.server_config,
        }

    # --- helpers ---

    async def _handle_item(self, payload: Any) -> JsonRpcResponse | None:
        try:
            request = self.parse_request(payload)
        except ProtocolError as e:
            logger.warning(f"Rejected malformed request: {e}")
            self.stats.total_requests += 1
            self.stats.failed_requests += 1
            return self._invalid(_payload_id(payload), str(e), e.code)
        return await self.handle_request(request)

    def _invalid(
        self, request_id: RequestId, message: str, code: int = INVALID_REQUEST
    ) -> JsonRpcResponse:
        return JsonRpcResponse.failure(request_id, code, message, error_data(message))

    def _error_response(self, request_id: RequestId, error: ToolRpcError) -> JsonRpcResponse:
        tool_name = getattr(error, "tool_name", None)
        message = str(error)
        if tool_name:
            logger.warning(f"tools/call '{tool_name}' failed ({error.code}): {message}")
        else:
            logger.warning(f"Request failed ({error.code}): {message}")
        return JsonRpcResponse.failure(
            request_id, error.code, message, error_data(message, tool_name)
        )

    def _record_usage(self, tool_name: str) -> None:
        if self.cache is None or not self.provider_model:
            return
        tool_method = self.registry.find(tool_name)
        if tool_method is not None and tool_method.description_source in (
            DescriptionSource.CACHE,
            DescriptionSource.GENERATED,
        ):
            self.cache.record_usage(self.provider_model, tool_name)
