"""JSON-RPC endpoint router.

All protocol traffic goes through ``POST /api/v1/rpc``. Business-level
failures are JSON-RPC error bodies with HTTP 200; requests consisting only of
notifications get an empty 204 response.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from toolrpc_server.dependencies import get_jsonrpc_handler, get_registry
from toolrpc_server.models.tools import ListToolsResult
from toolrpc_server.services import JsonRpcHandler
from toolrpc_server.tools import ToolRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["rpc"])


@router.post("/rpc")
async def handle_rpc(
    request: Request,
    handler: JsonRpcHandler = Depends(get_jsonrpc_handler),
) -> Response:
    """Handle a JSON-RPC 2.0 request or batch.

    The raw body is parsed by the handler so that malformed JSON yields a
    JSON-RPC parse error instead of a FastAPI validation error.

    Args:
        request: The FastAPI request object.
        handler: The JSON-RPC handler from app state.

    Returns:
        Response: The JSON-RPC response body, or 204 for notifications.
    """
    body = await request.body()
    result = await handler.handle_raw(body)
    if result is None:
        return Response(status_code=204)
    return JSONResponse(content=result)


@router.get(
    "/tools",
    response_model=ListToolsResult,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def list_tools(
    registry: ToolRegistry = Depends(get_registry),
) -> ListToolsResult:
    """List published tools outside of JSON-RPC.

    Args:
        registry: The tool registry from app state.

    Returns:
        ListToolsResult: All tools in registration order.
    """
    tools = registry.list_tools()
    logger.debug(f"Listing {len(tools)} tools via REST")
    return ListToolsResult(tools=tools)
