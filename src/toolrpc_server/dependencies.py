"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject common dependencies like settings and the
JSON-RPC handler.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from toolrpc_server.config import ToolRpcServerSettings
from toolrpc_server.services import JsonRpcHandler
from toolrpc_server.tools import ToolRegistry


@lru_cache
def get_settings() -> ToolRpcServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOLRPC_ prefix.

    Returns:
        ToolRpcServerSettings: The application configuration settings.
    """
    return ToolRpcServerSettings()


def get_registry(request: Request) -> ToolRegistry:
    """Get the tool registry built during application startup.

    Args:
        request: The FastAPI request object.

    Returns:
        ToolRegistry: The populated tool registry.

    Raises:
        HTTPException: If discovery has not completed (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "registry"):
        raise HTTPException(
            status_code=503,
            detail="Tool registry not initialized",
        )
    return request.app.state.registry


def get_jsonrpc_handler(request: Request) -> JsonRpcHandler:
    """Get the JSON-RPC handler from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        JsonRpcHandler: The handler shared by all requests.

    Raises:
        HTTPException: If the handler is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "jsonrpc_handler"):
        raise HTTPException(
            status_code=503,
            detail="JSON-RPC handler not initialized",
        )
    return request.app.state.jsonrpc_handler
