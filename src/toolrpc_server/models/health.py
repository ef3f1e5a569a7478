"""Health check and metrics response models."""

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "unavailable").
        version: The version of toolrpc-server.
        initialized: Whether tool discovery has completed.
        tool_count: Number of published tools.
        initialization_time_ms: Time spent in startup initialization.
        cache_backend: Name of the description cache backend.
        ollama_connected: Optional boolean indicating Ollama connectivity.
        ollama_host: Optional string with the Ollama host URL.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of toolrpc-server")
    initialized: bool = Field(default=False, description="Whether discovery completed")
    tool_count: int = Field(default=0, description="Number of published tools")
    initialization_time_ms: float | None = Field(
        default=None,
        description="Startup initialization time in milliseconds",
    )
    cache_backend: str | None = Field(
        default=None,
        description="Description cache backend",
    )
    ollama_connected: bool | None = Field(
        default=None,
        description="Whether Ollama is connected",
    )
    ollama_host: str | None = Field(
        default=None,
        description="Ollama host URL",
    )


class MetricsResponse(BaseModel):
    """Response model for the metrics endpoint."""

    initialization: dict[str, Any] = Field(
        ..., description="Startup timing against the configured target"
    )
    registry: dict[str, int] = Field(
        ..., description="Tool counts per description source"
    )
    discovery: dict[str, Any] = Field(..., description="Last discovery run")
    handler: dict[str, Any] = Field(..., description="JSON-RPC request counters")
    execution: dict[str, Any] = Field(..., description="Tool execution counters")
    cache: dict[str, Any] = Field(..., description="Description cache counters")

    model_config = {
        "json_schema_extra": {
            "example": {
                "initialization": {"time_ms": 12.4, "target_ms": 5000, "target_met": True},
                "registry": {"explicit": 2, "static": 1, "cache": 0, "generated": 0, "fallback": 1, "total": 4},
                "discovery": {"tool_count": 4, "failures": [], "skipped": []},
                "handler": {"total_requests": 10, "successful_requests": 9},
                "execution": {"executions": 5, "failures": 1, "timeouts": 0},
                "cache": {"backend": "sqlite", "hits": 1, "misses": 3, "hit_rate": 0.25},
            }
        }
    }
