"""Performance and usage metrics endpoint router."""

import logging

from fastapi import APIRouter, HTTPException, Request

from toolrpc_server.models.health import MetricsResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["metrics"])


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(request: Request) -> MetricsResponse:
    """Report startup, registry, request, execution and cache counters.

    Args:
        request: The FastAPI request object.

    Returns:
        MetricsResponse: Current counters.

    Raises:
        HTTPException: If the server is not initialized (503 Service Unavailable).
    """
    state = request.app.state
    if not getattr(state, "initialized", False):
        raise HTTPException(status_code=503, detail="Not initialized")

    settings = state.settings
    result = state.discovery_result
    executor = state.executor
    init_ms = state.initialization_time_ms

    return MetricsResponse(
        initialization={
            "time_ms": round(init_ms, 2),
            "target_ms": settings.max_initialization_time_ms,
            "target_met": init_ms <= settings.max_initialization_time_ms,
        },
        registry=state.registry.statistics(),
        discovery={
            "tool_count": result.tool_count,
            "elapsed_ms": round(result.elapsed_ms, 2),
            "failures": [str(e) for e in result.failures],
            "skipped": list(result.skipped),
        },
        handler=state.jsonrpc_handler.stats.to_dict(),
        execution={
            "executions": executor.stats.executions,
            "failures": executor.stats.failures,
            "timeouts": executor.stats.timeouts,
            "average_time_ms": round(executor.stats.average_time_ms, 2),
            "default_timeout_ms": executor.default_timeout_ms,
        },
        cache=state.cache.statistics().to_dict(),
    )
