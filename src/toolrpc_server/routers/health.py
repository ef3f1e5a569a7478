"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request, Response

from toolrpc_server import __version__
from toolrpc_server.models.health import HealthResponse
from toolrpc_server.ollama import OllamaClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """Health check endpoint.

    Returns the current health status and version of the toolrpc-server,
    the number of published tools and the description cache backend. Also
    checks connectivity to the Ollama server if the client is initialized.
    Responds with 503 until startup initialization has completed.

    Args:
        request: The FastAPI request object.
        response: The outgoing response, used to set the status code.

    Returns:
        HealthResponse: Health status and version information.
    """
    state = request.app.state
    initialized = getattr(state, "initialized", False)

    ollama_connected = None
    ollama_host = None

    # Check if Ollama client is available and test connectivity
    if hasattr(state, "ollama_client"):
        ollama_client: OllamaClient = state.ollama_client
        ollama_host = ollama_client.host

        try:
            ollama_connected = await ollama_client.check_connection()
            logger.debug(f"Ollama connectivity check: {ollama_connected}")
        except Exception as e:
            logger.warning(f"Ollama connectivity check failed: {e}")
            ollama_connected = False

    if not initialized:
        response.status_code = 503

    return HealthResponse(
        status="ok" if initialized else "unavailable",
        version=__version__,
        initialized=initialized,
        tool_count=len(state.registry) if hasattr(state, "registry") else 0,
        initialization_time_ms=getattr(state, "initialization_time_ms", None),
        cache_backend=state.cache.backend if hasattr(state, "cache") else None,
        ollama_connected=ollama_connected,
        ollama_host=ollama_host,
    )
