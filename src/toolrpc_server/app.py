"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import asyncio
import contextlib
import logging
import sqlite3
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolrpc_server import __version__
from toolrpc_server.cache import NoOpCacheProvider, create_cache_provider
from toolrpc_server.config import ToolRpcServerSettings
from toolrpc_server.ollama import OllamaClient
from toolrpc_server.routers import health, metrics, rpc
from toolrpc_server.services import DescriptionBackfillService, JsonRpcHandler
from toolrpc_server.tools import MethodToolBuilder, ToolDiscoveryService, ToolExecutor
from toolrpc_server.tools.discovery import DiscoveryResult, import_source
from toolrpc_server.tools.errors import DiscoveryError

logger = logging.getLogger(__name__)


def _collect_sources(app: FastAPI, settings: ToolRpcServerSettings) -> list[Any]:
    sources = list(app.state.action_sources)
    for path in settings.action_modules:
        try:
            sources.append(import_source(path))
            logger.debug(f"Loaded action source: {path}")
        except DiscoveryError as e:
            logger.error(str(e))
    return sources


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Discovery, the tool executor, the description cache and the JSON-RPC
    handler are created once at startup and stored in app.state for reuse
    across all requests. Discovery never waits on a model; fallback
    descriptions are refreshed afterwards by a background task.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolRpcServerSettings = app.state.settings
    start = time.perf_counter()

    # Startup: description cache, never fatal
    try:
        cache = create_cache_provider(
            settings.cache_backend, str(settings.resolved_cache_db_path)
        )
    except (sqlite3.Error, OSError) as e:
        logger.error(
            f"Could not open description cache at {settings.resolved_cache_db_path}: "
            f"{e} - continuing without a cache"
        )
        cache = NoOpCacheProvider()
    app.state.cache = cache
    logger.info(f"Using description cache backend: {cache.backend}")

    # Tool discovery
    builder = MethodToolBuilder(static_descriptions=settings.static_descriptions)
    if settings.discovery_enabled:
        discovery = ToolDiscoveryService(
            builder, max_initialization_time_ms=settings.max_initialization_time_ms
        )
        result = discovery.discover(_collect_sources(app, settings))
    else:
        logger.info("Tool discovery is disabled")
        result = DiscoveryResult()
    app.state.discovery_result = result
    app.state.registry = result.registry

    # Execution and request handling
    executor = ToolExecutor(
        result.registry,
        default_timeout_ms=settings.default_timeout_ms,
        max_concurrent_executions=settings.max_concurrent_executions,
    )
    app.state.executor = executor
    app.state.jsonrpc_handler = JsonRpcHandler(
        result.registry,
        executor,
        cache=cache,
        provider_model=settings.provider_model,
        server_name=settings.server_name,
        server_version=__version__,
        server_config={"maxConcurrentExecutions": settings.max_concurrent_executions},
    )

    # Ollama client, used for health checks and description generation
    app.state.ollama_client = OllamaClient(host=settings.ollama_host)
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    app.state.initialization_time_ms = (time.perf_counter() - start) * 1000
    app.state.initialized = True
    logger.info(
        f"toolrpc-server initialized {len(result.registry)} tools "
        f"in {app.state.initialization_time_ms:.0f}ms"
    )

    backfill_task: asyncio.Task | None = None
    if settings.description_backfill_enabled and cache.backend != "none":
        generator = None
        if settings.description_generation_enabled:
            generator = app.state.ollama_client
            if not await app.state.ollama_client.check_connection():
                logger.warning(
                    "Could not connect to Ollama - descriptions will only come from the cache"
                )
                generator = None
        backfill = DescriptionBackfillService(
            result.registry,
            builder,
            cache,
            provider_model=settings.provider_model,
            generator=generator,
        )
        backfill_task = backfill.start()
    app.state.backfill_task = backfill_task

    yield

    # Shutdown: Clean up resources
    app.state.initialized = False
    if backfill_task is not None and not backfill_task.done():
        backfill_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await backfill_task
    executor.shutdown(wait=False)
    logger.info("Tool executor stopped")
    cache.close()
    await app.state.ollama_client.close()
    logger.info("Ollama client closed")


def create_app(
    settings: ToolRpcServerSettings | None = None,
    action_sources: Iterable[Any] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a FastAPI instance with all routers,
    middleware, and configuration applied. It can accept an optional
    settings object for testing or explicit configuration.

    Args:
        settings: Optional ToolRpcServerSettings instance. If not provided,
                  settings will be loaded from environment variables.
        action_sources: Objects, classes, modules or functions carrying
                  ``@action`` callables. Added to those named in
                  ``settings.action_modules``.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from toolrpc_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="toolrpc-server",
        description="JSON-RPC 2.0 tool protocol server for AI client agents",
        version=__version__,
        lifespan=lifespan,
    )

    # Store settings and sources in app.state for lifespan access
    app.state.settings = settings
    app.state.action_sources = list(action_sources or [])
    app.state.initialized = False

    # Configure CORS
    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(rpc.router)

    return app
