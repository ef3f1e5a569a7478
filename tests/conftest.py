"""Pytest configuration and shared fixtures for toolrpc-server tests.

This module provides common fixtures used across all test modules,
including sample action providers, test app creation and async client setup.
"""

import asyncio
import threading
from typing import Annotated, Any
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolrpc_server import create_app
from toolrpc_server.config import ToolRpcServerSettings
from toolrpc_server.tools import (
    CancellationToken,
    Param,
    ToolDiscoveryService,
    action,
    agent,
)


@agent(group="web", version="1.2.0", priority=5, tags=["browser"])
class WebActions:
    """Browser-style actions covering the three schema shapes."""

    @action(
        description="Open a page and return its visible text",
        timeout_ms=2000,
        examples=["Open example.com and read the headline"],
    )
    def browse_web_and_return_text(self, url_instructions: str) -> str:
        return f"Visited: {url_instructions}"

    @action()
    def take_current_page_screenshot(self) -> bytes:
        return b"\x89PNG\r\n\x1a\n"

    @action(tags=["search"])
    def search_pages(
        self,
        query: Annotated[str, Param(description="Search terms", min_length=2)],
        limit: Annotated[int, Param(minimum=1, maximum=50)] = 10,
        include_images: bool = False,
    ) -> list[str]:
        results = [f"{query} result {i}" for i in range(1, min(limit, 3) + 1)]
        if include_images:
            results.append("image.png")
        return results

    @action(enabled=False)
    def legacy_browse(self) -> str:
        return "legacy"


class UtilityActions:
    """Actions without group metadata and with fallback descriptions."""

    def __init__(self) -> None:
        self.cancel_observed = threading.Event()

    @action(name="echo_payload")
    def echo(
        self,
        payload: dict[str, Any],
        labels: list[str] | None = None,
    ) -> dict[str, Any]:
        return {"payload": payload, "labels": labels or []}

    @action()
    def fail_always(self, reason: str) -> str:
        raise RuntimeError(reason)

    @action(timeout_ms=100)
    async def slow_operation(self) -> str:
        await asyncio.sleep(5)
        return "done"

    @action(timeout_ms=100)
    def wait_for_cancel(self, token: CancellationToken) -> str:
        if token.wait(5):
            self.cancel_observed.set()
            return "cancelled"
        return "finished"


@pytest.fixture
def web_actions():
    """Create a WebActions instance."""
    return WebActions()


@pytest.fixture
def utility_actions():
    """Create a UtilityActions instance."""
    return UtilityActions()


@pytest.fixture
def action_sources(web_actions, utility_actions):
    """Action providers registered by the test application."""
    return [web_actions, utility_actions]


@pytest.fixture
def sample_registry(action_sources):
    """Build a registry from the sample action providers."""
    return ToolDiscoveryService().discover(action_sources).registry


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings with an isolated data directory.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        ToolRpcServerSettings: Settings instance configured for testing.
    """
    return ToolRpcServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        data_dir=str(tmp_path),
        cache_backend="memory",
        provider_model="test-model",
        description_backfill_enabled=False,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def mock_ollama_client():
    """Mock OllamaClient so that the lifespan never talks to a real server.

    The class is patched before the app is created, ensuring the lifespan
    uses our mock instead of creating a real client.
    """
    with patch("toolrpc_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True
        mock_instance.generate_description.return_value = (
            "Generated tool description",
            25,
        )
        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def test_app(test_settings, action_sources, mock_ollama_client):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.
        action_sources: Sample action providers.
        mock_ollama_client: Patched Ollama client.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings, action_sources=action_sources)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
