"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that ensure
proper test isolation and mocking for API endpoint tests.
"""

from typing import Any

import pytest


@pytest.fixture(autouse=True)
def _ollama_isolation(mock_ollama_client):
    """Mock OllamaClient for all integration tests.

    Every app created in an integration test, including ones built inside
    the test body, gets the mocked client instead of a real connection.
    """
    yield mock_ollama_client


@pytest.fixture
def rpc(async_client):
    """Post a JSON-RPC request and return the decoded response body.

    Args:
        async_client: The async HTTP client fixture.

    Returns:
        Callable: ``await rpc(method, params, id)``.
    """

    async def call(method: str, params: Any = None, request_id: Any = 1) -> dict:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "method": method, "id": request_id}
        if params is not None:
            payload["params"] = params
        response = await async_client.post("/api/v1/rpc", json=payload)
        assert response.status_code == 200
        return response.json()

    return call
