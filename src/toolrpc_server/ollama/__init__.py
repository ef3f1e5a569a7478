"""Ollama client wrapper and integration layer.

This package provides the async client used for connectivity checks and
for generating tool descriptions.
"""

from toolrpc_server.ollama.client import DescriptionGenerationError, OllamaClient

__all__ = ["DescriptionGenerationError", "OllamaClient"]
