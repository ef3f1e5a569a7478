"""Async Ollama client wrapper.

This module provides an async wrapper around the ollama.AsyncClient. The
server uses it for two things only: checking connectivity for the health
endpoint and generating tool descriptions for the description cache. The
client is created once at startup and reused.
"""

import json
import logging
import time
from typing import Any

import ollama

logger = logging.getLogger(__name__)

DESCRIPTION_PROMPT = """You write short descriptions for tools that AI agents can call.

Tool name: {name}
Input schema (JSON): {schema}

Describe in one sentence of at most 30 words what this tool does. Reply with
the sentence only, without quotes or a preamble."""


class DescriptionGenerationError(Exception):
    """Raised when Ollama cannot produce a description."""


class OllamaClient:
    """Async client for interacting with the Ollama API.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            # Try to list models as a connectivity check
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def generate_description(
        self,
        model: str,
        tool_name: str,
        input_schema: dict[str, Any],
    ) -> tuple[str, int]:
        """Generate a one-sentence description for a tool.

        Args:
            model: The model name to generate with
            tool_name: Name of the tool to describe
            input_schema: The tool's published input schema

        Returns:
            tuple[str, int]: The description and the generation time in ms

        Raises:
            DescriptionGenerationError: If the request fails or the model
                returns an empty answer
        """
        prompt = DESCRIPTION_PROMPT.format(
            name=tool_name, schema=json.dumps(input_schema, sort_keys=True)
        )
        start = time.perf_counter()
        try:
            response = await self._client.generate(model=model, prompt=prompt)
        except Exception as e:
            logger.error(f"Description generation for {tool_name} failed: {e}")
            raise DescriptionGenerationError(str(e)) from e

        # Response object in current ollama versions, dict in older ones
        if hasattr(response, "response"):
            text = response.response
        else:
            text = response.get("response", "")

        description = " ".join((text or "").split()).strip("\"' ")
        if not description:
            raise DescriptionGenerationError(f"Empty description for {tool_name}")

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(f"Generated description for {tool_name} in {elapsed_ms}ms")
        return description, elapsed_ms

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient uses httpx internally, which handles cleanup.
        """
        logger.debug("OllamaClient closed")
