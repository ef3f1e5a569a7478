"""Conversion of tool return values into ``ToolCallResult`` envelopes."""

import base64
import binascii
import dataclasses
import json
import logging
from typing import Any

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError, to_jsonable_python

from toolrpc_server.models.content import ImageContent, TextContent, ToolCallResult
from toolrpc_server.tools.errors import ResultSerializationError

logger = logging.getLogger(__name__)

NO_OUTPUT_TEXT = "Tool executed successfully with no output"
IMAGE_MIN_BASE64_LENGTH = 1000
LARGE_JSON_WARNING_CHARS = 10_000


def _detect_mime_type(raw: bytes) -> str:
    if raw.startswith(b"\x89PNG"):
        return "image/png"
    if raw.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if raw.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return "image/png"


def as_image(text: str) -> ImageContent | None:
    """Return image content if ``text`` is a data URL or a long base64 image."""
    if text.startswith("data:image/"):
        header, sep, payload = text.partition(",")
        if not sep:
            return None
        mime_type = header[len("data:") :].split(";", 1)[0]
        return ImageContent(data=payload, mime_type=mime_type)

    if len(text) <= IMAGE_MIN_BASE64_LENGTH:
        return None
    try:
        decoded = base64.b64decode(text[:100] + "=" * (-len(text[:100]) % 4), validate=True)
        base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return ImageContent(data=text, mime_type=_detect_mime_type(decoded))


class ResultSerializer:
    """Wraps arbitrary return values in the uniform content envelope."""

    def serialize(self, tool_name: str, result: Any) -> ToolCallResult:
        """Serialize a tool's return value.

        Args:
            tool_name: Name of the tool, used in error messages.
            result: Whatever the tool returned.

        Returns:
            ToolCallResult: Envelope with ``isError`` false.

        Raises:
            ResultSerializationError: If the value cannot be represented.
        """
        if result is None:
            return ToolCallResult.success(TextContent.of(NO_OUTPUT_TEXT))
        if isinstance(result, ToolCallResult):
            return result
        if isinstance(result, (TextContent, ImageContent)):
            return ToolCallResult.success(result)

        if isinstance(result, str):
            return ToolCallResult.success(as_image(result) or TextContent.of(result))
        if isinstance(result, (bool, int, float)):
            return ToolCallResult.success(TextContent.of(str(result)))
        if isinstance(result, (bytes, bytearray)):
            encoded = base64.b64encode(bytes(result)).decode("ascii")
            return ToolCallResult.success(ImageContent.png(encoded))

        if isinstance(result, (list, tuple, set, frozenset, dict, BaseModel)) or (
            dataclasses.is_dataclass(result) and not isinstance(result, type)
        ):
            return ToolCallResult.success(TextContent.of(self._to_json(tool_name, result)))

        # Objects with their own __str__ describe themselves; others go to JSON
        if type(result).__str__ is not object.__str__:
            return ToolCallResult.success(TextContent.of(str(result)))
        return ToolCallResult.success(TextContent.of(self._to_json(tool_name, result)))

    @staticmethod
    def _to_json(tool_name: str, result: Any) -> str:
        try:
            text = json.dumps(to_jsonable_python(result), ensure_ascii=False)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(f"Failed to serialize result of '{tool_name}': {e}")
            raise ResultSerializationError(tool_name, str(e)) from e
        if len(text) > LARGE_JSON_WARNING_CHARS:
            logger.warning(
                f"Large JSON result from '{tool_name}' ({len(text)} chars)"
            )
        return text
