"""Pydantic models for published tool definitions.

These are the shapes returned by ``tools/list``. All of them are frozen:
once a tool is published to the registry it cannot be mutated in place.
Field names follow the wire format (camelCase) through aliases.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

JsonType = Literal["string", "integer", "number", "boolean", "array", "object"]


class ToolPropertySchema(BaseModel):
    """JSON-schema fragment describing a single tool argument."""

    type: JsonType = Field(default="string", description="JSON type of the argument")
    description: str | None = Field(default=None)
    default: Any = Field(default=None)
    enum_values: list[Any] | None = Field(default=None, alias="enum")
    pattern: str | None = Field(default=None)
    minimum: float | None = Field(default=None)
    maximum: float | None = Field(default=None)
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    example: Any = Field(default=None)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ToolInputSchema(BaseModel):
    """Top-level ``inputSchema`` object of a tool."""

    type: Literal["object"] = "object"
    properties: dict[str, ToolPropertySchema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    additional_properties: bool = Field(default=False, alias="additionalProperties")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ToolAnnotations(BaseModel):
    """Metadata carried alongside a tool definition."""

    group: str | None = None
    version: str | None = None
    examples: list[str] = Field(default_factory=list)
    timeout_ms: int | None = Field(default=None, alias="timeoutMs")
    enabled: bool = True
    priority: int = 0
    tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Tool(BaseModel):
    """A callable action as published in the registry."""

    name: str = Field(..., min_length=1)
    description: str = ""
    input_schema: ToolInputSchema = Field(
        default_factory=ToolInputSchema, alias="inputSchema"
    )
    annotations: ToolAnnotations = Field(default_factory=ToolAnnotations)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "browse_web_and_return_text",
                "description": "Automates web browsing and returns page text",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "instructions": {
                            "type": "string",
                            "description": "Provide instructions for this tool in plain English",
                        }
                    },
                    "required": ["instructions"],
                    "additionalProperties": False,
                },
                "annotations": {"group": "web", "timeoutMs": 60000},
            }
        },
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON shape sent to clients."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ListToolsResult(BaseModel):
    """Result payload of ``tools/list``."""

    tools: list[Tool] = Field(default_factory=list)
