"""Content envelope returned by ``tools/call``.

Every tool result, successful or not, is a ``ToolCallResult`` holding a list
of content items, so clients always see the same outer shape.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str

    @classmethod
    def of(cls, text: str) -> "TextContent":
        return cls(text=text)


class ImageContent(BaseModel):
    """Base64-encoded image content."""

    type: Literal["image"] = "image"
    data: str
    mime_type: str = Field(default="image/png", alias="mimeType")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def png(cls, data: str) -> "ImageContent":
        return cls(data=data, mime_type="image/png")


Content = Annotated[TextContent | ImageContent, Field(discriminator="type")]


class ToolCallResult(BaseModel):
    """Uniform result envelope for a tool invocation."""

    content: list[Content] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def success(cls, *content: TextContent | ImageContent) -> "ToolCallResult":
        return cls(content=list(content), is_error=False)

    @classmethod
    def error(cls, message: str) -> "ToolCallResult":
        return cls(content=[TextContent.of(message)], is_error=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
