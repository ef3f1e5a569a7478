"""JSON-RPC 2.0 envelope models.

Requests are validated into ``JsonRpcRequest`` after the raw body has been
parsed; responses are built with the ``success``/``failure`` helpers and
serialized with ``to_wire`` so that ``result`` and ``error`` never appear
together.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

RequestId = str | int | None


class JsonRpcRequest(BaseModel):
    """A single JSON-RPC 2.0 request or notification."""

    jsonrpc: Literal["2.0"]
    method: str
    params: dict[str, Any] | list[Any] | None = None
    id: RequestId = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("method")
    @classmethod
    def method_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("method must not be empty")
        return value

    @property
    def is_notification(self) -> bool:
        """Requests without an id expect no response."""
        return self.id is None


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId = None
    result: Any = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, request_id: RequestId, result: Any) -> "JsonRpcResponse":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: RequestId,
        code: int,
        message: str,
        data: Any = None,
    ) -> "JsonRpcResponse":
        return cls(
            id=request_id, error=JsonRpcError(code=code, message=message, data=data)
        )

    @property
    def is_success(self) -> bool:
        return self.error is None

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            body["error"] = self.error.model_dump(exclude_none=True)
        else:
            body["result"] = self.result
        return body


class ToolCallParams(BaseModel):
    """``params`` object of a ``tools/call`` request."""

    name: str = Field(..., min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def none_means_empty(cls, value: Any) -> Any:
        return {} if value is None else value
