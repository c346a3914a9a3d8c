"""Outbound request descriptors and outward tool results."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class HttpMethod(str, Enum):
    """HTTP methods used against AEM."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


MUTATING_METHODS = frozenset(
    {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE}
)


class RequestDescriptor(BaseModel):
    """Everything needed to issue one call against the AEM author instance.

    ``query`` and ``form`` are ordered pairs so the emitted query string and
    form body follow insertion order.
    """

    method: HttpMethod = HttpMethod.GET
    path: str
    query: list[tuple[str, str]] = Field(default_factory=list)
    form: list[tuple[str, str]] | None = None
    json_body: Any = None

    @model_validator(mode="after")
    def check_single_body(self):
        """A request carries a form body or a JSON body, never both."""
        if self.form is not None and self.json_body is not None:
            raise ValueError("RequestDescriptor cannot have both form and json_body")
        return self

    @property
    def mutating(self) -> bool:
        return self.method in MUTATING_METHODS


class ToolResult(BaseModel):
    """Uniform outcome of a tool invocation."""

    is_error: bool = False
    content: str


__all__ = ["HttpMethod", "MUTATING_METHODS", "RequestDescriptor", "ToolResult"]
