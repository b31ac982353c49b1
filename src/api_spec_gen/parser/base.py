"""Unified data models for parsed route handlers.

The annotation extractor produces a DirectiveRecord per handler; the route
collector turns it into an immutable RouteDefinition with its Parameters.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class DirectiveRecord(BaseModel):
    """Structured form of a handler's annotation comment block."""

    summary: str = ""
    description: str = ""
    tag: str = ""
    auth: str = ""  # BearerAuth / BasicAuth / ApiKeyAuth
    is_openapi: bool = False
    deprecated: bool = False
    params_type: str = ""
    path_params_type: str = ""
    body_type: str = ""
    body_description: str = ""
    content_type: str = ""
    response_type: str = ""
    response_description: str = ""
    success_code: str = ""
    response_sets: list[str] = []
    add_responses: list[tuple[str, str]] = []  # (code, schema name or "")


class Parameter(BaseModel):
    """A single path or query parameter."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: str  # path / query
    required: bool
    param_schema: dict = {}
    description: str = ""
    example: Any = None

    def to_openapi(self) -> dict:
        data = {"in": self.location, "name": self.name, "schema": self.param_schema, "required": self.required}
        if self.description:
            data["description"] = self.description
        if self.example is not None:
            data["example"] = self.example
        return data


class RouteDefinition(BaseModel):
    """One HTTP operation on one URL template."""

    model_config = ConfigDict(frozen=True)

    method: str  # get / post / put / patch / delete
    path: str  # /orders/{id}
    operation_id: str
    summary: str = ""
    description: str = ""
    tags: list[str] = []
    security: list[dict[str, list]] | None = None
    parameters: list[Parameter] = []
    request_body: dict | None = None
    responses: dict[str, dict] = {}
    deprecated: bool = False

    def to_openapi(self) -> dict:
        operation = {"operationId": self.operation_id, "summary": self.summary}
        if self.description:
            operation["description"] = self.description
        operation["tags"] = list(self.tags)
        if self.security:
            operation["security"] = [dict(item) for item in self.security]
        operation["parameters"] = [param.to_openapi() for param in self.parameters]
        if self.request_body is not None:
            operation["requestBody"] = self.request_body
        operation["responses"] = dict(self.responses)
        if self.deprecated:
            operation["deprecated"] = True
        return operation
