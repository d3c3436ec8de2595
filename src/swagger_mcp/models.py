"""Specification models and derived tool definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


HTTP_METHODS = frozenset({"get", "put", "post", "delete", "options", "head", "patch", "trace"})


class Dialect(str, Enum):
    SWAGGER2 = "swagger2"
    OPENAPI3 = "openapi3"


def _first_type(value: Any) -> Any:
    # OpenAPI 3.1 style ["string", "null"]
    if isinstance(value, list):
        return next((item for item in value if item != "null"), None)
    return value


class _SpecModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SchemaRef(_SpecModel):
    ref: Optional[str] = Field(default=None, alias="$ref")
    type: Optional[str] = None
    format: Optional[str] = None
    description: Optional[str] = None
    properties: Dict[str, SchemaRef] = Field(default_factory=dict)
    items: Optional[SchemaRef] = None
    required: List[str] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        return _first_type(value)

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("required", mode="before")
    @classmethod
    def _null_required(cls, value: Any) -> Any:
        # Swagger 2.0 property-level `required: true` is not a field list
        return value if isinstance(value, list) else []


class Parameter(_SpecModel):
    name: str = ""
    location: str = Field(default="", alias="in")
    required: bool = False
    type: Optional[str] = None
    description: Optional[str] = None
    schema_: Optional[SchemaRef] = Field(default=None, alias="schema")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        return _first_type(value)


class MediaType(_SpecModel):
    schema_: Optional[SchemaRef] = Field(default=None, alias="schema")


class RequestBody(_SpecModel):
    description: Optional[str] = None
    required: bool = False
    content: Dict[str, MediaType] = Field(default_factory=dict)


class Response(_SpecModel):
    description: Optional[str] = None
    schema_: Optional[SchemaRef] = Field(default=None, alias="schema")
    type: Optional[str] = None
    content: Dict[str, MediaType] = Field(default_factory=dict)


class Operation(_SpecModel):
    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = Field(default=None, alias="operationId")
    parameters: List[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = Field(default=None, alias="requestBody")
    responses: Dict[str, Response] = Field(default_factory=dict)

    @field_validator("responses", mode="before")
    @classmethod
    def _status_keys(cls, value: Any) -> Any:
        # YAML documents load bare status codes as integers
        if isinstance(value, dict):
            return {str(key): item for key, item in value.items()}
        return value

    def with_shared_parameters(self, shared: List[Parameter]) -> Operation:
        if not shared:
            return self
        own = {(p.name, p.location) for p in self.parameters}
        merged = [p for p in shared if (p.name, p.location) not in own]
        return self.model_copy(update={"parameters": [*merged, *self.parameters]})


class Server(_SpecModel):
    url: str = ""
    description: Optional[str] = None


class Components(_SpecModel):
    schemas: Dict[str, SchemaRef] = Field(default_factory=dict)


class SpecDocument(_SpecModel):
    swagger: Optional[str] = None
    openapi: Optional[str] = None

    host: str = ""
    base_path: str = Field(default="", alias="basePath")
    definitions: Dict[str, SchemaRef] = Field(default_factory=dict)

    servers: List[Server] = Field(default_factory=list)
    components: Optional[Components] = None

    paths: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("swagger", "openapi", mode="before")
    @classmethod
    def _version_string(cls, value: Any) -> Any:
        # unquoted `swagger: 2.0` in YAML is a float
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("paths", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {path: item or {} for path, item in value.items()}
        return value

    @property
    def dialect(self) -> Dialect:
        return Dialect.OPENAPI3 if self.openapi else Dialect.SWAGGER2

    def schema_table(self) -> Dict[str, SchemaRef]:
        if self.dialect is Dialect.OPENAPI3:
            return self.components.schemas if self.components else {}
        return self.definitions

    def operations(self) -> Iterator[Tuple[str, str, Operation]]:
        """Yield ``(path, method, operation)`` in document order.

        Path-level ``parameters`` are merged into every operation of the path.
        """
        for path, item in self.paths.items():
            shared = [Parameter.model_validate(p) for p in item.get("parameters") or []]
            for method, raw in item.items():
                if method.lower() not in HTTP_METHODS or not isinstance(raw, dict):
                    continue
                operation = Operation.model_validate(raw)
                yield path, method, operation.with_shared_parameters(shared)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type_tag: str


@dataclass(frozen=True)
class ToolInput:
    name: str
    location: str
    required: bool
    description: str


@dataclass(frozen=True)
class ResponseShape:
    status: str
    fields: Tuple[FieldSpec, ...] = ()
    type_tag: Optional[str] = None


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    method: str
    url: str
    description: str
    path_params: Tuple[str, ...] = ()
    query_params: Tuple[str, ...] = ()
    header_params: Tuple[str, ...] = ()
    body_fields: Tuple[FieldSpec, ...] = ()
    inputs: Tuple[ToolInput, ...] = ()
    responses: Tuple[ResponseShape, ...] = ()

    def body_types(self) -> Dict[str, str]:
        return {field.name: field.type_tag for field in self.body_fields}
