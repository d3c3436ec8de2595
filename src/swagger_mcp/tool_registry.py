"""Derive MCP tool descriptors from a Swagger / OpenAPI document."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .config import Settings
from .filters import OperationFilter
from .models import (
    Dialect,
    FieldSpec,
    Operation,
    ResponseShape,
    SchemaRef,
    SpecDocument,
    ToolDescriptor,
    ToolInput,
)
from .openapi import OpenAPILoader
from .schema import resolve_fields, resolve_response


logger = logging.getLogger(__name__)

MAX_TOOL_NAME_LENGTH = 40

PARAMETER_GROUPS = ("header", "query", "path")

USAGE_TEMPLATE = (
    "Use this tool only when the request exactly matches {summary} or {description}. "
    "If you don't have any of the required parameters then always ask the user for it, "
    "*don't fill any parameter on your own or leave it empty*. "
    "If there is [Error], only state that error in your response and stop the response there. "
    "*Do not ever maintain records in your memory, e.g. lists of users or orders*"
)


def tool_name(method: str, path: str) -> str:
    sanitized = path.replace("/", "_").replace("{", "").replace("}", "")
    return f"{method}_{sanitized}"[:MAX_TOOL_NAME_LENGTH]


def usage_text(operation: Operation) -> str:
    return USAGE_TEMPLATE.format(
        summary=operation.summary or "", description=operation.description or ""
    )


def join_url(base_url: str, path: str) -> str:
    return base_url.removesuffix("/") + "/" + path.removeprefix("/")


def _openapi_base_url(spec: SpecDocument) -> str:
    if spec.servers:
        return spec.servers[0].url.removesuffix("/")
    return "/"


def _swagger_base_url(spec: SpecDocument) -> str:
    base_url = spec.host
    if not base_url.startswith(("http://", "https://")):
        base_url = "https://" + base_url
    if spec.base_path:
        base_url = join_url(base_url, spec.base_path)
    return base_url


def base_url(spec: SpecDocument, settings: Settings) -> str:
    if settings.api_base_url:
        return settings.api_base_url
    if spec.dialect is Dialect.OPENAPI3:
        return _openapi_base_url(spec)
    return _swagger_base_url(spec)


def _union(groups: List[Tuple[FieldSpec, ...]]) -> Tuple[FieldSpec, ...]:
    merged: Dict[str, FieldSpec] = {}
    for fields in groups:
        for field in fields:
            merged[field.name] = field
    return tuple(merged.values())


def _swagger_body_fields(
    operation: Operation, schema_table: Mapping[str, SchemaRef]
) -> Tuple[FieldSpec, ...]:
    groups = []
    for param in operation.parameters:
        if param.location != "body":
            continue
        schema = param.schema_ or SchemaRef(type=param.type)
        groups.append(resolve_fields(schema, schema_table))
    return _union(groups)


def _openapi_body_fields(
    operation: Operation, schema_table: Mapping[str, SchemaRef]
) -> Tuple[FieldSpec, ...]:
    if operation.request_body is None:
        return ()
    groups = [
        resolve_fields(media.schema_, schema_table)
        for media in operation.request_body.content.values()
    ]
    return _union(groups)


def body_fields(spec: SpecDocument, operation: Operation) -> Tuple[FieldSpec, ...]:
    if spec.dialect is Dialect.OPENAPI3:
        return _openapi_body_fields(operation, spec.schema_table())
    return _swagger_body_fields(operation, spec.schema_table())


def _responses(spec: SpecDocument, operation: Operation) -> Tuple[ResponseShape, ...]:
    shapes = []
    for status, response in operation.responses.items():
        shape = resolve_response(status, response, spec.schema_table())
        if shape is not None:
            shapes.append(shape)
    return tuple(shapes)


def derive_tool(
    spec: SpecDocument, path: str, method: str, operation: Operation, api_base_url: str
) -> ToolDescriptor:
    inputs: List[ToolInput] = []
    grouped: Dict[str, List[str]] = {location: [] for location in PARAMETER_GROUPS}

    for location in PARAMETER_GROUPS:
        for param in operation.parameters:
            if param.location != location or not param.name:
                continue
            grouped[location].append(param.name)
            inputs.append(
                ToolInput(
                    name=param.name,
                    location=location,
                    required=param.required,
                    description=f"The data for {param.name}",
                )
            )

    fields = body_fields(spec, operation)
    for field in fields:
        inputs.append(
            ToolInput(
                name=field.name,
                location="body",
                required=True,
                description=f"The data for {field.name}, it should be in format of {field.type_tag}",
            )
        )

    return ToolDescriptor(
        name=tool_name(method, path),
        method=method.upper(),
        url=join_url(api_base_url, path),
        description=usage_text(operation),
        path_params=tuple(grouped["path"]),
        query_params=tuple(grouped["query"]),
        header_params=tuple(grouped["header"]),
        body_fields=fields,
        inputs=tuple(inputs),
        responses=_responses(spec, operation),
    )


def derive_tools(spec: SpecDocument, settings: Settings) -> List[ToolDescriptor]:
    operation_filter = OperationFilter.from_settings(settings)
    api_base_url = base_url(spec, settings)

    tools: List[ToolDescriptor] = []
    for path, method, operation in spec.operations():
        if not operation_filter.include_path(path):
            continue
        if not operation_filter.include_method(method):
            continue
        tools.append(derive_tool(spec, path, method, operation, api_base_url))
    return tools


def input_schema(descriptor: ToolDescriptor) -> Dict[str, Any]:
    """JSON schema of the tool arguments; every argument is passed as a string."""
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for item in descriptor.inputs:
        properties[item.name] = {"type": "string", "description": item.description}
        if item.required and item.name not in required:
            required.append(item.name)

    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


class ToolRegistry:
    def __init__(self, settings: Settings, openapi_loader: OpenAPILoader) -> None:
        self.settings = settings
        self.openapi_loader = openapi_loader

    async def load_tools(self, spec: Optional[SpecDocument] = None) -> List[ToolDescriptor]:
        if spec is None:
            spec = await self._load_spec()

        tools = derive_tools(spec, self.settings)
        logger.info("Derived %s tools from %s document", len(tools), spec.dialect.value)
        return tools

    async def _load_spec(self) -> SpecDocument:
        source = self.settings.spec_url
        if not source:
            raise RuntimeError("No API specification configured (set SPEC_URL or --spec)")
        spec = await self.openapi_loader.load_spec(source)
        if spec is None:
            raise RuntimeError(f"Unable to load API specification: {source}")
        return spec
