"""MCP server setup for the Swagger adapter."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx
from fastmcp import FastMCP
from fastmcp.server.dependencies import get_http_headers
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from pydantic import PrivateAttr
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .config import Settings
from .executors import RequestExecutor
from .models import SpecDocument, ToolDescriptor
from .openapi import OpenAPILoader
from .service import AdapterService
from .tool_registry import ToolRegistry, input_schema

logger = logging.getLogger(__name__)


def select_forwarded_headers(
    inbound: Mapping[str, str], names: Iterable[str]
) -> Dict[str, str]:
    """Pick the configured header names out of the inbound request headers."""
    lowered = {key.lower(): value for key, value in inbound.items()}
    selected: Dict[str, str] = {}
    for name in names:
        if name.lower() in lowered:
            selected[name] = lowered[name.lower()]
    return selected


class SpecTool(Tool):
    _descriptor: ToolDescriptor = PrivateAttr()
    _service: AdapterService = PrivateAttr()
    _forward_headers: List[str] = PrivateAttr(default_factory=list)

    @classmethod
    def from_descriptor(
        cls,
        descriptor: ToolDescriptor,
        service: AdapterService,
        forward_headers: Optional[List[str]] = None,
    ) -> "SpecTool":
        tool = cls(
            name=descriptor.name,
            description=descriptor.description,
            parameters=input_schema(descriptor),
        )
        tool._descriptor = descriptor
        tool._service = service
        tool._forward_headers = list(forward_headers or [])
        return tool

    @property
    def descriptor(self) -> ToolDescriptor:
        return self._descriptor

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        forwarded: Dict[str, str] = {}
        if self._forward_headers:
            # empty outside of an HTTP transport request
            forwarded = select_forwarded_headers(
                get_http_headers(include_all=True), self._forward_headers
            )
        text = await self._service.execute_tool(self._descriptor, arguments, forwarded)
        return ToolResult(content=[TextContent(type="text", text=text)])


def register_tools(
    mcp: Any,
    descriptors: Iterable[ToolDescriptor],
    service: AdapterService,
    forward_headers: Optional[List[str]] = None,
) -> Dict[str, ToolDescriptor]:
    registered: Dict[str, ToolDescriptor] = {}
    for descriptor in descriptors:
        previous = registered.get(descriptor.name)
        if previous is not None:
            logger.warning(
                "Tool name collision: %s (%s %s replaces %s %s)",
                descriptor.name,
                descriptor.method,
                descriptor.url,
                previous.method,
                previous.url,
            )
        mcp.add_tool(SpecTool.from_descriptor(descriptor, service, forward_headers))
        registered[descriptor.name] = descriptor
        logger.info("Registered tool: %s", descriptor.name)
        logger.debug("Expected responses for %s: %s", descriptor.name, descriptor.responses)
    return registered


async def build_server(
    settings: Settings,
    spec: Optional[SpecDocument] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[FastMCP, object | None]:
    openapi_loader = OpenAPILoader(timeout_seconds=settings.api_timeout_seconds)
    registry = ToolRegistry(settings, openapi_loader)
    service = AdapterService(RequestExecutor(settings, transport=transport))

    mcp = FastMCP(settings.service_name, instructions=_instructions(), on_duplicate_tools="replace")

    descriptors = await registry.load_tools(spec)
    register_tools(mcp, descriptors, service, settings.forward_headers())

    app = _get_http_app(mcp, settings)
    _attach_healthcheck(app)
    return mcp, app


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return

    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        return JSONResponse({"status": "ok"})

    app.add_route("/health", healthcheck, methods=["GET"])


def _instructions() -> str:
    return (
        "Swagger MCP adapter. "
        "Every tool maps to one operation of the configured API and proxies the call to it."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport == "http":
        app = mcp.http_app(transport="http", stateless_http=True, json_response=True)
    elif transport in {"streamable-http", "streamablehttp"}:
        app = mcp.http_app(transport="streamable-http", stateless_http=True, json_response=True)
    elif transport == "sse":
        app = mcp.http_app(transport="sse")
    else:
        return None
    _attach_cors(app)
    return app


def _attach_cors(app) -> None:  # type: ignore[no-untyped-def]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
