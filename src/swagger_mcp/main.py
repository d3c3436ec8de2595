"""CLI entry point for the Swagger MCP adapter."""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Dict, List, Optional

import uvicorn

from .config import Settings, get_settings
from .logging import configure_logging
from .server import build_server


def parse_args(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    """Return the settings overridden on the command line."""
    parser = argparse.ArgumentParser(
        prog="swagger-mcp",
        description="Expose a Swagger 2.0 / OpenAPI 3.0 API as MCP tools.",
    )
    parser.add_argument("--spec", dest="spec_url", help="URL or file path of the API specification")
    parser.add_argument(
        "--transport",
        dest="adapter_transport",
        choices=["stdio", "sse", "streamable-http", "http"],
    )
    parser.add_argument("--host", dest="adapter_host")
    parser.add_argument("--port", dest="adapter_port", type=int)
    parser.add_argument("--base-url", dest="api_base_url", help="Override the API base URL")
    parser.add_argument("--include-paths", dest="api_include_paths", help="Comma-separated path regexes")
    parser.add_argument("--exclude-paths", dest="api_exclude_paths", help="Comma-separated path regexes")
    parser.add_argument("--include-methods", dest="api_include_methods", help="e.g. GET,POST")
    parser.add_argument("--exclude-methods", dest="api_exclude_methods", help="e.g. DELETE")
    parser.add_argument("--security", dest="api_security", choices=["basic", "bearer", "apiKey"])
    parser.add_argument("--basic-auth", dest="api_basic_auth", help="user:password")
    parser.add_argument(
        "--api-key-auth",
        dest="api_key_auth",
        help="location:name=value entries, e.g. header:X-Token=abc,query:key=xyz",
    )
    parser.add_argument("--bearer-auth", dest="api_bearer_auth")
    parser.add_argument("--headers", dest="api_headers", help="name1=value1,name2=value2")
    parser.add_argument(
        "--forward-headers",
        dest="api_forward_headers",
        help="Inbound header names relayed to the API (HTTP transports only)",
    )
    parser.add_argument("--log-level", dest="adapter_log_level")
    args = parser.parse_args(argv)
    return {key: value for key, value in vars(args).items() if value is not None}


def load_settings(argv: Optional[List[str]] = None) -> Settings:
    overrides = parse_args(argv)
    if not overrides:
        return get_settings()
    return Settings(**overrides)


async def _run(settings: Settings) -> None:
    configure_logging(settings.adapter_log_level)

    mcp, app = await build_server(settings)
    transport = settings.adapter_transport.lower()

    if transport in {"http", "sse", "streamable-http", "streamablehttp"}:
        if not app:
            raise RuntimeError(f"HTTP app unavailable for transport={transport}")
        config = uvicorn.Config(app, host=settings.adapter_host, port=settings.adapter_port)
        server = uvicorn.Server(config)
        await server.serve()
        return
    await mcp.run_stdio_async()


def main() -> None:
    asyncio.run(_run(load_settings()))


if __name__ == "__main__":
    main()
