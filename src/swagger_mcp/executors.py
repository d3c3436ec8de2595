"""Execution layer: build, authenticate and send the upstream HTTP request."""

from __future__ import annotations

import base64
import json
import logging
import math
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import httpx

from .config import Settings
from .logging import redact_payload
from .models import ToolDescriptor

logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    pass


class ParameterError(ExecutionError):
    pass


class TransportError(ExecutionError):
    pass


_INT_PATTERN = re.compile(r"[+-]?\d+")

_BOOL_VALUES = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}


def _parse_int(value: str) -> int:
    if not _INT_PATTERN.fullmatch(value):
        raise ValueError(value)
    return int(value)


def _parse_float(value: str) -> float:
    parsed = float(value)
    if not math.isfinite(parsed):
        raise ValueError(value)
    return parsed


def _parse_bool(value: str) -> bool:
    if value not in _BOOL_VALUES:
        raise ValueError(value)
    return _BOOL_VALUES[value]


def _parse_array(value: str) -> List[Any]:
    parsed = json.loads(value)
    if not isinstance(parsed, list):
        raise ValueError(value)
    return parsed


def _parse_object(value: str) -> Dict[str, Any]:
    parsed = json.loads(value)
    if not isinstance(parsed, dict):
        raise ValueError(value)
    return parsed


# type tag -> (parser, expected type named in errors)
_COERCERS: Dict[str, Tuple[Callable[[str], Any], str]] = {
    "string": (str, "string"),
    "int": (_parse_int, "int"),
    "integer": (_parse_int, "int"),
    "float": (_parse_float, "float"),
    "bool": (_parse_bool, "bool"),
    "boolean": (_parse_bool, "bool"),
    "array": (_parse_array, "array"),
    "object": (_parse_object, "object"),
}


def coerce_value(name: str, type_tag: str, value: str) -> Any:
    if type_tag not in _COERCERS:
        raise ParameterError(f"unsupported parameter type: {type_tag} for {name}")
    parser, expected = _COERCERS[type_tag]
    try:
        return parser(value)
    except (ValueError, RecursionError) as exc:
        raise ParameterError(f"invalid type for parameter {name}, expected {expected}") from exc


def parse_api_keys(value: str) -> List[Tuple[str, str, str]]:
    """Parse ``location:name=value`` entries, skipping malformed ones.

    Example: ``header:X-Token=abc,query:token=xyz,cookie:sid=ccc``.
    """
    entries: List[Tuple[str, str, str]] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        colon_idx = part.find(":")
        eq_idx = part.find("=")
        if colon_idx == -1 or eq_idx == -1 or eq_idx < colon_idx + 2:
            continue
        location = part[:colon_idx].strip().lower()
        name = part[colon_idx + 1 : eq_idx].strip()
        entries.append((location, name, part[eq_idx + 1 :].strip()))
    return entries


class CredentialInjector:
    def __init__(
        self,
        security: Optional[str] = None,
        basic_auth: Optional[str] = None,
        api_key_auth: Optional[str] = None,
        bearer_auth: Optional[str] = None,
    ) -> None:
        self.security = (security or "").strip()
        self.basic_auth = basic_auth or ""
        self.api_key_auth = api_key_auth or ""
        self.bearer_auth = bearer_auth or ""

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialInjector:
        return cls(
            security=settings.api_security,
            basic_auth=settings.api_basic_auth,
            api_key_auth=settings.api_key_auth,
            bearer_auth=settings.api_bearer_auth,
        )

    def apply(self, request: httpx.Request) -> None:
        if self.security == "basic" and self.basic_auth:
            encoded = base64.b64encode(self.basic_auth.encode("utf-8")).decode("ascii")
            request.headers["Authorization"] = f"Basic {encoded}"
        elif self.security == "bearer" and self.bearer_auth:
            request.headers["Authorization"] = f"Bearer {self.bearer_auth}"
        elif self.security == "apiKey" and self.api_key_auth:
            self._apply_api_keys(request)

    def _apply_api_keys(self, request: httpx.Request) -> None:
        cookies: List[str] = []
        for location, name, value in parse_api_keys(self.api_key_auth):
            if location == "header":
                request.headers[name] = value
            elif location == "query":
                request.url = request.url.copy_set_param(name, value)
            elif location == "cookie":
                cookies.append(f"{name}={value}")

        if cookies:
            existing = request.headers.get("Cookie")
            request.headers["Cookie"] = "; ".join([existing, *cookies] if existing else cookies)


class RequestExecutor:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.injector = CredentialInjector.from_settings(settings)
        self.static_headers = settings.static_headers()
        self.timeout_seconds = settings.api_timeout_seconds
        self.transport = transport

    def build_request(
        self,
        descriptor: ToolDescriptor,
        arguments: Mapping[str, Any],
        forwarded_headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Request:
        """Validate the arguments and assemble the outbound request.

        Raises ``ParameterError`` on the first missing or mistyped argument,
        before anything is sent.
        """
        url = descriptor.url
        for name in descriptor.path_params:
            value = self._string_argument(arguments, name, "missing or invalid Path Parameter")
            url = url.replace(f"{{{name}}}", value, 1)

        try:
            request_url = httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise TransportError(f"failed to parse URL: {exc}") from exc
        for name in descriptor.query_params:
            value = self._string_argument(arguments, name, "missing or invalid Query Parameter")
            request_url = request_url.copy_set_param(name, value)

        body: Dict[str, Any] = {}
        for field in descriptor.body_fields:
            value = arguments.get(field.name)
            if not isinstance(value, str):
                raise ParameterError(f"missing Body Parameter: {field.name}")
            body[field.name] = coerce_value(field.name, field.type_tag, value)

        headers: List[Tuple[str, str]] = []
        for name in descriptor.header_params:
            value = self._string_argument(arguments, name, "missing or invalid Header")
            headers.append((name, value))

        try:
            content = json.dumps(body, allow_nan=False).encode("utf-8")
        except ValueError as exc:
            raise TransportError(f"failed to marshal request body: {exc}") from exc

        try:
            request = httpx.Request(descriptor.method, request_url, headers=headers, content=content)
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise TransportError(f"failed to create HTTP request: {exc}") from exc
        request.headers["Content-Type"] = "application/json"

        self.injector.apply(request)
        for name, value in self.static_headers:
            request.headers[name] = value
        for name, value in (forwarded_headers or {}).items():
            request.headers[name] = value
        return request

    async def execute(
        self,
        descriptor: ToolDescriptor,
        arguments: Mapping[str, Any],
        forwarded_headers: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        request = self.build_request(descriptor, arguments, forwarded_headers)
        logger.info("Request: %s %s", request.method, request.url)
        logger.debug("Request headers: %s", redact_payload(dict(request.headers)))

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            try:
                response = await client.send(request, stream=True)
            except httpx.HTTPError as exc:
                raise TransportError(f"failed to make HTTP request: {exc}") from exc
            try:
                content = await response.aread()
            except httpx.HTTPError as exc:
                raise TransportError(f"failed to read HTTP Response: {exc}") from exc
            finally:
                await response.aclose()

        logger.info("Response: %s %s -> %s", request.method, request.url, response.status_code)
        return content

    def _string_argument(self, arguments: Mapping[str, Any], name: str, message: str) -> str:
        value = arguments.get(name)
        if not isinstance(value, str):
            raise ParameterError(f"{message}: {name}")
        return value
