"""Tool execution service."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .executors import ExecutionError, RequestExecutor
from .logging import redact_payload
from .models import ToolDescriptor

logger = logging.getLogger(__name__)

ERROR_PREFIX = "[Error]"


class AdapterService:
    """
    Runs a derived tool against the upstream API.

    Failures never escape a call: they come back as ``[Error] ...`` text so
    the agent can report them and stop.
    """

    def __init__(self, executor: RequestExecutor) -> None:
        self.executor = executor

    async def execute_tool(
        self,
        descriptor: ToolDescriptor,
        arguments: Mapping[str, Any],
        forwarded_headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Execute one tool call.

        Args:
            descriptor: The derived tool
            arguments: Caller arguments, keyed by parameter name
            forwarded_headers: Inbound headers relayed for this call only

        Returns:
            The upstream response body, or an ``[Error]`` message
        """
        logger.info("Executing tool=%s arguments=%s", descriptor.name, redact_payload(arguments))
        try:
            content = await self.executor.execute(descriptor, arguments, forwarded_headers)
        except ExecutionError as exc:
            logger.error("Tool execution failed: tool=%s error=%s", descriptor.name, exc)
            return self._format_error(str(exc))
        return self._format_result(content)

    def _format_result(self, content: bytes) -> str:
        return content.decode("utf-8", errors="replace")

    def _format_error(self, message: str) -> str:
        return f"{ERROR_PREFIX} {message}"
