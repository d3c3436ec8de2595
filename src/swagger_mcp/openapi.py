"""Swagger / OpenAPI document loader."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import yaml
from pydantic import ValidationError

from .models import SpecDocument


logger = logging.getLogger(__name__)


def parse_spec(data: Dict[str, Any]) -> SpecDocument:
    return SpecDocument.model_validate(data)


class OpenAPILoader:
    def __init__(self, timeout_seconds: float = 30) -> None:
        self.timeout_seconds = timeout_seconds

    async def load_spec(self, source: str) -> Optional[SpecDocument]:
        """Load a JSON or YAML document from a URL or a local file."""
        if source.startswith(("http://", "https://")):
            text = await self._fetch(source)
        else:
            text = self._read(source)
        if text is None:
            return None

        try:
            # YAML is a superset of JSON
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            logger.warning("Failed to parse API specification %s: %s", source, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("API specification is not an object: %s", source)
            return None

        try:
            return parse_spec(data)
        except ValidationError as exc:
            logger.warning("Invalid API specification %s: %s", source, exc)
            return None

    async def _fetch(self, url: str) -> Optional[str]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch API specification: %s (%s)", url, exc)
            return None
        if response.status_code != 200:
            logger.warning("Failed to fetch API specification: %s (%s)", url, response.status_code)
            return None
        return response.text

    def _read(self, path: str) -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to read API specification: %s (%s)", path, exc)
            return None
