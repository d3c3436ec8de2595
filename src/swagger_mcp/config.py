"""Configuration for the Swagger MCP adapter."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False, frozen=True)

    service_name: str = Field(default="swagger-mcp")

    spec_url: Optional[str] = Field(default=None)

    adapter_transport: str = Field(default="stdio")
    adapter_host: str = Field(default="0.0.0.0")
    adapter_port: int = Field(default=8080)
    adapter_log_level: str = Field(default="INFO")

    api_base_url: Optional[str] = Field(default=None)
    api_include_paths: Optional[str] = Field(default=None)
    api_exclude_paths: Optional[str] = Field(default=None)
    api_include_methods: Optional[str] = Field(default=None)
    api_exclude_methods: Optional[str] = Field(default=None)

    api_security: Optional[str] = Field(default=None)
    api_basic_auth: Optional[str] = Field(default=None)
    api_key_auth: Optional[str] = Field(default=None)
    api_bearer_auth: Optional[str] = Field(default=None)

    api_headers: Optional[str] = Field(default=None)
    api_forward_headers: Optional[str] = Field(default=None)
    api_timeout_seconds: float = Field(default=30)

    def include_paths(self) -> List[str]:
        return split_list(self.api_include_paths)

    def exclude_paths(self) -> List[str]:
        return split_list(self.api_exclude_paths)

    def include_methods(self) -> List[str]:
        return split_list(self.api_include_methods)

    def exclude_methods(self) -> List[str]:
        return split_list(self.api_exclude_methods)

    def forward_headers(self) -> List[str]:
        return split_list(self.api_forward_headers)

    def static_headers(self) -> List[Tuple[str, str]]:
        """Parse ``name=value`` pairs; pairs without ``=`` or a name are skipped."""
        pairs: List[Tuple[str, str]] = []
        for item in split_list(self.api_headers):
            if "=" not in item:
                continue
            name, value = item.split("=", 1)
            name = name.strip()
            if name:
                pairs.append((name, value.strip()))
        return pairs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
