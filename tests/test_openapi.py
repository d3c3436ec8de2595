import json
from pathlib import Path

import pytest

from swagger_mcp.models import Dialect
from swagger_mcp.openapi import OpenAPILoader

FIXTURES = Path(__file__).parent / "fixtures"


class TestOpenAPILoader:
    @pytest.mark.asyncio
    async def test_load_json_file(self):
        spec = await OpenAPILoader().load_spec(str(FIXTURES / "petstore_swagger.json"))
        assert spec.dialect is Dialect.SWAGGER2
        assert spec.host == "api.example.com"
        assert spec.base_path == "/v1"

    @pytest.mark.asyncio
    async def test_load_yaml_file(self):
        spec = await OpenAPILoader().load_spec(str(FIXTURES / "orders_openapi.yaml"))
        assert spec.dialect is Dialect.OPENAPI3
        assert spec.servers[0].url == "http://x/"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await OpenAPILoader().load_spec(str(tmp_path / "missing.json")) is None

    @pytest.mark.asyncio
    async def test_not_an_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps(["not", "a", "spec"]), encoding="utf-8")
        assert await OpenAPILoader().load_spec(str(path)) is None

    @pytest.mark.asyncio
    async def test_unparseable(self, tmp_path, caplog):
        path = tmp_path / "broken.yaml"
        path.write_text("paths: [unclosed", encoding="utf-8")
        assert await OpenAPILoader().load_spec(str(path)) is None
        assert "Failed to parse API specification" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_structure(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"swagger": "2.0", "paths": ["/pets"]}), encoding="utf-8")
        assert await OpenAPILoader().load_spec(str(path)) is None
