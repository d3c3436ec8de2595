import json
from pathlib import Path

import pytest
import yaml

from swagger_mcp.config import Settings
from swagger_mcp.openapi import parse_spec

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def swagger_spec():
    data = json.loads((FIXTURES / "petstore_swagger.json").read_text(encoding="utf-8"))
    return parse_spec(data)


@pytest.fixture
def openapi_spec():
    data = yaml.safe_load((FIXTURES / "orders_openapi.yaml").read_text(encoding="utf-8"))
    return parse_spec(data)


@pytest.fixture
def make_settings():
    def _make(**overrides):
        return Settings(**overrides)

    return _make
