import logging

import httpx
import pytest
from starlette.testclient import TestClient

from swagger_mcp import server as server_module
from swagger_mcp.executors import RequestExecutor
from swagger_mcp.models import ToolDescriptor, ToolInput
from swagger_mcp.server import SpecTool, build_server, register_tools, select_forwarded_headers
from swagger_mcp.service import AdapterService

DESCRIPTOR = ToolDescriptor(
    name="get__pets_petId",
    method="GET",
    url="https://api.example.com/pets/{petId}",
    description="Use this tool only when ...",
    path_params=("petId",),
    inputs=(ToolInput("petId", "path", True, "The data for petId"),),
)


class FakeServer:
    def __init__(self):
        self.tools = []

    def add_tool(self, tool):
        self.tools.append(tool)


class Recorder:
    def __init__(self):
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(200, text='{"id": "7"}')


def _service(make_settings, recorder):
    return AdapterService(RequestExecutor(make_settings(), transport=httpx.MockTransport(recorder)))


def test_select_forwarded_headers_is_case_insensitive():
    inbound = {"x-tenant": "t1", "authorization": "Bearer abc", "host": "localhost"}
    assert select_forwarded_headers(inbound, ["X-Tenant", "Authorization", "X-Missing"]) == {
        "X-Tenant": "t1",
        "Authorization": "Bearer abc",
    }


class TestSpecTool:
    def test_from_descriptor(self, make_settings):
        tool = SpecTool.from_descriptor(DESCRIPTOR, _service(make_settings, Recorder()))
        assert tool.name == "get__pets_petId"
        assert tool.description == "Use this tool only when ..."
        assert tool.parameters["required"] == ["petId"]
        assert tool.descriptor is DESCRIPTOR

    @pytest.mark.asyncio
    async def test_run_returns_text(self, make_settings):
        recorder = Recorder()
        tool = SpecTool.from_descriptor(DESCRIPTOR, _service(make_settings, recorder))
        result = await tool.run({"petId": "7"})

        assert result.content[0].text == '{"id": "7"}'
        assert str(recorder.requests[0].url) == "https://api.example.com/pets/7"

    @pytest.mark.asyncio
    async def test_run_reports_errors_as_text(self, make_settings):
        tool = SpecTool.from_descriptor(DESCRIPTOR, _service(make_settings, Recorder()))
        result = await tool.run({})
        assert result.content[0].text == "[Error] missing or invalid Path Parameter: petId"

    @pytest.mark.asyncio
    async def test_run_forwards_configured_headers(self, make_settings, monkeypatch):
        monkeypatch.setattr(
            server_module,
            "get_http_headers",
            lambda include_all=False: {"x-tenant": "t1", "x-other": "o"},
        )
        recorder = Recorder()
        tool = SpecTool.from_descriptor(
            DESCRIPTOR, _service(make_settings, recorder), forward_headers=["X-Tenant"]
        )
        await tool.run({"petId": "7"})

        sent = recorder.requests[0]
        assert sent.headers["X-Tenant"] == "t1"
        assert "X-Other" not in sent.headers


class TestRegisterTools:
    def test_registers_every_descriptor(self, make_settings):
        fake = FakeServer()
        other = ToolDescriptor(name="delete__pets_petId", method="DELETE", url="u", description="")
        registered = register_tools(fake, [DESCRIPTOR, other], _service(make_settings, Recorder()))

        assert [tool.name for tool in fake.tools] == ["get__pets_petId", "delete__pets_petId"]
        assert set(registered) == {"get__pets_petId", "delete__pets_petId"}

    def test_collision_is_logged_and_later_wins(self, make_settings, caplog):
        fake = FakeServer()
        later = ToolDescriptor(name=DESCRIPTOR.name, method="GET", url="https://other", description="")
        with caplog.at_level(logging.WARNING):
            registered = register_tools(fake, [DESCRIPTOR, later], _service(make_settings, Recorder()))

        assert registered[DESCRIPTOR.name] is later
        assert "Tool name collision: get__pets_petId" in caplog.text


class TestBuildServer:
    @pytest.mark.asyncio
    async def test_stdio_registers_tools(self, swagger_spec, make_settings):
        mcp, app = await build_server(make_settings(adapter_transport="stdio"), swagger_spec)

        assert app is None
        tools = await mcp.get_tools()
        assert set(tools) == {
            "get__pets",
            "post__pets",
            "get__pets_petId",
            "delete__pets_petId",
            "get__stores_storeId_inventory_items_item",
        }

    @pytest.mark.asyncio
    async def test_http_app_has_healthcheck(self, openapi_spec, make_settings):
        _, app = await build_server(make_settings(adapter_transport="http"), openapi_spec)

        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transport", ["http", "streamable-http", "sse"])
    async def test_http_transports_allow_cross_origin(self, openapi_spec, make_settings, transport):
        _, app = await build_server(make_settings(adapter_transport=transport), openapi_spec)

        cors = [m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware"]
        assert len(cors) == 1
        response = TestClient(app).get("/health", headers={"Origin": "http://client.example"})
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers
