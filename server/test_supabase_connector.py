import asyncio
from types import SimpleNamespace

import pytest
from aiohttp import web

from errors import PlatformError
from supabase_connector import SupabasePlatform


class ManagementApiStub:
    """Just enough of the Supabase Management API to exercise the adapter."""

    def __init__(self, projects=None, query_rows=None, query_status=200):
        self.projects = [{"id": "proj-1", "name": "maia"}] if projects is None else projects
        self.query_rows = [] if query_rows is None else query_rows
        self.query_status = query_status
        self.requests = []

    def app(self):
        app = web.Application()
        app.router.add_get("/v1/projects", self.list_projects)
        app.router.add_post("/v1/projects/{ref}/database/query", self.query)
        return app

    async def list_projects(self, request):
        self.requests.append(("GET", request.path, None, request.headers.copy()))
        return web.json_response(self.projects)

    async def query(self, request):
        body = await request.json()
        self.requests.append(("POST", request.path, body, request.headers.copy()))
        if self.query_status >= 400:
            return web.json_response({"message": "syntax error at or near \"SELEC\""}, status=self.query_status)
        return web.json_response(self.query_rows)


async def with_stub(stub, scenario):
    runner = web.AppRunner(stub.app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    platform = SupabasePlatform("sbp-token", api_url=f"http://127.0.0.1:{port}/")
    try:
        return await scenario(platform)
    finally:
        await platform.close()
        await runner.cleanup()


def test_requires_an_access_token():
    with pytest.raises(PlatformError, match="SUPABASE_ACCESS_TOKEN"):
        SupabasePlatform("")


def test_execute_sql_posts_query_parameters_and_mode():
    stub = ManagementApiStub(query_rows=[{"id": 1}])

    async def scenario(platform):
        return await platform.execute_sql("proj-1", "SELECT * FROM users WHERE id = $1", [1], read_only=True)

    rows = asyncio.run(with_stub(stub, scenario))

    assert rows == [{"id": 1}]
    method, path, body, headers = stub.requests[0]
    assert (method, path) == ("POST", "/v1/projects/proj-1/database/query")
    assert body == {"query": "SELECT * FROM users WHERE id = $1", "read_only": True, "parameters": [1]}
    assert headers["Authorization"] == "Bearer sbp-token"


def test_api_error_becomes_platform_error():
    stub = ManagementApiStub(query_status=400)

    async def scenario(platform):
        return await platform.execute_sql("proj-1", "SELEC 1")

    with pytest.raises(PlatformError, match="error 400: syntax error"):
        asyncio.run(with_stub(stub, scenario))


def test_single_project_is_selected():
    stub = ManagementApiStub()

    async def scenario(platform):
        return await platform.resolve_project_selection()

    assert asyncio.run(with_stub(stub, scenario)) == "proj-1"


def test_multiple_projects_are_ambiguous():
    stub = ManagementApiStub(projects=[{"id": "a", "name": "maia"}, {"id": "b", "name": "maia-staging"}])

    async def scenario(platform):
        return await platform.resolve_project_selection()

    with pytest.raises(PlatformError, match=r"maia \(a\), maia-staging \(b\)"):
        asyncio.run(with_stub(stub, scenario))


def test_no_projects():
    stub = ManagementApiStub(projects=[])

    async def scenario(platform):
        return await platform.resolve_project_selection()

    with pytest.raises(PlatformError, match="No Supabase projects"):
        asyncio.run(with_stub(stub, scenario))


def test_init_sets_user_agent_from_client_info():
    stub = ManagementApiStub()

    async def scenario(platform):
        await platform.init(SimpleNamespace(clientInfo=SimpleNamespace(name="claude-desktop", version="1.2")))
        await platform.list_projects()

    asyncio.run(with_stub(stub, scenario))
    assert stub.requests[0][3]["User-Agent"] == "ask-maia-mcp (claude-desktop/1.2)"


def test_unreachable_api():
    platform = SupabasePlatform("sbp-token", api_url="http://127.0.0.1:9")

    async def scenario():
        try:
            await platform.list_projects()
        finally:
            await platform.close()

    with pytest.raises(PlatformError, match="request failed"):
        asyncio.run(scenario())
