"""
Supabase Management API Platform
Runs SQL through POST /v1/projects/{ref}/database/query and lists projects
for project selection when the server is not pinned to one.
"""

import logging
from typing import Any, List, Optional, Sequence

import aiohttp

from errors import PlatformError
from platform_port import DatabasePlatform, Row

logger = logging.getLogger(__name__)


class SupabasePlatform(DatabasePlatform):
    def __init__(
        self,
        access_token: str,
        api_url: str = "https://api.supabase.com",
        timeout_seconds: float = 60,
        user_agent: str = "ask-maia-mcp",
    ):
        if not access_token:
            raise PlatformError("A Supabase access token is required (SUPABASE_ACCESS_TOKEN)")
        self.api_url = api_url.rstrip("/")
        self._access_token = access_token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bearer {self._access_token}"},
                timeout=self._timeout,
            )
        return self._session

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = f"{self.api_url}{path}"
        try:
            async with self._get_session().request(
                method, url, json=payload, headers={"User-Agent": self._user_agent}
            ) as resp:
                if resp.status >= 400:
                    raise PlatformError(await self._error_message(resp))
                return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"❌ Management API {method} {path} failed: {e}")
            raise PlatformError(f"Supabase Management API request failed: {e}") from e

    @staticmethod
    async def _error_message(resp: aiohttp.ClientResponse) -> str:
        text = await resp.text()
        try:
            body = await resp.json(content_type=None)
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            text = body["message"]
        return f"Supabase Management API error {resp.status}: {text}"

    async def init(self, session_info: Any) -> None:
        client = getattr(session_info, "clientInfo", None) or getattr(session_info, "client_info", None)
        if client is not None:
            self._user_agent = f"ask-maia-mcp ({client.name}/{client.version})"
            logger.info(f"🤝 MCP client: {client.name} {client.version}")

    async def execute_sql(
        self,
        project_id: str,
        query: str,
        parameters: Optional[Sequence[Any]] = None,
        read_only: bool = False,
    ) -> List[Row]:
        payload = {"query": query, "read_only": read_only}
        if parameters:
            payload["parameters"] = list(parameters)
        result = await self._request("POST", f"/v1/projects/{project_id}/database/query", payload)
        if result is None:
            return []
        if not isinstance(result, list):
            raise PlatformError(f"Unexpected query response from Supabase: {type(result).__name__}")
        return result

    async def list_projects(self) -> List[dict]:
        return await self._request("GET", "/v1/projects") or []

    async def resolve_project_selection(self) -> str:
        projects = await self.list_projects()
        if len(projects) == 1:
            return projects[0]["id"]
        if not projects:
            raise PlatformError("No Supabase projects are available for this access token")
        choices = ", ".join(f"{p.get('name', '?')} ({p['id']})" for p in projects)
        raise PlatformError(
            f"Multiple projects available: {choices}. "
            "Pin one with project_id (SUPABASE_PROJECT_REF)."
        )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("🔌 Supabase API session closed")
        self._session = None
