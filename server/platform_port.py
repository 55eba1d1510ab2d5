# server/platform_port.py
"""
Platform Port

The boundary through which every read and write reaches the database.
Concrete adapters live in supabase_connector.py and postgres_connector.py.
Tools never talk to an adapter directly; they go through resolve_project()
and run_statement() so platform failures always surface as PlatformError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from errors import MaiaError, PlatformError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class DatabasePlatform(ABC):
    """
    Executes SQL against a project's database.

    Adapters may also define `async def init(self, session_info)`; it is called
    best-effort when an MCP session starts and nothing depends on it.
    """

    @abstractmethod
    async def execute_sql(
        self,
        project_id: str,
        query: str,
        parameters: Optional[Sequence[Any]] = None,
        read_only: bool = False,
    ) -> List[Row]:
        """Run one statement with `$n` placeholders bound to `parameters`."""

    async def execute_query(
        self,
        project_ref: str,
        query: str,
        parameters: Optional[Sequence[Any]] = None,
    ) -> List[Row]:
        return await self.execute_sql(project_ref, query, parameters, read_only=True)

    @abstractmethod
    async def resolve_project_selection(self) -> str:
        """Pick a project when the server is not pinned to one."""

    async def close(self) -> None:
        pass


async def resolve_project(platform: DatabasePlatform, pinned: Optional[str] = None) -> str:
    """Return the pinned project unchanged, otherwise ask the platform."""
    if pinned:
        return pinned

    try:
        project_id = await platform.resolve_project_selection()
    except PlatformError:
        raise
    except Exception as e:
        raise PlatformError(f"Project selection failed: {e}") from e

    logger.info(f"🎯 Resolved project: {project_id}")
    return project_id


async def run_statement(
    platform: DatabasePlatform,
    project_id: str,
    statement,
    read_only: bool,
) -> List[Row]:
    """
    Execute a Statement through the platform.

    Errors the tool layer already understands pass through; anything else
    becomes a PlatformError with the underlying message.
    """
    logger.debug(
        f"📡 execute_sql project={project_id} read_only={read_only} "
        f"params={len(statement.parameters)}"
    )
    try:
        rows = await platform.execute_sql(
            project_id,
            statement.text,
            list(statement.parameters),
            read_only=read_only,
        )
    except MaiaError:
        raise
    except Exception as e:
        logger.error(f"❌ Platform query failed on {project_id}: {e}")
        raise PlatformError(str(e)) from e
    return list(rows or [])


async def initialize_platform(platform: DatabasePlatform, session_info: Any) -> bool:
    """
    Call the adapter's optional init hook.

    Returns False when the adapter has no hook. Errors from the hook propagate.
    """
    init = getattr(platform, "init", None)
    if init is None:
        return False
    await init(session_info)
    return True
