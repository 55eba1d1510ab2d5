"""
Debugging Tools for the project database

1. get_active_queries() - what is running right now (pg_stat_activity)
2. get_lock_waits()     - blocked sessions and who blocks them
3. get_slow_queries()   - top statements by metric (pg_stat_statements)
4. get_table_health()   - dead tuples and vacuum/analyze history

READ ONLY: every tool queries statistics views only. Statement text found in
pg_stat_activity or pg_stat_statements is displayed, never executed.
"""

import logging
from typing import Dict, Literal

from pydantic import Field

from platform_port import DatabasePlatform, resolve_project, run_statement
from tools.descriptor import ProjectParams, ToolDescriptor, ToolSet, rows_payload
from tools.statements import statement

logger = logging.getLogger(__name__)

# Column used for each get_slow_queries ordering. Never caller text.
SLOW_QUERY_ORDER = {
    "total_time": "total_exec_time",
    "mean_time": "mean_exec_time",
    "calls": "calls",
}

QUERY_PREVIEW_CHARS = 500


class ActiveQueriesParams(ProjectParams):
    limit: int = Field(default=50, ge=1, description="Maximum number of sessions (default: 50)")


class SlowQueriesParams(ProjectParams):
    order_by: Literal["total_time", "mean_time", "calls"] = Field(
        default="total_time", description="Metric to rank statements by"
    )
    limit: int = Field(default=20, ge=1, description="Maximum number of statements (default: 20)")


class TableHealthParams(ProjectParams):
    limit: int = Field(default=50, ge=1, description="Maximum number of tables (default: 50)")


def get_debugging_tools(platform: DatabasePlatform) -> Dict[str, ToolDescriptor]:
    tools = ToolSet()

    @tools.tool(
        name="get_active_queries",
        description="Shows non-idle database sessions with their running statement and duration.",
        parameters=ActiveQueriesParams,
    )
    async def get_active_queries(params: ActiveQueriesParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                SELECT
                    pid,
                    usename AS user_name,
                    application_name,
                    state,
                    wait_event_type,
                    wait_event,
                    now() - query_start AS duration,
                    LEFT(query, $2) AS query
                FROM pg_stat_activity
                WHERE state <> 'idle'
                  AND pid <> pg_backend_pid()
                ORDER BY query_start NULLS LAST
                LIMIT $1
                """,
                params.limit,
                QUERY_PREVIEW_CHARS,
            ),
            read_only=True,
        )
        return rows_payload(rows, "active sessions")

    @tools.tool(
        name="get_lock_waits",
        description="Lists sessions waiting on a lock together with the sessions blocking them.",
        parameters=ProjectParams,
    )
    async def get_lock_waits(params: ProjectParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                SELECT
                    blocked.pid AS blocked_pid,
                    LEFT(blocked.query, $1) AS blocked_query,
                    now() - blocked.query_start AS waiting_for,
                    blocking.pid AS blocking_pid,
                    LEFT(blocking.query, $1) AS blocking_query,
                    blocking.state AS blocking_state
                FROM pg_stat_activity blocked
                JOIN LATERAL unnest(pg_blocking_pids(blocked.pid)) AS b(pid) ON true
                JOIN pg_stat_activity blocking ON blocking.pid = b.pid
                ORDER BY waiting_for DESC
                """,
                QUERY_PREVIEW_CHARS,
            ),
            read_only=True,
        )
        return rows_payload(rows, "lock waits")

    @tools.tool(
        name="get_slow_queries",
        description=(
            "Top statements from pg_stat_statements ranked by total time, mean time or calls. "
            "Requires the pg_stat_statements extension."
        ),
        parameters=SlowQueriesParams,
    )
    async def get_slow_queries(params: SlowQueriesParams):
        project = await resolve_project(platform, params.project_id)
        order_column = SLOW_QUERY_ORDER[params.order_by]
        rows = await run_statement(
            platform,
            project,
            statement(
                f"""
                SELECT
                    queryid,
                    calls,
                    ROUND(total_exec_time::numeric, 2) AS total_time_ms,
                    ROUND(mean_exec_time::numeric, 2) AS mean_time_ms,
                    rows,
                    LEFT(query, $2) AS query
                FROM pg_stat_statements
                ORDER BY {order_column} DESC
                LIMIT $1
                """,
                params.limit,
                QUERY_PREVIEW_CHARS,
            ),
            read_only=True,
        )
        return rows_payload(rows, "statements", f" ranked by {params.order_by}")

    @tools.tool(
        name="get_table_health",
        description="Dead tuple ratio and last vacuum/analyze times for user tables.",
        parameters=TableHealthParams,
    )
    async def get_table_health(params: TableHealthParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                SELECT
                    schemaname AS schema,
                    relname AS table_name,
                    n_live_tup AS live_rows,
                    n_dead_tup AS dead_rows,
                    ROUND(100.0 * n_dead_tup / NULLIF(n_live_tup + n_dead_tup, 0), 2) AS dead_pct,
                    last_vacuum,
                    last_autovacuum,
                    last_analyze,
                    last_autoanalyze
                FROM pg_stat_user_tables
                ORDER BY n_dead_tup DESC
                LIMIT $1
                """,
                params.limit,
            ),
            read_only=True,
        )
        return rows_payload(rows, "tables")

    return tools.descriptors
