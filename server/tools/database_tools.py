"""
Database Operation Tools
Schema inspection and SQL execution against the project database.

get_database_tools()        - read provider, every statement runs read-only
get_database_write_tools()  - write provider, confirm-gated, write-enabled mode only
"""

import logging
from typing import Any, Dict, List

from pydantic import Field

from errors import PlatformError
from platform_port import DatabasePlatform, resolve_project, run_statement
from tools.descriptor import (
    Confirmation,
    ConfirmedParams,
    ProjectParams,
    ToolDescriptor,
    ToolSet,
    confirm_field,
    mutation_result,
    rows_payload,
)
from tools.statements import Statement, statement

logger = logging.getLogger(__name__)


class ListTablesParams(ProjectParams):
    schemas: List[str] = Field(
        default_factory=lambda: ["public"],
        description="Schemas to include (default: public)",
    )


class ExecuteSqlParams(ProjectParams):
    query: str = Field(min_length=1, description="The SQL query to execute. Runs in a read-only transaction.")


class ApplyMigrationParams(ConfirmedParams):
    name: str = Field(min_length=1, description="The name of the migration in snake_case")
    query: str = Field(min_length=1, description="The SQL DDL to apply")
    confirm: Any = confirm_field(
        "REQUIRED: Must be true to confirm the user explicitly wants to apply this migration"
    )


class ExecuteWriteSqlParams(ConfirmedParams):
    query: str = Field(min_length=1, description="The SQL statement to execute, using $1, $2, ... placeholders for values")
    parameters: List[Any] = Field(default_factory=list, description="Values bound to the $n placeholders, in order")
    confirm: Any = confirm_field(
        "REQUIRED: Must be true to confirm the user explicitly wants to run this write statement"
    )


def get_database_tools(platform: DatabasePlatform) -> Dict[str, ToolDescriptor]:
    """Read-only database operation tools."""
    tools = ToolSet()

    @tools.tool(
        name="list_tables",
        description="Lists all tables in one or more schemas, with row estimates and primary keys.",
        parameters=ListTablesParams,
    )
    async def list_tables(params: ListTablesParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                SELECT
                    c.table_schema AS schema,
                    c.table_name AS name,
                    pc.reltuples::bigint AS estimated_rows,
                    obj_description(pc.oid, 'pg_class') AS comment,
                    (
                        SELECT ARRAY_AGG(kcu.column_name ORDER BY kcu.ordinal_position)
                        FROM information_schema.table_constraints tc
                        JOIN information_schema.key_column_usage kcu
                          ON kcu.constraint_name = tc.constraint_name
                         AND kcu.table_schema = tc.table_schema
                        WHERE tc.constraint_type = 'PRIMARY KEY'
                          AND tc.table_schema = c.table_schema
                          AND tc.table_name = c.table_name
                    ) AS primary_keys
                FROM information_schema.tables c
                JOIN pg_namespace pn ON pn.nspname = c.table_schema
                JOIN pg_class pc ON pc.relname = c.table_name AND pc.relnamespace = pn.oid
                WHERE c.table_type = 'BASE TABLE'
                  AND c.table_schema = ANY($1::text[])
                ORDER BY c.table_schema, c.table_name
                """,
                list(params.schemas),
            ),
            read_only=True,
        )
        return rows_payload(rows, "tables", f" in {', '.join(params.schemas)}")

    @tools.tool(
        name="list_extensions",
        description="Lists all installed and available Postgres extensions.",
        parameters=ProjectParams,
    )
    async def list_extensions(params: ProjectParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                SELECT name, default_version, installed_version, comment
                FROM pg_available_extensions
                ORDER BY installed_version IS NULL, name
                """
            ),
            read_only=True,
        )
        return rows_payload(rows, "extensions")

    @tools.tool(
        name="list_migrations",
        description="Lists the migrations recorded in supabase_migrations.schema_migrations.",
        parameters=ProjectParams,
    )
    async def list_migrations(params: ProjectParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                SELECT version, name
                FROM supabase_migrations.schema_migrations
                ORDER BY version
                """
            ),
            read_only=True,
        )
        return rows_payload(rows, "migrations")

    @tools.tool(
        name="execute_sql",
        description=(
            "Executes a SQL query in a read-only transaction. "
            "Use it to inspect data; writes are rejected by the database."
        ),
        parameters=ExecuteSqlParams,
    )
    async def execute_sql(params: ExecuteSqlParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(platform, project, Statement(params.query), read_only=True)
        return rows_payload(rows, "rows")

    return tools.descriptors


def get_database_write_tools(platform: DatabasePlatform) -> Dict[str, ToolDescriptor]:
    """Schema changes and arbitrary writes. Every tool requires confirm=true."""
    tools = ToolSet()

    @tools.tool(
        name="apply_migration",
        description=(
            "Applies a DDL migration and records it in supabase_migrations.schema_migrations. "
            "REQUIRES explicit user confirmation."
        ),
        parameters=ApplyMigrationParams,
        confirmation=Confirmation("apply migration", "apply this migration to the database"),
    )
    async def apply_migration(params: ApplyMigrationParams):
        project = await resolve_project(platform, params.project_id)

        await run_statement(platform, project, Statement(params.query), read_only=False)
        rows = await run_statement(
            platform,
            project,
            statement(
                """
                INSERT INTO supabase_migrations.schema_migrations (version, name)
                VALUES (to_char(now() AT TIME ZONE 'utc', 'YYYYMMDDHH24MISS'), $1)
                RETURNING version, name
                """,
                params.name,
            ),
            read_only=False,
        )
        if not rows:
            raise PlatformError(
                f"Migration {params.name} ran but was not recorded in supabase_migrations.schema_migrations"
            )
        record = rows[0]
        logger.info(f"🧱 Applied migration {params.name} to {project}")
        return mutation_result("applied", record, f"Successfully applied migration: {params.name}")

    @tools.tool(
        name="execute_write_sql",
        description=(
            "Executes a data-modifying SQL statement (INSERT/UPDATE/DELETE) with bound parameters. "
            "REQUIRES explicit user confirmation. Use with extreme caution."
        ),
        parameters=ExecuteWriteSqlParams,
        destructive=True,
        confirmation=Confirmation("execute write SQL", "run this statement against the database"),
    )
    async def execute_write_sql(params: ExecuteWriteSqlParams):
        project = await resolve_project(platform, params.project_id)
        rows = await run_statement(
            platform,
            project,
            Statement(params.query, tuple(params.parameters)),
            read_only=False,
        )
        return mutation_result(
            "affected_rows",
            rows,
            f"Statement executed, {len(rows)} row(s) returned",
        )

    return tools.descriptors
