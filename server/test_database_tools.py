import asyncio

import pytest

from errors import PlatformError, SafetyCheckError, ValidationError
from tools.composer import compose
from tools.debugging_tools import SLOW_QUERY_ORDER


@pytest.fixture
def read_registry(platform):
    return compose(["database", "debug"], "read-only", platform=platform, project_id="proj-1")


@pytest.fixture
def write_registry(platform):
    return compose(["database"], "write-enabled", platform=platform, project_id="proj-1")


def test_execute_sql_runs_read_only(platform, read_registry):
    platform.default_rows = [{"count": 3}]

    result = asyncio.run(read_registry["execute_sql"].call({"query": "SELECT count(*) FROM meetings"}))

    assert result["rows"] == [{"count": 3}]
    assert platform.calls == [
        {"project_id": "proj-1", "query": "SELECT count(*) FROM meetings", "parameters": [], "read_only": True}
    ]


def test_execute_sql_rejects_empty_query(platform, read_registry):
    with pytest.raises(ValidationError):
        asyncio.run(read_registry["execute_sql"].call({"query": ""}))
    assert platform.calls == []


def test_list_tables_binds_schemas(platform, read_registry):
    result = asyncio.run(read_registry["list_tables"].call({"schemas": ["public", "auth"]}))

    assert platform.calls[0]["parameters"] == [["public", "auth"]]
    assert result["summary"] == "Found 0 tables in public, auth"


def test_list_tables_defaults_to_public(platform, read_registry):
    asyncio.run(read_registry["list_tables"].call({}))
    assert platform.calls[0]["parameters"] == [["public"]]


def test_apply_migration_requires_confirmation(platform, write_registry):
    with pytest.raises(SafetyCheckError, match="apply this migration"):
        asyncio.run(
            write_registry["apply_migration"].call({"name": "add_notes", "query": "ALTER TABLE meetings ADD notes text"})
        )
    assert platform.calls == []


def test_apply_migration_records_the_migration(platform, write_registry):
    platform.default_rows = [{"version": "20261019120000", "name": "add_notes"}]

    result = asyncio.run(
        write_registry["apply_migration"].call(
            {"name": "add_notes", "query": "ALTER TABLE meetings ADD notes text", "confirm": True}
        )
    )

    assert result["applied"] == {"version": "20261019120000", "name": "add_notes"}
    assert [c["read_only"] for c in platform.calls] == [False, False]
    assert platform.calls[0]["query"] == "ALTER TABLE meetings ADD notes text"
    assert platform.calls[1]["parameters"] == ["add_notes"]


def test_execute_write_sql_binds_parameters(platform, write_registry):
    platform.default_rows = [{"id": "e-1"}]

    result = asyncio.run(
        write_registry["execute_write_sql"].call(
            {"query": "UPDATE emails SET sent = true WHERE id = $1 RETURNING id", "parameters": ["e-1"], "confirm": True}
        )
    )

    assert result["affected_rows"] == [{"id": "e-1"}]
    assert platform.write_calls[0]["parameters"] == ["e-1"]


def test_slow_queries_order_column_comes_from_whitelist(platform, read_registry):
    asyncio.run(read_registry["get_slow_queries"].call({"order_by": "mean_time", "limit": 5}))

    call = platform.calls[0]
    assert f"ORDER BY {SLOW_QUERY_ORDER['mean_time']} DESC" in call["query"]
    assert call["parameters"] == [5, 500]


def test_slow_queries_rejects_unknown_order(platform, read_registry):
    with pytest.raises(ValidationError, match="order_by"):
        asyncio.run(read_registry["get_slow_queries"].call({"order_by": "calls; DROP TABLE users"}))
    assert platform.calls == []


def test_debug_tools_are_read_only(platform, read_registry):
    for name in ("get_active_queries", "get_lock_waits", "get_table_health"):
        asyncio.run(read_registry[name].call({}))
    assert len(platform.calls) == 3
    assert all(c["read_only"] for c in platform.calls)


def test_apply_migration_that_is_not_recorded_fails(platform, write_registry):
    with pytest.raises(PlatformError, match="not recorded"):
        asyncio.run(
            write_registry["apply_migration"].call(
                {"name": "add_notes", "query": "ALTER TABLE meetings ADD notes text", "confirm": True}
            )
        )
    assert len(platform.write_calls) == 2
