import os
import sys
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import ServerConfig, PlatformSettings, SafetyMode  # noqa: E402
from errors import PlatformError  # noqa: E402
from platform_port import DatabasePlatform  # noqa: E402


class FakePlatform(DatabasePlatform):
    """
    In-memory platform that records every statement it is asked to run.

    Understands the meetings lookup and delete used by delete_meeting; any
    other statement returns `default_rows`.
    """

    def __init__(self, meetings: Optional[Dict[str, dict]] = None, projects: Optional[List[str]] = None):
        self.meetings = dict(meetings or {})
        self.projects = ["proj-default"] if projects is None else list(projects)
        self.calls: List[dict] = []
        self.selection_calls = 0
        self.default_rows: List[dict] = []
        self.fail_with: Optional[Exception] = None
        self.session_info: Any = None
        self.closed = False

    async def execute_sql(self, project_id, query, parameters=None, read_only=False):
        params = list(parameters or [])
        self.calls.append({"project_id": project_id, "query": query, "parameters": params, "read_only": read_only})
        if self.fail_with is not None:
            raise self.fail_with

        normalized = " ".join(query.split())
        if normalized.startswith("SELECT fireflies_id, fireflies_title, fireflies_timestamp FROM meetings"):
            meeting = self.meetings.get(params[0])
            return [dict(meeting)] if meeting else []
        if normalized.startswith("DELETE FROM meetings"):
            meeting = self.meetings.pop(params[0], None)
            if meeting is None:
                return []
            return [{"fireflies_id": meeting["fireflies_id"], "fireflies_title": meeting["fireflies_title"]}]
        return [dict(r) for r in self.default_rows]

    async def resolve_project_selection(self):
        self.selection_calls += 1
        if len(self.projects) != 1:
            raise PlatformError(f"Expected exactly one project, found {len(self.projects)}")
        return self.projects[0]

    async def init(self, session_info):
        self.session_info = session_info

    async def close(self):
        self.closed = True

    @property
    def write_calls(self) -> List[dict]:
        return [c for c in self.calls if not c["read_only"]]


MEETING = {
    "fireflies_id": "abc123",
    "fireflies_title": "Weekly Sync",
    "fireflies_timestamp": "2026-10-01T09:00:00Z",
}


@pytest.fixture
def platform():
    return FakePlatform(meetings={MEETING["fireflies_id"]: MEETING})


@pytest.fixture
def read_only_config():
    return ServerConfig(platform=PlatformSettings(access_token="test-token"))


@pytest.fixture
def write_config():
    return ServerConfig(
        safety_mode=SafetyMode.WRITE_ENABLED,
        project_id="proj-pinned",
        platform=PlatformSettings(access_token="test-token"),
    )
