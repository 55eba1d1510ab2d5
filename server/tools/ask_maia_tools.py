"""
Ask Maia - meeting automation queries
Read-only tools over Maia's Fireflies meetings, AI categorizations,
AI-generated follow-up emails and users.

Tables: meetings, meeting_categorizations, emails, users
"""

import logging
from typing import Dict, Literal, Optional

from pydantic import Field

from platform_port import DatabasePlatform, resolve_project, run_statement
from tools.descriptor import ProjectParams, ToolDescriptor, ToolSet, rows_payload
from tools.statements import StatementBuilder, like_pattern, statement

logger = logging.getLogger(__name__)

AssessmentType = Literal["Internal", "External"]

MEETING_COLUMNS = """
    m.id,
    m.fireflies_id,
    m.fireflies_title,
    m.fireflies_timestamp,
    m.fireflies_meeting_summary,
    m.contacts_name_and_email,
    mc.name AS category_name"""

MEETINGS_JOIN = """
FROM meetings m
LEFT JOIN meeting_categorizations mc ON m.meeting_categorization_by_ai_id = mc.id"""


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

class MeetingsByCategoryParams(ProjectParams):
    category_name: Optional[str] = Field(
        default=None,
        description='Name of the meeting category (e.g., "Sales Call", "Product Demo", "Internal Meeting")',
    )
    assessment_type: Optional[AssessmentType] = Field(default=None, description="Filter by internal or external meetings")
    limit: int = Field(default=50, ge=1, description="Maximum number of results (default: 50)")


class SearchTranscriptsParams(ProjectParams):
    search_term: str = Field(description="Text to search for in transcripts, titles, or summaries")
    limit: int = Field(default=30, ge=1, description="Maximum number of results (default: 30)")


class GeneratedEmailsParams(ProjectParams):
    fireflies_id: Optional[str] = Field(default=None, description="Filter by specific Fireflies meeting ID")
    limit: int = Field(default=50, ge=1, description="Maximum number of results (default: 50)")


class MeetingsByParticipantParams(ProjectParams):
    participant: str = Field(description="Participant name or email to search for")
    limit: int = Field(default=50, ge=1, description="Maximum number of results (default: 50)")


class MeetingCategoriesParams(ProjectParams):
    assessment_type: Optional[AssessmentType] = Field(default=None, description="Filter by internal or external meetings")


class MeetingStatsParams(ProjectParams):
    group_by: Literal["category", "month", "assessment_type", "all"] = Field(
        default="all", description="How to group the statistics"
    )


class MeetingByIdParams(ProjectParams):
    fireflies_id: str = Field(description="The Fireflies meeting ID to retrieve")


class RecentMeetingsParams(ProjectParams):
    days_back: int = Field(default=7, ge=0, description="Number of days to look back (default: 7)")
    limit: int = Field(default=50, ge=1, description="Maximum number of results (default: 50)")


class ExternalContactsParams(ProjectParams):
    limit: int = Field(default=100, ge=1, description="Maximum number of contacts to return (default: 100)")


# ---------------------------------------------------------------------------
# Stats sections, one statement each
# ---------------------------------------------------------------------------

STATS_SECTIONS = {
    "category": """
        SELECT
            mc.name AS category_name,
            mc.assessment_type,
            COUNT(*) AS meeting_count
        FROM meetings m
        LEFT JOIN meeting_categorizations mc ON m.meeting_categorization_by_ai_id = mc.id
        GROUP BY mc.name, mc.assessment_type
        ORDER BY meeting_count DESC
    """,
    "month": """
        SELECT
            DATE_TRUNC('month', m.fireflies_timestamp) AS month,
            COUNT(*) AS meeting_count,
            COUNT(DISTINCT m.fireflies_id) AS unique_meetings
        FROM meetings m
        GROUP BY month
        ORDER BY month DESC
    """,
    "assessment_type": """
        SELECT
            mc.assessment_type,
            COUNT(*) AS meeting_count
        FROM meetings m
        LEFT JOIN meeting_categorizations mc ON m.meeting_categorization_by_ai_id = mc.id
        GROUP BY mc.assessment_type
        ORDER BY meeting_count DESC
    """,
}


def get_ask_maia_tools(platform: DatabasePlatform) -> Dict[str, ToolDescriptor]:
    """Read tools for the ask-maia feature group."""
    tools = ToolSet()

    async def fetch(project_id: Optional[str], stmt):
        project = await resolve_project(platform, project_id)
        return await run_statement(platform, project, stmt, read_only=True)

    @tools.tool(
        name="get_meetings_by_category",
        description="Get all meetings filtered by AI-assigned category (sales, demo, internal, etc.)",
        parameters=MeetingsByCategoryParams,
    )
    async def get_meetings_by_category(params: MeetingsByCategoryParams):
        q = StatementBuilder(
            f"""
            SELECT {MEETING_COLUMNS},
                mc.assessment_type,
                mc.meeting_category_rationale,
                m.created_at
            {MEETINGS_JOIN}
            WHERE 1=1
            """
        )
        if params.category_name:
            q.add(f"AND mc.name ILIKE {q.bind(like_pattern(params.category_name))}")
        if params.assessment_type:
            q.add(f"AND mc.assessment_type = {q.bind(params.assessment_type)}")
        q.add(f"ORDER BY m.fireflies_timestamp DESC LIMIT {q.bind(params.limit)}")

        rows = await fetch(params.project_id, q.build())
        return rows_payload(rows, "meetings")

    @tools.tool(
        name="search_meeting_transcripts",
        description="Full-text search across meeting transcripts, summaries, and titles",
        parameters=SearchTranscriptsParams,
    )
    async def search_meeting_transcripts(params: SearchTranscriptsParams):
        stmt = statement(
            f"""
            SELECT {MEETING_COLUMNS},
                m.fireflies_transcript,
                m.created_at
            {MEETINGS_JOIN}
            WHERE
                m.fireflies_transcript ILIKE $1
                OR m.fireflies_meeting_summary ILIKE $1
                OR m.fireflies_title ILIKE $1
            ORDER BY m.fireflies_timestamp DESC
            LIMIT $2
            """,
            like_pattern(params.search_term),
            params.limit,
        )
        rows = await fetch(params.project_id, stmt)
        return rows_payload(rows, "meetings", f' matching "{params.search_term}"')

    @tools.tool(
        name="get_ai_generated_emails",
        description="Get AI-generated follow-up emails for meetings, with status and content",
        parameters=GeneratedEmailsParams,
    )
    async def get_ai_generated_emails(params: GeneratedEmailsParams):
        q = StatementBuilder(
            """
            SELECT
                e.id,
                e.fireflies_id,
                e.generated_email_subject,
                e.generated_email_body,
                e.recipients,
                e.senders,
                e.language,
                e.created_at,
                m.fireflies_title,
                m.fireflies_timestamp
            FROM emails e
            LEFT JOIN meetings m ON e.fireflies_id = m.fireflies_id
            WHERE 1=1
            """
        )
        if params.fireflies_id:
            q.add(f"AND e.fireflies_id = {q.bind(params.fireflies_id)}")
        q.add(f"ORDER BY e.created_at DESC LIMIT {q.bind(params.limit)}")

        rows = await fetch(params.project_id, q.build())
        return rows_payload(rows, "emails")

    @tools.tool(
        name="get_meetings_by_participant",
        description="Get all meetings where a specific participant (by name or email) was present",
        parameters=MeetingsByParticipantParams,
    )
    async def get_meetings_by_participant(params: MeetingsByParticipantParams):
        stmt = statement(
            f"""
            SELECT {MEETING_COLUMNS},
                m.created_at
            {MEETINGS_JOIN}
            WHERE m.contacts_name_and_email::text ILIKE $1
            ORDER BY m.fireflies_timestamp DESC
            LIMIT $2
            """,
            like_pattern(params.participant),
            params.limit,
        )
        rows = await fetch(params.project_id, stmt)
        return rows_payload(rows, "meetings", f" with {params.participant}")

    @tools.tool(
        name="get_meeting_categories",
        description="Get all distinct meeting categories defined by the AI categorization system",
        parameters=MeetingCategoriesParams,
    )
    async def get_meeting_categories(params: MeetingCategoriesParams):
        q = StatementBuilder(
            """
            SELECT
                mc.name AS category_name,
                mc.assessment_type,
                COUNT(*) AS usage_count
            FROM meeting_categorizations mc
            WHERE 1=1
            """
        )
        if params.assessment_type:
            q.add(f"AND mc.assessment_type = {q.bind(params.assessment_type)}")
        q.add("GROUP BY mc.name, mc.assessment_type ORDER BY usage_count DESC")

        rows = await fetch(params.project_id, q.build())
        return rows_payload(rows, "categories")

    @tools.tool(
        name="get_meeting_stats",
        description="Get aggregated statistics about meetings (total count, by category, by month, etc.)",
        parameters=MeetingStatsParams,
    )
    async def get_meeting_stats(params: MeetingStatsParams):
        project = await resolve_project(platform, params.project_id)
        wanted = list(STATS_SECTIONS) if params.group_by == "all" else [params.group_by]

        sections = {}
        for name in wanted:
            sections[name] = await run_statement(platform, project, statement(STATS_SECTIONS[name]), read_only=True)

        return {
            "summary": f"Meeting statistics by {', '.join(wanted)}",
            "sections": sections,
        }

    @tools.tool(
        name="get_meeting_by_fireflies_id",
        description="Get complete details of a specific meeting by its Fireflies ID",
        parameters=MeetingByIdParams,
    )
    async def get_meeting_by_fireflies_id(params: MeetingByIdParams):
        stmt = statement(
            f"""
            SELECT {MEETING_COLUMNS},
                m.fireflies_transcript,
                m.meeting_categorization_by_ai_id,
                mc.assessment_type,
                mc.meeting_category_rationale,
                m.created_at,
                m.updated_at
            {MEETINGS_JOIN}
            WHERE m.fireflies_id = $1
            """,
            params.fireflies_id,
        )
        rows = await fetch(params.project_id, stmt)
        if not rows:
            return {
                "summary": f"No meeting found with Fireflies ID: {params.fireflies_id}",
                "row_count": 0,
                "rows": [],
            }
        return rows_payload(rows, "meetings")

    @tools.tool(
        name="get_recent_meetings",
        description="Get the most recent meetings, optionally filtered by days back",
        parameters=RecentMeetingsParams,
    )
    async def get_recent_meetings(params: RecentMeetingsParams):
        stmt = statement(
            f"""
            SELECT {MEETING_COLUMNS},
                mc.assessment_type,
                m.created_at
            {MEETINGS_JOIN}
            WHERE m.fireflies_timestamp >= NOW() - make_interval(days => $1)
            ORDER BY m.fireflies_timestamp DESC
            LIMIT $2
            """,
            params.days_back,
            params.limit,
        )
        rows = await fetch(params.project_id, stmt)
        return rows_payload(rows, "meetings", f" in the last {params.days_back} days")

    @tools.tool(
        name="get_external_contacts",
        description="Get list of external contacts from meeting participants, with meeting count",
        parameters=ExternalContactsParams,
    )
    async def get_external_contacts(params: ExternalContactsParams):
        stmt = statement(
            """
            SELECT
                m.contacts_name_and_email,
                COUNT(*) AS meeting_count,
                MAX(m.fireflies_timestamp) AS last_meeting_date,
                ARRAY_AGG(DISTINCT mc.name) FILTER (WHERE mc.name IS NOT NULL) AS categories
            FROM meetings m
            LEFT JOIN meeting_categorizations mc ON m.meeting_categorization_by_ai_id = mc.id
            WHERE mc.assessment_type = 'External'
              AND m.contacts_name_and_email IS NOT NULL
            GROUP BY m.contacts_name_and_email
            ORDER BY meeting_count DESC
            LIMIT $1
            """,
            params.limit,
        )
        rows = await fetch(params.project_id, stmt)
        return rows_payload(rows, "external contacts")

    @tools.tool(
        name="get_user_list",
        description="Get list of all users in the Maia system",
        parameters=ProjectParams,
    )
    async def get_user_list(params: ProjectParams):
        stmt = statement("SELECT id, email, created_at FROM users ORDER BY created_at DESC")
        rows = await fetch(params.project_id, stmt)
        return rows_payload(rows, "users")

    return tools.descriptors
