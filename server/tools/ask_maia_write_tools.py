"""
Ask Maia - write tools
Modify Maia's meeting automation data. Every tool here declares a
Confirmation and is only ever registered behind the confirmation gate.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from errors import NotFoundError
from platform_port import DatabasePlatform, resolve_project, run_statement
from tools.ask_maia_tools import AssessmentType
from tools.confirmation import require_existing
from tools.descriptor import (
    Confirmation,
    ConfirmedParams,
    ToolDescriptor,
    ToolSet,
    confirm_field,
    mutation_result,
    record_label,
)
from tools.statements import StatementBuilder, statement

logger = logging.getLogger(__name__)


class UpdateMeetingCategoryParams(ConfirmedParams):
    fireflies_id: str = Field(description="The Fireflies meeting ID to update")
    category_id: str = Field(description="The new meeting category ID")
    assessment_type: AssessmentType = Field(description="Internal or External meeting type")
    rationale: Optional[str] = Field(default=None, description="Optional rationale for the categorization change")
    confirm: Any = confirm_field(
        "REQUIRED: Must be true to confirm the user explicitly wants to update this meeting"
    )


class DeleteMeetingParams(ConfirmedParams):
    fireflies_id: str = Field(description="The Fireflies meeting ID to delete")
    confirm: Any = confirm_field(
        "REQUIRED: Must be true to confirm the user explicitly wants to DELETE this meeting permanently"
    )


class InsertMeetingNoteParams(ConfirmedParams):
    fireflies_id: str = Field(description="The Fireflies meeting ID to add a note to")
    note_content: str = Field(min_length=1, description="The note/annotation content to add")
    confirm: Any = confirm_field(
        "REQUIRED: Must be true to confirm the user explicitly wants to add this note"
    )


class UpdateEmailParams(ConfirmedParams):
    email_id: str = Field(description="The email ID to update")
    subject: Optional[str] = Field(default=None, description="New email subject")
    body: Optional[str] = Field(default=None, description="New email body content")
    confirm: Any = confirm_field(
        "REQUIRED: Must be true to confirm the user explicitly wants to update this email"
    )

    @model_validator(mode="after")
    def _requires_a_change(self):
        if not self.subject and not self.body:
            raise ValueError("No updates specified. Please provide subject or body to update.")
        return self


def get_ask_maia_write_tools(platform: DatabasePlatform) -> Dict[str, ToolDescriptor]:
    """Write tools for Maia data. Composed only in write-enabled mode."""
    tools = ToolSet()

    @tools.tool(
        name="update_meeting_category",
        description="Update the AI categorization for a specific meeting. REQUIRES explicit user confirmation.",
        parameters=UpdateMeetingCategoryParams,
        confirmation=Confirmation("update meeting category", "update this meeting categorization"),
    )
    async def update_meeting_category(params: UpdateMeetingCategoryParams):
        project = await resolve_project(platform, params.project_id)

        q = StatementBuilder("UPDATE meeting_categorizations")
        q.add(f"SET meeting_category_id = {q.bind(params.category_id)},")
        q.add(f"    assessment_type = {q.bind(params.assessment_type)}")
        if params.rationale:
            q.add(f"    , meeting_category_rationale = {q.bind(params.rationale)}")
        q.add(
            f"""
            FROM meetings m
            WHERE meeting_categorizations.id = m.meeting_categorization_by_ai_id
              AND m.fireflies_id = {q.bind(params.fireflies_id)}
            RETURNING meeting_categorizations.*
            """
        )

        rows = await run_statement(platform, project, q.build(), read_only=False)
        if not rows:
            raise NotFoundError(f"No categorization found for meeting with Fireflies ID {params.fireflies_id}.")

        return mutation_result(
            "updated_record",
            rows[0],
            f"Successfully updated meeting categorization for Fireflies ID: {params.fireflies_id}",
        )

    @tools.tool(
        name="delete_meeting",
        description=(
            "PERMANENTLY delete a meeting from the database. "
            "REQUIRES explicit user confirmation. Use with extreme caution."
        ),
        parameters=DeleteMeetingParams,
        destructive=True,
        confirmation=Confirmation("delete meeting", "PERMANENTLY DELETE this meeting"),
    )
    async def delete_meeting(params: DeleteMeetingParams):
        project = await resolve_project(platform, params.project_id)

        await require_existing(
            platform,
            project,
            statement(
                """
                SELECT fireflies_id, fireflies_title, fireflies_timestamp
                FROM meetings
                WHERE fireflies_id = $1
                """,
                params.fireflies_id,
            ),
            f"Meeting with Fireflies ID {params.fireflies_id} not found.",
        )

        rows = await run_statement(
            platform,
            project,
            statement(
                """
                DELETE FROM meetings
                WHERE fireflies_id = $1
                RETURNING fireflies_id, fireflies_title
                """,
                params.fireflies_id,
            ),
            read_only=False,
        )
        if not rows:
            # Removed by someone else between the lookup and the delete.
            raise NotFoundError(f"Meeting with Fireflies ID {params.fireflies_id} not found.")
        record = rows[0]
        logger.info(f"🗑️ Deleted meeting {params.fireflies_id} from {project}")

        label = record_label(record, "fireflies_title", "fireflies_id", fallback=params.fireflies_id)
        return mutation_result("deleted_record", record, f"Successfully deleted meeting: {label}")

    @tools.tool(
        name="insert_meeting_note",
        description="Add a custom note or annotation to a meeting. REQUIRES explicit user confirmation.",
        parameters=InsertMeetingNoteParams,
        confirmation=Confirmation("insert meeting note", "add this note"),
    )
    async def insert_meeting_note(params: InsertMeetingNoteParams):
        project = await resolve_project(platform, params.project_id)
        noted_at = datetime.now(timezone.utc).isoformat()

        rows = await run_statement(
            platform,
            project,
            statement(
                """
                UPDATE meetings
                SET fireflies_meeting_summary = COALESCE(fireflies_meeting_summary, '')
                    || E'\\n\\n--- User Note (' || $2 || E') ---\\n'
                    || $3
                WHERE fireflies_id = $1
                RETURNING fireflies_id, fireflies_title
                """,
                params.fireflies_id,
                noted_at,
                params.note_content,
            ),
            read_only=False,
        )
        if not rows:
            raise NotFoundError(f"Meeting with Fireflies ID {params.fireflies_id} not found.")

        label = record_label(rows[0], "fireflies_title", fallback=params.fireflies_id)
        return mutation_result("updated_record", rows[0], f"Successfully added note to meeting: {label}")

    @tools.tool(
        name="update_email_status",
        description="Update the status or content of an AI-generated email. REQUIRES explicit user confirmation.",
        parameters=UpdateEmailParams,
        confirmation=Confirmation("update email", "update this email"),
    )
    async def update_email_status(params: UpdateEmailParams):
        project = await resolve_project(platform, params.project_id)

        q = StatementBuilder("UPDATE emails")
        updates = []
        if params.subject:
            updates.append(f"generated_email_subject = {q.bind(params.subject)}")
        if params.body:
            updates.append(f"generated_email_body = {q.bind(params.body)}")
        q.add(f"SET {', '.join(updates)}")
        q.add(f"WHERE id = {q.bind(params.email_id)}")
        q.add("RETURNING id, fireflies_id, generated_email_subject")

        rows = await run_statement(platform, project, q.build(), read_only=False)
        if not rows:
            raise NotFoundError(f"Email with ID {params.email_id} not found.")

        label = record_label(rows[0], "generated_email_subject", fallback=params.email_id)
        return mutation_result("updated_record", rows[0], f"Successfully updated email: {label}")

    return tools.descriptors
