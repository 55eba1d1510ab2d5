"""
Confirmation Gate - explicit consent for mutating tools
=======================================================
Every mutating tool reaches the registry wrapped by confirmation_gate().
The wrapped execute function only runs when the validated parameters carry
confirm=True exactly. Anything else (missing, False, "true", 1, ...) is
refused with a SafetyCheckError before a single query is issued.

Usage:
    tools = ToolSet()

    @tools.tool(
        name="delete_meeting",
        description="...",
        parameters=DeleteMeetingParams,
        destructive=True,
        confirmation=Confirmation("delete meeting", "PERMANENTLY DELETE this meeting"),
    )
    async def delete_meeting(params):
        project = await resolve_project(platform, params.project_id)
        existing = await require_existing(platform, project, lookup, "Meeting ...")
        ...

The composer applies the gate; providers only declare the Confirmation.
"""

import dataclasses
import logging
from functools import wraps
from typing import List

from errors import ConfigurationError, NotFoundError, SafetyCheckError
from platform_port import DatabasePlatform, Row, run_statement
from tools.descriptor import Confirmation, ToolDescriptor
from tools.statements import Statement

logger = logging.getLogger(__name__)


def is_confirmed(params) -> bool:
    return getattr(params, "confirm", None) is True


def confirmation_gate(descriptor: ToolDescriptor) -> ToolDescriptor:
    """
    Wrap a mutating descriptor's execute function behind confirm=True.

    Idempotent: an already gated descriptor is returned unchanged.
    """
    if descriptor.gated:
        return descriptor

    if "confirm" not in descriptor.parameter_names:
        raise ConfigurationError(
            f"Tool '{descriptor.name}' mutates data but declares no 'confirm' parameter"
        )

    confirmation = descriptor.confirmation or Confirmation(
        action=f"run {descriptor.name}",
        consent=f"run {descriptor.name}",
    )
    execute = descriptor.execute

    @wraps(execute)
    async def gated_execute(params):
        if not is_confirmed(params):
            logger.warning(
                f"🚫 Refused {descriptor.name}: confirm={getattr(params, 'confirm', None)!r}"
            )
            raise SafetyCheckError(confirmation.refusal())

        logger.info(f"✅ Confirmed {descriptor.name}")
        return await execute(params)

    return dataclasses.replace(
        descriptor,
        execute=gated_execute,
        mutating=True,
        confirmation=confirmation,
        gated=True,
    )


async def require_existing(
    platform: DatabasePlatform,
    project_id: str,
    lookup: Statement,
    not_found: str,
) -> List[Row]:
    """
    Existence pre-check for delete-style tools.

    Runs `lookup` read-only and raises NotFoundError when it returns nothing,
    so the destructive statement is never issued against a missing target.
    """
    rows = await run_statement(platform, project_id, lookup, read_only=True)
    if not rows:
        raise NotFoundError(not_found)
    return rows
