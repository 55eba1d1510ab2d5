#path: server/mcp_app.py
"""
FastMCP server assembly.

The registry is composed once; each descriptor is registered as a FastMCP tool
whose signature is the descriptor's exposed parameters (bound keys removed).
FastMCP validates that signature, then the descriptor merges pinned values,
validates against its full model and executes.
"""

import inspect
import logging
from typing import Annotated, Any, Dict, Optional

from fastmcp import FastMCP
from fastmcp.server.middleware import Middleware, MiddlewareContext
from mcp.types import ToolAnnotations
from pydantic import Field

from config import ServerConfig
from platform_port import DatabasePlatform, initialize_platform
from prompts.mcp_capabilities import register_capabilities_prompt
from resources.server_info import register_server_info
from tools.composer import ToolRegistry, compose_from_config
from tools.descriptor import ToolDescriptor

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Query Maia's meeting automation database (meetings, AI categorizations, "
    "AI-generated emails, users). Tools that change data require confirm=true: "
    "always ask the user for explicit confirmation first."
)


class PlatformInitMiddleware(Middleware):
    """Hands the MCP initialize request to the platform's optional init hook."""

    def __init__(self, platform: DatabasePlatform):
        self.platform = platform

    async def on_initialize(self, context: MiddlewareContext, call_next):
        result = await call_next(context)
        session_info = getattr(context.message, "params", context.message)
        try:
            await initialize_platform(self.platform, session_info)
        except Exception as e:
            # Stateless HTTP sessions may never send initialize; nothing relies on it.
            logger.warning(f"⚠️ Platform init hook failed: {e}")
        return result


def tool_function(descriptor: ToolDescriptor):
    """
    Build the coroutine FastMCP registers for a descriptor.

    Its signature lists only the parameters a caller may supply, with the
    model's descriptions and constraints, so the advertised input schema
    never contains a bound key.
    """

    async def run_tool(**arguments) -> Dict[str, Any]:
        return await descriptor.call(arguments)

    parameters = []
    annotations: Dict[str, Any] = {}
    for name, info in descriptor.exposed_fields.items():
        annotation = Annotated[
            (
                info.annotation,
                *info.metadata,
                Field(description=info.description, json_schema_extra=info.json_schema_extra),
            )
        ]
        default = (
            inspect.Parameter.empty
            if info.is_required()
            else info.get_default(call_default_factory=True)
        )
        parameters.append(
            inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, default=default, annotation=annotation)
        )
        annotations[name] = annotation

    annotations["return"] = Dict[str, Any]
    run_tool.__name__ = descriptor.name
    run_tool.__qualname__ = descriptor.name
    run_tool.__doc__ = descriptor.description
    run_tool.__signature__ = inspect.Signature(parameters, return_annotation=Dict[str, Any])
    run_tool.__annotations__ = annotations
    return run_tool


def tool_annotations(descriptor: ToolDescriptor) -> ToolAnnotations:
    if descriptor.mutating:
        return ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=descriptor.destructive,
            idempotentHint=False,
        )
    return ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True)


def register_tools(mcp: FastMCP, registry: ToolRegistry) -> None:
    for descriptor in registry.values():
        mcp.tool(
            tool_function(descriptor),
            name=descriptor.name,
            description=descriptor.description,
            annotations=tool_annotations(descriptor),
        )


def create_mcp_server(
    config: ServerConfig,
    platform: DatabasePlatform,
    registry: Optional[ToolRegistry] = None,
) -> FastMCP:
    """One FastMCP instance per server process, built from the frozen config."""
    registry = registry if registry is not None else compose_from_config(config, platform)

    mcp = FastMCP(config.server_name, instructions=INSTRUCTIONS)
    mcp.add_middleware(PlatformInitMiddleware(platform))

    register_tools(mcp, registry)
    register_capabilities_prompt(mcp, registry)
    register_server_info(mcp, config, registry)

    logger.info(f"🧠 MCP server '{config.server_name}' ready with {len(registry)} tools")
    return mcp
