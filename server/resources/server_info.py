# server/resources/server_info.py
import os
from datetime import datetime, timezone

from fastmcp import FastMCP

from config import ServerConfig
from tools.composer import ToolRegistry


def server_capabilities(config: ServerConfig, registry: ToolRegistry) -> dict:
    return {
        "server_name": config.server_name,
        "server_version": os.getenv("APP_VERSION", "1.0.0"),
        "platform": config.platform.kind,
        "safety_mode": registry.safety_mode.value,
        "features": sorted(g.value for g in registry.features),
        "project_pinned": bool(config.project_id),
        "tools": {
            name: {
                "mutating": d.mutating,
                "destructive": d.destructive,
                "requires_confirmation": d.gated,
            }
            for name, d in registry.items()
        },
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }


def register_server_info(mcp: FastMCP, config: ServerConfig, registry: ToolRegistry) -> None:
    @mcp.resource("config://server/capabilities")
    def get_server_capabilities() -> dict:
        """
        Safety mode, enabled feature groups and the tool catalogue.
        """
        return server_capabilities(config, registry)
