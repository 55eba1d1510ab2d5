"""MCP capabilities description - helps the LLM understand scope and the confirmation protocol."""

from fastmcp import FastMCP

from config import FeatureGroup
from tools.composer import ToolRegistry

GROUP_SUMMARIES = {
    FeatureGroup.ASK_MAIA: "Meetings, AI categorizations, AI-generated emails, participants and users",
    FeatureGroup.DATABASE: "Tables, extensions, migrations and read-only SQL against the project database",
    FeatureGroup.DEBUG: "Active sessions, lock waits, slow statements and table health",
}


def capabilities_text(registry: ToolRegistry) -> str:
    lines = [
        "# Ask Maia MCP - Capabilities",
        "",
        f"Safety mode: **{registry.safety_mode.value}**",
        "",
        "## Enabled feature groups",
        "",
    ]
    for group in FeatureGroup:
        if group in registry.features:
            lines.append(f"- **{group.value}**: {GROUP_SUMMARIES[group]}")

    lines += ["", "## Tools", ""]
    for name, descriptor in registry.items():
        marker = " (requires confirm=true)" if descriptor.gated else ""
        lines.append(f"- `{name}`{marker}")

    mutating = registry.mutating_tools
    lines += ["", "## Changing data", ""]
    if not mutating:
        lines.append(
            "This server is read-only. No tool can modify data; "
            "do not offer to update or delete anything."
        )
    else:
        lines += [
            f"{len(mutating)} tools modify data: {', '.join(mutating)}.",
            "",
            "1. Describe exactly what will change and ask the user to confirm.",
            "2. Only after the user explicitly agrees, call the tool with `confirm: true`.",
            "3. Never set `confirm` on your own initiative. A call without it is refused",
            "   with a SAFETY CHECK message and nothing is changed.",
        ]

    lines += [
        "",
        "## What this MCP does NOT do",
        "",
        "❌ Manage Supabase projects, branches, storage or edge functions",
        "❌ Send emails or talk to Fireflies directly",
        "❌ Run writes in read-only mode",
    ]
    return "\n".join(lines) + "\n"


def register_capabilities_prompt(mcp: FastMCP, registry: ToolRegistry) -> None:
    @mcp.prompt(
        name="mcp_capabilities",
        description="Describes what this MCP does and how data changes must be confirmed",
    )
    def get_mcp_capabilities() -> str:
        return capabilities_text(registry)
