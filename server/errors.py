# server/errors.py
"""
Error taxonomy for the ask-maia MCP server.

ConfigurationError is raised while building the server and is fatal to startup.
Everything else is a ToolCallError: it surfaces to the MCP client as the result
of the single tool call that raised it and is never retried.
"""

from fastmcp.exceptions import ToolError


class MaiaError(Exception):
    """Base class. `kind` is the stable, machine-readable error name."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ConfigurationError(MaiaError):
    """Unknown feature group, invalid safety mode, or a registry build defect."""

    kind = "configuration_error"


class ToolCallError(MaiaError, ToolError):
    """An error produced while serving one tool call."""

    kind = "tool_error"


class SafetyCheckError(ToolCallError):
    """A mutating call arrived without confirm=true. Nothing was executed."""

    kind = "safety_check"


class NotFoundError(ToolCallError):
    """The target of a mutation does not exist."""

    kind = "not_found"


class PlatformError(ToolCallError):
    """The platform (management API or database) failed."""

    kind = "platform_error"


class ValidationError(ToolCallError):
    """Caller input does not match the tool's declared parameters."""

    kind = "validation_error"

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["details"] = self.errors
        return data
