"""
Tool Descriptors

A ToolDescriptor is the unit of exposed capability: name, description, a
pydantic parameter model and an async execute function. Descriptors are
frozen; the injector and the confirmation gate return new descriptors.

Providers declare their tools with a ToolSet, the same way the server
declares tools on FastMCP:

    tools = ToolSet()

    @tools.tool(name="get_user_list", description="...", parameters=ProjectParams)
    async def get_user_list(params):
        ...

    return tools.descriptors
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional, Type

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo

from errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

ExecuteFn = Callable[[BaseModel], Awaitable[Any]]

_EMPTY: Mapping[str, Any] = MappingProxyType({})


# ---------------------------------------------------------------------------
# Parameter models
# ---------------------------------------------------------------------------

class ProjectParams(BaseModel):
    """Every tool that touches the database takes the target project."""

    model_config = ConfigDict(extra="forbid")

    project_id: Optional[str] = Field(default=None, description="The project to run against")


def confirm_field(description: str) -> Any:
    """
    The `confirm` flag of a mutating tool.

    Advertised as a boolean, but validation accepts any value so the
    confirmation gate, not the validator, decides what counts as confirmed.
    """
    return Field(default=None, description=description, json_schema_extra={"type": "boolean"})


class ConfirmedParams(ProjectParams):
    confirm: Any = confirm_field("REQUIRED: Must be true to confirm the user explicitly wants this change")


@dataclass(frozen=True)
class Confirmation:
    """What the gate tells the caller when confirm=true is missing."""

    action: str
    consent: str

    def refusal(self) -> str:
        return (
            f"SAFETY CHECK: Cannot {self.action} without explicit confirmation. "
            f"Please ask the user to confirm they want to {self.consent}."
        )


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parameters: Type[BaseModel]
    execute: ExecuteFn
    mutating: bool = False
    destructive: bool = False
    confirmation: Optional[Confirmation] = None
    bound: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    gated: bool = False

    @property
    def parameter_names(self) -> FrozenSet[str]:
        return frozenset(self.parameters.model_fields)

    @property
    def exposed_fields(self) -> Dict[str, FieldInfo]:
        """Fields a caller may supply: the declared shape minus bound keys."""
        return {
            name: info
            for name, info in self.parameters.model_fields.items()
            if name not in self.bound
        }

    def input_schema(self) -> Dict[str, Any]:
        schema = self.parameters.model_json_schema()
        properties = schema.get("properties", {})
        for key in self.bound:
            properties.pop(key, None)
        if "required" in schema:
            schema["required"] = [r for r in schema["required"] if r not in self.bound]
            if not schema["required"]:
                del schema["required"]
        return schema

    def merge_arguments(self, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Caller input with bound keys replaced by their pinned values."""
        merged = {k: v for k, v in (arguments or {}).items() if k not in self.bound}
        merged.update({k: v for k, v in self.bound.items() if v is not None})
        return merged

    def validate(self, arguments: Optional[Mapping[str, Any]]) -> BaseModel:
        try:
            return self.parameters.model_validate(self.merge_arguments(arguments))
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid arguments for {self.name}: {_summarize(e)}",
                errors=e.errors(include_url=False, include_context=False),
            ) from e

    async def call(self, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        params = self.validate(arguments)
        return await self.execute(params)


def _summarize(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors(include_url=False):
        location = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{location}: {err.get('msg')}")
    return "; ".join(parts)


class ToolSet:
    """Collects the descriptors of one provider."""

    def __init__(self):
        self._tools: Dict[str, ToolDescriptor] = {}

    def tool(
        self,
        name: str,
        description: str,
        parameters: Type[BaseModel] = ProjectParams,
        destructive: bool = False,
        confirmation: Optional[Confirmation] = None,
    ):
        """Register the decorated coroutine. A confirmation marks the tool as mutating."""
        def decorator(func: ExecuteFn) -> ExecuteFn:
            if name in self._tools:
                raise ConfigurationError(f"Tool '{name}' is declared twice")
            self._tools[name] = ToolDescriptor(
                name=name,
                description=description,
                parameters=parameters,
                execute=func,
                mutating=confirmation is not None or destructive,
                destructive=destructive,
                confirmation=confirmation,
            )
            return func
        return decorator

    @property
    def descriptors(self) -> Dict[str, ToolDescriptor]:
        return dict(self._tools)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def rows_payload(rows: List[dict], noun: str, context: str = "") -> Dict[str, Any]:
    """Read-tool result: a one-line summary plus the rows themselves."""
    count = len(rows)
    return {
        "summary": f"Found {count} {noun}{context}",
        "row_count": count,
        "rows": rows,
    }


def record_label(record: Optional[Mapping[str, Any]], *fields: str, fallback: str) -> str:
    """First non-empty identifying field of a record, else the fallback."""
    for name in fields:
        value = (record or {}).get(name)
        if value:
            return str(value)
    return fallback


def mutation_result(record_key: str, record: Any, message: str) -> Dict[str, Any]:
    return {"success": True, record_key: record, "message": message}
