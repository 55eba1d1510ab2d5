"""
Feature Composer

Builds the ToolRegistry once at startup from the enabled feature groups and
the safety mode:

  ask-maia  -> ask-maia read tools          | write: ask-maia write tools
  database  -> database read tools          | write: ask-maia write tools,
                                            |        database write tools
  debug     -> debugging tools              | write: -

In read-only mode the write providers are never called, so their tools are
absent from the registry rather than refused at call time. In write-enabled
mode every mutating tool goes through the confirmation gate before it is
registered. Every tool that declares project_id gets the pinned project
injected.
"""

import logging
from collections import abc
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence

from config import FeatureGroup, SafetyMode, ServerConfig, parse_feature_groups, parse_safety_mode
from errors import ConfigurationError
from platform_port import DatabasePlatform
from tools.ask_maia_tools import get_ask_maia_tools
from tools.ask_maia_write_tools import get_ask_maia_write_tools
from tools.confirmation import confirmation_gate
from tools.database_tools import get_database_tools, get_database_write_tools
from tools.debugging_tools import get_debugging_tools
from tools.descriptor import ToolDescriptor
from tools.injection import inject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolProvider:
    name: str
    factory: Callable[[DatabasePlatform], Dict[str, ToolDescriptor]]
    writes: bool = False


ASK_MAIA_READ = ToolProvider("ask-maia read tools", get_ask_maia_tools)
ASK_MAIA_WRITE = ToolProvider("ask-maia write tools", get_ask_maia_write_tools, writes=True)
DATABASE_READ = ToolProvider("database read tools", get_database_tools)
DATABASE_WRITE = ToolProvider("database write tools", get_database_write_tools, writes=True)
DEBUGGING = ToolProvider("debugging tools", get_debugging_tools)

FEATURE_PROVIDERS: Mapping[FeatureGroup, Sequence[ToolProvider]] = MappingProxyType({
    FeatureGroup.ASK_MAIA: (ASK_MAIA_READ, ASK_MAIA_WRITE),
    FeatureGroup.DATABASE: (DATABASE_READ, ASK_MAIA_WRITE, DATABASE_WRITE),
    FeatureGroup.DEBUG: (DEBUGGING,),
})


class ToolRegistry(abc.Mapping):
    """Read-only mapping of tool name -> ToolDescriptor."""

    def __init__(self, tools: Dict[str, ToolDescriptor], features: FrozenSet[FeatureGroup], safety_mode: SafetyMode):
        self._tools = MappingProxyType(dict(tools))
        self.features = features
        self.safety_mode = safety_mode

    def __getitem__(self, name: str) -> ToolDescriptor:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def mutating_tools(self) -> List[str]:
        return [name for name, d in self._tools.items() if d.mutating]

    def __repr__(self) -> str:
        return (
            f"ToolRegistry(mode={self.safety_mode.value}, "
            f"features={sorted(g.value for g in self.features)}, tools={len(self)})"
        )


def select_providers(
    groups: FrozenSet[FeatureGroup],
    mode: SafetyMode,
    providers: Mapping[FeatureGroup, Sequence[ToolProvider]],
) -> List[ToolProvider]:
    """Providers for the enabled groups, in group order, each at most once."""
    selected: List[ToolProvider] = []
    seen = set()
    for group in FeatureGroup:
        if group not in groups:
            continue
        for provider in providers.get(group, ()):
            if provider.writes and mode is SafetyMode.READ_ONLY:
                continue
            if provider.name in seen:
                continue
            seen.add(provider.name)
            selected.append(provider)
    return selected


def compose(
    requested_groups: Iterable,
    mode,
    *,
    platform: DatabasePlatform,
    project_id: Optional[str] = None,
    providers: Optional[Mapping[FeatureGroup, Sequence[ToolProvider]]] = None,
) -> ToolRegistry:
    """
    Assemble the registry exposed to the MCP runtime.

    Raises ConfigurationError for an unknown group or mode, a name collision,
    or a read provider that yields a mutating tool.
    """
    groups = parse_feature_groups(requested_groups)
    mode = parse_safety_mode(mode)
    providers = FEATURE_PROVIDERS if providers is None else providers
    context = {"project_id": project_id}

    tools: Dict[str, ToolDescriptor] = {}
    owners: Dict[str, str] = {}

    for provider in select_providers(groups, mode, providers):
        for descriptor in provider.factory(platform).values():
            name = descriptor.name

            if descriptor.mutating and not provider.writes:
                raise ConfigurationError(
                    f"Tool '{name}' from {provider.name} mutates data but its provider is read-only"
                )
            if name in tools:
                raise ConfigurationError(
                    f"Tool name collision: '{name}' from {provider.name} "
                    f"is already registered by {owners[name]}"
                )

            bound = {k: v for k, v in context.items() if k in descriptor.parameter_names}
            if bound:
                descriptor = inject(descriptor, bound)
            if descriptor.mutating:
                descriptor = confirmation_gate(descriptor)

            tools[name] = descriptor
            owners[name] = provider.name
            logger.info(
                f"📦 Registered tool: {name}" + (" (confirm=true required)" if descriptor.gated else "")
            )

    registry = ToolRegistry(tools, groups, mode)
    logger.info(
        f"🧰 Composed {len(registry)} tools | mode={mode.value} | "
        f"features={', '.join(sorted(g.value for g in groups))} | "
        f"project={'pinned' if project_id else 'resolved per call'}"
    )
    return registry


def compose_from_config(config: ServerConfig, platform: DatabasePlatform) -> ToolRegistry:
    return compose(
        config.features,
        config.safety_mode,
        platform=platform,
        project_id=config.project_id,
    )
