"""
Parameter injection.

Pins server-side context (the target project) into a tool's parameters. The
returned descriptor no longer advertises the bound keys, ignores any value a
caller sends for them, and merges the pinned values in before validation.
"""

import dataclasses
from types import MappingProxyType
from typing import Any, Mapping

from errors import ConfigurationError
from tools.descriptor import ToolDescriptor


def inject(descriptor: ToolDescriptor, bound: Mapping[str, Any]) -> ToolDescriptor:
    """
    Return a copy of `descriptor` with `bound` pinned.

    A bound value of None still hides the key from callers; the merged call
    simply omits it and the tool falls back to project resolution.
    """
    unknown = sorted(set(bound) - descriptor.parameter_names)
    if unknown:
        raise ConfigurationError(
            f"Cannot bind {', '.join(unknown)} on tool '{descriptor.name}': not a declared parameter"
        )

    merged = dict(descriptor.bound)
    merged.update(bound)
    if merged == dict(descriptor.bound):
        return descriptor
    return dataclasses.replace(descriptor, bound=MappingProxyType(merged))
