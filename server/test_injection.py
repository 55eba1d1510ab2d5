import asyncio

import pytest
from pydantic import Field

from errors import ConfigurationError, ValidationError
from tools.descriptor import ProjectParams, ToolSet
from tools.injection import inject


class LookupParams(ProjectParams):
    fireflies_id: str = Field(description="Meeting to look up")


def recording_descriptor():
    received = []
    tools = ToolSet()

    @tools.tool(name="lookup", description="Echo the validated parameters", parameters=LookupParams)
    async def lookup(params: LookupParams):
        received.append(params)
        return {"project_id": params.project_id, "fireflies_id": params.fireflies_id}

    return tools.descriptors["lookup"], received


def test_bound_value_wins_over_caller_value():
    descriptor, received = recording_descriptor()
    pinned = inject(descriptor, {"project_id": "proj-pinned"})

    result = asyncio.run(pinned.call({"fireflies_id": "abc", "project_id": "proj-attacker"}))

    assert result == {"project_id": "proj-pinned", "fireflies_id": "abc"}
    assert received[0].project_id == "proj-pinned"


def test_bound_keys_are_hidden_from_the_schema():
    descriptor, _ = recording_descriptor()
    pinned = inject(descriptor, {"project_id": "proj-pinned"})

    schema = pinned.input_schema()
    assert "project_id" not in schema["properties"]
    assert schema["required"] == ["fireflies_id"]
    assert set(pinned.exposed_fields) == {"fireflies_id"}
    assert "project_id" in descriptor.input_schema()["properties"]


def test_injection_is_idempotent():
    descriptor, _ = recording_descriptor()
    once = inject(descriptor, {"project_id": "proj-pinned"})
    twice = inject(once, {"project_id": "proj-pinned"})

    assert twice is once
    assert twice.bound == once.bound


def test_injection_does_not_mutate_the_original():
    descriptor, _ = recording_descriptor()
    inject(descriptor, {"project_id": "proj-pinned"})
    assert dict(descriptor.bound) == {}


def test_none_binding_hides_key_and_leaves_it_unset():
    descriptor, received = recording_descriptor()
    unpinned = inject(descriptor, {"project_id": None})

    asyncio.run(unpinned.call({"fireflies_id": "abc", "project_id": "proj-attacker"}))

    assert "project_id" not in unpinned.input_schema()["properties"]
    assert received[0].project_id is None


def test_binding_an_undeclared_parameter_fails():
    descriptor, _ = recording_descriptor()
    with pytest.raises(ConfigurationError, match="not a declared parameter"):
        inject(descriptor, {"tenant": "t-1"})


def test_merged_input_is_still_validated():
    descriptor, received = recording_descriptor()
    pinned = inject(descriptor, {"project_id": "proj-pinned"})

    with pytest.raises(ValidationError) as exc:
        asyncio.run(pinned.call({"unexpected": 1}))

    assert received == []
    assert exc.value.kind == "validation_error"
    assert {tuple(e["loc"]) for e in exc.value.errors} == {("fireflies_id",), ("unexpected",)}


def test_descriptor_without_bindings_starts_empty():
    descriptor, _ = recording_descriptor()
    other, _ = recording_descriptor()

    assert dict(descriptor.bound) == {}
    assert set(descriptor.exposed_fields) == {"project_id", "fireflies_id"}
    assert inject(descriptor, {"project_id": "p-1"}).bound == {"project_id": "p-1"}
    assert dict(other.bound) == {}
