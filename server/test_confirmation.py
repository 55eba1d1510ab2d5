import asyncio

import pytest

from errors import ConfigurationError, NotFoundError, SafetyCheckError
from tools.confirmation import confirmation_gate, is_confirmed, require_existing
from tools.descriptor import Confirmation, ConfirmedParams, ToolSet
from tools.statements import statement


def wipe_descriptor(calls):
    tools = ToolSet()

    @tools.tool(
        name="wipe_notes",
        description="Remove all notes",
        parameters=ConfirmedParams,
        destructive=True,
        confirmation=Confirmation("wipe notes", "remove every note"),
    )
    async def wipe_notes(params):
        calls.append(params)
        return {"success": True}

    return tools.descriptors["wipe_notes"]


@pytest.mark.parametrize("arguments", [{}, {"confirm": False}, {"confirm": "true"}, {"confirm": 1}, {"confirm": None}])
def test_unconfirmed_calls_are_refused_without_executing(arguments):
    calls = []
    gated = confirmation_gate(wipe_descriptor(calls))

    with pytest.raises(SafetyCheckError) as exc:
        asyncio.run(gated.call(arguments))

    assert calls == []
    assert exc.value.message == (
        "SAFETY CHECK: Cannot wipe notes without explicit confirmation. "
        "Please ask the user to confirm they want to remove every note."
    )


def test_confirmed_call_executes_exactly_once():
    calls = []
    gated = confirmation_gate(wipe_descriptor(calls))

    result = asyncio.run(gated.call({"confirm": True}))

    assert result == {"success": True}
    assert len(calls) == 1


def test_gate_is_idempotent():
    calls = []
    gated = confirmation_gate(wipe_descriptor(calls))
    assert confirmation_gate(gated) is gated

    asyncio.run(gated.call({"confirm": True}))
    assert len(calls) == 1


def test_gated_descriptor_is_marked_mutating():
    gated = confirmation_gate(wipe_descriptor([]))
    assert gated.gated
    assert gated.mutating
    assert gated.input_schema()["properties"]["confirm"]["type"] == "boolean"


def test_gate_requires_a_confirm_parameter():
    tools = ToolSet()

    @tools.tool(name="truncate", description="...", destructive=True)
    async def truncate(params):
        return {}

    with pytest.raises(ConfigurationError, match="declares no 'confirm' parameter"):
        confirmation_gate(tools.descriptors["truncate"])


def test_default_refusal_names_the_tool():
    tools = ToolSet()

    @tools.tool(name="reset_counters", description="...", parameters=ConfirmedParams, destructive=True)
    async def reset_counters(params):
        return {}

    gated = confirmation_gate(tools.descriptors["reset_counters"])
    with pytest.raises(SafetyCheckError, match="Cannot run reset_counters"):
        asyncio.run(gated.call({}))


def test_is_confirmed_only_accepts_true():
    assert is_confirmed(ConfirmedParams(confirm=True))
    assert not is_confirmed(ConfirmedParams(confirm="yes"))
    assert not is_confirmed(ConfirmedParams())


def test_require_existing_raises_not_found(platform):
    lookup = statement(
        "SELECT fireflies_id, fireflies_title, fireflies_timestamp FROM meetings WHERE fireflies_id = $1",
        "missing",
    )
    with pytest.raises(NotFoundError, match="gone"):
        asyncio.run(require_existing(platform, "proj", lookup, "gone"))
    assert platform.calls[0]["read_only"] is True
