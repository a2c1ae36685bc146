from __future__ import annotations

from thingctl.core.complete import complete
from thingctl.registries.memory import MemoryDevice, MemoryRegistry


async def _noop(args, progress):
    return None


def _registry() -> MemoryRegistry:
    return MemoryRegistry(
        [
            MemoryDevice("lamp-1", tags=("type:light",), actions={"turnOn": _noop, "dim": _noop}),
            MemoryDevice("plug-1", tags=("type:switch",), actions={"turnOn": _noop, "toggle": _noop}),
        ]
    )


def test_no_tokens_suggests_all_and_tags() -> None:
    assert complete(_registry(), []) == ["all", "type:light", "type:switch"]


def test_first_token_adds_ids_and_exit_commands() -> None:
    assert complete(_registry(), [""]) == [
        "all",
        "type:light",
        "type:switch",
        "lamp-1",
        "plug-1",
        "exit",
        "close",
    ]


def test_first_token_is_prefix_filter() -> None:
    assert complete(_registry(), ["type:"]) == ["type:light", "type:switch"]
    assert complete(_registry(), ["cl"]) == ["close"]
    assert complete(_registry(), ["id:"]) == []


def test_second_token_suggests_union_of_actions() -> None:
    assert complete(_registry(), ["all", ""]) == ["dim", "metadata", "toggle", "turnOn"]
    assert complete(_registry(), ["type:switch", ""]) == ["metadata", "toggle", "turnOn"]
    assert complete(_registry(), ["all", "t"]) == ["toggle", "turnOn"]


def test_unknown_selector_still_offers_metadata() -> None:
    assert complete(_registry(), ["type:fan", ""]) == ["metadata"]


def test_metadata_verbs() -> None:
    assert complete(_registry(), ["all", "metadata", ""]) == ["tag", "removeTag", "setName", "actions"]
    assert complete(_registry(), ["all", "metadata", "s"]) == ["setName"]


def test_no_candidates_beyond_third_token() -> None:
    assert complete(_registry(), ["all", "turnOn", ""]) == []
    assert complete(_registry(), ["all", "metadata", "tag", ""]) == []
