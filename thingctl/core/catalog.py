"""Actions and metadata verbs available on a target set."""

from __future__ import annotations

from collections.abc import Iterable

from thingctl.registries.base import Device

METADATA = "metadata"
TAG = "tag"
REMOVE_TAG = "removeTag"
SET_NAME = "setName"
ACTIONS = "actions"

MUTATION_VERBS = (TAG, REMOVE_TAG, SET_NAME)
METADATA_VERBS = (*MUTATION_VERBS, ACTIONS)


def actions_for(devices: Iterable[Device]) -> set[str]:
    """Union of the action names exposed by `devices`."""
    names: set[str] = set()
    for device in devices:
        names.update(device.actions.keys())
    return names
