"""In-process registry whose actions are Python coroutines."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from thingctl.core.errors import ActionError
from thingctl.core.model import Action, identity_tag, is_identity_tag
from thingctl.registries.base import Device, check_tag, select_devices


class MemoryDevice:
    def __init__(
        self,
        device_id: str,
        *,
        name: str | None = None,
        tags: Iterable[str] = (),
        actions: Mapping[str, Action] | None = None,
    ) -> None:
        self._id = device_id
        self._name = name
        self._tags = [t for t in tags if not is_identity_tag(t)]
        self._actions = dict(actions or {})

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def tags(self) -> tuple[str, ...]:
        return (identity_tag(self._id), *self._tags)

    @property
    def actions(self) -> Mapping[str, Action]:
        return self._actions

    def definition(self) -> dict[str, Any]:
        return {"id": self._id, "name": self._name, "tags": list(self.tags)}

    async def tag(self, value: str) -> None:
        check_tag(value)
        if value not in self._tags:
            self._tags.append(value)

    async def remove_tag(self, value: str) -> None:
        if is_identity_tag(value):
            raise ActionError(f"Identity tag '{value}' cannot be removed")
        if value not in self._tags:
            raise ActionError(f"Device {self._id} is not tagged '{value}'")
        self._tags.remove(value)

    async def set_name(self, value: str) -> None:
        self._name = value

    def __repr__(self) -> str:
        return f"MemoryDevice({self._id!r})"


class MemoryRegistry:
    def __init__(self, devices: Iterable[Device] = ()) -> None:
        self._devices: dict[str, Device] = {}
        for device in devices:
            self.add(device)

    def add(self, device: Device) -> None:
        self._devices[device.id] = device

    def all(self) -> list[Device]:
        return list(self._devices.values())

    def get(self, *selectors: str) -> list[Device]:
        return select_devices(self._devices.values(), selectors)
