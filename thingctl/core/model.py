"""Core data models shared by the registries, dispatcher and CLI."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from thingctl.registries.base import Device

ProgressCallback = Callable[[Any], None]
Action = Callable[[Sequence[str], ProgressCallback], Awaitable[Any]]

IDENTITY_TAG_PREFIX = "id:"


def identity_tag(device_id: str) -> str:
    return IDENTITY_TAG_PREFIX + device_id


def is_identity_tag(tag: str) -> bool:
    return tag.startswith(IDENTITY_TAG_PREFIX)


@dataclass(frozen=True)
class TargetSet:
    """Devices resolved from one selector, in resolution order."""

    selector: str
    devices: tuple[Device, ...]

    @classmethod
    def of(cls, selector: str, devices: Iterable[Device]) -> TargetSet:
        seen: set[str] = set()
        unique: list[Device] = []
        for device in devices:
            if device.id in seen:
                continue
            seen.add(device.id)
            unique.append(device)
        return cls(selector=selector, devices=tuple(unique))

    def __iter__(self) -> Iterator[Device]:
        return iter(self.devices)

    def __len__(self) -> int:
        return len(self.devices)


@dataclass(frozen=True)
class Outcome:
    device: Device
    ok: bool
    value: Any = None
    reason: str | None = None


@dataclass(frozen=True)
class ProgressEvent:
    device: Device
    payload: Any


@dataclass(frozen=True)
class AggregateReport:
    outcomes: tuple[Outcome, ...]

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def failures(self) -> tuple[Outcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)

    @property
    def successes(self) -> tuple[Outcome, ...]:
        return tuple(o for o in self.outcomes if o.ok)

    def by_id(self) -> dict[str, Outcome]:
        return {outcome.device.id: outcome for outcome in self.outcomes}

    def __len__(self) -> int:
        return len(self.outcomes)
