"""Registry interfaces."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from thingctl.core.errors import ActionError
from thingctl.core.model import Action, is_identity_tag

_TAG_RE = re.compile(r"^[^,\s]+$")


@runtime_checkable
class Device(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str | None: ...

    @property
    def tags(self) -> tuple[str, ...]: ...

    @property
    def actions(self) -> Mapping[str, Action]: ...

    def definition(self) -> dict[str, Any]:
        """Return the full metadata record of the device."""

    async def tag(self, value: str) -> None: ...

    async def remove_tag(self, value: str) -> None: ...

    async def set_name(self, value: str) -> None: ...


class Registry(Protocol):
    def all(self) -> list[Device]:
        """Return every known device in enumeration order."""

    def get(self, *selectors: str) -> list[Device]:
        """Return the devices matching a tag list or a single identifier."""


def select_devices(devices: Iterable[Device], selectors: Sequence[str]) -> list[Device]:
    """Apply the tag-then-identifier matching rule shared by the bundled registries."""
    pieces = [piece.strip() for piece in selectors if piece.strip()]
    if not pieces:
        return []

    candidates = list(devices)
    tagged = [d for d in candidates if all(piece in d.tags for piece in pieces)]
    if tagged or len(pieces) > 1:
        return tagged

    return [d for d in candidates if d.id == pieces[0]]


def check_tag(value: str) -> None:
    """Reject tags a selector could never match or that would pose as another device."""
    if is_identity_tag(value):
        raise ActionError(f"Identity tag '{value}' is assigned automatically and cannot be added")
    if not _TAG_RE.match(value):
        raise ActionError(f"Tag '{value}' must not contain commas or whitespace")
