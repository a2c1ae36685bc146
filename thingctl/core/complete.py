"""Position-based completion candidates for the interactive shell."""

from __future__ import annotations

from collections.abc import Sequence

from thingctl.core import catalog
from thingctl.core.model import is_identity_tag
from thingctl.core.selector import ALL, resolve
from thingctl.registries.base import Registry

EXIT_COMMANDS = ("exit", "close")


def complete(registry: Registry, tokens: Sequence[str]) -> list[str]:
    """Return candidates for the last of `tokens`, which may be partially typed."""
    items: list[str] = []

    if len(tokens) <= 1:
        tags = {
            tag
            for device in registry.all()
            for tag in device.tags
            if not is_identity_tag(tag)
        }
        items.extend(sorted({ALL, *tags}))

    if len(tokens) == 1:
        items.extend(device.id for device in registry.all() if device.id not in items)
        items.extend(EXIT_COMMANDS)

    if len(tokens) == 2:
        names = catalog.actions_for(resolve(registry, tokens[0]))
        items.extend(sorted({catalog.METADATA, *names}))

    if len(tokens) == 3 and tokens[1] == catalog.METADATA:
        items.extend(catalog.METADATA_VERBS)

    prefix = tokens[-1] if tokens else ""
    if not prefix:
        return items
    return [item for item in items if item.startswith(prefix)]
