"""Resolution of a selector token into a target set."""

from __future__ import annotations

import asyncio
import logging

from thingctl.core.model import TargetSet
from thingctl.registries.base import Registry

ALL = "all"
LOGGER = logging.getLogger(__name__)


def resolve(registry: Registry, token: str) -> TargetSet:
    if token == ALL:
        return TargetSet.of(token, registry.all())
    return TargetSet.of(token, registry.get(*token.split(",")))


async def resolve_settled(
    registry: Registry,
    token: str,
    *,
    attempts: int = 3,
    delay_s: float = 0.3,
) -> TargetSet:
    """Resolve `token`, waiting briefly while the registry may still be discovering devices.

    An empty result is only final once `attempts` lookups, `delay_s` apart,
    have all come back empty.
    """
    targets = resolve(registry, token)
    for attempt in range(1, attempts):
        if targets:
            break
        LOGGER.debug("No devices for '%s' yet (attempt %d/%d)", token, attempt, attempts)
        await asyncio.sleep(delay_s)
        targets = resolve(registry, token)
    return targets
