"""Public entry points for scripts and services that drive devices without the CLI.

`Client` bundles a registry with the same selection, fan-out and completion
rules the command line uses; the names exported here are the ones kept stable
across releases.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from thingctl.core.catalog import actions_for
from thingctl.core.complete import complete
from thingctl.core.dispatcher import Dispatcher
from thingctl.core.errors import (
    ActionError,
    ActionNotFoundError,
    ActionTimeoutError,
    ArgumentError,
    ConfigError,
    DefinitionLoadError,
    DefinitionValidationError,
    MetadataStoreError,
    SelectionError,
    ThingctlError,
    TransportError,
)
from thingctl.core.invoke import ProgressHandler, invoke_action
from thingctl.core.model import AggregateReport, Outcome, ProgressEvent, TargetSet
from thingctl.core.selector import resolve, resolve_settled
from thingctl.core.settings import Settings, load_settings
from thingctl.output import Output
from thingctl.registries.base import Device, Registry
from thingctl.registries.local import LocalRegistry
from thingctl.registries.memory import MemoryDevice, MemoryRegistry

__all__ = [
    "ThingctlError",
    "ActionError",
    "ActionNotFoundError",
    "ActionTimeoutError",
    "ArgumentError",
    "ConfigError",
    "DefinitionLoadError",
    "DefinitionValidationError",
    "MetadataStoreError",
    "SelectionError",
    "TransportError",
    "AggregateReport",
    "Device",
    "LocalRegistry",
    "MemoryDevice",
    "MemoryRegistry",
    "Outcome",
    "Output",
    "ProgressEvent",
    "Registry",
    "Settings",
    "TargetSet",
    "Client",
]


class Client:
    """Public client for selecting devices and invoking actions on them.

    A `Client` wraps a registry (the YAML-backed `LocalRegistry` unless one is
    given) together with the command dispatcher, so GUIs, services and scripts
    can reuse the same selection, fan-out and completion rules as the CLI.
    """

    def __init__(
        self,
        *,
        registry: Registry | None = None,
        settings: Settings | None = None,
        output: Output | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.registry = registry or LocalRegistry(default_timeout_s=self.settings.action_timeout_s)
        self._dispatcher = Dispatcher(self.registry, output or Output(), self.settings)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return tuple(getattr(self.registry, "load_warnings", ()))

    def resolve(self, selector: str) -> TargetSet:
        return resolve(self.registry, selector)

    def actions(self, selector: str) -> list[str]:
        return sorted(actions_for(self.resolve(selector)))

    def invoke(
        self,
        selector: str,
        action: str,
        *args: str,
        on_progress: ProgressHandler | None = None,
    ) -> AggregateReport:
        async def _run() -> AggregateReport:
            targets = await resolve_settled(
                self.registry,
                selector,
                attempts=self.settings.resolve_attempts,
                delay_s=self.settings.resolve_delay_s,
            )
            if not targets:
                raise SelectionError(f"No devices matching {selector}")
            return await invoke_action(targets, action, args, on_progress=on_progress)

        return asyncio.run(_run())

    def run(self, args: Sequence[str]) -> bool:
        return asyncio.run(self._dispatcher.run(args))

    def complete(self, tokens: Sequence[str]) -> list[str]:
        return complete(self.registry, tokens)
