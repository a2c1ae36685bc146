"""Registry of devices defined in YAML files, with actions run as local commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from functools import partial
from pathlib import Path
from typing import Any

import yaml

from thingctl.core.definition_loader import ActionSpec, DeviceDefinition, UniqueKeyLoader, load_definitions
from thingctl.core.errors import (
    ActionError,
    ActionTimeoutError,
    DefinitionValidationError,
    MetadataStoreError,
)
from thingctl.core.model import Action, ProgressCallback, identity_tag, is_identity_tag
from thingctl.core.settings import data_dir
from thingctl.registries.base import Device, check_tag, select_devices

LOGGER = logging.getLogger(__name__)


class MetadataStore:
    """Name and tag overrides persisted as a YAML mapping keyed by device id."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, dict[str, Any]] = self._read()

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            loaded = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise MetadataStoreError(f"Could not read metadata store {self.path}: {exc}") from exc
        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise MetadataStoreError(f"Metadata store {self.path} must contain a mapping at root")
        return loaded

    def entry(self, device_id: str) -> dict[str, Any]:
        return self._entries.get(device_id, {})

    def update(self, device_id: str, **values: Any) -> None:
        entries = {**self._entries, device_id: {**self.entry(device_id), **values}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                yaml.safe_dump(entries, default_flow_style=False, sort_keys=True),
                encoding="utf-8",
            )
        except OSError as exc:
            raise MetadataStoreError(f"Could not write metadata store {self.path}: {exc}") from exc
        self._entries = entries


def _parse_output(text: str) -> Any:
    stripped = text.strip()
    if not stripped:
        return None
    try:
        parsed = yaml.load(stripped, Loader=UniqueKeyLoader)
    except (yaml.YAMLError, DefinitionValidationError):
        return stripped
    return stripped if isinstance(parsed, str) else parsed


async def run_command(
    argv: Sequence[str],
    *,
    progress: ProgressCallback | None,
    timeout_s: float,
) -> Any:
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ActionError(f"Command not found: {argv[0]}") from None
    except OSError as exc:
        raise ActionError(f"Could not start {argv[0]}: {exc}") from exc

    async def _read_stdout() -> str:
        assert proc.stdout is not None
        if progress is None:
            return (await proc.stdout.read()).decode(errors="replace")
        async for raw in proc.stdout:
            line = raw.decode(errors="replace").rstrip("\r\n")
            if line:
                progress(line)
        return ""

    async def _collect() -> tuple[str, str]:
        assert proc.stderr is not None
        stdout, stderr = await asyncio.gather(_read_stdout(), proc.stderr.read())
        await proc.wait()
        return stdout, stderr.decode(errors="replace")

    try:
        stdout, stderr = await asyncio.wait_for(_collect(), timeout=timeout_s)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise ActionTimeoutError(f"{argv[0]} did not finish within {timeout_s:g}s") from None

    LOGGER.debug("%s exited with %s", argv[0], proc.returncode)
    if proc.returncode != 0:
        detail = stderr.strip() or f"exit status {proc.returncode}"
        raise ActionError(detail)

    return None if progress is not None else _parse_output(stdout)


class LocalDevice:
    def __init__(
        self,
        definition: DeviceDefinition,
        store: MetadataStore,
        *,
        default_timeout_s: float,
    ) -> None:
        self._definition = definition
        self._store = store
        self._actions: dict[str, Action] = {
            name: partial(self._invoke, spec, default_timeout_s)
            for name, spec in definition.actions.items()
        }

    @property
    def id(self) -> str:
        return self._definition.id

    @property
    def name(self) -> str | None:
        return self._store.entry(self.id).get("name", self._definition.name)

    def _user_tags(self) -> list[str]:
        return list(self._store.entry(self.id).get("tags", self._definition.tags))

    @property
    def tags(self) -> tuple[str, ...]:
        return (identity_tag(self.id), *self._user_tags())

    @property
    def actions(self) -> Mapping[str, Action]:
        return self._actions

    def definition(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "tags": list(self.tags)}

    async def _invoke(
        self,
        spec: ActionSpec,
        default_timeout_s: float,
        args: Sequence[str],
        progress: ProgressCallback,
    ) -> Any:
        return await run_command(
            [*spec.command, *args],
            progress=progress if spec.progress else None,
            timeout_s=spec.timeout_s or default_timeout_s,
        )

    async def tag(self, value: str) -> None:
        check_tag(value)
        tags = self._user_tags()
        if value in tags:
            return
        self._store.update(self.id, tags=[*tags, value])

    async def remove_tag(self, value: str) -> None:
        if is_identity_tag(value):
            raise ActionError(f"Identity tag '{value}' cannot be removed")
        tags = self._user_tags()
        if value not in tags:
            raise ActionError(f"Device {self.id} is not tagged '{value}'")
        self._store.update(self.id, tags=[t for t in tags if t != value])

    async def set_name(self, value: str) -> None:
        self._store.update(self.id, name=value)


class LocalRegistry:
    def __init__(
        self,
        *,
        extra_dirs: Iterable[Path] = (),
        store_path: Path | None = None,
        default_timeout_s: float = 30.0,
    ) -> None:
        loaded = load_definitions(extra_dirs)
        self.load_warnings = loaded.warnings
        self.store = MetadataStore(store_path or data_dir() / "metadata.yaml")
        self._devices: list[Device] = [
            LocalDevice(definition, self.store, default_timeout_s=default_timeout_s)
            for definition in loaded.definitions.values()
        ]

    def all(self) -> list[Device]:
        return list(self._devices)

    def get(self, *selectors: str) -> list[Device]:
        return select_devices(self._devices, selectors)
