"""Loading and validation of YAML device definitions."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from thingctl.core.errors import DefinitionLoadError, DefinitionValidationError
from thingctl.core.model import is_identity_tag

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# "on"/"off" are common action names; keep them strings.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise DefinitionValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class ActionSpec:
    command: tuple[str, ...]
    progress: bool = False
    timeout_s: float | None = None


@dataclass(frozen=True)
class DeviceDefinition:
    id: str
    name: str | None
    tags: tuple[str, ...]
    actions: dict[str, ActionSpec]
    source: str


@dataclass(frozen=True)
class LoadedDefinitions:
    definitions: dict[str, DeviceDefinition]
    warnings: tuple[str, ...]


@cache
def load_schema_validator(name: str) -> Any:
    schema_text = resources.files("thingctl.schemas").joinpath(name).read_text(encoding="utf-8")
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def schema_error_message(exc: ValidationError, source: Path | str) -> str:
    path = ".".join(str(p) for p in exc.path)
    where = f" ({path})" if path else ""
    return f"Schema validation failed for {source}{where}: {exc.message}"


def definition_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "thingctl/devices", xdg_data / "thingctl/devices"


def read_yaml(path: Path) -> Any:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DefinitionLoadError(f"Could not read {path}: {exc}") from exc

    try:
        return yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise DefinitionValidationError(f"Invalid YAML in {path}: {exc}") from exc


def normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise DefinitionValidationError(f"{context} must be boolean true/false")


def _build_definition(doc: Any, source: Path) -> DeviceDefinition:
    if not isinstance(doc, dict):
        raise DefinitionValidationError(f"Device file {source} must contain a mapping at root")

    try:
        load_schema_validator("device.schema.json").validate(doc)
    except ValidationError as exc:
        raise DefinitionValidationError(schema_error_message(exc, source)) from exc

    tags = tuple(doc.get("tags", []))
    reserved = [t for t in tags if is_identity_tag(t)]
    if reserved:
        raise DefinitionValidationError(
            f"{source}: identity tags are assigned automatically, remove {', '.join(reserved)}"
        )

    actions: dict[str, ActionSpec] = {}
    for action_name, spec in doc.get("actions", {}).items():
        actions[action_name] = ActionSpec(
            command=tuple(spec["command"]),
            progress=normalize_bool(
                spec.get("progress", False),
                context=f"{doc['id']}.actions.{action_name}.progress",
            ),
            timeout_s=float(spec["timeout_s"]) if "timeout_s" in spec else None,
        )

    return DeviceDefinition(
        id=doc["id"],
        name=doc.get("name"),
        tags=tags,
        actions=actions,
        source=str(source),
    )


def _iter_definition_paths(directories: Iterable[Path]) -> list[Path]:
    paths: list[Path] = []
    for directory in directories:
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_definitions(extra_dirs: Iterable[Path] = ()) -> LoadedDefinitions:
    definitions: dict[str, DeviceDefinition] = {}
    warnings: list[str] = []

    for path in _iter_definition_paths([*definition_dirs(), *extra_dirs]):
        definition = _build_definition(read_yaml(path), path)
        previous = definitions.get(definition.id)
        if previous is not None:
            warning = f"Device '{definition.id}' from {path} overrides {previous.source}"
            LOGGER.warning(warning)
            warnings.append(warning)
        definitions[definition.id] = definition

    return LoadedDefinitions(definitions=definitions, warnings=tuple(warnings))
