from __future__ import annotations

from pathlib import Path

import pytest

from thingctl.core.errors import DefinitionValidationError
from thingctl.core.definition_loader import load_definitions


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture
def xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    return tmp_path


def test_no_definitions_is_empty(xdg: Path) -> None:
    loaded = load_definitions()
    assert loaded.definitions == {}
    assert loaded.warnings == ()


def test_load_user_definition(xdg: Path) -> None:
    _write(
        xdg / "cfg" / "thingctl" / "devices" / "lamp.yaml",
        """
id: lamp-1
name: Desk lamp
tags: ['type:light', 'room:office']
actions:
  on:
    command: [lampctl, "on"]
  watch:
    command: [lampctl, watch]
    progress: true
    timeout_s: 2.5
""",
    )

    definition = load_definitions().definitions["lamp-1"]
    assert definition.name == "Desk lamp"
    assert definition.tags == ("type:light", "room:office")
    assert set(definition.actions) == {"on", "watch"}
    assert definition.actions["on"].command == ("lampctl", "on")
    assert definition.actions["on"].progress is False
    assert definition.actions["watch"].progress is True
    assert definition.actions["watch"].timeout_s == 2.5


def test_missing_id_rejected(xdg: Path) -> None:
    _write(xdg / "cfg" / "thingctl" / "devices" / "bad.yaml", "name: No id\n")

    with pytest.raises(DefinitionValidationError):
        load_definitions()


def test_empty_command_rejected(xdg: Path) -> None:
    _write(
        xdg / "cfg" / "thingctl" / "devices" / "bad.yaml",
        """
id: bad
actions:
  go:
    command: []
""",
    )

    with pytest.raises(DefinitionValidationError) as exc:
        load_definitions()
    assert "actions.go.command" in str(exc.value)


def test_unknown_action_keys_rejected(xdg: Path) -> None:
    _write(
        xdg / "cfg" / "thingctl" / "devices" / "bad.yaml",
        """
id: bad
actions:
  go:
    command: [lampctl, go]
    description: Turns the lamp on
""",
    )

    with pytest.raises(DefinitionValidationError) as exc:
        load_definitions()
    assert "description" in str(exc.value)


def test_identity_tags_are_reserved(xdg: Path) -> None:
    _write(xdg / "cfg" / "thingctl" / "devices" / "bad.yaml", "id: bad\ntags: ['id:other']\n")

    with pytest.raises(DefinitionValidationError):
        load_definitions()


def test_duplicate_yaml_keys_rejected(xdg: Path) -> None:
    _write(
        xdg / "cfg" / "thingctl" / "devices" / "dup.yaml",
        """
id: dup
actions:
  on:
    command: [a]
  on:
    command: [b]
""",
    )

    with pytest.raises(DefinitionValidationError):
        load_definitions()


def test_later_directory_overrides(xdg: Path) -> None:
    _write(xdg / "cfg" / "thingctl" / "devices" / "lamp.yaml", "id: lamp-1\nname: Config lamp\n")
    _write(xdg / "extra" / "lamp.yaml", "id: lamp-1\nname: Extra lamp\n")

    loaded = load_definitions([xdg / "extra"])
    assert loaded.definitions["lamp-1"].name == "Extra lamp"
    assert any("overrides" in warning for warning in loaded.warnings)
