"""User settings read from config.yaml and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from jsonschema import ValidationError

from thingctl.core.definition_loader import (
    load_schema_validator,
    normalize_bool,
    read_yaml,
    schema_error_message,
)
from thingctl.core.errors import ConfigError, ThingctlError


@dataclass(frozen=True)
class Settings:
    resolve_attempts: int = 3
    resolve_delay_s: float = 0.3
    fail_on_device_error: bool = False
    action_timeout_s: float = 30.0


def config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "thingctl/config.yaml"


def data_dir() -> Path:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / "thingctl"


def _env_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{name} must be boolean true/false, got '{raw}'")


def _env_number(name: str, raw: str, kind: type) -> int | float:
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from None


def load_settings(path: Path | None = None) -> Settings:
    path = path or config_path()
    settings = Settings()

    if path.exists():
        try:
            doc = read_yaml(path)
        except ThingctlError as exc:
            raise ConfigError(str(exc)) from exc
        doc = doc or {}
        try:
            load_schema_validator("config.schema.json").validate(doc)
        except ValidationError as exc:
            raise ConfigError(schema_error_message(exc, path)) from exc
        if "fail_on_device_error" in doc:
            doc["fail_on_device_error"] = normalize_bool(
                doc["fail_on_device_error"], context=f"{path}: fail_on_device_error"
            )
        settings = replace(settings, **doc)

    env = os.environ
    if "THINGCTL_FAIL_ON_DEVICE_ERROR" in env:
        settings = replace(
            settings,
            fail_on_device_error=_env_bool(
                "THINGCTL_FAIL_ON_DEVICE_ERROR", env["THINGCTL_FAIL_ON_DEVICE_ERROR"]
            ),
        )
    if "THINGCTL_RESOLVE_ATTEMPTS" in env:
        attempts = _env_number("THINGCTL_RESOLVE_ATTEMPTS", env["THINGCTL_RESOLVE_ATTEMPTS"], int)
        settings = replace(settings, resolve_attempts=max(1, int(attempts)))
    if "THINGCTL_RESOLVE_DELAY_S" in env:
        delay = _env_number("THINGCTL_RESOLVE_DELAY_S", env["THINGCTL_RESOLVE_DELAY_S"], float)
        settings = replace(settings, resolve_delay_s=max(0.0, float(delay)))

    return settings
