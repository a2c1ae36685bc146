"""Terminal output: grouped, colorized lines and simple tables.

Indentation lives on the `Output` instance rather than in module state, so
each command (or test) can carry its own formatting context.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

import typer
import yaml

from thingctl.core.model import is_identity_tag
from thingctl.registries.base import Device

INDENT = "  "


def banner(label: str, *, fg: str = "white", bg: str) -> str:
    return typer.style(f" {label} ", fg=fg, bg=bg, bold=True)


def visible_len(value: str) -> int:
    return len(typer.unstyle(value))


def render_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False, allow_unicode=True).rstrip(
        "\n"
    )


def describe_device(device: Device) -> str:
    if device.name:
        return f"{device.name} {typer.style(device.id, fg='bright_black')}"
    return typer.style(device.id, fg="bright_black")


def tag_summary(tags: Iterable[str]) -> str:
    parts: list[str] = []
    for tag in tags:
        if is_identity_tag(tag):
            continue
        namespace, sep, _ = tag.partition(":")
        if sep and namespace == "type":
            parts.append(typer.style(tag, fg="blue"))
        elif sep and namespace == "cap":
            parts.append(typer.style(tag, fg="magenta"))
        else:
            parts.append(tag)
    return " ".join(parts)


class Output:
    def __init__(self) -> None:
        self.depth = 0

    def format(self, *parts: Any) -> str:
        rendered: list[str] = []
        for part in parts:
            if isinstance(part, str):
                rendered.append(part)
            elif part is None:
                rendered.append(typer.style("N/A", fg="bright_black"))
            elif isinstance(part, Device):
                rendered.append(describe_device(part))
            else:
                rendered.append(render_value(part))
        return " ".join(rendered)

    def info(self, *parts: Any) -> None:
        prefix = INDENT * self.depth
        for line in self.format(*parts).split("\n"):
            typer.echo(prefix + line)

    def error(self, *parts: Any) -> None:
        prefix = banner("ERROR", bg="red") + " " + INDENT * self.depth
        for line in self.format(*parts).split("\n"):
            typer.echo(prefix + line, err=True)

    @contextmanager
    def group(self) -> Iterator[None]:
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1

    def table(self, *columns: str) -> Table:
        return Table(self, columns)


class Table:
    def __init__(self, out: Output, columns: Iterable[str]) -> None:
        self._out = out
        self._columns = list(columns)
        self._rows: list[list[Any]] = []

    def row(self, *values: Any) -> Table:
        if len(values) != len(self._columns):
            raise ValueError(
                f"Row has {len(values)} entries but the table has {len(self._columns)} columns"
            )
        self._rows.append(list(values))
        return self

    def print(self) -> None:
        header = [typer.style(self._out.format(c), bold=True) for c in self._columns]
        rows = [[self._out.format(v) for v in row] for row in self._rows]
        widths = [visible_len(h) for h in header]
        for row in rows:
            widths = [max(w, visible_len(v)) for w, v in zip(widths, row)]

        def _pad(value: str, i: int) -> str:
            return value + " " * (widths[i] - visible_len(value))

        def _line(values: list[str]) -> str:
            return " ".join(_pad(v, i) for i, v in enumerate(values)).rstrip()

        self._out.info(_line(header))
        self._out.info(_line(["=" * visible_len(h) for h in header]))
        for row in rows:
            self._out.info(_line(row))
