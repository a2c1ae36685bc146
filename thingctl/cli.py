"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer

from thingctl.core.dispatcher import Dispatcher
from thingctl.core.errors import ThingctlError
from thingctl.core.settings import load_settings
from thingctl.output import Output
from thingctl.registries.local import LocalRegistry
from thingctl.shell import repl

app = typer.Typer(
    help="Run actions and edit metadata on tagged devices, one-shot or interactively",
    add_completion=False,
)


def _build_registry(devices_dir: list[Path], action_timeout_s: float) -> LocalRegistry:
    registry = LocalRegistry(extra_dirs=devices_dir, default_timeout_s=action_timeout_s)
    for warning in getattr(registry, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return registry


@app.command(
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True},
)
def main(
    args: list[str] | None = typer.Argument(
        None,
        help="<selector> [<action> [args...] | metadata [tag X | removeTag X | setName X | actions]]",
    ),
    devices_dir: list[Path] | None = typer.Option(
        None,
        "--devices-dir",
        help="Extra directory of device definition files (repeatable)",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Run one command, or start the interactive shell when no command is given."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = load_settings()
        registry = _build_registry(devices_dir or [], settings.action_timeout_s)
    except ThingctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    dispatcher = Dispatcher(registry, Output(), settings)
    if args:
        ok = asyncio.run(dispatcher.run(args))
        raise typer.Exit(code=0 if ok else 1)

    asyncio.run(repl(dispatcher))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
