"""Interactive command loop with line editing, history and completion."""

from __future__ import annotations

import shlex
from collections.abc import Iterable
from typing import Any, Protocol

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import FileHistory

from thingctl.core.complete import EXIT_COMMANDS, complete
from thingctl.core.dispatcher import Dispatcher
from thingctl.core.settings import data_dir
from thingctl.registries.base import Registry

PROMPT = "thingctl> "
QUIT_COMMANDS = (*EXIT_COMMANDS, "quit")


class LineSource(Protocol):
    async def prompt_async(self, message: str, **kwargs: Any) -> str: ...


def split_tokens(text: str) -> list[str]:
    """Split the text before the cursor; trailing whitespace opens a new empty token."""
    try:
        tokens = shlex.split(text)
    except ValueError:
        tokens = text.split()
    if text and text[-1].isspace():
        tokens.append("")
    return tokens


class CommandCompleter(Completer):
    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        tokens = split_tokens(document.text_before_cursor)
        current = tokens[-1] if tokens else ""
        for candidate in complete(self.registry, tokens):
            yield Completion(candidate, start_position=-len(current))


def build_session(registry: Registry) -> PromptSession:
    history_path = data_dir() / "history"
    history_path.parent.mkdir(parents=True, exist_ok=True)
    return PromptSession(
        history=FileHistory(str(history_path)),
        completer=CommandCompleter(registry),
        complete_while_typing=True,
    )


async def repl(dispatcher: Dispatcher, session: LineSource | None = None) -> None:
    """Read and run commands until exit, end of input or two interrupts in a row."""
    session = session or build_session(dispatcher.registry)
    out = dispatcher.out
    interrupts = 0

    while True:
        try:
            line = await session.prompt_async(PROMPT)
        except KeyboardInterrupt:
            if interrupts:
                return
            interrupts += 1
            out.info("Press ^C again to exit.")
            continue
        except EOFError:
            return
        interrupts = 0

        try:
            args = shlex.split(line)
        except ValueError as exc:
            out.error(f"Could not parse command: {exc}")
            continue

        if not args:
            continue
        if args[0] in QUIT_COMMANDS:
            return
        await dispatcher.run(args)
