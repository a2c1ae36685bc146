from __future__ import annotations

import asyncio

from prompt_toolkit.completion import CompleteEvent
from prompt_toolkit.document import Document

from thingctl.core.dispatcher import Dispatcher
from thingctl.core.settings import Settings
from thingctl.output import Output
from thingctl.registries.memory import MemoryDevice, MemoryRegistry
from thingctl.shell import CommandCompleter, repl, split_tokens


class ScriptedSession:
    """Stands in for a PromptSession, replaying lines and exceptions."""

    def __init__(self, *steps) -> None:
        self.steps = list(steps)
        self.prompts = 0

    async def prompt_async(self, message, **kwargs):
        self.prompts += 1
        if not self.steps:
            raise EOFError
        step = self.steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


class RecordingDispatcher(Dispatcher):
    def __init__(self) -> None:
        super().__init__(MemoryRegistry([MemoryDevice("lamp-1")]), Output(), Settings(resolve_attempts=1))
        self.commands: list[list[str]] = []

    async def run(self, args):
        self.commands.append(list(args))
        return True


def test_split_tokens() -> None:
    assert split_tokens("") == []
    assert split_tokens("all") == ["all"]
    assert split_tokens("all ") == ["all", ""]
    assert split_tokens("all metadata setName 'Desk l") == ["all", "metadata", "setName", "'Desk", "l"]
    assert split_tokens('lamp-1 say "hello world" ') == ["lamp-1", "say", "hello world", ""]


def test_completer_replaces_current_token() -> None:
    completer = CommandCompleter(MemoryRegistry([MemoryDevice("lamp-1", tags=("type:light",))]))
    completions = list(completer.get_completions(Document("ty"), CompleteEvent()))
    assert [c.text for c in completions] == ["type:light"]
    assert completions[0].start_position == -2

    completions = list(completer.get_completions(Document("all "), CompleteEvent()))
    assert [c.text for c in completions] == ["metadata"]
    assert completions[0].start_position == 0


def test_repl_runs_commands_until_exit() -> None:
    dispatcher = RecordingDispatcher()
    session = ScriptedSession("", "all", "lamp-1 turnOn 'full power'", "exit", "all")

    asyncio.run(repl(dispatcher, session))

    assert dispatcher.commands == [["all"], ["lamp-1", "turnOn", "full power"]]


def test_single_interrupt_is_absorbed(capsys) -> None:
    dispatcher = RecordingDispatcher()
    session = ScriptedSession(KeyboardInterrupt(), "all", KeyboardInterrupt(), "close")

    asyncio.run(repl(dispatcher, session))

    assert dispatcher.commands == [["all"]]
    assert capsys.readouterr().out.count("Press ^C again to exit.") == 2


def test_double_interrupt_exits() -> None:
    dispatcher = RecordingDispatcher()
    session = ScriptedSession(KeyboardInterrupt(), KeyboardInterrupt(), "all")

    asyncio.run(repl(dispatcher, session))

    assert dispatcher.commands == []
    assert session.prompts == 2


def test_unbalanced_quotes_are_reported(capsys) -> None:
    dispatcher = RecordingDispatcher()
    session = ScriptedSession("all say 'oops", "quit")

    asyncio.run(repl(dispatcher, session))

    assert dispatcher.commands == []
    assert "Could not parse command" in capsys.readouterr().err
