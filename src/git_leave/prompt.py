"""Yes/no confirmation prompt."""

from __future__ import annotations

import sys
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape


class AskDefault(Enum):
    """What an empty answer means."""

    YES = "yes"
    NO = "no"
    REQUIRE_EXPLICIT = "require_explicit"


YES_ANSWERS = frozenset({"y", "yes"})
NO_ANSWERS = frozenset({"n", "no"})

_HINTS = {
    AskDefault.YES: "[Y/n]",
    AskDefault.NO: "[y/N]",
    AskDefault.REQUIRE_EXPLICIT: "[y/n]",
}


def ask(
    question: str,
    default: AskDefault = AskDefault.REQUIRE_EXPLICIT,
    *,
    console: Console | None = None,
    stream: TextIO | None = None,
) -> bool:
    """Ask until a recognised answer is given.

    An empty line returns the default unless the default is
    REQUIRE_EXPLICIT. End of input returns True only for AskDefault.YES.
    """
    console = console or Console()
    stream = stream or sys.stdin

    while True:
        console.print(f"[bold magenta]{escape(_HINTS[default])}[/] {question} ", end="")
        line = stream.readline()
        if not line:
            console.print()
            return default is AskDefault.YES

        answer = line.strip().lower()
        if answer in YES_ANSWERS:
            return True
        if answer in NO_ANSWERS:
            return False
        if not answer and default is not AskDefault.REQUIRE_EXPLICIT:
            return default is AskDefault.YES

        console.print("[red]Error:[/] Please answer with yes or no")
