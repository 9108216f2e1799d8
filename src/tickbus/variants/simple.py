# src/tickbus/variants/simple.py
from __future__ import annotations

import sys
from typing import Iterator, Optional, TextIO

from tickbus.console import Console
from tickbus.core.contracts import ButtonPressedEventArgs
from tickbus.core.events import EventHandler

DEFAULT_PRESSES = 10


class Button:
    """Event without a payload: subscribers only learn that it happened."""

    def __init__(self):
        self.button_pressed: EventHandler[None] = EventHandler("button_pressed")

    def on_button_pressed(self, key: str) -> None:
        self.button_pressed.invoke(self, None)


class ButtonMain:
    """Event carrying the pressed key."""

    def __init__(self):
        self.button_pressed: EventHandler[ButtonPressedEventArgs] = EventHandler("button_pressed")

    def on_button_pressed(self, key: str) -> None:
        self.button_pressed.invoke(self, ButtonPressedEventArgs(key))


def read_keys(stream: TextIO, limit: int) -> Iterator[str]:
    """Yield up to ``limit`` non-newline characters, stopping early at EOF."""
    n = 0
    while n < limit:
        ch = stream.read(1)
        if not ch:
            return
        if ch in "\r\n":
            continue
        n += 1
        yield ch


def run(stream: Optional[TextIO] = None, console: Optional[Console] = None, presses: int = DEFAULT_PRESSES) -> int:
    """Echo '<KEY> was pressed.' for each key read. Returns presses handled."""
    stream = stream or sys.stdin
    console = console or Console()
    button = ButtonMain()
    count = 0

    def on_pressed(sender, args: ButtonPressedEventArgs) -> None:
        console.write_line(f"{args.key.upper()} was pressed.")

    button.button_pressed += on_pressed
    for key in read_keys(stream, presses):
        button.on_button_pressed(key)
        count += 1
    return count
