"""Terminal rendering of classified lines and run summaries."""

from __future__ import annotations

import sys
from typing import Dict, Optional, TextIO

from colorama import Fore, Style

from .classifier import ClassifiedLine, Color, RunState
from .config import DEFAULT_COLORS

THUMBS_UP = "\N{THUMBS UP SIGN}"
THUMBS_DOWN = "\N{THUMBS DOWN SIGN}"


class ConsoleRenderer:
    """
    Writes classified lines to a terminal stream

    Args:
        stream: Output stream (defaults to stdout)
        colors: Color tag to color name overrides, e.g. {"failure": "magenta"}
        use_color: Emit ANSI colors; defaults to whether the stream is a tty
        emoji: Decorate the summary with thumbs up/down
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        colors: Optional[Dict[str, str]] = None,
        use_color: Optional[bool] = None,
        emoji: bool = True,
    ):
        self.stream = stream or sys.stdout
        if use_color is None:
            use_color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_color = use_color
        self.emoji = emoji

        names = dict(DEFAULT_COLORS)
        names.update(colors or {})
        self.colors = {tag: getattr(Fore, name.upper()) for tag, name in names.items()}

    def colorize(self, text: str, tag: Optional[str]) -> str:
        if not tag or not self.use_color:
            return text
        return f"{self.colors.get(tag, '')}{text}{Style.RESET_ALL}"

    def _write(self, text: str = "") -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    def render(self, line: ClassifiedLine) -> None:
        """Print a line and, when present, its location hint"""
        if not line.visible:
            return
        if line.location is not None:
            self._write(self.colorize(line.location, Color.LINK))
            self._write()
        self._write(self.colorize(line.text, line.color))

    def banner(self, text: str) -> None:
        self._write(self.colorize(text, Color.INFO))

    def error(self, message: str) -> None:
        self._write(self.colorize(message, Color.FAILURE))

    def summary(self, state: RunState, elapsed: float) -> None:
        """Print counters collected during one run"""
        self._write(f"Busy: {elapsed:.3f}s")

        if state.failures > 0:
            text = self.colorize(f"Total fails: {state.failures}", Color.FAILURE)
            if self.emoji:
                text += f" {THUMBS_DOWN}"
        else:
            text = self.colorize("No fails", Color.SUCCESS)
            if self.emoji:
                text += f" {THUMBS_UP}"
        self._write(text)

        if state.skips > 0:
            self._write(
                self.colorize("Total skips:", Color.SKIP)
                + " "
                + self.colorize(str(state.skips), Color.FAILURE)
            )

        if state.no_test_packages > 0:
            self._write(
                self.colorize("Total packages without tests:", Color.INFO)
                + " "
                + self.colorize(str(state.no_test_packages), Color.FAILURE)
            )
