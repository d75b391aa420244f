"""Resolve the discovered records to exactly one target, prompting on the terminal if needed."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

from .discovery.models import ResourceRecord
from .exceptions import InvalidSelection, NoResourcesFound, TerminalUnavailable

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"


@contextmanager
def open_terminal(path: str = TTY_PATH) -> Iterator[TextIO]:
    """Open the controlling terminal for reading, independent of a redirected stdin."""
    try:
        tty = open(path)  # noqa: SIM115
    except OSError as exc:
        raise TerminalUnavailable(f"Cannot read selection: no interactive terminal ({exc})") from exc
    with tty:
        yield tty


def parse_selection(text: str, count: int) -> int:
    """Return the 1-based index in ``text`` if it lies within ``[1, count]``."""
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidSelection("Invalid selection")
    index = int(text)
    if not 1 <= index <= count:
        raise InvalidSelection(f"Selection must be between 1 and {count}")
    return index


class SelectionPrompt:
    """Auto-selects a single match, otherwise shows a numbered menu and re-prompts until valid."""

    def __init__(self, output: TextIO | None = None, terminal=open_terminal):
        self._output = output if output is not None else sys.stderr
        self._terminal = terminal

    def select(self, records: list[ResourceRecord]) -> ResourceRecord:
        if not records:
            raise NoResourcesFound("No databases found")

        if len(records) == 1:
            logger.info("Connecting to database...")
            return records[0]

        self.render(records)
        with self._terminal() as tty:
            index = self.read_index(tty, len(records))
        return records[index - 1]

    def render(self, records: list[ResourceRecord]) -> None:
        lines = [record.menu_line(i) for i, record in enumerate(records, start=1)]
        self._output.write("\n" + "\n".join(lines) + "\n\n")
        self._output.flush()

    def read_index(self, tty: TextIO, count: int) -> int:
        """Block on ``tty`` until a valid index is entered. Never gives up on bad input."""
        while True:
            self._output.write(f"Select database (1-{count}): ")
            self._output.flush()
            line = tty.readline()
            if not line:
                raise TerminalUnavailable("Selection aborted: terminal closed")
            try:
                return parse_selection(line, count)
            except InvalidSelection as exc:
                self._output.write(f"ERROR: {exc}\n")
