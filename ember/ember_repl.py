"""
The interactive read-eval-print loop and its pluggable line editors.
"""

import importlib.util
import logging
import sys
from typing import List, Optional, Protocol, TextIO

from ember.ember_datatypes import EvaluationOutcome, GenericFailure, HasValue, StructuredError
from ember.ember_report import format_interactive

logger = logging.getLogger(__name__)

PROMPT = "eval> "
RESERVED_WORDS = ("quit", "exit", "help", "version")


# ===================================================================
# 1. Line editors
# ===================================================================

class LineEditor(Protocol):
    at_eof: bool

    def read_line(self, prompt: str) -> Optional[str]:
        """Return one line without its newline, or None at end of input."""
        ...

    def add_history(self, line: str) -> None:
        ...


class PlainEditor:
    """Writes the prompt and reads one line from a stream. History is kept in memory only."""

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self._stdin = stdin
        self._stdout = stdout
        self.at_eof = False
        self.history: List[str] = []

    def read_line(self, prompt: str) -> Optional[str]:
        stdin = self._stdin if self._stdin is not None else sys.stdin
        stdout = self._stdout if self._stdout is not None else sys.stdout
        stdout.write(prompt)
        stdout.flush()
        raw = stdin.readline()
        if raw == "":
            self.at_eof = True
            return None
        return raw.rstrip("\r\n")

    def add_history(self, line: str) -> None:
        self.history.append(line)


class ReadlineEditor:
    """Line editing and history through the standard library's readline."""

    def __init__(self):
        import readline
        self._readline = readline
        # Only trimmed lines go into history, so recording is done by hand.
        readline.set_auto_history(False)
        self.at_eof = False

    def read_line(self, prompt: str) -> Optional[str]:
        try:
            return input(prompt)
        except EOFError:
            self.at_eof = True
            return None

    def add_history(self, line: str) -> None:
        self._readline.add_history(line)


def make_line_editor(kind: str = "auto") -> LineEditor:
    """Build the line editor named by configuration: 'readline', 'plain' or 'auto'."""
    match kind:
        case "readline":
            return ReadlineEditor()
        case "plain":
            return PlainEditor()
        case "auto":
            interactive = sys.stdin is not None and sys.stdin.isatty()
            if interactive and importlib.util.find_spec("readline") is not None:
                return ReadlineEditor()
            return PlainEditor()
    raise ValueError(f"unknown line editor: {kind!r}")


# ===================================================================
# 2. The session
# ===================================================================

class REPLSession:
    """Reads, evaluates and prints until evaluated code requests termination.

    Nothing inside the loop ends it: errors are shown and the loop carries
    on. End of input is turned into `quit`, which the `quit` bridge turns
    into a termination request. Should a script have rebound `quit`, the
    host function registered under that name is called directly instead.
    """

    def __init__(self, engine, editor: LineEditor, prompt: str = PROMPT):
        self.engine = engine
        self.editor = editor
        self.prompt = prompt

    def next_command(self) -> str:
        command = "quit"
        if not self.editor.at_eof:
            line = self.editor.read_line(self.prompt)
            if line is not None:
                command = line.strip(" \t")
                self.editor.add_history(command)
        if command in RESERVED_WORDS:
            logger.debug("rewriting %r as a call", command)
            command += "(0)"
        return command

    def step(self) -> EvaluationOutcome:
        """Run one read-eval-print iteration and return its outcome."""
        outcome = self.engine.eval(self.next_command())
        match outcome:
            case HasValue(value=value):
                self._auto_print(value)
            case StructuredError() | GenericFailure():
                print(format_interactive(outcome))
        return outcome

    def run(self):
        while True:
            self.step()
            if self.editor.at_eof:
                break
        # End of input always ends the session, even when a script rebound `quit`.
        self._terminate()

    def _terminate(self):
        quit_ = self.engine.get_host_function("quit")
        if quit_ is not None:
            quit_(0)
        raise SystemExit(0)

    def _auto_print(self, value):
        display = self.engine.get_function("print")
        if display is None:
            return
        try:
            display(value)
        except Exception:
            logger.debug("display of %r failed", value, exc_info=True)
