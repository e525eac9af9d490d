"""
The ember command-line driver.

Arguments are classified one at a time, left to right, and each resulting
task runs before the next argument is looked at.
"""

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, TextIO

from ember.ember_bridge import register_bridge
from ember.ember_config import EmberConfig, configure_logging
from ember.ember_datatypes import GenericFailure, NO_VALUE, StructuredError
from ember.ember_repl import LineEditor, REPLSession, make_line_editor
from ember.ember_report import ErrorReporter
from ember.ember_runtime import Engine

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

VERSION_COMMAND = "version(0)"
HELP_COMMAND = "help(-1)"


class UsageError(Exception):
    """A malformed command line."""


class InputError(Exception):
    """Standard input could not be decoded."""


class Mode(Enum):
    INTERACTIVE = "interactive"
    COMMAND = "command"
    FILE = "file"


@dataclass(frozen=True)
class EvaluationTask:
    mode: Mode
    payload: str = ""

    def __post_init__(self):
        if self.mode is Mode.FILE and not self.payload:
            raise ValueError("a file task needs a path")


class ArgumentDispatcher:
    """Turns process arguments into evaluation tasks and runs them in order."""

    def __init__(
        self,
        engine: Engine,
        editor_factory: Callable[[], LineEditor] = make_line_editor,
        reporter: Optional[ErrorReporter] = None,
        stdin: Optional[TextIO] = None,
    ):
        self.engine = engine
        self.editor_factory = editor_factory
        self.reporter = reporter or ErrorReporter()
        self._stdin = stdin

    def read_stdin(self) -> str:
        stream = self._stdin if self._stdin is not None else sys.stdin
        try:
            text = stream.read()
        except UnicodeDecodeError as e:
            raise InputError(f"Can not decode standard input: {e.reason}") from e
        # Only \n separates lines; a final newline does not start another one.
        lines = text.split("\n")
        if text.endswith("\n"):
            lines.pop()
        return "\n".join(lines)

    def classify(self, args: Iterable[str]) -> Iterator[EvaluationTask]:
        """Yield one task per argument (or flag plus operand), lazily."""
        tokens = iter(args)
        for arg in tokens:
            match arg:
                case "-c" | "--command":
                    command = next(tokens, None)
                    if command is None:
                        raise UsageError(f"insufficient input following {arg}")
                    yield EvaluationTask(Mode.COMMAND, command)
                case "-" | "--stdin":
                    yield EvaluationTask(Mode.COMMAND, self.read_stdin())
                case "-v" | "--version":
                    yield EvaluationTask(Mode.COMMAND, VERSION_COMMAND)
                case "-h" | "--help":
                    yield EvaluationTask(Mode.COMMAND, HELP_COMMAND)
                case "-i" | "--interactive":
                    yield EvaluationTask(Mode.INTERACTIVE)
                case "":
                    raise UsageError("invalid empty argument")
                case _ if arg.startswith("-"):
                    raise UsageError(f"unrecognised argument {arg}")
                case _:
                    yield EvaluationTask(Mode.FILE, arg)

    def execute(self, task: EvaluationTask) -> bool:
        """Run one task; False means it failed and processing must stop."""
        logger.debug("running %s task %r", task.mode.value, task.payload)
        match task.mode:
            case Mode.INTERACTIVE:
                REPLSession(self.engine, self.editor_factory()).run()
                outcome = NO_VALUE
            case Mode.COMMAND:
                outcome = self.engine.eval(task.payload)
            case Mode.FILE:
                outcome = self.engine.eval_file(task.payload)
        if isinstance(outcome, (StructuredError, GenericFailure)):
            self.reporter.report(outcome)
            return False
        return True

    def run(self, args: List[str]) -> int:
        """Process `args` (program name excluded); return the exit status."""
        args = list(args) or ["--interactive"]
        try:
            for task in self.classify(args):
                if not self.execute(task):
                    return EXIT_FAILURE
        except UsageError as e:
            print(e)
            return EXIT_FAILURE
        except InputError as e:
            self.reporter.report(GenericFailure(str(e)))
            return EXIT_FAILURE
        return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    config = EmberConfig.from_env()
    configure_logging(config.debug)

    engine = Engine(module_paths=config.module_paths, use_paths=config.use_paths)
    register_bridge(engine)

    dispatcher = ArgumentDispatcher(engine, editor_factory=lambda: make_line_editor(config.line_editor))
    try:
        return dispatcher.run(sys.argv[1:] if argv is None else argv)
    except KeyboardInterrupt:
        print("\nExiting.")
        return EXIT_INTERRUPTED
