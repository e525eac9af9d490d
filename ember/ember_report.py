"""
Error text for failed evaluations.

The interactive session shows only the innermost frame of a structured
error; command and file evaluation show the whole call chain. Both formats
live here so the difference stays visible.
"""

import sys
from typing import Optional, TextIO

from ember.ember_datatypes import EvaluationOutcome, GenericFailure, StructuredError


def format_interactive(outcome: EvaluationOutcome) -> str:
    """One-line summary used by the REPL: message plus the innermost (line, column)."""
    match outcome:
        case StructuredError(message=message, frames=frames) if frames:
            top = frames[0]
            return f"{message} during evaluation at ({top.line}, {top.column})"
        case StructuredError(message=message) | GenericFailure(message=message):
            return message
    raise TypeError(f"not an error outcome: {outcome!r}")


def format_traceback(outcome: EvaluationOutcome) -> str:
    """Full report used for command and file evaluation."""
    match outcome:
        case StructuredError(message=message, frames=frames) if frames:
            top, *callers = frames
            lines = [f"{message} during evaluation at ({top.filename} {top.line}, {top.column})"]
            lines.extend(f"  from {frame.filename} ({frame.line}, {frame.column})" for frame in callers)
            return "\n".join(lines)
        case StructuredError(message=message) | GenericFailure(message=message):
            return message
    raise TypeError(f"not an error outcome: {outcome!r}")


class ErrorReporter:
    """Reports failed command/file evaluations with their full call chain."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved late so a replaced sys.stdout is honoured.
        return self._stream if self._stream is not None else sys.stdout

    def report(self, outcome: EvaluationOutcome):
        print(format_traceback(outcome), file=self.stream)
