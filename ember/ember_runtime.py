"""
The Ember engine facade.

`Engine` is the single long-lived evaluation context the host driver works
against. It owns the global scope, the function registry and the parser,
and turns every evaluation attempt into one `EvaluationOutcome`.
"""

import inspect
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from ember.ember_datatypes import (
    CallFrame, EvalError, EvaluationOutcome, GenericFailure, HasValue,
    NO_VALUE, Program, Scope, StructuredError,
)
from ember.ember_interpreter import Evaluator, type_name
from ember.ember_printer import Printer
from ember.ember_transformer import EmberTransformer

logger = logging.getLogger(__name__)

GRAMMAR_PATH = Path(__file__).with_name("ember.lark")
EVAL_FILENAME = "<eval>"


# ===================================================================
# 1. Standard library
# ===================================================================

class StdLib:
    """Host functions every engine starts with.

    Each `_name` method is registered under `name`.
    """

    def __init__(self, engine: 'Engine'):
        self.engine = engine

    def install(self):
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                self.engine.add(member, name[1:])

    def _print(self, value):
        print(self.engine.printer.display(value))

    def _to_string(self, value):
        return self.engine.printer.display(value)

    def _len(self, collection):
        return len(collection)

    def _type_of(self, value):
        return type_name(value)

    def _dump_system(self):
        for name in self.engine.function_names():
            print(name)

    def _dump_object(self, value):
        print(f"{type_name(value)}: {self.engine.printer.pformat(value)}")


# ===================================================================
# 2. Engine
# ===================================================================

def _parse_error(e: UnexpectedInput, filename: str) -> EvalError:
    match e:
        case UnexpectedToken() if e.token.type == '$END':
            detail = "unexpected end of input"
        case UnexpectedToken() if e.token.value == '\n':
            detail = "unexpected end of line"
        case UnexpectedToken():
            detail = f"unexpected '{e.token.value}'"
        case UnexpectedCharacters():
            detail = f"unexpected character '{e.char}'"
        case _:
            detail = "unexpected end of input"
    line, column = getattr(e, 'line', None), getattr(e, 'column', None)
    frames = []
    if isinstance(line, int) and isinstance(column, int) and line > 0:
        frames.append(CallFrame(filename, line, column))
    return EvalError(f"Parse error: {detail}", frames)


class Engine:
    """Parses and evaluates Ember code against one persistent global scope."""

    _parser: Optional[Lark] = None

    def __init__(self, module_paths: Optional[Sequence[str]] = None, use_paths: Optional[Sequence[str]] = None):
        # Search paths are opaque to the engine; they are only kept for hosts
        # and scripts that want to inspect them.
        self.module_paths: List[str] = list(module_paths) if module_paths else [""]
        self.use_paths: List[str] = list(use_paths) if use_paths else [""]

        if Engine._parser is None:
            Engine._parser = Lark.open(str(GRAMMAR_PATH), parser="lalr", propagate_positions=True)
        self.parser = Engine._parser

        self.root_scope = Scope()
        self.global_scope = Scope(self.root_scope)
        self.evaluator = Evaluator()
        self.printer = Printer()
        StdLib(self).install()
        logger.debug("engine created (module_paths=%r, use_paths=%r)", self.module_paths, self.use_paths)

    # -- function registry ------------------------------------------------

    def add(self, function: Callable, name: str):
        """Register a host callable so evaluated code can call it by name."""
        if not callable(function):
            raise TypeError(f"cannot register non-callable {function!r} as '{name}'")
        self.root_scope[name] = function

    def get_function(self, name: str) -> Optional[Callable]:
        """Return the callable bound to `name`, or None if there is none."""
        value = self.global_scope.get(name)
        return value if callable(value) else None

    def get_host_function(self, name: str) -> Optional[Callable]:
        """Return the host callable registered under `name`, ignoring script bindings."""
        value = self.root_scope.bindings.get(name)
        return value if callable(value) else None

    def call_function(self, name: str, *args) -> Any:
        function = self.get_function(name)
        if function is None:
            raise EvalError(f"Error: Can not find function: {name}")
        return function(*args)

    def function_names(self) -> List[str]:
        return sorted(name for name, value in self.root_scope.bindings.items() if callable(value))

    # -- evaluation -------------------------------------------------------

    def parse(self, source: str, filename: str = EVAL_FILENAME) -> Program:
        try:
            tree = self.parser.parse(source)
        except UnexpectedInput as e:
            raise _parse_error(e, filename) from None
        return EmberTransformer(filename).transform(tree)

    def eval(self, text: str) -> EvaluationOutcome:
        """Evaluate a piece of Ember source text."""
        return self._run(text, EVAL_FILENAME)

    def eval_file(self, path) -> EvaluationOutcome:
        """Evaluate the Ember script stored at `path`."""
        try:
            source = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            logger.debug("could not read %s: %s", path, e)
            return GenericFailure(f"Can not open file: {path}")
        except UnicodeDecodeError as e:
            logger.debug("could not decode %s: %s", path, e)
            return GenericFailure(f"Can not decode file: {path} is not UTF-8")
        return self._run(source, str(path))

    def _run(self, source: str, filename: str) -> EvaluationOutcome:
        logger.debug("evaluating %s (%d chars)", filename, len(source))
        try:
            program = self.parse(source, filename)
            value = self.evaluator.run(program, self.global_scope)
        except EvalError as e:
            return StructuredError(e.message, tuple(e.frames))
        except Exception as e:
            logger.debug("evaluation of %s failed", filename, exc_info=True)
            return GenericFailure(str(e) or type(e).__name__)
        if value is None:
            return NO_VALUE
        return HasValue(value)
