"""
Defines the core data types for the Ember runtime and its host driver.

This module provides the call-frame and evaluation-outcome types shared by
the engine and the driver, the engine's structured error, the scope and
function value types, and the AST node classes built by the transformer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


# =================================================================
# Call frames and evaluation outcomes
# =================================================================

@dataclass(frozen=True)
class CallFrame:
    """One level of the evaluation call chain (1-based line and column)."""
    filename: str
    line: int
    column: int


@dataclass(frozen=True)
class HasValue:
    """An evaluation that produced a value."""
    value: Any


@dataclass(frozen=True)
class NoValue:
    """An evaluation that completed without producing a value."""


NO_VALUE = NoValue()


@dataclass(frozen=True)
class StructuredError:
    """An engine error carrying its call chain, innermost frame first."""
    message: str
    frames: Tuple[CallFrame, ...] = ()


@dataclass(frozen=True)
class GenericFailure:
    """Any other failure raised during an evaluation; message only."""
    message: str


EvaluationOutcome = Union[HasValue, NoValue, StructuredError, GenericFailure]


class EvalError(Exception):
    """Raised by the engine for errors it detects itself.

    `frames` starts with the location of the failing node; each call site
    the error propagates through appends its own location.
    """
    def __init__(self, message: str, frames: Optional[List[CallFrame]] = None):
        super().__init__(message)
        self.message = message
        self.frames: List[CallFrame] = list(frames or [])

    def add_frame(self, frame: Optional[CallFrame]):
        if frame is not None:
            self.frames.append(frame)


# =================================================================
# Runtime values
# =================================================================

class Scope:
    """A lexical scope: a dict of bindings with an optional parent."""
    def __init__(self, parent: Optional['Scope'] = None):
        self.bindings: Dict[str, Any] = {}
        self.parent = parent

    def find_owner(self, name: str) -> Optional['Scope']:
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope
            scope = scope.parent
        return None

    def __contains__(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def __getitem__(self, name: str) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise KeyError(name)
        return owner.bindings[name]

    def __setitem__(self, name: str, value: Any):
        self.bindings[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        owner = self.find_owner(name)
        return owner.bindings[name] if owner is not None else default

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        return f"<Scope bindings=[{keys}]>"


class Function:
    """A function defined in Ember with `def` or `fun`.

    This is a closure, bundling the parameter names, the body block and
    the scope the function was defined in. Instances are plain Python
    callables so host code can invoke them directly.
    """
    def __init__(self, name: Optional[str], params: List[str], body: 'Block', closure: Scope, evaluator):
        self.name = name
        self.params = params
        self.body = body
        self.closure = closure
        self.evaluator = evaluator

    def __call__(self, *args):
        return self.evaluator.invoke(self, list(args))

    def __repr__(self) -> str:
        return f"<function {self.name or 'fun'}({', '.join(self.params)})>"


# =================================================================
# AST nodes
# =================================================================

@dataclass
class Node:
    loc: Optional[CallFrame] = field(default=None, kw_only=True, compare=False)


@dataclass
class Program(Node):
    body: List[Node]


@dataclass
class Block(Node):
    body: List[Node]


@dataclass
class Literal(Node):
    value: Any


@dataclass
class ListExpr(Node):
    items: List[Node]


@dataclass
class Var(Node):
    name: str


@dataclass
class Assign(Node):
    name: str
    value: Node


@dataclass
class BinOp(Node):
    op: str
    left: Node
    right: Node


@dataclass
class UnaryOp(Node):
    op: str
    operand: Node


@dataclass
class Call(Node):
    callee: Node
    args: List[Node]


@dataclass
class Index(Node):
    target: Node
    index: Node


@dataclass
class Lambda(Node):
    params: List[str]
    body: Block


@dataclass
class Def(Node):
    name: str
    params: List[str]
    body: Block


@dataclass
class If(Node):
    cond: Node
    then: Block
    orelse: Optional[Node] = None


@dataclass
class While(Node):
    cond: Node
    body: Block


@dataclass
class Return(Node):
    value: Optional[Node] = None
