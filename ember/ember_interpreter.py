"""
The Ember tree-walking evaluator.

Errors the evaluator detects itself are raised as `EvalError` carrying the
location of the failing node. As an `EvalError` unwinds through a call to a
user function, the call site appends its own frame, so the finished chain
reads innermost first. Exceptions raised by host functions pass through
untouched, except that a call whose arguments do not fit a host
function's signature is rejected at the call site before it is made.
"""

import inspect
import operator
from typing import Any, List

from ember.ember_datatypes import (
    Assign, BinOp, Block, Call, Def, EvalError, Function, If, Index, Lambda,
    ListExpr, Literal, Node, Program, Return, Scope, UnaryOp, Var, While,
)


class _ReturnSignal(Exception):
    """Unwinds a function body on `return`."""
    def __init__(self, value: Any):
        super().__init__()
        self.value = value


_ARITHMETIC = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
    '%': operator.mod,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
}


def truthy(value: Any) -> bool:
    return value is not None and value is not False and value != 0 and value != ""


def type_name(value: Any) -> str:
    match value:
        case None:
            return "null"
        case bool():
            return "bool"
        case int():
            return "int"
        case float():
            return "float"
        case str():
            return "string"
        case list():
            return "list"
        case Function():
            return "function"
    if callable(value):
        return "builtin"
    return type(value).__name__


class Evaluator:
    """The Ember execution engine."""

    def _error(self, node: Node, message: str) -> EvalError:
        return EvalError(f"Error: {message}", [node.loc] if node.loc else [])

    def run(self, program: Program, scope: Scope) -> Any:
        """Run a whole program; the value of its last statement is the result."""
        try:
            return self._exec_body(program.body, scope)
        except _ReturnSignal as ret:
            # A top-level `return` ends the program with its value.
            return ret.value

    def _exec_body(self, body: List[Node], scope: Scope) -> Any:
        result = None
        for stmt in body:
            result = self.eval(stmt, scope)
        return result

    def eval(self, node: Node, scope: Scope) -> Any:
        match node:
            case Literal():
                return node.value
            case Var():
                return self._eval_var(node, scope)
            case Assign():
                return self._eval_assign(node, scope)
            case BinOp():
                return self._eval_binop(node, scope)
            case UnaryOp():
                return self._eval_unary(node, scope)
            case Call():
                return self._eval_call(node, scope)
            case Index():
                return self._eval_index(node, scope)
            case ListExpr():
                return [self.eval(item, scope) for item in node.items]
            case Lambda():
                return Function(None, node.params, node.body, scope, self)
            case Def():
                scope[node.name] = Function(node.name, node.params, node.body, scope, self)
                return None
            case If():
                return self._eval_if(node, scope)
            case While():
                while truthy(self.eval(node.cond, scope)):
                    self._exec_body(node.body.body, scope)
                return None
            case Block():
                self._exec_body(node.body, scope)
                return None
            case Return():
                value = self.eval(node.value, scope) if node.value is not None else None
                raise _ReturnSignal(value)
        raise self._error(node, f"cannot evaluate {type(node).__name__}")

    def _eval_var(self, node: Var, scope: Scope) -> Any:
        owner = scope.find_owner(node.name)
        if owner is None:
            raise self._error(node, f"Can not find object: {node.name}")
        return owner.bindings[node.name]

    def _eval_assign(self, node: Assign, scope: Scope) -> Any:
        value = self.eval(node.value, scope)
        owner = scope.find_owner(node.name)
        # The outermost scope holds builtins; rebinding one shadows it instead.
        if owner is None or owner.parent is None:
            owner = scope
        owner.bindings[node.name] = value
        return value

    def _eval_if(self, node: If, scope: Scope) -> Any:
        if truthy(self.eval(node.cond, scope)):
            self._exec_body(node.then.body, scope)
        elif node.orelse is not None:
            self.eval(node.orelse, scope)
        return None

    def _eval_binop(self, node: BinOp, scope: Scope) -> Any:
        op = node.op
        left = self.eval(node.left, scope)
        if op == '&&':
            return self.eval(node.right, scope) if truthy(left) else left
        if op == '||':
            return left if truthy(left) else self.eval(node.right, scope)
        right = self.eval(node.right, scope)
        if op == '==':
            return left == right
        if op == '!=':
            return left != right
        if op == '%' and isinstance(left, str):
            raise self._error(node, "Incompatible types for '%': string and " + type_name(right))
        if op == '+' and isinstance(left, str) != isinstance(right, str):
            raise self._error(node, f"Incompatible types for '+': {type_name(left)} and {type_name(right)}")
        try:
            return _ARITHMETIC[op](left, right)
        except ZeroDivisionError:
            raise self._error(node, "division by zero") from None
        except TypeError:
            raise self._error(node, f"Incompatible types for '{op}': {type_name(left)} and {type_name(right)}") from None

    def _eval_unary(self, node: UnaryOp, scope: Scope) -> Any:
        value = self.eval(node.operand, scope)
        if node.op == '!':
            return not truthy(value)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._error(node, f"Cannot negate {type_name(value)}")
        return -value

    def _eval_index(self, node: Index, scope: Scope) -> Any:
        target = self.eval(node.target, scope)
        idx = self.eval(node.index, scope)
        if not isinstance(target, (list, str)):
            raise self._error(node, f"Cannot index {type_name(target)}")
        if isinstance(idx, bool) or not isinstance(idx, int):
            raise self._error(node, f"Index must be an int, not {type_name(idx)}")
        try:
            return target[idx]
        except IndexError:
            raise self._error(node, f"Index out of range: {idx}") from None

    def _eval_call(self, node: Call, scope: Scope) -> Any:
        func = self.eval(node.callee, scope)
        args = [self.eval(arg, scope) for arg in node.args]
        if isinstance(func, Function):
            self._check_arity(node, func, args)
        elif not callable(func):
            raise self._error(node, f"Not a function: {type_name(func)}")
        else:
            self._check_host_arguments(node, func, args)
        try:
            return func(*args)
        except EvalError as e:
            e.add_frame(node.loc)
            raise

    def _check_arity(self, node: Call, func: Function, args: list):
        if len(args) != len(func.params):
            name = func.name or 'fun'
            raise self._error(node, f"Function '{name}' expects {len(func.params)} argument(s), got {len(args)}")

    def _check_host_arguments(self, node: Call, func, args: list):
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            return
        try:
            signature.bind(*args)
        except TypeError as e:
            name = node.callee.name if isinstance(node.callee, Var) else getattr(func, "__name__", "builtin")
            raise self._error(node, f"Bad arguments for '{name}': {e}") from None

    def invoke(self, func: Function, args: list) -> Any:
        """Call a user function with already evaluated arguments."""
        if len(args) != len(func.params):
            raise EvalError(
                f"Error: Function '{func.name or 'fun'}' expects {len(func.params)} argument(s), got {len(args)}"
            )
        local = Scope(func.closure)
        local.bindings.update(zip(func.params, args))
        try:
            self._exec_body(func.body.body, local)
        except _ReturnSignal as ret:
            return ret.value
        return None
