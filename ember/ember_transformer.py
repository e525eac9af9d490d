"""
Transforms the lark parse tree into the Ember AST from ember_datatypes.
"""

from lark import Token, Transformer, v_args

from ember.ember_datatypes import (
    Assign, BinOp, Block, Call, CallFrame, Def, If, Index, Lambda, ListExpr,
    Literal, Program, Return, UnaryOp, Var, While,
)

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\', '0': '\0'}


def unescape(text: str) -> str:
    """Strip the quotes off a STRING token and resolve its escapes."""
    body = text[1:-1]
    out = []
    chars = iter(body)
    for ch in chars:
        if ch == '\\':
            nxt = next(chars, '')
            out.append(_ESCAPES.get(nxt, '\\' + nxt))
        else:
            out.append(ch)
    return ''.join(out)


@v_args(meta=True)
class EmberTransformer(Transformer):
    """Builds AST nodes, stamping each with its source location."""

    def __init__(self, filename: str = "<eval>"):
        super().__init__()
        self.filename = filename

    def _loc(self, meta):
        if getattr(meta, 'empty', True):
            return None
        return CallFrame(self.filename, meta.line, meta.column)

    def _token_loc(self, token: Token):
        line = getattr(token, 'line', None)
        column = getattr(token, 'column', None)
        if line is None or column is None:
            return None
        return CallFrame(self.filename, line, column)

    def _binop(self, op, meta, children):
        left, right = children
        return BinOp(op, left, right, loc=self._loc(meta))

    # Structure
    def start(self, meta, children):
        return Program(list(children), loc=self._loc(meta))

    def block(self, meta, children):
        return Block(list(children), loc=self._loc(meta))

    def params(self, meta, children):
        return [str(name) for name in children]

    def args(self, meta, children):
        return list(children)

    # Statements
    def def_stmt(self, meta, children):
        name, params, body = children
        return Def(str(name), params, body, loc=self._loc(meta))

    def if_stmt(self, meta, children):
        cond, then, *rest = children
        return If(cond, then, rest[0] if rest else None, loc=self._loc(meta))

    def while_stmt(self, meta, children):
        cond, body = children
        return While(cond, body, loc=self._loc(meta))

    def return_stmt(self, meta, children):
        return Return(children[0] if children else None, loc=self._loc(meta))

    def assign(self, meta, children):
        name, value = children
        return Assign(str(name), value, loc=self._loc(meta))

    # Operators
    def or_(self, meta, children): return self._binop('||', meta, children)
    def and_(self, meta, children): return self._binop('&&', meta, children)
    def eq(self, meta, children): return self._binop('==', meta, children)
    def ne(self, meta, children): return self._binop('!=', meta, children)
    def lt(self, meta, children): return self._binop('<', meta, children)
    def le(self, meta, children): return self._binop('<=', meta, children)
    def gt(self, meta, children): return self._binop('>', meta, children)
    def ge(self, meta, children): return self._binop('>=', meta, children)
    def add(self, meta, children): return self._binop('+', meta, children)
    def sub(self, meta, children): return self._binop('-', meta, children)
    def mul(self, meta, children): return self._binop('*', meta, children)
    def div(self, meta, children): return self._binop('/', meta, children)
    def mod(self, meta, children): return self._binop('%', meta, children)

    def neg(self, meta, children):
        return UnaryOp('-', children[0], loc=self._loc(meta))

    def not_(self, meta, children):
        return UnaryOp('!', children[0], loc=self._loc(meta))

    def call(self, meta, children):
        callee, args = children
        return Call(callee, args, loc=self._loc(meta))

    def index(self, meta, children):
        target, idx = children
        return Index(target, idx, loc=self._loc(meta))

    # Atoms
    def number(self, meta, children):
        tok = children[0]
        text = str(tok)
        # Integers stay exact; anything with a fraction or exponent is a float.
        value = int(text) if text.isdigit() else float(text)
        return Literal(value, loc=self._token_loc(tok))

    def string(self, meta, children):
        tok = children[0]
        return Literal(unescape(str(tok)), loc=self._token_loc(tok))

    def true(self, meta, children):
        return Literal(True, loc=self._loc(meta))

    def false(self, meta, children):
        return Literal(False, loc=self._loc(meta))

    def null(self, meta, children):
        return Literal(None, loc=self._loc(meta))

    def var(self, meta, children):
        tok = children[0]
        return Var(str(tok), loc=self._token_loc(tok))

    def list_(self, meta, children):
        return ListExpr(children[0], loc=self._loc(meta))

    def lambda_(self, meta, children):
        params, body = children
        return Lambda(params, body, loc=self._loc(meta))
