"""
A pretty-printer for Ember values.
"""
from ember.ember_datatypes import Function

_STR_ESCAPES = {'\\': '\\\\', '"': '\\"', '\n': '\\n', '\t': '\\t', '\r': '\\r'}


class Printer:
    """Formats Ember values as Ember source-like text."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a value."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            if isinstance(obj, Function):
                handler = self._pformat_function
            elif callable(obj):
                handler = self._pformat_builtin
            else:
                # Default to Python's repr for host objects
                handler = repr
        return handler(obj)

    def display(self, obj) -> str:
        """Like pformat, but top-level strings are shown without quotes."""
        if isinstance(obj, str):
            return obj
        return self.pformat(obj)

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: str,
            float: repr,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            list: self._pformat_list,
            Function: self._pformat_function,
        }

    def _pformat_str(self, obj):
        return '"' + ''.join(_STR_ESCAPES.get(ch, ch) for ch in obj) + '"'

    def _pformat_bool(self, obj):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj):
        return 'null'

    def _pformat_list(self, obj):
        return '[' + ', '.join(self.pformat(item) for item in obj) + ']'

    def _pformat_function(self, obj):
        return f"<function {obj.name or 'fun'}({', '.join(obj.params)})>"

    def _pformat_builtin(self, obj):
        name = getattr(obj, '__name__', None) or type(obj).__name__
        return f"<builtin {name.lstrip('_')}>"
