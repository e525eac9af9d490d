import pytest

from ember.ember_bridge import register_bridge
from ember.ember_runtime import Engine


class ScriptedEditor:
    """A line editor fed from a list, standing in for a terminal."""

    def __init__(self, lines=()):
        self.lines = list(lines)
        self.at_eof = False
        self.history = []
        self.reads = 0

    def read_line(self, prompt):
        self.reads += 1
        if not self.lines:
            self.at_eof = True
            return None
        return self.lines.pop(0)

    def add_history(self, line):
        self.history.append(line)


@pytest.fixture
def engine():
    """A bare engine with only the standard library."""
    return Engine()


@pytest.fixture
def host_engine():
    """An engine with the host bridge functions registered, as the driver builds it."""
    eng = Engine()
    register_bridge(eng)
    return eng


# Three nested calls; the fault is in `inner`.
CHAIN_SOURCE = """def inner() {
  return 1 / 0
}
def middle() {
  return inner()
}
middle()
"""
