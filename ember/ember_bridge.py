"""
Host bridge functions: driver functionality callable from evaluated code.
"""

import ember

USAGE = """\
usage: ember [option]+
  -h | --help
  -i | --interactive
  -c | --command cmd
  -v | --version
  -    --stdin"""

TUTORIAL = """\
Ember evaluator.  To evaluate an expression, type it and press <enter>.
Additionally, you can inspect the runtime system using:
  dump_system() - outputs all functions registered to the system
  dump_object(x) - dumps information about the given symbol"""


def request_exit(code=0):
    """Ask for process termination. This is a request, not an error."""
    raise SystemExit(int(code))


def show_help(n):
    # Negative selects the terse usage, anything else the tutorial.
    print(USAGE if n < 0 else TUTORIAL)


def show_version(n):
    print(f"ember: version {ember.__version__}")


def throws_exception(f):
    """Return True iff calling `f` with no arguments raises; never raises."""
    try:
        f()
    except Exception:
        return True
    return False


def register_bridge(engine):
    """Install the bridge functions into `engine`. Called once at startup."""
    engine.add(request_exit, "exit")
    engine.add(request_exit, "quit")
    engine.add(show_help, "help")
    engine.add(show_version, "version")
    engine.add(throws_exception, "throws_exception")
