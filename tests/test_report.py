import io

import pytest

from ember.ember_datatypes import CallFrame, GenericFailure, HasValue, StructuredError
from ember.ember_report import ErrorReporter, format_interactive, format_traceback

from conftest import CHAIN_SOURCE

THREE_FRAMES = StructuredError(
    "Error: division by zero",
    (
        CallFrame("lib.em", 2, 10),
        CallFrame("lib.em", 5, 10),
        CallFrame("main.em", 7, 1),
    ),
)


def test_traceback_shows_the_whole_chain_in_order():
    assert format_traceback(THREE_FRAMES).splitlines() == [
        "Error: division by zero during evaluation at (lib.em 2, 10)",
        "  from lib.em (5, 10)",
        "  from main.em (7, 1)",
    ]


def test_interactive_shows_only_the_innermost_frame():
    assert format_interactive(THREE_FRAMES) == "Error: division by zero during evaluation at (2, 10)"


@pytest.mark.parametrize("formatter", [format_traceback, format_interactive])
def test_errors_without_frames_are_message_only(formatter):
    assert formatter(StructuredError("Error: oops")) == "Error: oops"
    assert formatter(GenericFailure("kaput")) == "kaput"


@pytest.mark.parametrize("formatter", [format_traceback, format_interactive])
def test_non_errors_are_rejected(formatter):
    with pytest.raises(TypeError):
        formatter(HasValue(1))


def test_reporter_writes_to_its_stream():
    stream = io.StringIO()
    ErrorReporter(stream).report(THREE_FRAMES)
    assert stream.getvalue() == format_traceback(THREE_FRAMES) + "\n"


def test_reporter_defaults_to_stdout(capsys):
    ErrorReporter().report(GenericFailure("kaput"))
    assert capsys.readouterr().out == "kaput\n"


def test_engine_chain_reports_one_location_and_two_callers(engine, tmp_path):
    script = tmp_path / "chain.em"
    script.write_text(CHAIN_SOURCE, encoding="utf-8")
    lines = format_traceback(engine.eval_file(script)).splitlines()
    assert len(lines) == 3
    assert lines[0] == f"Error: division by zero during evaluation at ({script} 2, 10)"
    assert lines[1:] == [f"  from {script} (5, 10)", f"  from {script} (7, 1)"]
