import io
import runpy
import sys
from pathlib import Path

import pytest

from ember import __version__
from ember.ember_bridge import USAGE
from ember.ember_cli import (
    EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_SUCCESS, ArgumentDispatcher, EvaluationTask, Mode, UsageError, main,
)

from conftest import CHAIN_SOURCE, ScriptedEditor

ROOT = Path(__file__).resolve().parents[1]


class RecordingDispatcher(ArgumentDispatcher):
    """Records tasks instead of running them."""

    def __init__(self, engine, **kwargs):
        super().__init__(engine, **kwargs)
        self.tasks = []

    def execute(self, task):
        self.tasks.append(task)
        return True


def make_dispatcher(engine, lines=(), stdin=""):
    return ArgumentDispatcher(
        engine,
        editor_factory=lambda: ScriptedEditor(lines),
        stdin=io.StringIO(stdin),
    )


# -- classification -------------------------------------------------------

def test_classification(host_engine):
    dispatcher = make_dispatcher(host_engine, stdin="a = 1\nb = 2\n")
    tasks = list(dispatcher.classify([
        "-c", "1 + 1", "--command", "2", "-v", "--version", "-h", "--help",
        "-i", "--interactive", "-", "script.em",
    ]))
    assert tasks == [
        EvaluationTask(Mode.COMMAND, "1 + 1"),
        EvaluationTask(Mode.COMMAND, "2"),
        EvaluationTask(Mode.COMMAND, "version(0)"),
        EvaluationTask(Mode.COMMAND, "version(0)"),
        EvaluationTask(Mode.COMMAND, "help(-1)"),
        EvaluationTask(Mode.COMMAND, "help(-1)"),
        EvaluationTask(Mode.INTERACTIVE),
        EvaluationTask(Mode.INTERACTIVE),
        EvaluationTask(Mode.COMMAND, "a = 1\nb = 2"),
        EvaluationTask(Mode.FILE, "script.em"),
    ]


def test_command_text_may_look_like_a_flag(host_engine):
    tasks = list(make_dispatcher(host_engine).classify(["-c", "-v"]))
    assert tasks == [EvaluationTask(Mode.COMMAND, "-v")]


@pytest.mark.parametrize("args, message", [
    (["-c"], "insufficient input following -c"),
    (["--command"], "insufficient input following --command"),
    (["-x"], "unrecognised argument -x"),
    (["--bogus"], "unrecognised argument --bogus"),
    ([""], "invalid empty argument"),
])
def test_usage_errors(host_engine, args, message):
    with pytest.raises(UsageError, match=message):
        list(make_dispatcher(host_engine).classify(args))


def test_file_task_needs_a_path():
    with pytest.raises(ValueError):
        EvaluationTask(Mode.FILE, "")


def test_no_arguments_means_interactive(host_engine):
    dispatcher = RecordingDispatcher(host_engine)
    assert dispatcher.run([]) == EXIT_SUCCESS
    assert dispatcher.tasks == [EvaluationTask(Mode.INTERACTIVE)]


# -- running --------------------------------------------------------------

def test_missing_command_text_fails(host_engine, capsys):
    assert make_dispatcher(host_engine).run(["-c"]) == EXIT_FAILURE
    assert capsys.readouterr().out == "insufficient input following -c\n"


def test_unrecognised_flag_skips_the_rest(host_engine, capsys):
    assert make_dispatcher(host_engine).run(["--bogus", "-v"]) == EXIT_FAILURE
    assert capsys.readouterr().out == "unrecognised argument --bogus\n"


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_help_flags(host_engine, capsys, flag):
    assert make_dispatcher(host_engine).run([flag]) == EXIT_SUCCESS
    assert capsys.readouterr().out == USAGE + "\n"


@pytest.mark.parametrize("flag", ["-v", "--version"])
def test_version_flags(host_engine, capsys, flag):
    assert make_dispatcher(host_engine).run([flag]) == EXIT_SUCCESS
    assert capsys.readouterr().out == f"ember: version {__version__}\n"


def test_command_values_are_not_printed(host_engine, capsys):
    assert make_dispatcher(host_engine).run(["-c", "1 + 1"]) == EXIT_SUCCESS
    assert capsys.readouterr().out == ""


def test_tasks_run_in_argument_order(host_engine, capsys):
    args = ["-c", 'print("one")', "-v", "-c", 'print("two")']
    assert make_dispatcher(host_engine).run(args) == EXIT_SUCCESS
    assert capsys.readouterr().out == f'one\nember: version {__version__}\ntwo\n'


def test_earlier_tasks_run_before_later_arguments_are_checked(host_engine, capsys):
    assert make_dispatcher(host_engine).run(["-c", 'print("first")', "--bogus"]) == EXIT_FAILURE
    assert capsys.readouterr().out == "first\nunrecognised argument --bogus\n"


def test_stdin_is_one_command(host_engine, capsys):
    dispatcher = make_dispatcher(host_engine, stdin="a = 1\nb = 2\nprint(a + b)\n")
    assert dispatcher.run(["--stdin"]) == EXIT_SUCCESS
    assert capsys.readouterr().out == "3\n"


def test_stdin_is_read_only_when_reached(host_engine):
    stdin = io.StringIO("print(1)\n")
    dispatcher = ArgumentDispatcher(host_engine, stdin=stdin)
    assert dispatcher.run(["-x", "-"]) == EXIT_FAILURE
    assert stdin.tell() == 0


def test_termination_from_a_task_stops_everything(host_engine, capsys):
    with pytest.raises(SystemExit) as excinfo:
        make_dispatcher(host_engine).run(["-c", "exit(4)", "-c", 'print("never")'])
    assert excinfo.value.code == 4
    assert "never" not in capsys.readouterr().out


def test_command_failure_stops_processing(host_engine, capsys):
    args = ["-c", "nope", "-c", 'print("after")']
    assert make_dispatcher(host_engine).run(args) == EXIT_FAILURE
    assert capsys.readouterr().out == "Error: Can not find object: nope during evaluation at (<eval> 1, 1)\n"


def test_generic_failure_stops_processing(host_engine, capsys):
    assert make_dispatcher(host_engine).run(["-c", "len(5)", "-v"]) == EXIT_FAILURE
    out = capsys.readouterr().out
    assert "has no len()" in out
    assert "version" not in out


def test_file_tasks(host_engine, tmp_path, capsys):
    lib = tmp_path / "lib.em"
    lib.write_text("def greet(name) { print(\"hello \" + name) }\n", encoding="utf-8")
    main_script = tmp_path / "main.em"
    main_script.write_text('greet("ember")\n', encoding="utf-8")
    assert make_dispatcher(host_engine).run([str(lib), str(main_script)]) == EXIT_SUCCESS
    assert capsys.readouterr().out == "hello ember\n"


def test_file_failure_reports_the_full_chain(host_engine, tmp_path, capsys):
    script = tmp_path / "chain.em"
    script.write_text(CHAIN_SOURCE, encoding="utf-8")
    assert make_dispatcher(host_engine).run([str(script), "-v"]) == EXIT_FAILURE
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 3
    assert sum("during evaluation at" in line for line in lines) == 1
    assert lines[0] == f"Error: division by zero during evaluation at ({script} 2, 10)"
    assert lines[1:] == [f"  from {script} (5, 10)", f"  from {script} (7, 1)"]


def test_missing_file_fails(host_engine, tmp_path, capsys):
    missing = tmp_path / "missing.em"
    assert make_dispatcher(host_engine).run([str(missing)]) == EXIT_FAILURE
    assert capsys.readouterr().out == f"Can not open file: {missing}\n"


def test_interactive_session_runs_until_end_of_input(host_engine, capsys):
    dispatcher = make_dispatcher(host_engine, lines=["x = 1", "1+", "x + 1"])
    with pytest.raises(SystemExit) as excinfo:
        dispatcher.run(["-c", "y = 5", "-i", "-c", 'print("never")'])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "1"
    assert out[1].startswith("Parse error")
    assert out[2] == "2"
    assert "never" not in out


def test_interactive_session_sees_earlier_bindings(host_engine, capsys):
    dispatcher = make_dispatcher(host_engine, lines=["y * 2"])
    with pytest.raises(SystemExit):
        dispatcher.run(["-c", "y = 21", "-i"])
    assert capsys.readouterr().out == "42\n"


# -- entry points ---------------------------------------------------------

def test_main(monkeypatch, capsys):
    monkeypatch.delenv("EMBER_DEBUG", raising=False)
    assert main(["-c", "print(6 * 7)"]) == EXIT_SUCCESS
    assert main(["--bogus"]) == EXIT_FAILURE
    assert capsys.readouterr().out == "42\nunrecognised argument --bogus\n"


def test_main_without_arguments_reads_stdin_interactively(monkeypatch, capsys):
    monkeypatch.setenv("EMBER_LINE_EDITOR", "plain")
    monkeypatch.setattr("sys.stdin", io.StringIO("1 + 2\n"))
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out == "eval> 3\neval> "


def test_checkout_script(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["ember.py", "-c", 'print("from script")'])
    with pytest.raises(SystemExit) as excinfo:
        runpy.run_path(str(ROOT / "ember.py"), run_name="__main__")
    assert excinfo.value.code == 0
    assert capsys.readouterr().out == "from script\n"


def test_module_entry_point(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["ember", "-v"])
    with pytest.raises(SystemExit) as excinfo:
        runpy.run_module("ember", run_name="__main__")
    assert excinfo.value.code == 0
    assert capsys.readouterr().out == f"ember: version {__version__}\n"


def test_stdin_keeps_characters_that_are_not_newlines(host_engine, capsys):
    dispatcher = make_dispatcher(host_engine, stdin='print("a\u2028b")\n')
    assert dispatcher.run(["-"]) == EXIT_SUCCESS
    assert capsys.readouterr().out == "a\u2028b\n"


@pytest.mark.parametrize("text, expected", [
    ("", ""),
    ("a", "a"),
    ("a\n", "a"),
    ("a\nb", "a\nb"),
    ("a\n\n", "a\n"),
    ("a\x1eb\x85c\n", "a\x1eb\x85c"),
])
def test_stdin_lines_are_joined_on_newlines_only(host_engine, text, expected):
    assert make_dispatcher(host_engine, stdin=text).read_stdin() == expected


def test_undecodable_stdin_is_reported(host_engine, capsys):
    stdin = io.TextIOWrapper(io.BytesIO(b'x = "caf\xe9"\n'), encoding="utf-8")
    dispatcher = ArgumentDispatcher(host_engine, stdin=stdin)
    assert dispatcher.run(["-c", 'print("before")', "-", "-v"]) == EXIT_FAILURE
    out = capsys.readouterr().out
    assert out.startswith("before\nCan not decode standard input: ")
    assert "version" not in out


def test_undecodable_file_is_reported(host_engine, tmp_path, capsys):
    script = tmp_path / "latin1.em"
    script.write_bytes(b'x = "caf\xe9"\n')
    assert make_dispatcher(host_engine).run([str(script), "-v"]) == EXIT_FAILURE
    assert capsys.readouterr().out == f"Can not decode file: {script} is not UTF-8\n"


def test_main_interrupted(monkeypatch, capsys):
    def interrupt(self, args):
        raise KeyboardInterrupt

    monkeypatch.setattr(ArgumentDispatcher, "run", interrupt)
    assert main(["-i"]) == EXIT_INTERRUPTED
    assert capsys.readouterr().out == "\nExiting.\n"
