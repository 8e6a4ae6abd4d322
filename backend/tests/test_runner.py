"""
Tests for Script Runner, Interpreter Registry and Bootstrap.

Requires Python 3.11+.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest
import structlog

import scripting.interpreters as interpreters_module
from commands.synchronizer import TreeSynchronizer
from conftest import RecordingInterpreter, shape
from scripting.bootstrap import EXAMPLE_SCRIPTS, ensure_scripts_directory
from scripting.interpreters import InterpreterRegistry, PythonInterpreter
from scripting.runner import ScriptRunner
from utils.errors import ScriptExecutionFailed, UnsupportedScriptType


class TestScriptRunner:
    """Test cases for ScriptRunner."""

    @pytest.fixture
    def handles(self) -> SimpleNamespace:
        """Create distinct opaque host handles."""
        return SimpleNamespace(config=object(), machine=object(), gui=object())

    @pytest.fixture
    def runner(self, registry: InterpreterRegistry, handles: SimpleNamespace) -> ScriptRunner:
        """Create a runner with the host handles."""
        return ScriptRunner(
            registry,
            config=handles.config,
            machine=handles.machine,
            gui=handles.gui,
        )

    def test_bindings_pass_through(self, runner: ScriptRunner, handles: SimpleNamespace, tmp_path: Path):
        """Test a script sees exactly the handles given to the runner."""
        script = tmp_path / "identities.py"
        script.write_text("seen = (id(config), id(machine), id(gui))\n")

        namespace = runner.run(script)

        assert namespace["seen"] == (id(handles.config), id(handles.machine), id(handles.gui))
        assert namespace["__file__"] == str(script)
        assert namespace["__name__"] == "__main__"

    def test_bindings_are_fresh(self, runner: ScriptRunner, tmp_path: Path):
        """Test globals set by one run do not leak into the next."""
        first = tmp_path / "first.py"
        first.write_text("leaked = True\n")
        second = tmp_path / "second.py"
        second.write_text("found = 'leaked' in globals()\n")

        runner.run(first)

        assert runner.run(second)["found"] is False

    def test_dispatch_by_extension(
        self, runner: ScriptRunner, recording_interpreter: RecordingInterpreter, handles: SimpleNamespace, tmp_path: Path
    ):
        """Test the interpreter is chosen by the lower-cased extension."""
        script = tmp_path / "Upper.JS"
        script.write_text("doThing();")

        assert runner.run(script) == "doThing();"

        source, bindings, path = recording_interpreter.calls[0]
        assert path == script
        assert bindings == {"config": handles.config, "machine": handles.machine, "gui": handles.gui}

    def test_unsupported_type(self, runner: ScriptRunner, tmp_path: Path):
        """Test a file without an interpreter is rejected."""
        script = tmp_path / "notes.txt"
        script.write_text("hello")

        with pytest.raises(UnsupportedScriptType) as exc_info:
            runner.run(script)

        assert exc_info.value.extension == "txt"

    def test_no_extension(self, runner: ScriptRunner, tmp_path: Path):
        """Test a file without any extension is rejected."""
        script = tmp_path / "Makefile"
        script.write_text("all:")

        with pytest.raises(UnsupportedScriptType):
            runner.run(script)

    def test_unsupported_type_leaves_tree_unchanged(
        self, runner: ScriptRunner, registry: InterpreterRegistry, scripts_dir: Path
    ):
        """Test a failed invocation does not touch the command tree."""
        synchronizer = TreeSynchronizer(
            scripts_dir,
            extensions=registry.extensions(),
            leaf_action=runner.run,
        )
        synchronizer.synchronize()
        before = shape(synchronizer.root)

        with pytest.raises(UnsupportedScriptType):
            runner.run(scripts_dir / "notes.txt")

        synchronizer.synchronize()
        assert shape(synchronizer.root) == before

    def test_execution_failure_wraps_cause(self, runner: ScriptRunner, tmp_path: Path):
        """Test errors raised by the script surface as ScriptExecutionFailed."""
        script = tmp_path / "broken.py"
        script.write_text("raise KeyError('missing feeder')\n")

        with pytest.raises(ScriptExecutionFailed) as exc_info:
            runner.run(script)

        assert isinstance(exc_info.value.cause, KeyError)
        assert exc_info.value.__cause__ is exc_info.value.cause

    def test_syntax_error_wraps_cause(self, runner: ScriptRunner, tmp_path: Path):
        """Test scripts that do not compile are reported the same way."""
        script = tmp_path / "bad.py"
        script.write_text("def (:\n")

        with pytest.raises(ScriptExecutionFailed) as exc_info:
            runner.run(script)

        assert isinstance(exc_info.value.cause, SyntaxError)

    def test_exit_wraps_cause(self, runner: ScriptRunner, tmp_path: Path):
        """Test a script calling sys.exit() fails like any other error."""
        script = tmp_path / "quit.py"
        script.write_text("import sys\nsys.exit(2)\n")

        with pytest.raises(ScriptExecutionFailed) as exc_info:
            runner.run(script)

        assert isinstance(exc_info.value.cause, SystemExit)
        assert exc_info.value.cause.code == 2

    def test_keyboard_interrupt_propagates(self, runner: ScriptRunner, tmp_path: Path):
        """Test an interrupt still reaches the host unwrapped."""
        script = tmp_path / "interrupt.py"
        script.write_text("raise KeyboardInterrupt\n")

        with pytest.raises(KeyboardInterrupt):
            runner.run(script)

    def test_missing_file(self, runner: ScriptRunner, tmp_path: Path):
        """Test a script deleted before running fails with its cause."""
        with pytest.raises(ScriptExecutionFailed) as exc_info:
            runner.run(tmp_path / "gone.py")

        assert isinstance(exc_info.value.cause, FileNotFoundError)

    def test_logs_inside_script_are_tagged(self, runner: ScriptRunner, tmp_path: Path):
        """Test the running script is bound to the logging context."""
        script = tmp_path / "tagged.py"
        script.write_text("import structlog\nseen = structlog.contextvars.get_contextvars()\n")

        namespace = runner.run(script)

        assert namespace["seen"]["script"] == str(script)
        assert "script" not in structlog.contextvars.get_contextvars()

    def test_edits_apply_without_restart(self, runner: ScriptRunner, tmp_path: Path):
        """Test the file is re-read on every run."""
        script = tmp_path / "counter.py"
        script.write_text("value = 1\n")
        assert runner.run(script)["value"] == 1

        script.write_text("value = 2\n")
        assert runner.run(script)["value"] == 2


class TestInterpreterRegistry:
    """Test cases for InterpreterRegistry."""

    def test_extensions_are_lowercase_and_deduplicated(self, registry: InterpreterRegistry):
        """Test the supported-extension set."""
        assert registry.extensions() == frozenset({"py", "js"})

    def test_lookup_ignores_case_and_dot(self, registry: InterpreterRegistry):
        """Test extension lookup normalization."""
        assert isinstance(registry.for_extension(".PY"), PythonInterpreter)
        assert registry.for_extension("txt") is None

    def test_first_registration_wins(self, registry: InterpreterRegistry):
        """Test a later interpreter does not take over a claimed extension."""
        other = RecordingInterpreter()
        other.extensions = ("py",)
        registry.register(other)

        assert isinstance(registry.for_extension("py"), PythonInterpreter)
        assert len(registry) == 3

    def test_entry_points(self, monkeypatch: pytest.MonkeyPatch):
        """Test interpreters are discovered from entry points, skipping broken ones."""

        class FakeEntryPoint:
            def __init__(self, name, target):
                self.name = name
                self._target = target

            def load(self):
                if isinstance(self._target, Exception):
                    raise self._target
                return self._target

        advertised = [
            FakeEntryPoint("recording", RecordingInterpreter),
            FakeEntryPoint("broken", ImportError("no such module")),
            FakeEntryPoint("invalid", object()),
        ]
        monkeypatch.setattr(
            interpreters_module,
            "entry_points",
            lambda group: advertised if group == "scriptmenu.interpreters" else [],
        )

        registry = InterpreterRegistry.default()

        assert registry.extensions() == frozenset({"py", "js"})
        assert [i.name for i in registry] == ["python", "recording-js"]


class TestBootstrap:
    """Test cases for scripts directory provisioning."""

    def test_creates_and_seeds(self, tmp_path: Path):
        """Test a new directory gets the bundled examples."""
        directory = tmp_path / "config" / "scripts"

        assert ensure_scripts_directory(directory) is True

        examples = directory / "Examples"
        assert sorted(p.name for p in examples.iterdir()) == sorted(EXAMPLE_SCRIPTS)
        assert "Hello World" in (examples / "Hello_World.py").read_text()

    def test_existing_directory_untouched(self, scripts_dir: Path):
        """Test an existing directory is left alone."""
        before = sorted(p.name for p in scripts_dir.iterdir())

        assert ensure_scripts_directory(scripts_dir) is False
        assert sorted(p.name for p in scripts_dir.iterdir()) == before

    def test_without_examples(self, tmp_path: Path):
        """Test seeding can be turned off."""
        directory = tmp_path / "scripts"

        ensure_scripts_directory(directory, seed_examples=False)

        assert list(directory.iterdir()) == []

    def test_seeded_examples_run(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        """Test the bundled examples run without a machine attached."""
        directory = tmp_path / "scripts"
        ensure_scripts_directory(directory)
        registry = InterpreterRegistry()
        registry.register(PythonInterpreter())
        runner = ScriptRunner(registry)

        for name in EXAMPLE_SCRIPTS:
            runner.run(directory / "Examples" / name)

        out = capsys.readouterr().out
        assert "Hello World!" in out
        assert "No machine attached" in out
