"""
ScriptMenu Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from commands.models import CommandNode, Group, Leaf
from commands.synchronizer import TreeSynchronizer
from scripting.interpreters import InterpreterRegistry, PythonInterpreter
from utils.errors import WatchRegistrationFailed


class RecordingInterpreter:
    """Stand-in interpreter for .js scripts that records every evaluation."""

    name = "recording-js"
    extensions = ("js", "JS")

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any], Path]] = []

    def evaluate(self, source: str, bindings: dict[str, Any], path: Path) -> Any:
        self.calls.append((source, bindings, path))
        return source


class FakeWatcher:
    """Records watch registrations instead of talking to the OS."""

    def __init__(self, refuse: set[Path] | None = None) -> None:
        self.watched: list[Path] = []
        self.unwatched: list[Path] = []
        self._refuse = refuse or set()

    def watch(self, path: Path) -> bool:
        if path in self._refuse:
            raise WatchRegistrationFailed(path, "refused")
        self.watched.append(path)
        return True

    def unwatch(self, path: Path) -> None:
        self.unwatched.append(path)


def shape(node: CommandNode) -> Any:
    """Structural view of a command tree: names and nesting only."""
    match node:
        case Leaf():
            return node.name
        case Group():
            return (node.name, [shape(child) for child in node.children])


def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until ``condition`` holds or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return condition()


@pytest.fixture
def recording_interpreter() -> RecordingInterpreter:
    """Create a recording interpreter for .js files."""
    return RecordingInterpreter()


@pytest.fixture
def registry(recording_interpreter: RecordingInterpreter) -> InterpreterRegistry:
    """Create a registry handling .py and .js."""
    registry = InterpreterRegistry()
    registry.register(PythonInterpreter())
    registry.register(recording_interpreter)
    return registry


@pytest.fixture
def scripts_dir(tmp_path: Path) -> Path:
    """Create a scripts directory with nested groups and mixed files."""
    root = tmp_path / "scripts"
    root.mkdir()

    (root / "beta.py").write_text('print("beta")\n')
    (root / "Alpha.js").write_text("print('alpha');\n")
    (root / "gamma.py").write_text('print("gamma")\n')
    (root / "notes.txt").write_text("not a script\n")

    examples = root / "Examples"
    examples.mkdir()
    (examples / "Hello_World.py").write_text('print("Hello World!")\n')
    (examples / "echo.js").write_text("echo();\n")

    deep = root / "nested" / "deeper"
    deep.mkdir(parents=True)
    (deep / "leaf.py").write_text("x = 1\n")
    (root / "nested" / "readme.md").write_text("# nested\n")

    (root / "empty").mkdir()

    return root


@pytest.fixture
def fake_watcher() -> FakeWatcher:
    """Create a watcher that only records registrations."""
    return FakeWatcher()


@pytest.fixture
def invoked() -> list[Path]:
    """Paths passed to the leaf action."""
    return []


@pytest.fixture
def synchronizer(
    scripts_dir: Path,
    registry: InterpreterRegistry,
    fake_watcher: FakeWatcher,
    invoked: list[Path],
) -> TreeSynchronizer:
    """Create a synchronizer over the sample scripts directory."""
    return TreeSynchronizer(
        scripts_dir,
        extensions=registry.extensions(),
        leaf_action=invoked.append,
        watcher=fake_watcher,
    )
