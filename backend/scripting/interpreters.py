"""
ScriptMenu Interpreter Registry.

Maps script file extensions to interpreters. Interpreters are built in or
discovered through the ``scriptmenu.interpreters`` entry-point group.
Requires Python 3.11+.
"""

from collections.abc import Iterator
from importlib.metadata import entry_points
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from utils.logger import LoggerMixin

ENTRY_POINT_GROUP = "scriptmenu.interpreters"


@runtime_checkable
class Interpreter(Protocol):
    """Something that can evaluate a script body."""

    name: str
    extensions: tuple[str, ...]

    def evaluate(self, source: str, bindings: dict[str, Any], path: Path) -> Any:
        """Evaluate ``source`` with ``bindings`` visible to the script."""
        ...


class PythonInterpreter:
    """
    Runs Python scripts.

    The script executes as ``__main__`` in a fresh globals dict seeded with the
    bindings. The resulting globals are returned, as ``runpy.run_path`` does.
    """

    name = "python"
    extensions = ("py",)

    def evaluate(self, source: str, bindings: dict[str, Any], path: Path) -> dict[str, Any]:
        code = compile(source, str(path), "exec")
        namespace: dict[str, Any] = {
            "__name__": "__main__",
            "__file__": str(path),
            **bindings,
        }
        exec(code, namespace)
        return namespace


def _normalize(extension: str) -> str:
    return extension.lower().lstrip(".")


class InterpreterRegistry(LoggerMixin):
    """Registered interpreters, looked up by lower-cased extension."""

    def __init__(self) -> None:
        self._interpreters: list[Interpreter] = []
        self._by_extension: dict[str, Interpreter] = {}

    @classmethod
    def default(cls) -> "InterpreterRegistry":
        """Create a registry with the built-in and installed interpreters."""
        registry = cls()
        registry.register(PythonInterpreter())
        registry.load_entry_points()
        return registry

    def register(self, interpreter: Interpreter) -> None:
        """
        Register an interpreter for its extensions.

        An extension already claimed keeps its first interpreter.
        """
        self._interpreters.append(interpreter)
        for ext in interpreter.extensions:
            self._by_extension.setdefault(_normalize(ext), interpreter)
        self.log.debug(
            "interpreter_registered",
            interpreter=interpreter.name,
            extensions=list(interpreter.extensions),
        )

    def load_entry_points(self) -> int:
        """
        Register interpreters advertised by installed distributions.

        Each entry point may name an interpreter class or instance.
        Entry points that fail to load are logged and skipped.

        Returns:
            Number of interpreters registered
        """
        loaded = 0
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                target = ep.load()
                interpreter = target() if isinstance(target, type) else target
            except Exception as e:
                self.log.warning("interpreter_load_failed", entry_point=ep.name, error=str(e))
                continue
            if not isinstance(interpreter, Interpreter):
                self.log.warning("interpreter_invalid", entry_point=ep.name)
                continue
            self.register(interpreter)
            loaded += 1
        return loaded

    def extensions(self) -> frozenset[str]:
        """All handled extensions, lower-cased and without the dot."""
        return frozenset(self._by_extension)

    def for_extension(self, extension: str) -> Interpreter | None:
        """Get the interpreter for an extension, if any."""
        return self._by_extension.get(_normalize(extension))

    @property
    def interpreters(self) -> list[Interpreter]:
        """Registered interpreters, in registration order."""
        return list(self._interpreters)

    def __iter__(self) -> Iterator[Interpreter]:
        return iter(self._interpreters)

    def __len__(self) -> int:
        return len(self._interpreters)
