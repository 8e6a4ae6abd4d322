"""
ScriptMenu Script Runner.

Executes one script file with the interpreter registered for its extension.
Requires Python 3.11+.
"""

import time
from pathlib import Path
from typing import Any

from scripting.interpreters import InterpreterRegistry
from utils.errors import ScriptExecutionFailed, UnsupportedScriptType
from utils.logger import LoggerMixin, script_context


class ScriptRunner(LoggerMixin):
    """
    Runs scripts with the host's bindings in scope.

    Each script sees ``config``, ``machine`` and ``gui``. The runner never
    looks at these handles. Files are re-read on every run so edits apply
    without a restart.
    """

    def __init__(
        self,
        registry: InterpreterRegistry,
        config: Any = None,
        machine: Any = None,
        gui: Any = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            registry: Interpreter lookup by extension
            config: Global configuration handle
            machine: Current machine/device handle
            gui: Top-level UI handle
        """
        self._registry = registry
        self._config = config
        self._machine = machine
        self._gui = gui

    def bindings(self) -> dict[str, Any]:
        """Build a fresh binding set for one execution."""
        return {
            "config": self._config,
            "machine": self._machine,
            "gui": self._gui,
        }

    def run(self, path: Path) -> Any:
        """
        Execute a script file.

        Args:
            path: Script to run

        Returns:
            Whatever the interpreter returns

        Raises:
            UnsupportedScriptType: No interpreter handles the extension
            ScriptExecutionFailed: Reading or evaluating the script raised
        """
        path = Path(path)
        extension = path.suffix[1:].lower()
        interpreter = self._registry.for_extension(extension) if extension else None
        if interpreter is None:
            raise UnsupportedScriptType(path, extension)

        self.log.info("script_started", path=str(path), interpreter=interpreter.name)
        start_time = time.perf_counter()

        try:
            source = path.read_text(encoding="utf-8")
            with script_context(path):
                result = interpreter.evaluate(source, self.bindings(), path)
        except (Exception, SystemExit) as e:
            # sys.exit() in a script ends the script, not the host
            self.log.warning("script_failed", path=str(path), error=str(e))
            raise ScriptExecutionFailed(path, e) from e

        self.log.info(
            "script_completed",
            path=str(path),
            time_seconds=round(time.perf_counter() - start_time, 3),
        )
        return result
