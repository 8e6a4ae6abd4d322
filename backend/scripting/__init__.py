"""
ScriptMenu Scripting Package.

Interpreter lookup, script execution and scripts directory provisioning.
Requires Python 3.11+.
"""

from scripting.bootstrap import ensure_scripts_directory
from scripting.interpreters import Interpreter, InterpreterRegistry, PythonInterpreter
from scripting.runner import ScriptRunner

__all__ = [
    "ensure_scripts_directory",
    "Interpreter",
    "InterpreterRegistry",
    "PythonInterpreter",
    "ScriptRunner",
]
