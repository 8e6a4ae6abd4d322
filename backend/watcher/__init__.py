"""
ScriptMenu Directory Watcher Package.

File system monitoring that keeps the command tree live.
Requires Python 3.11+.
"""

from watcher.directory_watcher import DirectoryWatcher

__all__ = ["DirectoryWatcher"]
