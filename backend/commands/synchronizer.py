"""
ScriptMenu Tree Synchronizer.

Reconciles the command tree against the scripts directory. Every pass is a
full walk of the current directory listing against the current tree, so it
does not matter which events triggered it, how many were lost, or in which
order they arrived.
Requires Python 3.11+.
"""

import fnmatch
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from commands.models import Group, Leaf, count_leaves, iter_groups, to_dict
from utils.errors import DirectoryListUnavailable, WatchRegistrationFailed
from utils.logger import LoggerMixin


class Watcher(Protocol):
    """What the synchronizer needs from a directory watcher."""

    def watch(self, path: Path) -> bool: ...

    def unwatch(self, path: Path) -> None: ...


@dataclass(slots=True)
class SyncStats:
    """Membership changes made by one synchronization pass."""

    added: int = 0
    removed: int = 0

    @property
    def has_changes(self) -> bool:
        """Check if the pass changed the tree."""
        return bool(self.added or self.removed)


@dataclass(slots=True)
class DirectoryListing:
    """Supported script files and subdirectories of one directory."""

    files: set[str]
    directories: set[str]


class TreeSynchronizer(LoggerMixin):
    """
    Keeps a command tree in step with a directory tree.

    The synchronizer owns the tree. Passes are serialized by one re-entrant
    lock, so the watcher thread and UI actions can trigger them concurrently.
    """

    def __init__(
        self,
        root_path: Path,
        extensions: Iterable[str],
        leaf_action: Callable[[Path], Any],
        watcher: Watcher | None = None,
        ignore_patterns: list[str] | None = None,
    ) -> None:
        """
        Initialize the synchronizer.

        Args:
            root_path: Scripts directory mirrored by the tree
            extensions: Supported script extensions, without the dot
            leaf_action: Called with the script path when a leaf is invoked
            watcher: Registers every group's directory for live updates
            ignore_patterns: Glob patterns for entries to leave out
        """
        self._root_path = Path(root_path)
        self._extensions = frozenset(ext.lower().lstrip(".") for ext in extensions)
        self._leaf_action = leaf_action
        self._watcher = watcher
        self._ignore_patterns = ignore_patterns or []

        self._root = Group(name=self._root_path.name, path=self._root_path)
        self._lock = threading.RLock()
        self._listeners: list[Callable[[SyncStats], Any]] = []

        self._register_watch(self._root_path)

    @property
    def root(self) -> Group:
        """The root group of the command tree."""
        return self._root

    @property
    def root_path(self) -> Path:
        """The scripts directory."""
        return self._root_path

    @property
    def extensions(self) -> frozenset[str]:
        """Lower-cased supported extensions."""
        return self._extensions

    @property
    def lock(self) -> threading.RLock:
        """Lock held for the duration of every pass; hold it to read the tree."""
        return self._lock

    def snapshot(self) -> dict[str, Any]:
        """Render the current tree for clients, consistent with one pass."""
        with self._lock:
            return to_dict(self._root, self._root_path)

    def add_listener(self, listener: Callable[[SyncStats], Any]) -> None:
        """Register a callback for passes that changed the tree."""
        self._listeners.append(listener)

    def synchronize(self) -> SyncStats:
        """
        Run one full synchronization pass.

        Never raises for filesystem problems; they are logged and the
        affected directory counts as empty for this pass.
        """
        with self._lock:
            stats = SyncStats()
            self._synchronize_group(self._root, self._root_path, stats)
            scripts = count_leaves(self._root)

        self.log.info(
            "commands_synchronized",
            added=stats.added,
            removed=stats.removed,
            scripts=scripts,
        )
        if stats.has_changes:
            self._notify(stats)
        return stats

    def refresh(self) -> SyncStats:
        """Manual refresh action."""
        self.log.debug("refresh_requested")
        return self.synchronize()

    def _synchronize_group(self, group: Group, directory: Path, stats: SyncStats) -> None:
        try:
            listing = self._list_directory(directory)
        except DirectoryListUnavailable as e:
            self.log.warning(
                "directory_list_unavailable", path=str(directory), error=e.reason
            )
            listing = DirectoryListing(files=set(), directories=set())

        # Prune children that are gone or changed kind
        for node in list(group.children):
            match node:
                case Leaf():
                    present = node.name in listing.files
                case Group():
                    present = node.name in listing.directories
            if not present:
                group.remove(node)
                stats.removed += 1
                self._release(node)
                self.log.debug("command_removed", path=str(node.path))

        # Add scripts not already in the tree
        names = group.names
        for name in sorted(listing.files - names):
            leaf = Leaf(name=name, path=directory / name, action=self._leaf_action)
            group.insert_sorted(leaf)
            stats.added += 1
            self.log.debug("command_added", path=str(leaf.path))

        # And directories not already in the tree
        names = group.names
        for name in sorted(listing.directories - names):
            child = Group(name=name, path=directory / name)
            group.insert_sorted(child)
            stats.added += 1
            self._register_watch(child.path)
            self.log.debug("group_added", path=str(child.path))

        for node in group.children:
            match node:
                case Group():
                    self._synchronize_group(node, directory / node.name, stats)
                case Leaf():
                    pass

    def _list_directory(self, directory: Path) -> DirectoryListing:
        files: set[str] = set()
        directories: set[str] = set()
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if self._should_ignore(entry.name):
                        continue
                    try:
                        if entry.is_dir():
                            directories.add(entry.name)
                        elif entry.is_file() and self._is_script(entry.name):
                            files.add(entry.name)
                    except OSError:
                        # Entry vanished while listing
                        continue
        except OSError as e:
            raise DirectoryListUnavailable(directory, str(e)) from e
        return DirectoryListing(files=files, directories=directories)

    def _is_script(self, name: str) -> bool:
        """Check if a file name has a supported extension."""
        suffix = Path(name).suffix
        return bool(suffix) and suffix[1:].lower() in self._extensions

    def _should_ignore(self, name: str) -> bool:
        """Check if a directory entry should be left out."""
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self._ignore_patterns)

    def _register_watch(self, path: Path) -> None:
        if self._watcher is None:
            return
        try:
            self._watcher.watch(path)
        except WatchRegistrationFailed as e:
            self.log.warning("watch_registration_failed", path=str(path), error=e.reason)

    def _release(self, node: Leaf | Group) -> None:
        """Drop the watches held by a removed group and its subgroups."""
        if self._watcher is None:
            return
        match node:
            case Group():
                for group in iter_groups(node):
                    self._watcher.unwatch(group.path)
            case Leaf():
                pass

    def _notify(self, stats: SyncStats) -> None:
        for listener in list(self._listeners):
            try:
                listener(stats)
            except Exception as e:
                self.log.error("sync_listener_failed", error=str(e))
