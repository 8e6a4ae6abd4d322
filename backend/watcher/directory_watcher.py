"""
ScriptMenu Directory Watcher.

Per-directory file system monitoring using watchdog. Every burst of events is
coalesced into a single "something changed" signal for one consumer.
Requires Python 3.11+.
"""

import queue
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from utils.config import get_settings
from utils.errors import WatchRegistrationFailed
from utils.logger import LoggerMixin

# Open/close notifications are left out so that reading a script does not
# cause a resynchronization.
CHANGE_EVENT_TYPES = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}
)


class ChangeSignalHandler(FileSystemEventHandler):
    """Queues one token per content-changing event."""

    def __init__(self, events: "queue.Queue[str]") -> None:
        super().__init__()
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in CHANGE_EVENT_TYPES:
            self._events.put_nowait(event.event_type)


class DirectoryWatcher(LoggerMixin):
    """
    Watches individual directories and signals a consumer on change.

    Directories are registered one at a time and non-recursively; the
    consumer registers every subdirectory it discovers. A background thread
    blocks until an event arrives, waits the coalesce delay, drains the queue
    and calls ``on_change`` once for the whole burst.
    """

    def __init__(
        self,
        on_change: Callable[[], Any] | None = None,
        coalesce_delay_ms: int | None = None,
        poll_interval_ms: int | None = None,
    ) -> None:
        """
        Initialize the directory watcher.

        Args:
            on_change: Callback invoked once per burst of events
            coalesce_delay_ms: Time to let a burst settle before signalling
            poll_interval_ms: How often the delivery thread checks for stop
        """
        settings = get_settings()

        self._on_change = on_change
        self._coalesce_delay = (
            coalesce_delay_ms
            if coalesce_delay_ms is not None
            else settings.watcher.coalesce_delay_ms
        ) / 1000.0
        self._poll_interval = (
            poll_interval_ms or settings.watcher.poll_interval_ms
        ) / 1000.0

        self._events: queue.Queue[str] = queue.Queue()
        self._handler = ChangeSignalHandler(self._events)
        self._observer = Observer()
        self._watches: dict[Path, ObservedWatch | None] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def set_callback(self, callback: Callable[[], Any]) -> None:
        """Set or update the change callback."""
        self._on_change = callback

    def watch(self, path: Path) -> bool:
        """
        Register a directory for create/delete/modify/move notifications.

        Registering an already-watched directory is a no-op. Directories
        registered before ``start`` are scheduled when the watcher starts.

        Returns:
            True if the directory was newly registered

        Raises:
            WatchRegistrationFailed: If the observer refuses the directory
        """
        path = Path(path).absolute()
        with self._lock:
            if path in self._watches:
                return False
            if not self._running:
                self._watches[path] = None
                return True
            self._watches[path] = self._schedule(path)

        self.log.debug("directory_watched", path=str(path))
        return True

    def unwatch(self, path: Path) -> None:
        """Release the registration for a directory, if any."""
        path = Path(path).absolute()
        with self._lock:
            watch = self._watches.pop(path, None)
        if watch is None:
            return
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as e:
            self.log.debug("unwatch_failed", path=str(path), error=str(e))

    def _schedule(self, path: Path) -> ObservedWatch:
        try:
            return self._observer.schedule(self._handler, str(path), recursive=False)
        except OSError as e:
            raise WatchRegistrationFailed(path, str(e)) from e

    def start(self) -> bool:
        """
        Start the observer and the delivery thread.

        Returns:
            False if the watch service could not be started; the tree then
            only changes through explicit synchronization.
        """
        with self._lock:
            if self._running:
                return True

            try:
                self._observer.start()
            except (OSError, RuntimeError) as e:
                self.log.error("watcher_start_failed", error=str(e))
                return False
            self._running = True

            pending = [path for path, watch in self._watches.items() if watch is None]
            for path in pending:
                try:
                    self._watches[path] = self._schedule(path)
                except WatchRegistrationFailed as e:
                    del self._watches[path]
                    self.log.warning(
                        "watch_registration_failed", path=str(path), error=e.reason
                    )

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._deliver, name="directory-watcher", daemon=True
        )
        self._thread.start()

        self.log.info("directory_watcher_started", directories=len(self._watches))
        return True

    def stop(self) -> None:
        """Stop the observer and the delivery thread."""
        if not self._running:
            return

        self._stop_event.set()
        self._observer.stop()
        self._observer.join(timeout=5.0)
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

        self._running = False
        self.log.info("directory_watcher_stopped")

    def _deliver(self) -> None:
        """Delivery loop: one callback per burst of events until stopped."""
        while not self._stop_event.is_set():
            try:
                self._events.get(timeout=self._poll_interval)
            except queue.Empty:
                continue

            if self._coalesce_delay:
                self._stop_event.wait(self._coalesce_delay)
            if self._stop_event.is_set():
                break

            drained = 1 + self._drain()
            self.log.debug("changes_coalesced", events=drained)

            if self._on_change is None:
                continue
            try:
                self._on_change()
            except Exception as e:
                self.log.error("change_callback_failed", error=str(e))

    def _drain(self) -> int:
        count = 0
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                return count
            count += 1

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    @property
    def watched_paths(self) -> list[Path]:
        """Get the registered directories."""
        with self._lock:
            return list(self._watches)

    def __enter__(self) -> "DirectoryWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
