#!/usr/bin/env python3
"""
Directory Watcher for Logga
Turns watchdog filesystem events into a blocking stream of WatchEvents

The watchdog observer delivers events on its own thread. The handler
converts them and puts them on a queue; watch() hands back an iterator
that blocks on that queue. Stopping means "stop consuming": the iterator
returns and the observer is shut down.
"""

import os
import queue
import logging
import threading
from pathlib import Path
from typing import Callable, Iterator, List

from watchdog.events import EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

EVENT_CREATE = 'create'
EVENT_REMOVE = 'remove'
EVENT_OTHER = 'other'

DEFAULT_RECEIVE_TIMEOUT = 1.0


class WatchEvent:
    """
    A filesystem notification for the watched directory.

    Attributes:
        kind (str): EVENT_CREATE, EVENT_REMOVE or EVENT_OTHER
        paths (List[str]): Affected paths, may be empty
    """

    def __init__(self, kind: str, paths: List[str] = None):
        self.kind = kind
        self.paths = list(paths or [])

    @classmethod
    def from_watchdog(cls, event) -> 'WatchEvent':
        """Build a WatchEvent from a watchdog FileSystemEvent."""
        if event.event_type == EVENT_TYPE_CREATED:
            kind = EVENT_CREATE
        elif event.event_type == EVENT_TYPE_DELETED:
            kind = EVENT_REMOVE
        else:
            kind = EVENT_OTHER

        paths = []
        if event.src_path:
            paths.append(os.fsdecode(event.src_path))
        dest_path = getattr(event, 'dest_path', '')
        if dest_path:
            paths.append(os.fsdecode(dest_path))

        return cls(kind, paths)

    def __eq__(self, other):
        if not isinstance(other, WatchEvent):
            return NotImplemented
        return self.kind == other.kind and self.paths == other.paths

    def __repr__(self):
        return f"WatchEvent(kind={self.kind!r}, paths={self.paths!r})"


class _QueueingHandler(FileSystemEventHandler):
    """Forwards every watchdog event (or its conversion error) to a queue."""

    def __init__(self, events: queue.Queue):
        self.events = events

    def on_any_event(self, event):
        try:
            self.events.put(WatchEvent.from_watchdog(event))
        except Exception as e:
            self.events.put(e)


class DirectoryWatcher:
    """
    Non-recursive, event-driven watcher for a single directory.

    Example:
        >>> watcher = DirectoryWatcher()
        >>> for event in watcher.watch('/var/log/nginx'):
        ...     dispatcher.dispatch(event)

    Attributes:
        receive_timeout (float): Seconds between liveness checks while blocked
    """

    def __init__(self, receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT,
                 observer_factory: Callable = Observer):
        """
        Initialize directory watcher.

        Args:
            receive_timeout: How long a receive blocks before checking the
                observer is alive and no stop was requested
            observer_factory: Builds the watchdog observer (for tests)
        """
        self.receive_timeout = receive_timeout
        self.observer_factory = observer_factory
        self.observer = None
        self._events: queue.Queue = queue.Queue()
        self._stop_event = threading.Event()

    def watch(self, directory: str) -> Iterator[WatchEvent]:
        """
        Start watching a directory.

        The observer starts before this returns, so events for files
        created right after the call are not lost.

        Args:
            directory: Directory to watch (non-recursive)

        Returns:
            Iterator[WatchEvent]: Lazy, infinite, non-restartable event stream

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        path = Path(directory)
        if not path.is_dir():
            raise FileNotFoundError(f"Watch directory does not exist: {directory}")

        self._stop_event.clear()
        self.observer = self.observer_factory()
        self.observer.schedule(_QueueingHandler(self._events), str(path), recursive=False)
        self.observer.start()

        logger.info(f"Watching directory: {path}")
        return self._receive()

    def stop(self):
        """Ask the event stream to finish."""
        self._stop_event.set()

    def _receive(self) -> Iterator[WatchEvent]:
        try:
            while not self._stop_event.is_set():
                try:
                    item = self._events.get(timeout=self.receive_timeout)
                except queue.Empty:
                    if not self.observer.is_alive():
                        logger.error("Problem watching directory: event source stopped")
                        return
                    continue

                if isinstance(item, Exception):
                    logger.error(f"Error: {item!r}")
                    continue

                yield item
        finally:
            self._shutdown_observer()

    def _shutdown_observer(self):
        if self.observer is None:
            return
        self.observer.stop()
        if self.observer.is_alive():
            self.observer.join(timeout=2)
        logger.info("Stopped watching directory")
