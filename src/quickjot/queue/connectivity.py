"""Connectivity signals and the reconnect-triggered queue flush."""

from __future__ import annotations

import logging
import socket
import threading
from abc import ABC, abstractmethod
from typing import Callable

from quickjot.queue.offline import FlushStats, PersistenceQueue, TrySave

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]
Unsubscribe = Callable[[], None]


class ConnectivitySource(ABC):
    """A stream of "is connected" booleans."""

    @abstractmethod
    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register a listener; returns a callable that removes it."""
        ...


class _ListenerSet:
    def __init__(self):
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def add(self, listener: Listener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, connected: bool) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(connected)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)


class ManualConnectivity(ConnectivitySource):
    """Connectivity driven by explicit set_connected() calls."""

    def __init__(self):
        self._listeners = _ListenerSet()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        return self._listeners.add(listener)

    def set_connected(self, connected: bool) -> None:
        self._listeners.emit(connected)


class SocketConnectivityProbe(ConnectivitySource):
    """Polls a TCP endpoint on a background thread.

    Emits only when the observed state changes. The thread starts with the
    first subscriber and stops when the last one leaves.
    """

    def __init__(
        self,
        host: str = "1.1.1.1",
        port: int = 53,
        interval: float = 5.0,
        timeout: float = 2.0,
    ):
        self.host = host
        self.port = port
        self.interval = interval
        self.timeout = timeout
        self._listeners = _ListenerSet()
        self._state: bool | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def check(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError:
            return False

    def poll_once(self) -> None:
        connected = self.check()
        if connected != self._state:
            self._state = connected
            logger.debug("Connectivity changed: %s", "online" if connected else "offline")
            self._listeners.emit(connected)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Connectivity listener failed")
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="quickjot-connectivity", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.timeout + 1)
        self._thread = None
        self._state = None

    def subscribe(self, listener: Listener) -> Unsubscribe:
        remove = self._listeners.add(listener)
        self.start()

        def unsubscribe() -> None:
            remove()
            if not len(self._listeners):
                self.stop()

        return unsubscribe


def watch_connectivity(
    queue: PersistenceQueue,
    try_save: TrySave,
    source: ConnectivitySource,
    on_update: Callable[[FlushStats], None] | None = None,
) -> Unsubscribe:
    """Flush the queue each time connectivity comes back.

    Only the transition into "connected" triggers a flush (the first report
    counts as a transition). A trigger that arrives while a flush is running
    is skipped.

    Returns:
        Callable that stops watching
    """
    last: bool | None = None

    def on_change(connected: bool) -> None:
        nonlocal last
        previous, last = last, connected
        if not connected or previous is True:
            return

        try:
            stats = queue.flush(try_save, blocking=False)
        except OSError as e:
            logger.warning("Queue flush on reconnect failed: %s", e)
            return

        if stats is not None and on_update is not None:
            on_update(stats)

    return source.subscribe(on_change)
