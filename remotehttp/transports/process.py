from __future__ import annotations
from multiprocessing.connection import Connection
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional
import logging
import multiprocessing
import threading

from ..errors import TransportConfigurationError
from ..transport import Channel, RawHandler, Unsubscribe

logger = logging.getLogger(__name__)

Listener = Callable[..., None]

# Messages held for a "message" listener that has not been attached yet
MAX_BACKLOG = 1000

# Installed in a spawned child by _bootstrap; None in any other process
_PARENT: Optional["ParentProcess"] = None


class _Endpoint:
    """
    Event emitter over one end of a multiprocessing Pipe.

    Events:
    - "message" (payload)  -> every object received from the peer
    - "error"   (exc)      -> the reader failed; "exit" follows
    - "exit"    (code)     -> the peer closed its end (exit code when known)

    Messages that arrive before the first "message" listener is attached are
    queued (oldest dropped past MAX_BACKLOG) and handed to that listener. Once a
    listener has been attached, messages nobody listens for are dropped.
    """

    def __init__(self, conn: Connection, name: str):
        self.name = name
        self._conn = conn
        self._listeners: Dict[str, List[Listener]] = {}
        self._backlog: Deque[Any] = deque(maxlen=MAX_BACKLOG)
        self._buffering = True
        self._lock = threading.RLock()
        self._send_lock = threading.Lock()
        self._reader: Optional[threading.Thread] = None
        self.exited = False

    def start_reader(self) -> None:
        if self._reader is None:
            self._reader = threading.Thread(target=self._read_loop, name=f"{self.name}-reader", daemon=True)
            self._reader.start()

    def send(self, message: Any) -> None:
        """Pickle `message` to the peer. Raises OSError/ValueError when the pipe is gone."""
        with self._send_lock:
            self._conn.send(message)

    def on(self, event: str, listener: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)
            backlog: List[Any] = []
            if event == "message":
                self._buffering = False
                backlog = list(self._backlog)
                self._backlog.clear()
        for message in backlog:
            listener(message)

    def remove_listener(self, event: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    @property
    def backlog_size(self) -> int:
        with self._lock:
            return len(self._backlog)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, []))
            if event == "message" and not listeners:
                if self._buffering:
                    self._backlog.extend(args[:1])
                else:
                    logger.debug("%s: no message listener, dropping message", self.name)
                return
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("%s: %s listener failed", self.name, event)

    def _read_loop(self) -> None:
        while True:
            try:
                message = self._conn.recv()
            except (EOFError, OSError):
                break
            except Exception as exc:
                logger.error("%s: reader failed: %r", self.name, exc)
                self.emit("error", exc)
                break
            self.emit("message", message)
        self._disconnected()

    def _disconnected(self) -> None:
        self.exited = True
        self.emit("exit", None)


class ChildProcess(_Endpoint):
    """Parent-side handle of a process started with spawn()."""

    def __init__(self, process: multiprocessing.process.BaseProcess, conn: Connection):
        super().__init__(conn, name=process.name)
        self.process = process

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid

    @property
    def exitcode(self) -> Optional[int]:
        return self.process.exitcode

    def is_alive(self) -> bool:
        return self.process.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        self.process.join(timeout)

    def terminate(self) -> None:
        self.process.terminate()

    def kill(self) -> None:
        self.process.kill()

    def _disconnected(self) -> None:
        # EOF arrives before the process is reaped
        self.process.join(timeout=5)
        self.exited = True
        self.emit("exit", self.process.exitcode)


class ParentProcess(_Endpoint):
    """Child-side handle of the pipe back to the parent."""


def current_parent() -> Optional[ParentProcess]:
    """The pipe to the parent when this process was started by spawn(), else None."""
    return _PARENT


def _bootstrap(conn: Connection, target: Callable[..., Any], args: tuple, kwargs: dict) -> None:
    global _PARENT
    _PARENT = ParentProcess(conn, name="parent")
    _PARENT.start_reader()
    target(*args, **kwargs)


def spawn(target: Callable[..., Any], *args: Any, name: Optional[str] = None,
          context: Optional[str] = None, daemon: Optional[bool] = None,
          **kwargs: Any) -> ChildProcess:
    """
    Start `target(*args, **kwargs)` in a child process wired to this one.

    target must be importable by the child (module-level function).
    context picks the multiprocessing start method ("spawn", "fork", ...).
    """
    ctx = multiprocessing.get_context(context)
    parent_conn, child_conn = ctx.Pipe(duplex=True)
    process = ctx.Process(
        target=_bootstrap,
        args=(child_conn, target, args, kwargs),
        name=name,
        daemon=daemon,
    )
    process.start()
    # Only the child may hold this end, or EOF is never seen here
    child_conn.close()

    child = ChildProcess(process, parent_conn)
    child.start_reader()
    logger.debug("spawned child process %s (pid=%s)", process.name, process.pid)
    return child


class ProcessInterceptorChannel(Channel):
    """Runs in the child; talks to the parent that spawned it."""

    def __init__(self, parent: Optional[ParentProcess] = None):
        self.parent = parent if parent is not None else current_parent()

    def try_send(self, raw: str) -> bool:
        if self.parent is None:
            logger.error("no parent connection - not running as a spawned child process")
            return False
        try:
            self.parent.send(raw)
            return True
        except (OSError, ValueError) as exc:
            logger.error("failed to send message to parent process: %r", exc)
            return False

    def subscribe(self, on_raw: RawHandler) -> Unsubscribe:
        parent = self.parent
        if parent is None:
            return lambda: None

        def _listener(message: Any) -> None:
            if isinstance(message, str):
                on_raw(message)

        logger.debug("adding message listener to parent connection")
        parent.on("message", _listener)

        def _unsubscribe() -> None:
            logger.debug("removing message listener from parent connection")
            parent.remove_listener("message", _listener)
        return _unsubscribe

    def is_usable(self) -> bool:
        return self.parent is not None


class ProcessResolverChannel(Channel):
    """Runs in the parent; talks to one child process."""

    def __init__(self, process: Optional[ChildProcess]):
        if process is None:
            raise TransportConfigurationError("ProcessResolverChannel requires a child process")
        self.process = process

    def try_send(self, raw: str) -> bool:
        try:
            self.process.send(raw)
            return True
        except (OSError, ValueError) as exc:
            logger.error("failed to send message to child process: %r", exc)
            return False

    def subscribe(self, on_raw: RawHandler) -> Unsubscribe:
        def _listener(message: Any) -> None:
            if isinstance(message, str):
                on_raw(message)

        logger.debug("adding message listener to child process")
        self.process.on("message", _listener)

        def _unsubscribe() -> None:
            logger.debug("removing message listener from child process")
            self.process.remove_listener("message", _listener)
        return _unsubscribe

    def is_usable(self) -> bool:
        return self.process is not None

    def observe_lifecycle(self, on_closed: Callable[[], None]) -> Unsubscribe:
        fired = threading.Event()

        def _closed(*_: Any) -> None:
            if not fired.is_set():
                fired.set()
                on_closed()

        self.process.on("error", _closed)
        self.process.on("exit", _closed)
        # The child may have gone before anyone was listening
        if self.process.exited:
            _closed()

        def _unsubscribe() -> None:
            self.process.remove_listener("error", _closed)
            self.process.remove_listener("exit", _closed)
        return _unsubscribe
