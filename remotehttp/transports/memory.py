
from __future__ import annotations
from typing import Callable, List, Optional, Tuple
import logging
import threading

from ..transport import Channel, RawHandler, Unsubscribe

logger = logging.getLogger(__name__)

class MemoryChannel(Channel):
    """In-process channel endpoint. Delivery is synchronous and fans out to every subscriber.

    Mapping:
    - try_send -> every subscriber of the peer endpoint, in subscription order
    - close()  -> lifecycle observers on both endpoints fire once
    """

    def __init__(self, name: str = "memory"):
        self.name = name
        self.peer: Optional[MemoryChannel] = None
        self.closed = False
        self._subscribers: List[RawHandler] = []
        self._observers: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @classmethod
    def pair(cls, names: Tuple[str, str] = ("interceptor", "resolver")) -> Tuple["MemoryChannel", "MemoryChannel"]:
        a, b = cls(names[0]), cls(names[1])
        a.peer, b.peer = b, a
        return a, b

    def try_send(self, raw: str) -> bool:
        peer = self.peer
        if self.closed or peer is None or peer.closed:
            logger.error("%s: peer is gone, dropping message", self.name)
            return False
        peer._deliver(raw)
        return True

    def subscribe(self, on_raw: RawHandler) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(on_raw)

        def _unsubscribe() -> None:
            with self._lock:
                if on_raw in self._subscribers:
                    self._subscribers.remove(on_raw)
        return _unsubscribe

    def is_usable(self) -> bool:
        return self.peer is not None and not self.closed

    def observe_lifecycle(self, on_closed: Callable[[], None]) -> Unsubscribe:
        with self._lock:
            self._observers.append(on_closed)

        def _unsubscribe() -> None:
            with self._lock:
                if on_closed in self._observers:
                    self._observers.remove(on_closed)
        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def close(self) -> None:
        """Tear down both endpoints, as if the peer went away."""
        for endpoint in (self, self.peer):
            if endpoint is not None and not endpoint.closed:
                endpoint.closed = True
                endpoint._fire_closed()

    def _deliver(self, raw: str) -> None:
        if not isinstance(raw, str):
            return
        with self._lock:
            subscribers = list(self._subscribers)
        for on_raw in subscribers:
            on_raw(raw)

    def _fire_closed(self) -> None:
        with self._lock:
            observers, self._observers = self._observers, []
        for on_closed in observers:
            on_closed()
