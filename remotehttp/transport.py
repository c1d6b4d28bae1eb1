from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging
import threading

from .config import TransportOptions

logger = logging.getLogger(__name__)

RawHandler = Callable[[str], None]
Unsubscribe = Callable[[], None]


def _noop() -> None:
    return None


class Channel(ABC):
    """
    One physical medium between two endpoints (postMessage bus, process pipe, ...).
    Order-preserving per direction, unreliable, string payloads only.
    """

    @abstractmethod
    def try_send(self, raw: str) -> bool:
        """Push one string to the peer. Failures are logged and reported as False."""
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, on_raw: RawHandler) -> Unsubscribe:
        raise NotImplementedError

    @abstractmethod
    def is_usable(self) -> bool:
        raise NotImplementedError

    def observe_lifecycle(self, on_closed: Callable[[], None]) -> Unsubscribe:
        """Call `on_closed` once the peer goes away. Most media have no such signal."""
        return _noop


class Transport:
    """
    Prefixed, disposable wrapper around a Channel.

    Several transports may share one channel; each only reacts to messages
    starting with its own "<prefix>:".
    """

    def __init__(self, channel: Channel, options: Optional[TransportOptions] = None):
        self.channel = channel
        self.options = options or TransportOptions()
        self.name = self.options.name or type(channel).__name__
        self.message_prefix = self.options.resolved_prefix()
        self.log = logger.getChild(self.name)

        self._handlers: List[RawHandler] = []
        self._subscriptions: List[Unsubscribe] = []
        self._channel_unsubscribe: Optional[Unsubscribe] = None
        self._disposed = False
        self._lock = threading.RLock()

        self._add_subscription(channel.observe_lifecycle(self.dispose))
        self.log.debug("created transport (prefix=%r)", self.message_prefix)

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    @property
    def subscription_count(self) -> int:
        """Cleanups still owed by dispose(), the lifecycle observer included."""
        with self._lock:
            return len(self._subscriptions)

    def is_available(self) -> bool:
        return self.channel.is_usable()

    def send(self, body: str) -> bool:
        """Send a prefixed message. Never raises."""
        if self._disposed:
            self.log.info("transport disposed, cannot send message")
            return False

        message = f"{self.message_prefix}:{body}"
        self.log.debug("sending message: %s", message)
        try:
            return self.channel.try_send(message)
        except Exception:
            self.log.exception("channel failed to send message")
            return False

    def add_listener(self, handler: RawHandler) -> Unsubscribe:
        """
        Register `handler` for prefix-stripped messages of this transport.
        Returns an unsubscribe callable; inert once disposed.
        """
        with self._lock:
            if self._disposed:
                self.log.info("transport disposed, cannot add message listener")
                return _noop

            strip = len(self.message_prefix) + 1

            def _wrapper(message: str) -> None:
                if self._disposed or not self._is_transport_message(message):
                    return
                handler(message[strip:])

            self._handlers.append(_wrapper)
            self._ensure_channel_subscription()

        def _unsubscribe() -> None:
            with self._lock:
                if _wrapper in self._handlers:
                    self.log.debug("removing message handler")
                    self._handlers.remove(_wrapper)
                if _unsubscribe in self._subscriptions:
                    self._subscriptions.remove(_unsubscribe)

        self._add_subscription(_unsubscribe)
        return _unsubscribe

    def handle_message(self, message: str) -> bool:
        """
        Fan one raw message out to every registered handler.
        Returns True when the message carries this transport's prefix.
        """
        if not self._is_transport_message(message):
            self.log.debug("ignoring foreign message")
            return False

        self.log.debug("received transport message: %s", message)
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                self.log.exception("error in message handler")
        return True

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                self.log.debug("transport already disposed, skipping")
                return
            # Flag first so cleanups that call back into dispose() are no-ops
            self._disposed = True
            subscriptions, self._subscriptions = self._subscriptions, []

        self.log.debug("disposing transport")
        for unsubscribe in subscriptions:
            try:
                unsubscribe()
            except Exception:
                self.log.exception("subscription cleanup failed")

        with self._lock:
            self._handlers.clear()
            channel_unsubscribe, self._channel_unsubscribe = self._channel_unsubscribe, None
        if channel_unsubscribe is not None:
            channel_unsubscribe()
        self.log.debug("transport disposed")

    def _is_transport_message(self, message: str) -> bool:
        return isinstance(message, str) and message.startswith(f"{self.message_prefix}:")

    def _ensure_channel_subscription(self) -> None:
        if self._channel_unsubscribe is None:
            self._channel_unsubscribe = self.channel.subscribe(self.handle_message)

    def _add_subscription(self, unsubscribe: Unsubscribe) -> None:
        with self._lock:
            if self._disposed:
                unsubscribe()
                return
            self._subscriptions.append(unsubscribe)
