
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import logging

from ..errors import TransportConfigurationError
from ..transport import Channel, RawHandler, Unsubscribe

logger = logging.getLogger(__name__)

ANY_ORIGIN = "*"

@dataclass(frozen=True)
class MessageEvent:
    data: Any
    origin: str
    source: Optional["BrowsingContext"]

EventListener = Callable[[MessageEvent], None]

class BrowsingContext:
    """
    In-process model of a window: an origin, a parent, and a postMessage bus.

    A top-level context is its own parent. Frames created with create_frame()
    point back at the context that created them.
    """

    def __init__(self, origin: str, parent: Optional["BrowsingContext"] = None):
        self.origin = origin
        self.parent: BrowsingContext = parent if parent is not None else self
        self.closed = False
        self._listeners: Dict[str, List[EventListener]] = {}

    def create_frame(self, origin: str) -> "BrowsingContext":
        return BrowsingContext(origin, parent=self)

    def post_message(self, data: Any, target_origin: str = ANY_ORIGIN,
                     source: Optional["BrowsingContext"] = None) -> None:
        """
        Deliver `data` to this context's "message" listeners.
        A target_origin that does not match this context's origin drops the message.
        """
        if self.closed:
            raise RuntimeError(f"cannot post to closed context {self.origin}")
        if target_origin != ANY_ORIGIN and target_origin != self.origin:
            logger.debug("target origin %s does not match %s, dropping", target_origin, self.origin)
            return
        event = MessageEvent(data=data, origin=source.origin if source else "", source=source)
        for listener in list(self._listeners.get("message", [])):
            listener(event)

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(self, event_type: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: str = "message") -> int:
        return len(self._listeners.get(event_type, []))

    def close(self) -> None:
        self.closed = True


class _WindowChannel(Channel):

    def __init__(self, window: BrowsingContext, target_origin: Optional[str] = None,
                 source_origin: Optional[str] = None):
        self.window = window
        self.target_origin = target_origin or ANY_ORIGIN
        self.source_origin = source_origin
        logger.debug("%s target origin: %s", type(self).__name__, self.target_origin)

    def _peer(self) -> BrowsingContext:
        raise NotImplementedError

    def try_send(self, raw: str) -> bool:
        try:
            self._peer().post_message(raw, self.target_origin, source=self.window)
            return True
        except Exception:
            logger.exception("failed to send message via postMessage")
            return False

    def subscribe(self, on_raw: RawHandler) -> Unsubscribe:
        def _listener(event: MessageEvent) -> None:
            if self.source_origin and event.origin != self.source_origin:
                logger.debug("ignoring message from unauthorized origin: %s (expected: %s)",
                             event.origin, self.source_origin)
                return
            if not isinstance(event.data, str):
                logger.debug("ignoring non-string message: %s", type(event.data).__name__)
                return
            if event.source is not self._peer():
                logger.debug("ignoring message from unexpected source window")
                return
            on_raw(event.data)

        self.window.add_event_listener("message", _listener)

        def _unsubscribe() -> None:
            self.window.remove_event_listener("message", _listener)
        return _unsubscribe


class WindowInterceptorChannel(_WindowChannel):
    """Runs inside a frame; talks to the parent window."""

    def _peer(self) -> BrowsingContext:
        return self.window.parent

    def is_usable(self) -> bool:
        return self.window.parent is not self.window


class WindowResolverChannel(_WindowChannel):
    """Runs in the embedding window; talks to one frame."""

    def __init__(self, window: BrowsingContext, target_window: Optional[BrowsingContext],
                 target_origin: Optional[str] = None, source_origin: Optional[str] = None):
        if target_window is None:
            raise TransportConfigurationError("WindowResolverChannel requires a target_window")
        super().__init__(window, target_origin, source_origin)
        self.target_window = target_window

    def _peer(self) -> BrowsingContext:
        return self.target_window

    def is_usable(self) -> bool:
        return self.target_window is not self.window
