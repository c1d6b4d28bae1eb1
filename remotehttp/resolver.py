"""
Resolver role: answers requests relayed by a remote interceptor.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Union
import logging

import httpx

from .codecs import Codec, Codecs
from .controller import RequestController
from .message import Envelope, MsgKind
from .records import (
    MALFORMED_PAYLOAD_ERRORS,
    parse_request,
    serialize_network_error,
    serialize_response,
    unhandled_exception_response,
)
from .transport import Transport, Unsubscribe
from .wire import pack_envelope, unpack_envelope

logger = logging.getLogger(__name__)

@dataclass
class RequestEvent:
    request: httpx.Request
    request_id: str
    controller: RequestController

@dataclass
class ResponseEvent:
    request: httpx.Request
    request_id: str
    response: httpx.Response
    is_mocked_response: bool = True

Listener = Callable[[Any], None]


class RemoteHttpResolver:
    """
    Listens for "request:" messages, revives them into httpx.Request objects and
    hands each one to the "request" listeners together with a RequestController.

    Events:
    - "request"  (RequestEvent)   -> decide via event.controller; with no listeners
                                    the request is passed through
    - "response" (ResponseEvent)  -> emitted right after a mocked response is sent;
                                    the interceptor never acknowledges it
    """

    def __init__(self, transport: Transport, *, codec: Union[str, Codec] = "json"):
        self.transport = transport
        self.codec = Codecs.get(codec) if isinstance(codec, str) else codec
        self.active = False
        self._listeners: Dict[str, List[Listener]] = {"request": [], "response": []}
        self._subscriptions: List[Callable[[], None]] = []

    def on(self, event: str, listener: Listener) -> Unsubscribe:
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(listener)

        def _remove() -> None:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)
        return _remove

    def apply(self) -> bool:
        if self.active:
            return True
        if not self.transport.is_available():
            logger.error("transport is not available in the current environment: %s", self.transport.name)
            return False

        self.active = True
        self._subscriptions.append(self.transport.add_listener(self._on_message))
        self._subscriptions.append(self.transport.dispose)
        logger.info("transport setup complete: %s", self.transport.name)
        return True

    def dispose(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        self.active = False
        for unsubscribe in subscriptions:
            unsubscribe()

    def _on_message(self, message: str) -> None:
        logger.debug("received message via transport: %s", message)
        env = unpack_envelope(message)
        if env is None or env.kind != MsgKind.REQUEST or not env.payload:
            logger.debug("unknown message, ignoring")
            return

        try:
            record, request = parse_request(env.payload, self.codec)
        except MALFORMED_PAYLOAD_ERRORS as exc:
            logger.debug("malformed request, ignoring: %r", exc)
            return
        if not record.id or ":" in record.id:
            logger.debug("request without a usable id, ignoring: %r", record.id)
            return

        logger.info("parsed intercepted request %s: %s %s", record.id, record.method, record.url)
        request_id = record.id
        controller = RequestController(
            request,
            passthrough=lambda: self._send_passthrough(request_id),
            respond_with=lambda response: self._send_response(request, request_id, response),
            error_with=lambda reason: self._send_error(request_id, reason),
        )
        self._dispatch(RequestEvent(request=request, request_id=request_id, controller=controller))

    def _dispatch(self, event: RequestEvent) -> None:
        listeners = list(self._listeners["request"])
        if not listeners:
            event.controller.passthrough()
            return

        for listener in listeners:
            if event.controller.handled:
                return
            try:
                listener(event)
            except Exception as exc:
                logger.exception("request listener failed for %s", event.request_id)
                if not event.controller.handled:
                    event.controller.respond_with(unhandled_exception_response(exc, self.codec))
                return

    def _send_response(self, request: httpx.Request, request_id: str, response: httpx.Response) -> None:
        logger.info("received mocked response for %s: %s", request_id, response.status_code)
        payload = self.codec.dumps(serialize_response(response).to_wire())
        self.transport.send(pack_envelope(Envelope(MsgKind.RESPONSE, request_id, payload)))
        logger.info("sent serialized mocked response via transport: %s", payload)

        # Optimistic: sent is not the same as matched on the other side
        self._emit("response", ResponseEvent(request=request, request_id=request_id, response=response))

    def _send_error(self, request_id: str, reason: Any) -> None:
        logger.info("request %s has errored: %r", request_id, reason)
        payload = self.codec.dumps(serialize_network_error(reason).to_wire())
        self.transport.send(pack_envelope(Envelope(MsgKind.ERROR, request_id, payload)))

    def _send_passthrough(self, request_id: str) -> None:
        logger.debug("passing request %s through", request_id)
        self.transport.send(pack_envelope(Envelope(MsgKind.PASSTHROUGH, request_id)))

    def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception:
                logger.exception("%s listener failed", event)
