"""
Interceptor role: relays locally captured requests to a remote resolver and
suspends each one until the resolver's decision for its id comes back.
"""

from __future__ import annotations
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union
import logging
import threading
import uuid

import httpx

from .codecs import Codec, Codecs
from .errors import RemoteNetworkError
from .message import Envelope, MsgKind
from .records import (
    MALFORMED_PAYLOAD_ERRORS,
    parse_network_error,
    parse_response,
    revive_response,
    serialize_request,
)
from .transport import Transport, Unsubscribe
from .wire import is_reply_to, pack_envelope, unpack_envelope

logger = logging.getLogger(__name__)

@dataclass
class InterceptedRequest:
    """A request captured by some native interception hook."""
    request: httpx.Request
    request_id: str
    respond_with: Callable[[httpx.Response], None]
    error_with: Optional[Callable[[BaseException], None]] = None

@dataclass
class _Pending:
    request: httpx.Request
    future: "Future[Optional[httpx.Response]]"
    unsubscribe: Optional[Unsubscribe] = field(default=None)


class RemoteHttpInterceptor:

    # Notes:
    # - One temporary listener per in-flight request, filtering on "<kind>:<id>"
    # - The listener is registered before the request is sent; synchronous
    #   channels may answer from inside send()
    # - No timeout: a request nobody answers stays pending

    def __init__(self, transport: Transport, *, codec: Union[str, Codec] = "json"):
        self.transport = transport
        self.codec = Codecs.get(codec) if isinstance(codec, str) else codec
        self.active = False
        self._pending: Dict[str, _Pending] = {}
        self._subscriptions: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def pending(self) -> List[str]:
        """Ids of requests still waiting for a reply."""
        with self._lock:
            return list(self._pending)

    def apply(self) -> bool:
        if self.active:
            return True
        if not self.transport.is_available():
            logger.error("transport is not available in the current environment: %s", self.transport.name)
            return False

        self.active = True
        self._subscriptions.append(self.transport.dispose)
        return True

    def handle_request(self, request: httpx.Request,
                       request_id: Optional[str] = None) -> "Future[Optional[httpx.Response]]":
        """
        Relay `request` and return a future for the resolver's decision:
          httpx.Response -> mocked response
          None           -> no mock; perform the request normally
          exception      -> RemoteNetworkError when the resolver errored it
                            ValueError when the id contains ':' or is already in flight
        """
        future: "Future[Optional[httpx.Response]]" = Future()
        if not self.active:
            logger.debug("interceptor not applied, passing %s %s through", request.method, request.url)
            future.set_result(None)
            return future

        request_id = request_id or uuid.uuid4().hex
        if ":" in request_id:
            return self._rejected(future, f"request id must not contain ':': {request_id!r}")
        payload = self.codec.dumps(serialize_request(request, request_id).to_wire())

        pending = _Pending(request=request, future=future)
        with self._lock:
            duplicate = request_id in self._pending
            if not duplicate:
                self._pending[request_id] = pending
        if duplicate:
            return self._rejected(future, f"request {request_id} is already in flight")
        pending.unsubscribe = self.transport.add_listener(
            lambda message: self._on_reply(request_id, message)
        )

        logger.info("sending serialized request via transport: %s", payload)
        self.transport.send(pack_envelope(Envelope(MsgKind.REQUEST, request_id, payload)))
        return future

    def on_request(self, event: InterceptedRequest) -> "Future[Optional[httpx.Response]]":
        """Entry point for native interception hooks."""
        future = self.handle_request(event.request, event.request_id)

        def _done(f: "Future[Optional[httpx.Response]]") -> None:
            exc = f.exception()
            if exc is not None:
                if event.error_with is not None:
                    event.error_with(exc)
                return
            response = f.result()
            if response is not None:
                event.respond_with(response)

        future.add_done_callback(_done)
        return future

    def dispose(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        self.active = False
        for unsubscribe in subscriptions:
            unsubscribe()

    def _on_reply(self, request_id: str, message: str) -> None:
        if not is_reply_to(message, request_id):
            return

        with self._lock:
            pending = self._pending.pop(request_id, None)
        if pending is None:
            return
        if pending.unsubscribe is not None:
            pending.unsubscribe()

        if pending.future.cancelled():
            logger.debug("request %s was cancelled locally, dropping reply", request_id)
            return

        try:
            self._settle(request_id, pending, unpack_envelope(message))
        except Exception:
            # The entry is gone, so this call must not be left waiting
            logger.exception("failed to settle request %s", request_id)
            if not pending.future.done():
                pending.future.set_result(None)

    def _settle(self, request_id: str, pending: _Pending, env: Optional[Envelope]) -> None:
        if env is None or env.kind == MsgKind.PASSTHROUGH:
            logger.debug("request %s passed through by resolver", request_id)
            pending.future.set_result(None)
        elif env.kind == MsgKind.ERROR:
            pending.future.set_exception(self._network_error(request_id, env))
        else:
            pending.future.set_result(self._mocked_response(request_id, env, pending.request))

    def _rejected(self, future: "Future[Optional[httpx.Response]]",
                  reason: str) -> "Future[Optional[httpx.Response]]":
        logger.error(reason)
        future.set_exception(ValueError(reason))
        return future

    def _mocked_response(self, request_id: str, env: Envelope,
                         request: httpx.Request) -> Optional[httpx.Response]:
        try:
            record = parse_response(env.payload, self.codec)
            response = revive_response(record, request)
        except MALFORMED_PAYLOAD_ERRORS as exc:
            # Best effort: the call resumes without a mock
            logger.warning("malformed response for request %s: %r", request_id, exc)
            return None
        logger.info("received mocked response for request %s: %s", request_id, record.status)
        return response

    def _network_error(self, request_id: str, env: Envelope) -> RemoteNetworkError:
        try:
            record = parse_network_error(env.payload, self.codec)
        except MALFORMED_PAYLOAD_ERRORS as exc:
            logger.warning("malformed error for request %s: %r", request_id, exc)
            return RemoteNetworkError("NetworkError", "")
        logger.info("request %s errored remotely: %s", request_id, record.name)
        return RemoteNetworkError(record.name, record.message)
