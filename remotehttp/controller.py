from __future__ import annotations
from enum import StrEnum
from typing import Any, Callable
import threading

import httpx

from .errors import ControllerStateError

class ControllerState(StrEnum):
    PENDING     = "pending"
    PASSTHROUGH = "passthrough"
    RESPONDED   = "responded"
    ERRORED     = "errored"

class RequestController:
    """
    Decision handle given to whoever answers a relayed request.
    Exactly one of passthrough() / respond_with() / error_with() may be called.
    """

    def __init__(self, request: httpx.Request, *,
                 passthrough: Callable[[], None],
                 respond_with: Callable[[httpx.Response], None],
                 error_with: Callable[[Any], None]):
        self.request = request
        self.state = ControllerState.PENDING
        self._on_passthrough = passthrough
        self._on_respond_with = respond_with
        self._on_error_with = error_with
        self._lock = threading.Lock()

    @property
    def handled(self) -> bool:
        return self.state != ControllerState.PENDING

    def passthrough(self) -> None:
        """Let the original request reach the network unmodified."""
        self._settle(ControllerState.PASSTHROUGH)
        self._on_passthrough()

    def respond_with(self, response: httpx.Response) -> None:
        """Answer the request with a mocked response."""
        if not isinstance(response, httpx.Response):
            raise TypeError(f"respond_with() expects httpx.Response, got {type(response).__name__}")
        self._settle(ControllerState.RESPONDED)
        self._on_respond_with(response)

    def error_with(self, reason: Any = None) -> None:
        """Fail the request as a network error."""
        self._settle(ControllerState.ERRORED)
        self._on_error_with(reason)

    def _settle(self, state: ControllerState) -> None:
        with self._lock:
            if self.state != ControllerState.PENDING:
                raise ControllerStateError(
                    f"cannot {state} {self.request.method} {self.request.url}: request already {self.state}"
                )
            self.state = state
