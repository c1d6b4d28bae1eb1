"""
Public API:
- RemoteHttpInterceptor: relays captured httpx requests, awaits the remote decision
- RemoteHttpResolver: answers relayed requests via a RequestController
- Transport: prefixed, disposable wrapper around a Channel
- Channel: abstract class channel realizations must implement
- MemoryChannel, Window*/Process* channels: concrete media (see .transports)
- InterceptingTransport, AsyncInterceptingTransport: httpx glue for the interceptor
- RemoteHttp: one-liner factory
- pack_envelope, unpack_envelope: protocol framing ("request:<json>", "response:<id>:<json>", ...)
"""

import logging

# Roles
from .interceptor import InterceptedRequest, RemoteHttpInterceptor
from .resolver import RemoteHttpResolver, RequestEvent, ResponseEvent
from .controller import ControllerState, RequestController

# Transport contract
from .config import DEFAULT_MESSAGE_PREFIX, TransportOptions
from .transport import Channel, Transport
from .transports import (
    BrowsingContext,
    ChildProcess,
    MemoryChannel,
    ProcessInterceptorChannel,
    ProcessResolverChannel,
    WindowInterceptorChannel,
    WindowResolverChannel,
    spawn,
)

# Wire types & framing
from .message import (
    Envelope,
    MsgKind,
    SerializedNetworkError,
    SerializedRequest,
    SerializedResponse,
)
from .wire import pack_envelope, unpack_envelope

from .errors import (
    ControllerStateError,
    RemoteHttpError,
    RemoteNetworkError,
    TransportConfigurationError,
)
from .httpx_transport import AsyncInterceptingTransport, InterceptingTransport
from .factory import RemoteHttp

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "RemoteHttpInterceptor",
    "InterceptedRequest",
    "RemoteHttpResolver",
    "RequestEvent",
    "ResponseEvent",
    "RequestController",
    "ControllerState",
    "TransportOptions",
    "DEFAULT_MESSAGE_PREFIX",
    "Channel",
    "Transport",
    "MemoryChannel",
    "BrowsingContext",
    "WindowInterceptorChannel",
    "WindowResolverChannel",
    "ChildProcess",
    "ProcessInterceptorChannel",
    "ProcessResolverChannel",
    "spawn",
    "Envelope",
    "MsgKind",
    "SerializedRequest",
    "SerializedResponse",
    "SerializedNetworkError",
    "pack_envelope",
    "unpack_envelope",
    "RemoteHttpError",
    "TransportConfigurationError",
    "ControllerStateError",
    "RemoteNetworkError",
    "InterceptingTransport",
    "AsyncInterceptingTransport",
    "RemoteHttp",
]

__version__ = "0.1.0"
