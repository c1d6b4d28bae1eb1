from __future__ import annotations
from typing import Any, Optional, Union

from .codecs import Codec
from .config import TransportOptions
from .interceptor import RemoteHttpInterceptor
from .resolver import RemoteHttpResolver
from .transport import Channel, Transport

Role = Union[RemoteHttpInterceptor, RemoteHttpResolver]

def RemoteHttp(role: str,
               *,
               transport: Union[str, Channel] = "inmemory",
               codec: Union[str, Codec] = "json",
               message_prefix: Optional[str] = None,
               name: Optional[str] = None,
               auto_apply: bool = True,
               **channel_kwargs: Any) -> Role:
    """
    One-liner factory:
      RemoteHttp("interceptor", transport="process")
      RemoteHttp("resolver", transport="process", process=child)
      RemoteHttp("resolver", transport="window", window=top, target_window=frame)
      RemoteHttp("interceptor", transport=my_channel_instance, message_prefix="app")

    - role: "interceptor" | "resolver"
    - transport: "inmemory" | "window" | "process" | Channel instance
    - codec: "json" | Codec instance
    - message_prefix: namespace both sides must agree on
    - auto_apply: activate the role immediately
    - **channel_kwargs: passed to the channel constructor
    """
    role_label = role.lower()
    if role_label not in ("interceptor", "resolver"):
        raise ValueError(f"Unknown role: {role}")

    # Resolve channel
    if isinstance(transport, str):
        channel = _channel(transport.lower(), role_label, channel_kwargs)
    else:
        channel = transport

    t = Transport(channel, TransportOptions(name=name, message_prefix=message_prefix))
    rt: Role
    if role_label == "interceptor":
        rt = RemoteHttpInterceptor(t, codec=codec)
    else:
        rt = RemoteHttpResolver(t, codec=codec)

    if auto_apply:
        rt.apply()

    return rt

def _channel(label: str, role: str, kwargs: dict) -> Channel:
    if label == "window":
        from .transports.window import WindowInterceptorChannel, WindowResolverChannel
        if role == "interceptor":
            return WindowInterceptorChannel(**kwargs)
        return WindowResolverChannel(**kwargs)
    if label == "process":
        from .transports.process import ProcessInterceptorChannel, ProcessResolverChannel
        if role == "interceptor":
            return ProcessInterceptorChannel(**kwargs)
        return ProcessResolverChannel(**kwargs)
    if label == "inmemory":
        # Needs the endpoint; MemoryChannel.pair() hands out both sides
        channel = kwargs.get("channel")
        if channel is None:
            raise ValueError("inmemory transport requires channel=<MemoryChannel>")
        return channel
    raise ValueError(f"Unknown transport label: {label}")
