"""Channel realizations, one per physical medium."""

from .memory import MemoryChannel
from .window import (
    BrowsingContext,
    MessageEvent,
    WindowInterceptorChannel,
    WindowResolverChannel,
)
from .process import (
    ChildProcess,
    ParentProcess,
    ProcessInterceptorChannel,
    ProcessResolverChannel,
    current_parent,
    spawn,
)

__all__ = [
    "MemoryChannel",
    "BrowsingContext",
    "MessageEvent",
    "WindowInterceptorChannel",
    "WindowResolverChannel",
    "ChildProcess",
    "ParentProcess",
    "ProcessInterceptorChannel",
    "ProcessResolverChannel",
    "current_parent",
    "spawn",
]
