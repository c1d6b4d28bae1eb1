from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import os

# Both endpoints must agree on the prefix or nothing crosses the channel
DEFAULT_MESSAGE_PREFIX = "remote-http-transport"
PREFIX_ENV = "REMOTE_HTTP_MESSAGE_PREFIX"

DEFAULT_CREDENTIALS = "same-origin"


@dataclass
class TransportOptions:
    """
    Options shared by every transport:
     - name: logger name suffix (defaults to the channel class name)
     - message_prefix: namespace prepended to every outgoing message
    """
    name: Optional[str] = None
    message_prefix: Optional[str] = None

    def resolved_prefix(self) -> str:
        if self.message_prefix:
            return self.message_prefix
        return os.environ.get(PREFIX_ENV) or DEFAULT_MESSAGE_PREFIX
