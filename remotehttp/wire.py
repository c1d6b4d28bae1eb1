from __future__ import annotations
from typing import Optional

from .message import Envelope, MsgKind

_SEP = ":"

# request:<json>
# response:<id>:<json> | error:<id>:<json> | passthrough:<id>

def pack_envelope(env: Envelope) -> str:
    if env.kind == MsgKind.REQUEST:
        return f"{MsgKind.REQUEST}{_SEP}{env.payload}"
    if not env.request_id or _SEP in env.request_id:
        raise ValueError(f"Invalid request id for {env.kind}: {env.request_id!r}")
    if env.kind == MsgKind.PASSTHROUGH:
        return f"{MsgKind.PASSTHROUGH}{_SEP}{env.request_id}"
    return f"{env.kind}{_SEP}{env.request_id}{_SEP}{env.payload}"

def unpack_envelope(message: str) -> Optional[Envelope]:
    """Parse a prefix-stripped protocol message; None if it is not one of ours."""
    kind_str, sep, rest = message.partition(_SEP)
    if not sep:
        return None
    try:
        kind = MsgKind(kind_str)
    except ValueError:
        return None

    if kind == MsgKind.REQUEST:
        return Envelope(kind, None, rest)
    if kind == MsgKind.PASSTHROUGH:
        return Envelope(kind, rest, "") if rest else None

    request_id, _, payload = rest.partition(_SEP)
    if not request_id:
        return None
    return Envelope(kind, request_id, payload)

def reply_prefix(kind: MsgKind, request_id: str) -> str:
    """Prefix that every reply of `kind` addressed to `request_id` starts with."""
    if kind == MsgKind.PASSTHROUGH:
        return f"{kind}{_SEP}{request_id}"
    return f"{kind}{_SEP}{request_id}{_SEP}"

def is_reply_to(message: str, request_id: str) -> bool:
    if message == reply_prefix(MsgKind.PASSTHROUGH, request_id):
        return True
    return (message.startswith(reply_prefix(MsgKind.RESPONSE, request_id))
            or message.startswith(reply_prefix(MsgKind.ERROR, request_id)))
