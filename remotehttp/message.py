from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Tuple
from enum import StrEnum

# Protocol-level message kinds (the transport prefix sits outside these)
class MsgKind(StrEnum):
    REQUEST     = "request"
    RESPONSE    = "response"
    ERROR       = "error"
    PASSTHROUGH = "passthrough"

HeaderPairs = List[Tuple[str, str]]

@dataclass(frozen=True)
class Envelope:
    """
    One protocol message, 'payload' is serialized text (may be empty)
    """
    kind: MsgKind                # request | response | error | passthrough
    request_id: Optional[str]    # correlation key; carried inside the payload for REQUEST
    payload: str = ""

@dataclass
class SerializedRequest:
    id: str
    method: str
    url: str
    header_pairs: HeaderPairs = field(default_factory=list)
    credentials: str = "same-origin"
    body: Optional[str] = None   # None for GET/HEAD

    def to_wire(self) -> dict:
        return {
            "id":          self.id,
            "method":      self.method,
            "url":         self.url,
            "headerPairs": [list(p) for p in self.header_pairs],
            "credentials": self.credentials,
            "body":        self.body,
        }

    @classmethod
    def from_wire(cls, obj: dict) -> "SerializedRequest":
        body = obj.get("body")
        if body is not None and not isinstance(body, str):
            raise ValueError(f"request body must be text, got {type(body).__name__}")
        return cls(
            id=str(obj["id"]),
            method=str(obj["method"]),
            url=str(obj["url"]),
            header_pairs=_pairs(obj.get("headerPairs")),
            credentials=_text(obj, "credentials") or "same-origin",
            body=body,
        )

@dataclass
class SerializedResponse:
    status: int
    status_text: str = ""
    header_pairs: HeaderPairs = field(default_factory=list)
    body: str = ""

    def to_wire(self) -> dict:
        return {
            "status":      self.status,
            "statusText":  self.status_text,
            "headerPairs": [list(p) for p in self.header_pairs],
            "body":        self.body,
        }

    @classmethod
    def from_wire(cls, obj: dict) -> "SerializedResponse":
        status = obj["status"]
        if isinstance(status, bool) or not isinstance(status, int):
            raise ValueError(f"response status must be an integer, got {status!r}")
        return cls(
            status=status,
            status_text=_text(obj, "statusText"),
            header_pairs=_pairs(obj.get("headerPairs")),
            body=_text(obj, "body"),
        )

@dataclass
class SerializedNetworkError:
    name: str = "NetworkError"
    message: str = ""

    def to_wire(self) -> dict:
        return {"name": self.name, "message": self.message}

    @classmethod
    def from_wire(cls, obj: dict) -> "SerializedNetworkError":
        return cls(name=_text(obj, "name") or "NetworkError", message=_text(obj, "message"))

def _text(obj: dict, key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value

def _pairs(raw) -> HeaderPairs:
    # Ordered [name, value] pairs; duplicates are meaningful
    if not raw:
        return []
    return [(str(name), str(value)) for name, value in raw]
