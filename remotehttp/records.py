"""Conversion between httpx objects and the serialized records on the wire."""

from __future__ import annotations
import traceback
from typing import Any, Optional, Tuple

import httpx

from .codecs import Codec, Codecs
from .config import DEFAULT_CREDENTIALS
from .message import HeaderPairs, SerializedNetworkError, SerializedRequest, SerializedResponse

_BODYLESS_METHODS = {"GET", "HEAD"}

# What a well-formed JSON payload with the wrong shape can raise while decoding or reviving
MALFORMED_PAYLOAD_ERRORS = (ValueError, KeyError, TypeError, httpx.InvalidURL)

# The relayed body is already decoded text
_DROPPED_RESPONSE_HEADERS = {"content-encoding"}


def serialize_request(request: httpx.Request, request_id: str) -> SerializedRequest:
    method = request.method.upper()
    body: Optional[str] = None
    if method not in _BODYLESS_METHODS:
        body = _request_bytes(request).decode("utf-8", errors="replace")

    return SerializedRequest(
        id=request_id,
        method=method,
        url=str(request.url),
        header_pairs=list(request.headers.multi_items()),
        credentials=request.extensions.get("credentials", DEFAULT_CREDENTIALS),
        body=body,
    )


def revive_request(record: SerializedRequest) -> httpx.Request:
    content = record.body.encode("utf-8") if record.body is not None else None
    return httpx.Request(
        record.method,
        httpx.URL(record.url),
        headers=httpx.Headers(record.header_pairs),
        content=content,
        extensions={"credentials": record.credentials},
    )


def parse_request(text: str, codec: Optional[Codec] = None) -> Tuple[SerializedRequest, httpx.Request]:
    """
    Decode a request payload, reviving the url into httpx.URL and the
    header pairs into httpx.Headers on the way.
    Raises one of MALFORMED_PAYLOAD_ERRORS on malformed input.
    """
    obj = (codec or Codecs.get("json")).loads(text)
    if not isinstance(obj, dict):
        raise ValueError("request payload must be an object")
    record = SerializedRequest.from_wire(obj)
    return record, revive_request(record)


def serialize_response(response: httpx.Response) -> SerializedResponse:
    # read() caches the content, so the caller can still use the response afterwards
    response.read()
    pairs: HeaderPairs = [
        (name, value)
        for name, value in response.headers.multi_items()
        if name.lower() not in _DROPPED_RESPONSE_HEADERS
    ]
    return SerializedResponse(
        status=response.status_code,
        status_text=response.reason_phrase,
        header_pairs=pairs,
        body=response.text,
    )


def revive_response(record: SerializedResponse, request: Optional[httpx.Request] = None) -> httpx.Response:
    headers = httpx.Headers(record.header_pairs)
    return httpx.Response(
        record.status,
        headers=headers,
        content=_encode_body(record.body, headers),
        request=request,
        extensions={"reason_phrase": record.status_text.encode("ascii", errors="ignore")},
    )


def parse_response(text: str, codec: Optional[Codec] = None) -> SerializedResponse:
    obj = (codec or Codecs.get("json")).loads(text)
    if not isinstance(obj, dict):
        raise ValueError("response payload must be an object")
    return SerializedResponse.from_wire(obj)


def serialize_network_error(reason: Any) -> SerializedNetworkError:
    if isinstance(reason, BaseException):
        return SerializedNetworkError(name=type(reason).__name__, message=str(reason))
    if reason is None:
        return SerializedNetworkError()
    return SerializedNetworkError(message=str(reason))


def parse_network_error(text: str, codec: Optional[Codec] = None) -> SerializedNetworkError:
    obj = (codec or Codecs.get("json")).loads(text)
    if not isinstance(obj, dict):
        raise ValueError("error payload must be an object")
    return SerializedNetworkError.from_wire(obj)


def unhandled_exception_response(exc: BaseException, codec: Optional[Codec] = None) -> httpx.Response:
    """500 response describing an exception raised by a request listener."""
    body = (codec or Codecs.get("json")).dumps({
        "name": type(exc).__name__,
        "message": str(exc),
        "stack": "".join(traceback.format_exception(exc)),
    })
    return httpx.Response(
        500,
        headers={"Content-Type": "application/json"},
        content=body.encode("utf-8"),
        extensions={"reason_phrase": b"Unhandled Exception"},
    )


def _request_bytes(request: httpx.Request) -> bytes:
    try:
        return request.content
    except httpx.RequestNotRead:
        return request.read()


def _encode_body(body: str, headers: httpx.Headers) -> bytes:
    charset = _declared_charset(headers)
    if charset:
        try:
            return body.encode(charset, errors="replace")
        except LookupError:
            pass
    return body.encode("utf-8")


def _declared_charset(headers: httpx.Headers) -> Optional[str]:
    content_type = headers.get("content-type", "")
    for part in content_type.split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.lower() == "charset" and value:
            return value.strip("\"' ")
    return None
