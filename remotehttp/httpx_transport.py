"""
httpx transports that route every request through a RemoteHttpInterceptor.

    client = httpx.Client(transport=InterceptingTransport(interceptor))

A mocked response from the resolver is returned as-is; a pass-through decision
sends the request over the real network via `passthrough`.
"""

from __future__ import annotations
from typing import Optional
import asyncio
import concurrent.futures

import httpx

from .errors import RemoteNetworkError
from .interceptor import RemoteHttpInterceptor


class InterceptingTransport(httpx.BaseTransport):

    def __init__(self, interceptor: RemoteHttpInterceptor,
                 passthrough: Optional[httpx.BaseTransport] = None,
                 timeout: Optional[float] = None):
        self.interceptor = interceptor
        self.timeout = timeout
        self._passthrough = passthrough

    @property
    def passthrough(self) -> httpx.BaseTransport:
        if self._passthrough is None:
            self._passthrough = httpx.HTTPTransport()
        return self._passthrough

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        request.read()
        future = self.interceptor.handle_request(request)
        try:
            response = future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError as exc:
            raise httpx.ReadTimeout("no decision from the remote resolver", request=request) from exc
        except RemoteNetworkError as exc:
            raise httpx.NetworkError(str(exc), request=request) from exc

        if response is None:
            return self.passthrough.handle_request(request)
        return response

    def close(self) -> None:
        if self._passthrough is not None:
            self._passthrough.close()


class AsyncInterceptingTransport(httpx.AsyncBaseTransport):

    def __init__(self, interceptor: RemoteHttpInterceptor,
                 passthrough: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: Optional[float] = None):
        self.interceptor = interceptor
        self.timeout = timeout
        self._passthrough = passthrough

    @property
    def passthrough(self) -> httpx.AsyncBaseTransport:
        if self._passthrough is None:
            self._passthrough = httpx.AsyncHTTPTransport()
        return self._passthrough

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        future = self.interceptor.handle_request(request)
        try:
            response = await asyncio.wait_for(asyncio.wrap_future(future), self.timeout)
        except asyncio.TimeoutError as exc:
            raise httpx.ReadTimeout("no decision from the remote resolver", request=request) from exc
        except RemoteNetworkError as exc:
            raise httpx.NetworkError(str(exc), request=request) from exc

        if response is None:
            return await self.passthrough.handle_async_request(request)
        return response

    async def aclose(self) -> None:
        if self._passthrough is not None:
            await self._passthrough.aclose()
