"""Shared fixtures for the remotehttp test suite."""

import pytest

from remotehttp import MemoryChannel, RemoteHttp


@pytest.fixture
def channels():
    """Interceptor and resolver ends of one in-memory medium."""
    return MemoryChannel.pair()


@pytest.fixture
def interceptor(channels):
    interceptor = RemoteHttp("interceptor", channel=channels[0], message_prefix="test")
    yield interceptor
    interceptor.dispose()


@pytest.fixture
def resolver(channels):
    resolver = RemoteHttp("resolver", channel=channels[1], message_prefix="test")
    yield resolver
    resolver.dispose()


@pytest.fixture
def wire_log(channels):
    """Every raw string that reaches the resolver end, in order."""
    received = []
    channels[1].subscribe(received.append)
    return received
