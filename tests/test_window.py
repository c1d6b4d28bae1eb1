"""Tests for the postMessage channels between an embedding window and a frame."""

import httpx
import pytest

from remotehttp import (
    BrowsingContext,
    RemoteHttp,
    TransportConfigurationError,
    WindowInterceptorChannel,
    WindowResolverChannel,
)


@pytest.fixture
def top():
    return BrowsingContext("https://app.example")


@pytest.fixture
def frame(top):
    return top.create_frame("https://frame.example")


def _answer_with(resolver, text):
    resolver.on("request", lambda event: event.controller.respond_with(httpx.Response(200, text=text)))


# ── browsing contexts ────────────────────────────────────────────


class TestBrowsingContext:
    def test_top_level_is_its_own_parent(self, top):
        assert top.parent is top

    def test_frame_points_at_creator(self, top, frame):
        assert frame.parent is top

    def test_origin_mismatch_drops(self, top):
        got = []
        top.add_event_listener("message", got.append)

        top.post_message("hi", "https://elsewhere.example")
        top.post_message("hi", "https://app.example")

        assert [event.data for event in got] == ["hi"]

    def test_closed_context_refuses_messages(self, top):
        top.close()

        with pytest.raises(RuntimeError):
            top.post_message("hi")


# ── channels ─────────────────────────────────────────────────────


class TestWindowChannels:
    def test_interceptor_needs_a_parent(self, top, frame):
        assert WindowInterceptorChannel(top).is_usable() is False
        assert WindowInterceptorChannel(frame).is_usable() is True

    def test_resolver_needs_a_target(self, top):
        with pytest.raises(TransportConfigurationError):
            WindowResolverChannel(top, None)

    def test_resolver_target_must_differ(self, top, frame):
        assert WindowResolverChannel(top, top).is_usable() is False
        assert WindowResolverChannel(top, frame).is_usable() is True

    def test_send_to_closed_window_fails_quietly(self, top, frame):
        channel = WindowResolverChannel(top, frame)
        frame.close()

        assert channel.try_send("x") is False

    def test_filters(self, top, frame):
        other = top.create_frame("https://other.example")
        channel = WindowResolverChannel(top, frame, source_origin="https://frame.example")
        got = []
        channel.subscribe(got.append)

        top.post_message({"not": "a string"}, source=frame)
        top.post_message("from other frame", source=other)
        top.post_message("from frame", source=frame)

        assert got == ["from frame"]

    def test_unauthorized_origin_is_ignored(self, top, frame):
        channel = WindowResolverChannel(top, frame, source_origin="https://trusted.example")
        got = []
        channel.subscribe(got.append)

        top.post_message("hello", source=frame)

        assert got == []

    def test_unsubscribe_removes_event_listener(self, top, frame):
        unsubscribe = WindowResolverChannel(top, frame).subscribe(lambda raw: None)
        assert top.listener_count() == 1

        unsubscribe()

        assert top.listener_count() == 0


# ── roles over windows ───────────────────────────────────────────


class TestWindowRoles:
    def test_frame_request_answered_by_top(self, top, frame):
        resolver = RemoteHttp("resolver", transport="window", window=top, target_window=frame)
        _answer_with(resolver, "from top")
        interceptor = RemoteHttp("interceptor", transport="window", window=frame)

        response = interceptor.handle_request(httpx.Request("GET", "https://api.example/")).result(timeout=1)

        assert response.text == "from top"

    def test_target_origin_is_enforced(self, top, frame):
        resolver = RemoteHttp("resolver", transport="window", window=top, target_window=frame)
        _answer_with(resolver, "unused")
        interceptor = RemoteHttp("interceptor", transport="window", window=frame,
                                 target_origin="https://not-the-parent.example")

        future = interceptor.handle_request(httpx.Request("GET", "https://api.example/"))

        assert not future.done()

    def test_sibling_frames_are_kept_apart(self, top, frame):
        sibling = top.create_frame("https://sibling.example")
        for target, text in ((frame, "frame"), (sibling, "sibling")):
            resolver = RemoteHttp("resolver", transport="window", window=top, target_window=target)
            _answer_with(resolver, text)

        texts = [
            RemoteHttp("interceptor", transport="window", window=context)
            .handle_request(httpx.Request("GET", "https://api.example/")).result(timeout=1).text
            for context in (frame, sibling)
        ]

        assert texts == ["frame", "sibling"]

    def test_top_level_interceptor_is_inactive(self, top):
        interceptor = RemoteHttp("interceptor", transport="window", window=top)

        assert interceptor.active is False

    def test_dispose_detaches_from_window(self, top, frame):
        resolver = RemoteHttp("resolver", transport="window", window=top, target_window=frame)
        assert top.listener_count() == 1

        resolver.dispose()

        assert top.listener_count() == 0

    def test_factory_without_target_window(self, top):
        with pytest.raises(TransportConfigurationError):
            RemoteHttp("resolver", transport="window", window=top, target_window=None)
