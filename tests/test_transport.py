"""Tests for the prefixed transport and the in-memory channel."""

import pytest

from remotehttp import MemoryChannel, Transport, TransportOptions
from remotehttp.config import DEFAULT_MESSAGE_PREFIX, PREFIX_ENV


class RecordingChannel(MemoryChannel):
    """MemoryChannel that records the order its cleanups run in."""

    def __init__(self, name="recording"):
        super().__init__(name)
        self.events = []

    def subscribe(self, on_raw):
        unsubscribe = super().subscribe(on_raw)

        def _unsubscribe():
            self.events.append("channel")
            unsubscribe()
        return _unsubscribe

    def observe_lifecycle(self, on_closed):
        unsubscribe = super().observe_lifecycle(on_closed)

        def _unsubscribe():
            self.events.append("lifecycle")
            unsubscribe()
        return _unsubscribe


class BrokenChannel(MemoryChannel):
    def try_send(self, raw):
        raise RuntimeError("destination gone")


def _transport(channel, prefix="p"):
    return Transport(channel, TransportOptions(message_prefix=prefix))


# ── TransportOptions ─────────────────────────────────────────────


class TestTransportOptions:
    def test_default_prefix(self, monkeypatch):
        monkeypatch.delenv(PREFIX_ENV, raising=False)
        assert TransportOptions().resolved_prefix() == DEFAULT_MESSAGE_PREFIX
        assert DEFAULT_MESSAGE_PREFIX == "remote-http-transport"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv(PREFIX_ENV, "from-env")
        assert TransportOptions().resolved_prefix() == "from-env"

    def test_explicit_prefix_wins(self, monkeypatch):
        monkeypatch.setenv(PREFIX_ENV, "from-env")
        assert TransportOptions(message_prefix="explicit").resolved_prefix() == "explicit"

    def test_name_defaults_to_channel_class(self):
        assert Transport(MemoryChannel()).name == "MemoryChannel"
        assert Transport(MemoryChannel(), TransportOptions(name="custom")).name == "custom"


# ── send ─────────────────────────────────────────────────────────


class TestSend:
    def test_send_prefixes_message(self):
        a, b = MemoryChannel.pair()
        received = []
        b.subscribe(received.append)
        assert _transport(a).send("hello") is True
        assert received == ["p:hello"]

    def test_send_after_dispose_is_noop(self):
        a, b = MemoryChannel.pair()
        received = []
        b.subscribe(received.append)
        t = _transport(a)
        t.dispose()
        assert t.send("hello") is False
        assert received == []

    def test_channel_exception_is_swallowed(self):
        a, _ = BrokenChannel.pair()
        assert _transport(a).send("hello") is False

    def test_closed_peer_reports_failure(self):
        a, b = MemoryChannel.pair()
        t = _transport(a)
        b.closed = True
        assert t.send("hello") is False

    def test_is_available_delegates_to_channel(self):
        a, _ = MemoryChannel.pair()
        t = _transport(a)
        assert t.is_available() is True
        assert _transport(MemoryChannel()).is_available() is False


# ── listeners ────────────────────────────────────────────────────


class TestListeners:
    def test_listener_receives_stripped_message(self):
        a, b = MemoryChannel.pair()
        got = []
        _transport(b).add_listener(got.append)
        _transport(a).send("hello")
        assert got == ["hello"]

    def test_foreign_prefix_is_ignored(self):
        a, b = MemoryChannel.pair()
        got = []
        t = _transport(b)
        t.add_listener(got.append)
        a.try_send("other:hello")
        a.try_send("no prefix at all")
        assert got == []
        assert t.handle_message("other:hello") is False

    def test_prefix_must_end_at_colon(self):
        a, b = MemoryChannel.pair()
        got = []
        _transport(b, "p1").add_listener(got.append)
        a.try_send("p10:hello")
        assert got == []

    def test_handle_message_passes_unstripped_message_to_registry(self):
        t = _transport(MemoryChannel())
        got = []
        t.add_listener(got.append)
        assert t.handle_message("p:request:{}") is True
        assert got == ["request:{}"]

    def test_transports_share_one_channel_without_crosstalk(self):
        a, b = MemoryChannel.pair()
        got_one, got_two = [], []
        _transport(b, "one").add_listener(got_one.append)
        _transport(b, "two").add_listener(got_two.append)
        _transport(a, "one").send("first")
        _transport(a, "two").send("second")
        assert got_one == ["first"]
        assert got_two == ["second"]

    def test_unsubscribe_stops_delivery(self):
        a, b = MemoryChannel.pair()
        got = []
        t = _transport(b)
        unsubscribe = t.add_listener(got.append)
        unsubscribe()
        unsubscribe()  # idempotent
        _transport(a).send("hello")
        assert got == []
        assert t.listener_count == 0

    def test_failing_handler_does_not_block_others(self):
        a, b = MemoryChannel.pair()
        got = []
        t = _transport(b)

        def boom(message):
            raise RuntimeError("handler failed")

        t.add_listener(boom)
        t.add_listener(got.append)
        _transport(a).send("hello")
        _transport(a).send("again")
        assert got == ["hello", "again"]

    def test_add_listener_after_dispose_is_inert(self):
        a, b = MemoryChannel.pair()
        got = []
        t = _transport(b)
        t.dispose()
        unsubscribe = t.add_listener(got.append)
        unsubscribe()
        _transport(a).send("hello")
        assert got == []
        assert b.subscriber_count == 0

    def test_channel_subscription_is_shared_by_listeners(self):
        _, b = MemoryChannel.pair()
        t = _transport(b)
        t.add_listener(lambda m: None)
        t.add_listener(lambda m: None)
        assert b.subscriber_count == 1
        assert t.listener_count == 2


# ── dispose ──────────────────────────────────────────────────────


class TestDispose:
    def test_no_delivery_after_dispose(self):
        a, b = MemoryChannel.pair()
        got = []
        t = _transport(b)
        t.add_listener(got.append)
        t.dispose()
        _transport(a).send("hello")
        assert got == []
        assert t.listener_count == 0
        assert b.subscriber_count == 0

    def test_dispose_twice_runs_cleanups_once(self):
        channel = RecordingChannel()
        t = _transport(channel)
        t.add_listener(lambda m: None)
        t.dispose()
        t.dispose()
        assert channel.events == ["lifecycle", "channel"]
        assert t.disposed is True

    def test_dispose_from_inside_a_handler(self):
        a, b = MemoryChannel.pair()
        t = _transport(b)
        later = []
        t.add_listener(lambda m: t.dispose())
        t.add_listener(later.append)
        sender = _transport(a)
        sender.send("first")
        sender.send("second")
        assert t.disposed is True
        assert later == []

    def test_peer_close_disposes_transport(self):
        a, b = MemoryChannel.pair()
        t = _transport(b)
        t.add_listener(lambda m: None)
        a.close()
        assert t.disposed is True
        assert b.subscriber_count == 0

    def test_construction_on_closed_channel(self):
        a, b = MemoryChannel.pair()
        a.close()
        t = _transport(b)
        # Already-closed media never fire again; the transport just reports unavailable
        assert t.is_available() is False

    @pytest.mark.parametrize("prefix", ["p", "remote-http-transport", "with:colon"])
    def test_send_after_dispose_never_reaches_peer(self, prefix):
        a, b = MemoryChannel.pair()
        received = []
        b.subscribe(received.append)
        t = _transport(a, prefix)
        t.send("before")
        t.dispose()
        t.send("after")
        assert received == [f"{prefix}:before"]
