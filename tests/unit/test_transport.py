"""Unit tests for LocalTransport — shared topics, history and identifiers."""

from __future__ import annotations

import pytest

from channelfork.bridge.transport import (
    Channel,
    ChannelOpenError,
    ChannelPublishError,
    ChannelTransport,
    LocalTransport,
    is_valid_identifier,
)
from channelfork.models.messages import DeliveryMode


class TestIdentifierValidation:
    @pytest.mark.parametrize(
        "identifier",
        ["ndn:/test-fork", "ndn:/test-fork/S1", "ndn:/a/b/c/", "mqtt:/sensors/SUNSETPASSDEX_1"],
    )
    def test_valid(self, identifier):
        assert is_valid_identifier(identifier)

    @pytest.mark.parametrize(
        "identifier",
        ["", "test-fork", "ndn:", "ndn:/", "ndn:/a//b", "ndn:/has space", "1ndn:/x"],
    )
    def test_invalid(self, identifier):
        assert not is_valid_identifier(identifier)

    def test_open_rejects_malformed(self, transport):
        with pytest.raises(ChannelOpenError):
            transport.open("ndn:/a//b")

    def test_invalid_node_identity_rejected(self):
        with pytest.raises(ValueError):
            LocalTransport("not an identity")


class TestLocalTransport:
    def test_satisfies_protocols(self, transport):
        assert isinstance(transport, ChannelTransport)
        assert isinstance(transport.open("ndn:/node/x"), Channel)

    def test_default_identity(self, transport):
        assert transport.default_identity == "ndn:/node"

    def test_handles_share_topic(self, transport):
        writer = transport.open("ndn:/node/x")
        reader = transport.open("ndn:/node/x")
        writer.publish(b"hello")
        assert reader.latest() == b"hello"
        assert writer is not reader

    def test_subscribers_receive_publishes(self, transport):
        received: list[bytes] = []
        transport.open("ndn:/node/x").subscribe(received.append)
        transport.open("ndn:/node/x").publish(b"one")
        transport.open("ndn:/node/x").publish(b"two")
        assert received == [b"one", b"two"]

    def test_close_unsubscribes(self, transport):
        received: list[bytes] = []
        channel = transport.open("ndn:/node/x")
        channel.subscribe(received.append)
        channel.close()
        transport.open("ndn:/node/x").publish(b"late")
        assert received == []

    def test_close_is_idempotent(self, transport):
        channel = transport.open("ndn:/node/x")
        channel.close()
        channel.close()
        assert not channel.is_open

    def test_publish_on_closed_handle_raises(self, transport):
        channel = transport.open("ndn:/node/x")
        channel.close()
        with pytest.raises(ChannelPublishError):
            channel.publish(b"x")

    def test_subscribe_on_closed_handle_raises(self, transport):
        channel = transport.open("ndn:/node/x")
        channel.close()
        with pytest.raises(ChannelOpenError):
            channel.subscribe(lambda payload: None)

    def test_history_is_bounded(self):
        transport = LocalTransport("ndn:/node", max_history=3)
        channel = transport.open("ndn:/node/x")
        for i in range(5):
            channel.publish(str(i).encode())
        assert channel.history() == [b"2", b"3", b"4"]
        assert channel.published_count == 5

    def test_volatile_keeps_latest_only(self, transport):
        channel = transport.open("ndn:/node/x", DeliveryMode.VOLATILE)
        channel.publish(b"a")
        channel.publish(b"b")
        assert channel.history() == [b"b"]

    def test_latest_on_empty_topic(self, transport):
        assert transport.open("ndn:/node/x").latest() is None

    def test_inspection_helpers(self, transport):
        transport.open("ndn:/node/b").publish(b"1")
        transport.open("ndn:/node/a")
        transport.open("ndn:/node/a")
        assert transport.topics() == ["ndn:/node/a", "ndn:/node/b"]
        assert transport.open_count("ndn:/node/a") == 2
        assert transport.open_count("ndn:/node/never") == 0
        assert transport.published_counts() == {"ndn:/node/a": 0, "ndn:/node/b": 1}
        assert len(transport.handles("ndn:/node/a")) == 2
        assert len(transport.handles()) == 3
