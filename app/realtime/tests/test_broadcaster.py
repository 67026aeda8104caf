"""
Tests for the realtime broadcaster.

Scopes, wire encoding, settings-driven selection and the "log, don't fail"
contract of publish_safely.
"""

import uuid
from datetime import datetime, timezone as dt_timezone

import pytest

from core.exceptions import TransportError
from realtime import broadcaster as broadcaster_module
from realtime.broadcaster import (
    CHANNEL_EVENT_TYPE,
    ChannelLayerBroadcaster,
    NullBroadcaster,
    Scope,
    channel_event,
    get_broadcaster,
    publish_safely,
    to_wire,
)
from realtime.tests.broadcasters import RecordingBroadcaster


class TestScope:
    def test_group_names(self):
        key = uuid.UUID("11111111-2222-3333-4444-555555555555")

        assert Scope.conversation(key).group_name == f"conversation_{key}"
        assert Scope.group(key).group_name == f"group_{key}"
        assert Scope.user(key).group_name == f"user_{key}"
        assert Scope.all_users().group_name == "all_users"

    def test_scopes_compare_by_value(self):
        key = uuid.uuid4()

        assert Scope.conversation(key) == Scope.conversation(str(key))


class TestWireEncoding:
    def test_uuid_and_datetime_become_strings(self):
        key = uuid.uuid4()
        when = datetime(2026, 3, 10, 12, 0, tzinfo=dt_timezone.utc)

        wire = to_wire({"id": key, "at": when, "nested": {"ids": [key]}})

        assert wire == {
            "id": str(key),
            "at": "2026-03-10T12:00:00Z",
            "nested": {"ids": [str(key)]},
        }

    def test_channel_event_targets_consumer_handler(self):
        message = channel_event("new_message", {"message": {"id": "m1"}})

        assert message == {
            "type": CHANNEL_EVENT_TYPE,
            "event": "new_message",
            "data": {"message": {"id": "m1"}},
        }


class TestGetBroadcaster:
    def test_default_is_channel_layer(self, settings):
        del settings.REALTIME_BROADCASTER

        assert isinstance(get_broadcaster(), ChannelLayerBroadcaster)

    def test_configured_path(self, settings):
        settings.REALTIME_BROADCASTER = "realtime.broadcaster.NullBroadcaster"

        assert isinstance(get_broadcaster(), NullBroadcaster)


class TestChannelLayerBroadcaster:
    def test_missing_layer_is_transport_error(self, monkeypatch):
        monkeypatch.setattr(broadcaster_module, "get_channel_layer", lambda: None)

        with pytest.raises(TransportError):
            ChannelLayerBroadcaster().publish("new_message", Scope.all_users(), {})

    def test_layer_failure_is_transport_error(self, monkeypatch):
        class BrokenLayer:
            async def group_send(self, group, message):
                raise ConnectionError("redis down")

        monkeypatch.setattr(broadcaster_module, "get_channel_layer", lambda: BrokenLayer())

        with pytest.raises(TransportError) as exc_info:
            ChannelLayerBroadcaster().publish("new_message", Scope.all_users(), {})

        assert exc_info.value.details == {"event": "new_message", "group": "all_users"}

    def test_sends_channel_event_to_group(self, monkeypatch):
        sent = []

        class Layer:
            async def group_send(self, group, message):
                sent.append((group, message))

        monkeypatch.setattr(broadcaster_module, "get_channel_layer", lambda: Layer())
        key = uuid.uuid4()

        ChannelLayerBroadcaster().publish("user_typing", Scope.group(key), {"user_id": key})

        assert sent == [
            (
                f"group_{key}",
                {
                    "type": CHANNEL_EVENT_TYPE,
                    "event": "user_typing",
                    "data": {"user_id": str(key)},
                },
            )
        ]


class TestPublishSafely:
    def test_success(self):
        recorder = RecordingBroadcaster()

        assert publish_safely(recorder, "new_message", Scope.all_users(), {"a": 1}) is True
        assert recorder.published == [("new_message", Scope.all_users(), {"a": 1})]

    def test_transport_error_is_logged_not_raised(self, caplog):
        recorder = RecordingBroadcaster()
        recorder.fail = True

        assert publish_safely(recorder, "new_message", Scope.all_users(), {}) is False
        assert "Broadcast of new_message to all_users failed" in caplog.text
