"""
Tests for the realtime session manager.

Grace periods are shortened to 50ms by the ``sessions`` fixture so the
disconnect scenarios run in real time; the stale sweep is driven with
freezegun and sweep_once().
"""

import asyncio
from datetime import timedelta

import pytest
from freezegun import freeze_time

from chat.constants import RealtimeEvent

GRACE_WAIT = 0.2


@pytest.mark.asyncio
class TestConnectAndRegister:
    async def test_connect_sends_welcome_and_joins_presence_group(
        self, sessions, transport
    ):
        await sessions.connect("h1")

        [(event, data)] = transport.events_for("h1")
        assert event == RealtimeEvent.WELCOME
        assert data == {"message": "Connected to chat server", "connectionId": "h1"}
        assert "h1" in transport.groups["presence"]

    async def test_register_announces_user(self, sessions, registry, transport):
        await sessions.connect("h1")
        transport.reset()

        result = await sessions.register("h1", "7")

        assert result.data is True
        assert registry.lookup("7") == "h1"
        assert "h1" in transport.groups["user_7"]
        assert transport.events_for("h1") == [(RealtimeEvent.ONLINE_USERS, ["7"])]
        assert transport.group_events("presence") == [
            (RealtimeEvent.USER_ONLINE, "7", "h1")
        ]

    async def test_register_without_user_id_is_ignored(
        self, sessions, registry, transport
    ):
        await sessions.connect("h1")
        transport.reset()

        result = await sessions.register("h1", "")

        assert result.data is False
        assert len(registry) == 0
        assert transport.sent == [] and transport.group_sent == []

    async def test_re_register_as_other_user_releases_previous(
        self, sessions, registry, transport
    ):
        await sessions.connect("h1")
        await sessions.register("h1", "7")
        transport.reset()

        await sessions.register("h1", "8")

        assert registry.lookup("7") is None
        assert registry.lookup("8") == "h1"
        assert (RealtimeEvent.USER_OFFLINE, "7", "h1") in transport.group_events("presence")

    async def test_heartbeat_touches_bound_user(self, sessions, registry):
        with freeze_time("2026-01-01 12:00:00") as frozen:
            await sessions.connect("h1")
            await sessions.register("h1", "7")
            frozen.tick(timedelta(seconds=30))

            sessions.heartbeat("h1")

            assert registry.get_entry("7").last_seen.second == 30


@pytest.mark.asyncio
class TestDisconnectGracePeriod:
    async def test_user_removed_after_grace(self, sessions, registry, transport):
        """Scenario: a clean disconnect takes the user offline after the grace period."""
        await sessions.connect("h1")
        await sessions.register("h1", "7")
        transport.reset()

        await sessions.disconnect("h1")

        assert registry.lookup("7") == "h1"
        assert sessions.pending_removals == 1

        await asyncio.sleep(GRACE_WAIT)

        assert registry.lookup("7") is None
        assert sessions.pending_removals == 0
        assert transport.group_events("presence") == [
            (RealtimeEvent.ONLINE_USERS, [], None),
            (RealtimeEvent.USER_OFFLINE, "7", None),
        ]

    async def test_reconnect_within_grace_keeps_user_online(
        self, sessions, registry, transport
    ):
        """Scenario: a tab refresh produces no user_offline."""
        await sessions.connect("h1")
        await sessions.register("h1", "7")

        await sessions.disconnect("h1")
        await sessions.connect("h2")
        await sessions.register("h2", "7")
        transport.reset()

        await asyncio.sleep(GRACE_WAIT)

        assert registry.lookup("7") == "h2"
        offline = [
            e for e in transport.group_events("presence") if e[0] == RealtimeEvent.USER_OFFLINE
        ]
        assert offline == []

    async def test_anonymous_disconnect_schedules_nothing(self, sessions):
        await sessions.connect("h1")

        await sessions.disconnect("h1")

        assert sessions.pending_removals == 0

    async def test_disconnect_leaves_groups(self, sessions, transport):
        await sessions.connect("h1")
        await sessions.register("h1", "7")

        await sessions.disconnect("h1")

        assert "h1" not in transport.groups["presence"]
        assert "h1" not in transport.groups["user_7"]

    async def test_stop_cancels_pending_removals(self, sessions, registry):
        sessions.grace_seconds = 60
        await sessions.connect("h1")
        await sessions.register("h1", "7")
        await sessions.disconnect("h1")

        await sessions.stop()

        assert sessions.pending_removals == 0
        assert registry.lookup("7") == "h1"


@pytest.mark.asyncio
class TestStaleSweep:
    async def test_sweep_removes_idle_users_and_broadcasts(
        self, sessions, registry, transport
    ):
        """Scenario: a connection that died silently is reclaimed by the sweep."""
        with freeze_time("2026-01-01 12:00:00") as frozen:
            await sessions.connect("h1")
            await sessions.register("h1", "7")
            await sessions.connect("h2")
            await sessions.register("h2", "8")

            frozen.tick(timedelta(seconds=200))
            sessions.heartbeat("h2")
            frozen.tick(timedelta(seconds=150))
            transport.reset()

            removed = await sessions.sweep_once()

        assert removed == ["7"]
        assert registry.list_online() == ["8"]
        assert transport.group_events("presence") == [
            (RealtimeEvent.ONLINE_USERS, ["8"], None),
            (RealtimeEvent.USER_OFFLINE, "7", None),
        ]

    async def test_sweep_with_nothing_stale_is_silent(self, sessions, transport):
        await sessions.connect("h1")
        await sessions.register("h1", "7")
        transport.reset()

        assert await sessions.sweep_once() == []
        assert transport.group_sent == []

    async def test_ensure_started_is_idempotent(self, sessions):
        sessions.ensure_started()
        first = sessions._sweeper

        sessions.ensure_started()

        assert sessions._sweeper is first
        assert sessions.is_running
        await sessions.stop()
        assert not sessions.is_running
