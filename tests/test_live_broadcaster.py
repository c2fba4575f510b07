"""Tests del canal live (WebSocket en proceso y Redis pub/sub)."""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from proximity_ingest.core.broadcast import RedisChannelBroadcaster, WebSocketBroadcaster
from proximity_ingest.core.domain.reading import LiveUpdate, Status

TS = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _update(distance_cm: float = 10.0, status: Status = Status.WARNING) -> LiveUpdate:
    return LiveUpdate(distance_cm=distance_cm, status=status, timestamp=TS)


async def _hang(_message):
    await asyncio.sleep(3600)


def _ws() -> AsyncMock:
    ws = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


# =============================================================================
# FAN-OUT EN PROCESO
# =============================================================================

class TestWebSocketBroadcaster:

    @pytest.mark.asyncio
    async def test_message_shape(self, subscriber):
        broadcaster = WebSocketBroadcaster()
        broadcaster.connect(subscriber)

        await broadcaster.broadcast(_update(4.2, Status.DANGER))

        subscriber.send_json.assert_awaited_once_with(
            {"distanceCm": 4.2, "status": "danger", "timestamp": TS.isoformat()}
        )

    @pytest.mark.asyncio
    async def test_delivers_to_every_connected_subscriber(self):
        broadcaster = WebSocketBroadcaster()
        subs = [_ws() for _ in range(3)]
        for s in subs:
            broadcaster.connect(s)

        delivered = await broadcaster.broadcast(_update())

        assert delivered == 3
        for s in subs:
            s.send_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_subscribers(self):
        assert await WebSocketBroadcaster().broadcast(_update()) == 0

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_no_backfill(self):
        broadcaster = WebSocketBroadcaster()
        early, late = _ws(), _ws()
        broadcaster.connect(early)

        await broadcaster.broadcast(_update(10.0))
        broadcaster.connect(late)
        await broadcaster.broadcast(_update(20.0, Status.SAFE))

        assert early.send_json.await_count == 2
        late.send_json.assert_awaited_once()
        assert late.send_json.await_args.args[0]["distanceCm"] == 20.0

    @pytest.mark.asyncio
    async def test_disconnected_subscriber_stops_receiving(self, subscriber):
        broadcaster = WebSocketBroadcaster()
        broadcaster.connect(subscriber)
        broadcaster.disconnect(subscriber)

        await broadcaster.broadcast(_update())

        subscriber.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_subscriber_dropped_others_served(self):
        broadcaster = WebSocketBroadcaster()
        broken, healthy = _ws(), _ws()
        broken.send_json.side_effect = RuntimeError("socket closed")
        broadcaster.connect(broken)
        broadcaster.connect(healthy)

        delivered = await broadcaster.broadcast(_update())

        assert delivered == 1
        healthy.send_json.assert_awaited_once()
        assert broadcaster.subscriber_count == 1
        assert broadcaster.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_hanging_subscriber_times_out_and_is_dropped(self):
        broadcaster = WebSocketBroadcaster(send_timeout_seconds=0.05)
        stuck, healthy = _ws(), _ws()
        stuck.send_json.side_effect = _hang
        broadcaster.connect(stuck)
        broadcaster.connect(healthy)

        delivered = await asyncio.wait_for(broadcaster.broadcast(_update()), timeout=2)

        assert delivered == 1
        healthy.send_json.assert_awaited_once()
        assert broadcaster.subscriber_count == 1
        assert broadcaster.stats["timeouts"] == 1

    def test_disconnect_unknown_subscriber_is_noop(self, subscriber):
        broadcaster = WebSocketBroadcaster()

        broadcaster.disconnect(subscriber)

        assert broadcaster.subscriber_count == 0


# =============================================================================
# REDIS PUB/SUB
# =============================================================================

@pytest.fixture
def redis_conn() -> MagicMock:
    conn = MagicMock()
    conn.is_connected = True
    conn.client.publish.return_value = 2
    return conn


class TestRedisChannelBroadcaster:

    @pytest.mark.asyncio
    async def test_publishes_json_to_channel(self, redis_conn):
        broadcaster = RedisChannelBroadcaster(redis_conn, channel="live:test")

        receivers = await broadcaster.broadcast(_update(7.5))

        assert receivers == 2
        channel, data = redis_conn.client.publish.call_args.args
        assert channel == "live:test"
        assert json.loads(data) == {
            "distanceCm": 7.5,
            "status": "warning",
            "timestamp": TS.isoformat(),
        }

    @pytest.mark.asyncio
    async def test_disconnected_skips_publish(self, redis_conn):
        redis_conn.is_connected = False
        redis_conn.connect.return_value = False
        broadcaster = RedisChannelBroadcaster(redis_conn)

        assert await broadcaster.broadcast(_update()) == 0
        redis_conn.client.publish.assert_not_called()
        redis_conn.connect.assert_called_once()

    @pytest.mark.asyncio
    async def test_reconnects_lazily_after_startup_failure(self, redis_conn):
        redis_conn.is_connected = False
        redis_conn.connect.return_value = True
        broadcaster = RedisChannelBroadcaster(redis_conn)

        assert await broadcaster.broadcast(_update()) == 2
        assert broadcaster.stats["reconnects"] == 1

    @pytest.mark.asyncio
    async def test_reconnect_attempts_are_rate_limited(self, redis_conn):
        redis_conn.is_connected = False
        redis_conn.connect.return_value = False
        broadcaster = RedisChannelBroadcaster(redis_conn, reconnect_interval_seconds=60)

        await broadcaster.broadcast(_update())
        await broadcaster.broadcast(_update())

        redis_conn.connect.assert_called_once()

    @pytest.mark.asyncio
    async def test_redis_error_is_not_fatal(self, redis_conn):
        redis_conn.client.publish.side_effect = redis.ConnectionError("down")
        broadcaster = RedisChannelBroadcaster(redis_conn)

        assert await broadcaster.broadcast(_update()) == 0
        assert broadcaster.stats["errors"] == 1
        redis_conn.disconnect.assert_called_once()
