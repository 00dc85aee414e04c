from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from nautilus_trader.common.component import LiveClock

from lighter_trading.common.channel import LighterChannelClosed
from lighter_trading.common.enums import LighterSyncChannel
from lighter_trading.common.enums import LighterSyncEventKind
from lighter_trading.common.errors import LighterSyncError
from lighter_trading.common.errors import LighterSyncErrorKind
from lighter_trading.data import LighterRealtimeStateSync
from tests.conftest import eventually


BOOK = LighterSyncChannel.ORDER_BOOK
ACCOUNT = LighterSyncChannel.ACCOUNT


def _book(seq: int, bids=(), asks=(), full: bool = False, target: int = 0) -> dict:
    payload = {
        "bids": [{"price": p, "size": s} for p, s in bids],
        "asks": [{"price": p, "size": s} for p, s in asks],
    }
    msg = {"type": "update", "channel": "orderbook", "target": target, "seq": seq}
    msg["fullState" if full else "diff"] = payload
    return msg


def _subscribes(ws, channel: str, target: int) -> list[dict]:
    return [m for m in ws.sent_of_type("subscribe") if m["channel"] == channel and m["target"] == target]


async def _handshake(ws_connector, index: int = 0):
    ws = await ws_connector.connection(index)
    ws.push({"type": "connected"})
    await eventually(lambda: len(ws.sent_of_type("subscribe")) > 0)
    return ws


async def _next(events, timeout: float = 1.0):
    return await asyncio.wait_for(events.get(), timeout)


@pytest_asyncio.fixture
async def sync(ws_connector):
    sync = LighterRealtimeStateSync(
        loop=asyncio.get_running_loop(),
        clock=LiveClock(),
        base_url_ws="wss://testnet.example/stream",
        queue_size=16,
        ws_kwargs={"reconnect_delay_initial_ms": 1, "reconnect_delay_max_ms": 5},
        connector=ws_connector,
    )
    yield sync
    await sync.disconnect()


@pytest.mark.asyncio
async def test_snapshot_then_contiguous_deltas(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    await sync.connect()
    ws = await _handshake(ws_connector)

    ws.push(_book(4, bids=[("100", "1")], asks=[("101", "1")], full=True))
    ws.push(_book(5, bids=[("100", "2")]))

    snapshot = await _next(events)
    delta = await _next(events)

    assert snapshot.kind == LighterSyncEventKind.SNAPSHOT
    assert snapshot.seq == 4
    assert delta.kind == LighterSyncEventKind.DELTA
    assert delta.order_book.bids == ((Decimal("100"), Decimal("2")),)
    assert sync.order_book(0).seq == 5
    assert sync.last_seq(BOOK, 0) == 5
    assert not sync.is_stale(BOOK, 0)


@pytest.mark.asyncio
async def test_sequence_gap_triggers_resync(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    other = await sync.subscribe(BOOK, 1)
    await sync.connect()
    ws = await _handshake(ws_connector)
    await eventually(lambda: len(_subscribes(ws, "orderbook", 1)) == 1)

    ws.push(_book(1, bids=[("50", "1")], full=True, target=1))
    ws.push(_book(4, bids=[("100", "1")], asks=[("101", "1")], full=True))
    ws.push(_book(5, bids=[("100", "2")]))
    ws.push(_book(6, asks=[("101.5", "1")]))
    ws.push(_book(8, bids=[("99", "1")]))

    received = [await _next(events) for _ in range(4)]

    assert [e.kind for e in received] == [
        LighterSyncEventKind.SNAPSHOT,
        LighterSyncEventKind.DELTA,
        LighterSyncEventKind.DELTA,
        LighterSyncEventKind.RESYNC,
    ]
    assert [e.seq for e in received[:3]] == [4, 5, 6]
    assert received[3].error == LighterSyncErrorKind.SEQUENCE_GAP
    assert received[3].is_discontinuity
    with pytest.raises(LighterSyncError):
        received[3].raise_for_discontinuity()
    assert received[0].raise_for_discontinuity() is received[0]
    assert sync.is_stale(BOOK, 0)
    assert sync.order_book(0) is None

    # Fresh snapshot requested for the gapped subscription only
    await eventually(lambda: len(_subscribes(ws, "orderbook", 0)) == 2)
    assert len(_subscribes(ws, "orderbook", 1)) == 1
    assert (await _next(other)).kind == LighterSyncEventKind.SNAPSHOT
    assert not sync.is_stale(BOOK, 1)

    # Deltas are ignored until the snapshot arrives
    ws.push(_book(9, bids=[("98", "1")]))
    ws.push(_book(20, bids=[("100", "3")], asks=[("101", "2")], full=True))
    ws.push(_book(21, asks=[("101", "0")]))

    resynced = await _next(events)
    after = await _next(events)

    assert resynced.kind == LighterSyncEventKind.SNAPSHOT
    assert resynced.seq == 20
    assert after.seq == 21
    book = sync.order_book(0)
    assert book.bids == ((Decimal("100"), Decimal("3")),)
    assert book.asks == ()


@pytest.mark.asyncio
async def test_deltas_before_first_snapshot_are_dropped(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    await sync.connect()
    ws = await _handshake(ws_connector)

    ws.push(_book(3, bids=[("100", "1")]))
    ws.push(_book(4, bids=[("100", "2")], full=True))

    first = await _next(events)
    assert first.kind == LighterSyncEventKind.SNAPSHOT
    assert first.seq == 4
    assert events.empty()


@pytest.mark.asyncio
async def test_malformed_delta_triggers_resync(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    await sync.connect()
    ws = await _handshake(ws_connector)

    ws.push(_book(1, bids=[("100", "1")], full=True))
    ws.push(_book(2, bids=[("100", "not-a-number")]))

    assert (await _next(events)).kind == LighterSyncEventKind.SNAPSHOT
    resync = await _next(events)
    assert resync.kind == LighterSyncEventKind.RESYNC
    assert "invalid delta" in resync.reason


@pytest.mark.asyncio
async def test_disconnect_notifies_and_resubscribes(sync, ws_connector):
    events = await sync.subscribe(ACCOUNT, 7)
    await sync.connect()
    ws = await _handshake(ws_connector)

    ws.push(
        {
            "type": "update",
            "channel": "account",
            "target": 7,
            "seq": 1,
            "fullState": {"balances": {"USDC": "100"}},
        },
    )
    assert (await _next(events)).kind == LighterSyncEventKind.SNAPSHOT
    assert sync.account(7).balances == {"USDC": "100"}

    ws.drop()

    lost = await _next(events)
    assert lost.kind == LighterSyncEventKind.DISCONNECTED
    assert lost.error == LighterSyncErrorKind.DISCONNECTED
    assert sync.account(7) is None

    ws2 = await _handshake(ws_connector, index=1)
    assert ws2.sent_of_type("subscribe") == [{"type": "subscribe", "channel": "account", "target": 7}]

    ws2.push(
        {
            "type": "update",
            "channel": "account",
            "target": 7,
            "seq": 50,
            "fullState": {"balances": {"USDC": "90"}},
        },
    )
    recovered = await _next(events)
    assert recovered.kind == LighterSyncEventKind.SNAPSHOT
    assert recovered.account.balances == {"USDC": "90"}


@pytest.mark.asyncio
async def test_unsubscribe_closes_channel(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    await sync.connect()
    ws = await _handshake(ws_connector)

    await sync.unsubscribe(BOOK, 0)

    assert ws.sent_of_type("unsubscribe") == [{"type": "unsubscribe", "channel": "orderbook", "target": 0}]
    assert events.is_closed
    with pytest.raises(LighterChannelClosed):
        await _next(events)
    assert sync.events(BOOK, 0) is None


@pytest.mark.asyncio
async def test_server_ping_is_answered(sync, ws_connector):
    await sync.subscribe(BOOK, 0)
    await sync.connect()
    ws = await _handshake(ws_connector)

    ws.push({"type": "ping"})

    await eventually(lambda: ws.sent_of_type("pong") == [{"type": "pong"}])


@pytest.mark.asyncio
async def test_untargeted_sequenced_frame_resyncs_channel(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    account = await sync.subscribe(ACCOUNT, 7)
    await sync.connect()
    ws = await _handshake(ws_connector)
    await eventually(lambda: len(_subscribes(ws, "account", 7)) == 1)

    ws.push(_book(1, bids=[("100", "1")], full=True))
    assert (await _next(events)).kind == LighterSyncEventKind.SNAPSHOT

    ws.push(b'{"type":"update","channel":"orderbook","seq":2,"diff":{"bids":[]}}')

    resync = await _next(events)
    assert resync.kind == LighterSyncEventKind.RESYNC
    assert "invalid sync frame" in resync.reason
    assert sync.is_stale(BOOK, 0)
    await eventually(lambda: len(_subscribes(ws, "orderbook", 0)) == 2)
    assert len(_subscribes(ws, "account", 7)) == 1
    assert account.empty()


@pytest.mark.asyncio
async def test_snapshot_payload_of_wrong_shape_resyncs(sync, ws_connector):
    events = await sync.subscribe(BOOK, 0)
    await sync.connect()
    ws = await _handshake(ws_connector)

    ws.push({"type": "update", "channel": "orderbook", "target": 0, "seq": 3, "fullState": "oops"})

    resync = await _next(events)
    assert resync.kind == LighterSyncEventKind.RESYNC
    assert sync.order_book(0) is None


@pytest.mark.asyncio
async def test_reconnect_delays_follow_config(ws_connector):
    sync = LighterRealtimeStateSync(
        loop=asyncio.get_running_loop(),
        clock=LiveClock(),
        base_url_ws="wss://testnet.example/stream",
        ws_kwargs={
            "reconnect_delay_initial_ms": 100,
            "reconnect_delay_max_ms": 400,
            "reconnect_backoff_factor": 2.0,
            "reconnect_jitter_ms": 50,
        },
        connector=ws_connector,
    )
    await sync.connect()
    await ws_connector.connection(0)

    kwargs = ws_connector.kwargs[0]
    delays = kwargs["reconnect_delays"]()

    assert "user_agent_header" in kwargs
    assert 0 <= next(delays) <= 0.05
    assert [next(delays) for _ in range(4)] == pytest.approx([0.1, 0.2, 0.4, 0.4])

    await sync.disconnect()
