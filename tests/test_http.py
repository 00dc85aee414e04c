from __future__ import annotations

import msgspec
import pytest

from lighter_trading.common.errors import LighterApiError
from lighter_trading.common.errors import LighterNetworkError
from lighter_trading.common.errors import LighterNetworkErrorKind
from lighter_trading.http.base import build_retrying
from lighter_trading.http.errors import LighterClientError
from lighter_trading.http.errors import LighterServerError
from lighter_trading.http.errors import LighterTransportError
from tests.conftest import FakeResponse


@pytest.mark.asyncio
async def test_next_nonce_accepts_hex_and_int(http_account, http_client):
    http_client.queue(FakeResponse(200, {"code": 200, "nonce": "0x2a"}))
    http_client.queue(FakeResponse(200, {"code": 200, "next_nonce": 43}))

    assert await http_account.get_next_nonce(7, 3) == 42
    assert await http_account.get_next_nonce(7, 3) == 43
    assert http_client.requests[0]["url"] == "https://testnet.example/nonce?account=7&key=3"
    assert http_client.requests[0]["keys"] == ["lighter:/nonce"]


@pytest.mark.asyncio
async def test_read_retries_transient_failures(http_account, http_client):
    http_client.queue(
        FakeResponse(503, {"message": "unavailable"}),
        RuntimeError("connection reset"),
        FakeResponse(200, {"nonce": 5}),
    )

    assert await http_account.get_next_nonce(7, 3) == 5
    assert len(http_client.requests) == 3


@pytest.mark.asyncio
async def test_read_gives_up_as_transient(http_account, http_client):
    http_client.queue(*[FakeResponse(429, {"message": "slow down"}) for _ in range(3)])

    with pytest.raises(LighterNetworkError) as exc:
        await http_account.get_next_nonce(7, 3)

    assert exc.value.kind == LighterNetworkErrorKind.TRANSIENT
    assert exc.value.is_retryable
    assert len(http_client.requests) == 3


@pytest.mark.asyncio
async def test_retry_backoff_grows_to_the_cap():
    delays: list[float] = []
    calls: list[int] = []
    policy = build_retrying(
        lambda e: isinstance(e, LighterServerError),
        max_retries=3,
        retry_initial_ms=1,
        retry_max_ms=3,
        retry_backoff_factor=2.0,
        before_sleep=lambda state: delays.append(state.next_action.sleep),
    )

    async def unavailable():
        calls.append(1)
        raise LighterServerError(503, "down")

    with pytest.raises(LighterServerError):
        await policy(unavailable)

    assert delays == pytest.approx([0.001, 0.002, 0.003])
    assert len(calls) == 4


@pytest.mark.asyncio
async def test_client_error_is_not_retried(http_account, http_client):
    http_client.queue(FakeResponse(400, {"code": 21100, "message": "bad account"}))

    with pytest.raises(LighterApiError) as exc:
        await http_account.get_next_nonce(7, 3)

    assert exc.value.code == 21100
    assert len(http_client.requests) == 1


@pytest.mark.asyncio
async def test_auth_failure_is_fatal(http_account, http_client):
    http_client.queue(FakeResponse(401, {"message": "invalid api key"}))

    with pytest.raises(LighterNetworkError) as exc:
        await http_account.get_next_nonce(7, 3)

    assert exc.value.kind == LighterNetworkErrorKind.FATAL
    assert len(http_client.requests) == 1


@pytest.mark.asyncio
async def test_invalid_nonce_payload(http_account, http_client):
    http_client.queue(FakeResponse(200, {"code": 200, "nonce": "garbage"}))

    with pytest.raises(LighterApiError):
        await http_account.get_next_nonce(7, 3)


@pytest.mark.asyncio
async def test_send_tx_makes_exactly_one_attempt(http_tx, http_client):
    http_client.queue(FakeResponse(502, b"bad gateway"))

    with pytest.raises(LighterServerError) as exc:
        await http_tx.send_tx(14, "{}", "ab" * 32)

    assert exc.value.reason == "bad gateway"
    assert len(http_client.requests) == 1
    body = msgspec.json.decode(http_client.requests[0]["body"])
    assert body == {"tx_type": 14, "tx_info": "{}", "tx_hash": "ab" * 32}


def test_error_classification():
    err = LighterClientError(429, {"code": "21104", "message": "invalid nonce"})
    assert err.is_rate_limited
    assert err.code == 21104
    assert err.reason == "invalid nonce"

    transport = LighterTransportError("timed out", timeout=True)
    assert transport.status == 0
    assert transport.code is None
