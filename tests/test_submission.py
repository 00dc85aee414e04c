from __future__ import annotations

import pytest

from lighter_trading.common.enums import LighterSubmitStatus
from lighter_trading.common.enums import LighterTxStatus
from lighter_trading.common.errors import LighterApiError
from lighter_trading.common.errors import LighterFatFingerError
from lighter_trading.common.errors import LighterNetworkError
from lighter_trading.common.errors import LighterNetworkErrorKind
from lighter_trading.orders import limit_order
from lighter_trading.submission import LighterSubmissionClient
from tests.conftest import FakeResponse


@pytest.fixture
def submission(http_tx) -> LighterSubmissionClient:
    return LighterSubmissionClient(
        http_tx,
        max_price_deviation=0.1,
        max_order_base_amount=10_000_000,
        max_retries=2,
        retry_initial_ms=1,
        retry_max_ms=2,
    )


def _buy(price: int = 100_000_000, base_amount: int = 1_000_000):
    return limit_order(market_index=0, base_amount=base_amount, price=price, is_ask=False)


@pytest.mark.asyncio
async def test_fat_finger_blocks_before_network(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy(price=150_000_000))

    with pytest.raises(LighterFatFingerError) as exc:
        await submission.submit(signed, reference_price=100_000_000)

    assert exc.value.field == "price"
    assert http_client.requests == []


@pytest.mark.asyncio
async def test_fat_finger_size_ceiling(submission):
    with pytest.raises(LighterFatFingerError) as exc:
        submission.check_fat_finger(_buy(base_amount=10_000_001))

    assert exc.value.field == "base_amount"
    submission.check_fat_finger(_buy(price=109_000_000), reference_price=100_000_000)


@pytest.mark.asyncio
async def test_accepted(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy())
    http_client.queue(FakeResponse(200, {"code": 200, "tx_hash": "0x" + signed.tx_hash}))

    result = await submission.submit(signed, reference_price=100_000_000)

    assert result.status == LighterSubmitStatus.ACCEPTED
    assert result.accepted
    assert result.tx_hash == signed.tx_hash
    assert result.raise_for_status() is result


@pytest.mark.asyncio
async def test_timeout_is_ambiguous_and_not_retried(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy())
    http_client.queue(TimeoutError("read timed out"))

    result = await submission.submit(signed)

    assert result.status == LighterSubmitStatus.AMBIGUOUS
    assert result.tx_hash == signed.tx_hash
    assert len(http_client.requests) == 1
    with pytest.raises(LighterNetworkError) as exc:
        result.raise_for_status()
    assert exc.value.kind == LighterNetworkErrorKind.AMBIGUOUS
    assert exc.value.tx_hash == signed.tx_hash


@pytest.mark.asyncio
async def test_server_error_is_ambiguous(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy())
    http_client.queue(FakeResponse(500, {"message": "internal"}))

    result = await submission.submit(signed)

    assert result.status == LighterSubmitStatus.AMBIGUOUS
    assert len(http_client.requests) == 1


@pytest.mark.asyncio
async def test_rate_limit_is_retried(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy())
    http_client.queue(
        FakeResponse(429, {"message": "too many requests"}),
        FakeResponse(200, {"code": 200}),
    )

    result = await submission.submit(signed)

    assert result.accepted
    assert len(http_client.requests) == 2
    assert http_client.requests[0]["body"] == http_client.requests[1]["body"]


@pytest.mark.asyncio
async def test_rejection_with_venue_code(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy())
    http_client.queue(FakeResponse(200, {"code": 21700, "message": "insufficient margin"}))

    result = await submission.submit(signed)

    assert result.status == LighterSubmitStatus.REJECTED
    assert result.code == 21700
    assert not result.nonce_conflict
    with pytest.raises(LighterApiError):
        result.raise_for_status()


@pytest.mark.asyncio
async def test_nonce_rejection_is_flagged(pipeline, submission, http_client):
    signed = await pipeline.sign(_buy())
    http_client.queue(FakeResponse(400, {"code": 21104, "message": "invalid nonce"}))

    result = await submission.submit(signed)

    assert result.status == LighterSubmitStatus.REJECTED
    assert result.nonce_conflict


@pytest.mark.asyncio
async def test_query_status(submission, http_client):
    http_client.queue(
        FakeResponse(200, {"code": 200, "status": "executed"}),
        FakeResponse(200, {"code": 200, "status": "something-new"}),
    )

    confirmed = await submission.query_status("0x" + "ab" * 32)
    unknown = await submission.query_status("ab" * 32)

    assert confirmed.status == LighterTxStatus.CONFIRMED
    assert confirmed.tx_hash == "ab" * 32
    assert unknown.status == LighterTxStatus.PENDING
    assert http_client.requests[0]["url"].endswith("/tx/" + "ab" * 32)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        b"<html>gateway ok</html>",
        b'{"code": 200, "tx_hash": ',
        b'{"code": "accepted"}',
    ],
)
async def test_undecodable_success_body_is_ambiguous(pipeline, submission, http_client, body):
    signed = await pipeline.sign(_buy())
    http_client.queue(FakeResponse(200, body))

    result = await submission.submit(signed)

    assert result.status == LighterSubmitStatus.AMBIGUOUS
    assert result.tx_hash == signed.tx_hash
    assert "undecodable" in result.message
    assert len(http_client.requests) == 1
    with pytest.raises(LighterNetworkError) as exc:
        result.raise_for_status()
    assert exc.value.kind == LighterNetworkErrorKind.AMBIGUOUS


@pytest.mark.asyncio
async def test_query_status_venue_error_code(submission, http_client):
    http_client.queue(FakeResponse(200, {"code": 21500, "message": "transaction not found"}))

    with pytest.raises(LighterApiError) as exc:
        await submission.query_status("ab" * 32)

    assert exc.value.code == 21500
    assert exc.value.message == "transaction not found"
