from __future__ import annotations

import msgspec
import pytest

from lighter_trading.common.enums import LighterGroupingType
from lighter_trading.common.enums import LighterNonceMode
from lighter_trading.common.enums import LighterSubmitStatus
from lighter_trading.common.enums import LighterTxType
from lighter_trading.common.errors import LighterFatFingerError
from lighter_trading.common.nonce import NonceManager
from lighter_trading.orders import stop_loss_order
from lighter_trading.orders import take_profit_order
from lighter_trading.schemas.tx import LighterCancelOrder
from lighter_trading.signer import LighterSigningPipeline
from lighter_trading.submission import LighterSubmissionClient
from lighter_trading.transport import LighterTransportService
from tests.conftest import TEST_ACCOUNT_INDEX
from tests.conftest import TEST_CHAIN_ID
from tests.conftest import FakeResponse


def _service(clock, keys, http_account, http_tx, mode=LighterNonceMode.MANAGED) -> LighterTransportService:
    pipeline = LighterSigningPipeline(
        clock=clock,
        keys=keys,
        nonce=NonceManager(mode=mode, fetcher=http_account.get_next_nonce),
        chain_id=TEST_CHAIN_ID,
        account_index=TEST_ACCOUNT_INDEX,
    )
    submission = LighterSubmissionClient(http_tx, retry_initial_ms=1, retry_max_ms=2)
    return LighterTransportService(pipeline=pipeline, submission=submission)


def _tx_info(request: dict) -> dict:
    return msgspec.json.decode(msgspec.json.decode(request["body"])["tx_info"])


@pytest.mark.asyncio
async def test_nonce_conflict_resigns_once_with_fresh_nonce(clock, keys, http_account, http_tx, http_client):
    service = _service(clock, keys, http_account, http_tx)
    http_client.queue(
        FakeResponse(200, {"nonce": 10}),
        FakeResponse(400, {"code": 21104, "message": "invalid nonce"}),
        FakeResponse(200, {"nonce": 15}),
        FakeResponse(200, {"code": 200}),
    )

    result = await service.cancel_order(market_index=0, order_index=123)

    assert result.status == LighterSubmitStatus.ACCEPTED
    assert result.nonce == 15
    sends = [r for r in http_client.requests if r["url"].endswith("/tx")]
    assert [_tx_info(r)["nonce"] for r in sends] == [10, 15]
    assert _tx_info(sends[0])["sig"] != _tx_info(sends[1])["sig"]


@pytest.mark.asyncio
async def test_second_conflict_is_returned(clock, keys, http_account, http_tx, http_client):
    service = _service(clock, keys, http_account, http_tx)
    http_client.queue(
        FakeResponse(200, {"nonce": 10}),
        FakeResponse(400, {"code": 21104, "message": "invalid nonce"}),
        FakeResponse(200, {"nonce": 11}),
        FakeResponse(400, {"code": 21104, "message": "invalid nonce"}),
    )

    result = await service.cancel_all()

    assert result.status == LighterSubmitStatus.REJECTED
    assert result.nonce_conflict
    assert len(http_client.requests) == 4


@pytest.mark.asyncio
async def test_manual_mode_does_not_resign(clock, keys, http_account, http_tx, http_client):
    service = _service(clock, keys, http_account, http_tx, mode=LighterNonceMode.MANUAL)
    http_client.queue(FakeResponse(400, {"code": 21104, "message": "invalid nonce"}))

    result = await service.execute(LighterCancelOrder(market_index=0, order_index=1), nonce=5)

    assert result.nonce == 5
    assert result.nonce_conflict
    assert len(http_client.requests) == 1


@pytest.mark.asyncio
async def test_fat_finger_consumes_no_nonce(clock, keys, http_account, http_tx, http_client):
    service = _service(clock, keys, http_account, http_tx)
    service.pipeline.nonce_manager.seed(TEST_ACCOUNT_INDEX, keys.api_key_index, 50)
    tp = take_profit_order(0, 1_000, trigger_price=200, price=200, is_ask=True)
    sl = stop_loss_order(0, 1_000, trigger_price=90, price=90, is_ask=True)

    with pytest.raises(LighterFatFingerError):
        await service.submit_order_list(LighterGroupingType.ONE_CANCELS_THE_OTHER, [tp, sl], reference_price=100)

    assert http_client.requests == []
    assert service.pipeline.nonce_manager.peek(TEST_ACCOUNT_INDEX, keys.api_key_index) == 50


@pytest.mark.asyncio
async def test_update_leverage(clock, keys, http_account, http_tx, http_client):
    service = _service(clock, keys, http_account, http_tx)
    service.pipeline.nonce_manager.seed(TEST_ACCOUNT_INDEX, keys.api_key_index, 1)
    http_client.queue(FakeResponse(200, {"code": 200}))

    result = await service.update_leverage(market_index=2, leverage=20)

    assert result.accepted
    body = msgspec.json.decode(http_client.requests[0]["body"])
    assert body["tx_type"] == LighterTxType.UPDATE_LEVERAGE
    assert msgspec.json.decode(body["tx_info"])["initial_margin_fraction"] == 500
