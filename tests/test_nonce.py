from __future__ import annotations

import asyncio

import pytest

from lighter_trading.common.enums import LighterNonceMode
from lighter_trading.common.errors import LighterNonceError
from lighter_trading.common.errors import LighterNonceErrorKind
from lighter_trading.common.errors import LighterValidationError
from lighter_trading.common.nonce import NonceManager


class CountingFetcher:
    def __init__(self, *values: int) -> None:
        self.values = list(values)
        self.calls = 0

    async def __call__(self, account_index: int, api_key_index: int) -> int:
        self.calls += 1
        await asyncio.sleep(0)
        return self.values.pop(0)


@pytest.mark.asyncio
async def test_concurrent_allocations_are_distinct_and_contiguous():
    fetcher = CountingFetcher(100)
    nm = NonceManager(fetcher=fetcher)

    values = await asyncio.gather(*(nm.allocate(1, 0) for _ in range(50)))

    assert sorted(values) == list(range(100, 150))
    assert fetcher.calls == 1
    assert nm.peek(1, 0) == 150
    assert nm.last_issued(1, 0) == 149


@pytest.mark.asyncio
async def test_keys_are_independent():
    nm = NonceManager(fetcher=CountingFetcher(10, 500))

    assert await nm.allocate(1, 0) == 10
    assert await nm.allocate(1, 1) == 500
    assert await nm.allocate(1, 0) == 11


@pytest.mark.asyncio
async def test_managed_mode_without_fetcher_is_unavailable():
    nm = NonceManager()

    with pytest.raises(LighterNonceError) as exc:
        await nm.allocate(1, 0)

    assert exc.value.kind == LighterNonceErrorKind.UNAVAILABLE


@pytest.mark.asyncio
async def test_invalidate_refetches_on_next_allocation():
    fetcher = CountingFetcher(5, 20)
    nm = NonceManager(fetcher=fetcher)
    assert await nm.allocate(1, 0) == 5

    nm.invalidate(1, 0)

    assert nm.peek(1, 0) is None
    assert await nm.allocate(1, 0) == 20
    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_fetched_value_never_reissues_a_nonce():
    nm = NonceManager(fetcher=CountingFetcher(5, 3))
    assert await nm.allocate(1, 0) == 5
    assert await nm.allocate(1, 0) == 6

    assert await nm.refresh(1, 0) == 7
    assert await nm.allocate(1, 0) == 7


@pytest.mark.asyncio
async def test_seed_skips_fetch():
    fetcher = CountingFetcher()
    nm = NonceManager(fetcher=fetcher)
    nm.seed(1, 0, 42)

    assert await nm.allocate(1, 0) == 42
    assert fetcher.calls == 0
    with pytest.raises(LighterNonceError):
        nm.seed(1, 0, 42)


@pytest.mark.asyncio
async def test_manual_mode_requires_increasing_values():
    nm = NonceManager(mode=LighterNonceMode.MANUAL)

    with pytest.raises(LighterNonceError) as exc:
        await nm.allocate(1, 0)
    assert exc.value.kind == LighterNonceErrorKind.UNAVAILABLE

    assert await nm.allocate(1, 0, nonce=9) == 9
    with pytest.raises(LighterNonceError) as exc:
        await nm.allocate(1, 0, nonce=9)
    assert exc.value.kind == LighterNonceErrorKind.CONFLICT
    assert await nm.allocate(1, 0, nonce=12) == 12


@pytest.mark.asyncio
async def test_manual_nonce_out_of_range_is_a_validation_error():
    nm = NonceManager(mode=LighterNonceMode.MANUAL)

    with pytest.raises(LighterValidationError) as exc:
        await nm.allocate(1, 0, nonce=-1)

    assert exc.value.field == "nonce"
    assert nm.last_issued(1, 0) is None
    assert await nm.allocate(1, 0, nonce=0) == 0
