# -------------------------------------------------------------------------------------------------
#  Copyright (C) 2015-2025 Nautech Systems Pty Ltd. All rights reserved.
#  https://nautechsystems.io
#
#  Licensed under the GNU Lesser General Public License Version 3.0 (the "License");
#  You may not use this file except in compliance with the License.
#  You may obtain a copy of the License at https://www.gnu.org/licenses/lgpl-3.0.en.html
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
# -------------------------------------------------------------------------------------------------

"""Nonce management for Lighter API keys.

The manager tracks a nonce per (account index, API key index) pair. In managed
mode it fetches the initial value once via a supplied coroutine and increments
locally for each allocation; in manual mode the caller supplies every nonce and
the manager only enforces that values keep increasing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from dataclasses import field
from typing import Awaitable, Callable

from nautilus_trader.common.component import Logger

from lighter_trading.common.constants import MAX_NONCE
from lighter_trading.common.constants import MIN_NONCE
from lighter_trading.common.enums import LighterNonceMode
from lighter_trading.common.errors import LighterNonceError
from lighter_trading.common.errors import LighterNonceErrorKind
from lighter_trading.common.errors import LighterValidationError


NonceFetcher = Callable[[int, int], Awaitable[int]]


@dataclass
class _KeyState:
    """Internal state per (account, API key): next value, last issued value and lock."""

    value: int | None = None
    last_issued: int | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class NonceManager:
    """
    Per-(account, API key) nonce allocator.

    ``allocate`` is the single mutation point. All work for one pair (including
    the initial fetch) runs under that pair's lock, so concurrent callers receive
    distinct, contiguous values in the order they acquired the lock.

    Parameters
    ----------
    mode : LighterNonceMode, default MANAGED
        Managed (fetch once, count locally) or manual (caller supplies nonces).
    fetcher : Callable[[int, int], Awaitable[int]], optional
        Coroutine returning the venue's next nonce for ``(account_index, api_key_index)``.
        Required for managed allocation.
    """

    def __init__(
        self,
        mode: LighterNonceMode = LighterNonceMode.MANAGED,
        fetcher: NonceFetcher | None = None,
    ) -> None:
        self._log = Logger(type(self).__name__)
        self._mode = mode
        self._fetcher = fetcher
        self._states: dict[tuple[int, int], _KeyState] = {}

    @property
    def mode(self) -> LighterNonceMode:
        return self._mode

    def _state(self, account_index: int, api_key_index: int) -> _KeyState:
        key = (int(account_index), int(api_key_index))
        st = self._states.get(key)
        if st is None:
            st = _KeyState()
            self._states[key] = st
        return st

    async def _fetch(self, account_index: int, api_key_index: int, st: _KeyState) -> int:
        if self._fetcher is None:
            raise LighterNonceError(
                LighterNonceErrorKind.UNAVAILABLE,
                "managed nonce mode requires a nonce fetcher",
            )
        fetched = int(await self._fetcher(account_index, api_key_index))
        if st.last_issued is not None and fetched <= st.last_issued:
            # Values already handed out in this process are never issued again
            self._log.warning(
                f"Fetched nonce {fetched} for ({account_index}, {api_key_index}) "
                f"is not above last issued {st.last_issued}; continuing from {st.last_issued + 1}",
            )
            fetched = st.last_issued + 1
        return fetched

    def seed(self, account_index: int, api_key_index: int, value: int) -> None:
        """Set the next managed nonce without a fetch (e.g. restored session)."""
        st = self._state(account_index, api_key_index)
        if st.last_issued is not None and value <= st.last_issued:
            raise LighterNonceError(
                LighterNonceErrorKind.CONFLICT,
                f"seed {value} is not above last issued {st.last_issued}",
            )
        st.value = int(value)

    async def ensure(self, account_index: int, api_key_index: int) -> None:
        """Ensure there is a cached nonce value for the pair (managed mode)."""
        st = self._state(account_index, api_key_index)
        async with st.lock:
            if st.value is None:
                st.value = await self._fetch(account_index, api_key_index, st)

    async def allocate(
        self,
        account_index: int,
        api_key_index: int,
        nonce: int | None = None,
    ) -> int:
        """
        Return the next nonce for the pair and advance the local counter.

        Parameters
        ----------
        nonce : int, optional
            The caller-supplied value (manual mode only).

        Raises
        ------
        LighterNonceError
            ``UNAVAILABLE`` if managed mode has no fetcher or manual mode has no
            supplied value; ``CONFLICT`` if a manual value does not increase.
        LighterValidationError
            If a manual value is outside the nonce range.
        """
        st = self._state(account_index, api_key_index)
        async with st.lock:
            if self._mode == LighterNonceMode.MANUAL:
                if nonce is None:
                    raise LighterNonceError(
                        LighterNonceErrorKind.UNAVAILABLE,
                        "manual nonce mode requires a caller-supplied nonce",
                    )
                value = int(nonce)
                if not (MIN_NONCE <= value <= MAX_NONCE):
                    raise LighterValidationError("nonce", f"{value} outside [{MIN_NONCE}, {MAX_NONCE}]")
                if st.last_issued is not None and value <= st.last_issued:
                    raise LighterNonceError(
                        LighterNonceErrorKind.CONFLICT,
                        f"nonce {value} is not above last issued {st.last_issued}",
                    )
                st.last_issued = value
                return value

            if st.value is None:
                st.value = await self._fetch(account_index, api_key_index, st)
            value = st.value
            if value > MAX_NONCE:
                raise LighterNonceError(LighterNonceErrorKind.UNAVAILABLE, "nonce space exhausted")
            st.value = value + 1
            st.last_issued = value
            return value

    def invalidate(self, account_index: int, api_key_index: int) -> None:
        """Drop the cached counter so the next allocation refetches it."""
        st = self._state(account_index, api_key_index)
        st.value = None
        self._log.debug(f"Invalidated nonce for ({account_index}, {api_key_index})")

    async def refresh(self, account_index: int, api_key_index: int) -> int:
        """Refetch the nonce from the venue now and return the new next value."""
        st = self._state(account_index, api_key_index)
        async with st.lock:
            st.value = await self._fetch(account_index, api_key_index, st)
            return st.value

    def peek(self, account_index: int, api_key_index: int) -> int | None:
        """Return the next managed nonce without allocating it (None if not cached)."""
        st = self._states.get((int(account_index), int(api_key_index)))
        return None if st is None else st.value

    def last_issued(self, account_index: int, api_key_index: int) -> int | None:
        st = self._states.get((int(account_index), int(api_key_index)))
        return None if st is None else st.last_issued
