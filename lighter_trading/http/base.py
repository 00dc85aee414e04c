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

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Type, TypeVar
from urllib.parse import urlencode

import msgspec
from tenacity import AsyncRetrying
from tenacity import RetryCallState
from tenacity import retry_if_exception
from tenacity import stop_after_attempt
from tenacity import wait_exponential

import nautilus_trader
from nautilus_trader.common.component import Logger
from nautilus_trader.core.nautilus_pyo3 import HttpClient, HttpMethod, HttpResponse, Quota

from lighter_trading.common.errors import LighterApiError
from lighter_trading.common.errors import LighterNetworkError
from lighter_trading.common.errors import LighterNetworkErrorKind
from lighter_trading.http.errors import LighterClientError
from lighter_trading.http.errors import LighterHttpError
from lighter_trading.http.errors import LighterServerError
from lighter_trading.http.errors import LighterTransportError


T = TypeVar("T")


def build_retrying(
    predicate: Callable[[BaseException], bool],
    *,
    max_retries: int,
    retry_initial_ms: int,
    retry_max_ms: int,
    retry_backoff_factor: float,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> AsyncRetrying:
    """
    Return an exponential backoff policy retrying exceptions matching ``predicate``.

    The first retry waits ``retry_initial_ms``, each further one ``retry_backoff_factor``
    times longer up to ``retry_max_ms``. The last exception is re-raised once
    ``max_retries`` retries are spent.
    """
    return AsyncRetrying(
        retry=retry_if_exception(predicate),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(
            multiplier=retry_initial_ms / 1000.0,
            exp_base=retry_backoff_factor,
            max=retry_max_ms / 1000.0,
        ),
        before_sleep=before_sleep,
        reraise=True,
    )


class LighterHttpBase:
    """
    Shared HTTP utilities for Lighter REST clients.

    Provides a thin wrapper around the core PyO3 HttpClient with consistent
    headers, error handling, JSON decoding and retry of read-only requests.

    Parameters
    ----------
    base_url : str
        The REST base URL. Trailing slashes are trimmed.
    client : HttpClient, optional
        An existing client; one is created from the quotas when omitted.
    """

    def __init__(
        self,
        base_url: str,
        ratelimiter_quotas: list[tuple[str, Quota]] | None = None,
        ratelimiter_default_quota: Quota | None = None,
        retry_initial_ms: int = 100,
        retry_max_ms: int = 5_000,
        retry_backoff_factor: float = 2.0,
        max_retries: int = 3,
        timeout_secs: int = 10,
        default_headers: dict[str, Any] | None = None,
        client: HttpClient | None = None,
    ) -> None:
        self._log = Logger(type(self).__name__)
        self._base_url = base_url.rstrip("/")
        self._client = client or HttpClient(
            keyed_quotas=ratelimiter_quotas or [],
            default_quota=ratelimiter_default_quota,
        )
        self._headers: dict[str, Any] = default_headers or {
            "Content-Type": "application/json",
            "User-Agent": nautilus_trader.NAUTILUS_USER_AGENT,
        }
        self._decoder = msgspec.json.Decoder(dict)
        self._retry_initial_ms = retry_initial_ms
        self._retry_max_ms = retry_max_ms
        self._retry_backoff_factor = retry_backoff_factor
        self._max_retries = max_retries
        self._timeout_secs = timeout_secs

    def _build_headers(self, auth: str | None = None) -> dict[str, Any]:
        headers: dict[str, Any] = dict(self._headers)
        if auth:
            headers["Authorization"] = str(auth)
        return headers

    def _build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        if params:
            return f"{self._base_url}{path}?{urlencode(params)}"
        return f"{self._base_url}{path}"

    def _decode_error(self, response: HttpResponse) -> Any:
        try:
            return self._decoder.decode(response.body) if response.body else {}
        except msgspec.DecodeError:
            return {"message": bytes(response.body).decode(errors="ignore")}

    async def _request(
        self,
        method: HttpMethod,
        path: str,
        url: str,
        headers: dict[str, Any],
        body: bytes | None,
    ) -> HttpResponse:
        key = f"lighter:{path}"
        try:
            response: HttpResponse = await asyncio.wait_for(
                self._client.request(
                    method,
                    url,
                    headers,
                    body,
                    [key],
                    timeout_secs=self._timeout_secs,
                ),
                timeout=self._timeout_secs,
            )
        except asyncio.TimeoutError as e:
            raise LighterTransportError(f"timed out after {self._timeout_secs}s", timeout=True) from e
        except LighterHttpError:
            raise
        except Exception as e:  # PyO3 transport errors share no narrower Python base
            raise LighterTransportError(f"{type(e).__name__}: {e}") from e
        if response.status < 400:
            return response
        payload = self._decode_error(response)
        if response.status >= 500:
            raise LighterServerError(status=response.status, message=payload, headers=response.headers)
        else:
            raise LighterClientError(status=response.status, message=payload, headers=response.headers)

    async def _get_raw(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        auth: str | None = None,
        allow_404: bool = False,
    ) -> HttpResponse | None:
        url = self._build_url(path, params)
        try:
            return await self._request(HttpMethod.GET, path, url, self._build_headers(auth), None)
        except LighterClientError as e:
            if allow_404 and e.status == 404:
                return None
            raise

    async def _post_raw(
        self,
        path: str,
        body: bytes,
        auth: str | None = None,
        content_type: str | None = None,
    ) -> HttpResponse:
        url = f"{self._base_url}{path}"
        headers = self._build_headers(auth)
        if content_type:
            headers["Content-Type"] = content_type
        return await self._request(HttpMethod.POST, path, url, headers, body)

    @staticmethod
    def _is_transient(exc: BaseException) -> bool:
        if isinstance(exc, (LighterTransportError, LighterServerError)):
            return True
        return isinstance(exc, LighterClientError) and exc.is_rate_limited

    def _log_retry(self, op: str) -> Callable[[RetryCallState], None]:
        def before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            self._log.warning(f"{op} failed ({exc}); retrying in {delay:.3f}s")

        return before_sleep

    async def _with_retry(self, op: str, call: Callable[[], Awaitable[T]]) -> T:
        """
        Run a read-only request with exponential backoff.

        Timeouts, transport failures, 5xx and 429 are retried up to ``max_retries``
        times and then raised as ``LighterNetworkError(TRANSIENT)``. 401 and 403 are
        raised immediately as ``LighterNetworkError(FATAL)``, any other 4xx as
        ``LighterApiError``.
        """
        retrying = build_retrying(
            self._is_transient,
            max_retries=self._max_retries,
            retry_initial_ms=self._retry_initial_ms,
            retry_max_ms=self._retry_max_ms,
            retry_backoff_factor=self._retry_backoff_factor,
            before_sleep=self._log_retry(op),
        )
        try:
            return await retrying(call)
        except LighterHttpError as e:
            if isinstance(e, LighterClientError) and e.is_auth_failure:
                raise LighterNetworkError(LighterNetworkErrorKind.FATAL, f"{op} rejected: {e}") from e
            if not self._is_transient(e):
                raise LighterApiError(e.code, e.reason) from e
            raise LighterNetworkError(
                LighterNetworkErrorKind.TRANSIENT,
                f"{op} failed after {self._max_retries + 1} attempts: {e}",
            ) from e

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None,
        struct_type: Type[T],
        op: str | None = None,
    ) -> T:
        resp = await self._with_retry(op or f"GET {path}", lambda: self._get_raw(path, params))
        dec = msgspec.json.Decoder(struct_type)
        return dec.decode(resp.body) if (resp and resp.body) else struct_type()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def headers(self) -> dict[str, Any]:
        return self._headers
