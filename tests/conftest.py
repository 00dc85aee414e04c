from __future__ import annotations

import asyncio
import hashlib
from typing import Any, Callable

import msgspec
import pytest

from nautilus_trader.common.component import TestClock

from lighter_trading.common.keys import LighterKeyManager
from lighter_trading.common.nonce import NonceManager
from lighter_trading.http.account import LighterAccountHttpClient
from lighter_trading.http.transaction import LighterTransactionHttpClient
from lighter_trading.signer import LighterSigningPipeline


TEST_PRIVATE_KEY = bytes(range(1, 33))
TEST_CHAIN_ID = 300
TEST_ACCOUNT_INDEX = 7


class FakePrimitive:
    """Deterministic, verifiable stand-in for the venue signature scheme."""

    def hash(self, data: bytes) -> bytes:
        return hashlib.sha256(bytes(data)).digest()

    def derive(self, scalar: bytes) -> bytes:
        return hashlib.sha256(b"pk" + bytes(scalar)).digest()

    def sign(self, scalar: bytes, digest: bytes) -> bytes:
        return hashlib.sha512(self.derive(scalar) + bytes(digest)).digest()

    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool:
        return hashlib.sha512(bytes(public_key) + bytes(digest)).digest() == bytes(signature)


class BrokenPrimitive(FakePrimitive):
    def verify(self, public_key: bytes, digest: bytes, signature: bytes) -> bool:
        return False


class FakeResponse:
    def __init__(self, status: int = 200, body: Any = None, headers: dict | None = None) -> None:
        self.status = status
        if body is None:
            self.body = b""
        elif isinstance(body, (bytes, bytearray)):
            self.body = bytes(body)
        else:
            self.body = msgspec.json.encode(body)
        self.headers = headers or {}


class FakeHttpClient:
    """
    Replays canned responses in order.

    A queued ``Exception`` instance is raised instead of returned.
    """

    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self.responses: list[FakeResponse | Exception] = list(responses)
        self.requests: list[dict[str, Any]] = []

    def queue(self, *responses: FakeResponse | Exception) -> None:
        self.responses.extend(responses)

    async def request(self, method, url, headers, body=None, keys=None, timeout_secs=None):
        self.requests.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "body": body,
                "keys": keys,
            },
        )
        if not self.responses:
            raise AssertionError(f"unexpected request to {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeWebSocket:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    def push(self, msg: dict[str, Any] | bytes) -> None:
        raw = msg if isinstance(msg, bytes) else msgspec.json.encode(msg)
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._inbox.put_nowait(None)

    async def send(self, data: str) -> None:
        self.sent.append(msgspec.json.decode(data))

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def sent_of_type(self, type_: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m.get("type") == type_]

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> bytes:
        raw = await self._inbox.get()
        if raw is None:
            raise StopAsyncIteration
        return raw


class FakeConnector:
    """
    Drop-in for ``websockets.connect``.

    Iterating the returned object opens a new ``FakeWebSocket`` each time the
    previous one is dropped, like the library's reconnecting iterator.
    """

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.kwargs: list[dict[str, Any]] = []
        self.connections: list[FakeWebSocket] = []

    def __call__(self, url: str, **kwargs: Any) -> FakeConnector:
        self.urls.append(url)
        self.kwargs.append(kwargs)
        return self

    async def __aiter__(self):
        while True:
            ws = FakeWebSocket()
            self.connections.append(ws)
            yield ws

    async def connection(self, index: int = 0) -> FakeWebSocket:
        await eventually(lambda: len(self.connections) > index)
        return self.connections[index]


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def clock() -> TestClock:
    return TestClock()


@pytest.fixture
def primitive() -> FakePrimitive:
    return FakePrimitive()


@pytest.fixture
def keys(primitive) -> LighterKeyManager:
    return LighterKeyManager(TEST_PRIVATE_KEY, api_key_index=3, primitive=primitive)


@pytest.fixture
def nonce_manager() -> NonceManager:
    nm = NonceManager()
    nm.seed(TEST_ACCOUNT_INDEX, 3, 42)
    return nm


@pytest.fixture
def pipeline(clock, keys, nonce_manager) -> LighterSigningPipeline:
    return LighterSigningPipeline(
        clock=clock,
        keys=keys,
        nonce=nonce_manager,
        chain_id=TEST_CHAIN_ID,
        account_index=TEST_ACCOUNT_INDEX,
    )


@pytest.fixture
def http_client() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def http_tx(http_client) -> LighterTransactionHttpClient:
    return LighterTransactionHttpClient(
        "https://testnet.example",
        retry_initial_ms=1,
        retry_max_ms=2,
        max_retries=2,
        client=http_client,
    )


@pytest.fixture
def http_account(http_client) -> LighterAccountHttpClient:
    return LighterAccountHttpClient(
        "https://testnet.example",
        retry_initial_ms=1,
        retry_max_ms=2,
        max_retries=2,
        client=http_client,
    )


@pytest.fixture
def ws_connector() -> FakeConnector:
    return FakeConnector()
