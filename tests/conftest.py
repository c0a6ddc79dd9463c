"""Shared fixtures: a controllable clock and a stub RPC service."""
import asyncio
import pytest

from shared.errors import UpstreamError


class FakeClock:
    """Monotonic clock whose sleep advances time instead of waiting."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeRpc:
    """
    Stands in for RpcService at the accessor boundary. `routes` maps a path to
    a JSON payload, or to an exception instance to raise.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = routes or {}
        self.calls: list[str] = []
        self.posts: list[tuple[str, dict]] = []

    def events_path(self, path: str) -> str:
        return "https://events.test/" + path.lstrip("/")

    def _lookup(self, path: str):
        value = self.routes.get(path)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise UpstreamError(404, f"no route for {path}")
        return value

    async def get_json(self, path: str):
        self.calls.append(path)
        return self._lookup(path)

    async def post_json(self, path: str, body, cacheable: bool = False):
        self.calls.append(path)
        self.posts.append((path, body))
        return self._lookup(path)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_rpc():
    def _make(routes: dict | None = None) -> FakeRpc:
        return FakeRpc(routes)
    return _make


@pytest.fixture
def tx():
    """Build a raw transaction payload the way the RPC returns it."""
    def _make(src: str, dst: str, amount, money_flew=True, tick: int = 1, tx_id: str = ""):
        from dashboard.models.schemas import Transaction
        return Transaction.model_validate({
            "sourceId": src,
            "destId": dst,
            "amount": None if amount is None else str(amount),
            "tickNumber": tick,
            "txId": tx_id or f"{src}-{dst}-{amount}",
            "moneyFlew": money_flew,
        })
    return _make
