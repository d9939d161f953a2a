"""
Test infrastructure for the Aggregation API.

Strategy
--------
- Downstream services are faked with ``httpx.MockTransport``: requests are
  routed by host and path to canned responses, and every request is
  recorded so tests can assert call counts and forwarded headers.
- The retry policy gets a recording sleep, so backoff delays are asserted
  without real waiting.
- The cache and aggregator share a manual clock, so TTL expiry is driven
  by the test.
- Inbound requests go through ``httpx.AsyncClient`` with ``ASGITransport``.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from loguru import logger

from aggregator.api import create_app
from aggregator.services.client import DownstreamClient
from aggregator.services.retry import RetryPolicy
from aggregator.settings import Settings

CONTENT = "content.test"
FITNESS = "fitness.test"
GRAPH = "graph.test"
POSTS = "posts.test"

TOKEN = "test-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}

Reply = httpx.Response | Callable[[httpx.Request], httpx.Response]


def timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


class FakeDownstream:
    """
    Canned downstream services.

    Each route holds a list of replies consumed in order; the last reply
    repeats. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, host: str, path: str, *replies: Reply) -> None:
        self.routes[(host, path)] = list(replies)

    def json(self, host: str, path: str, body: Any, status_code: int = 200) -> None:
        self.route(host, path, httpx.Response(status_code, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.url.host, request.url.path))
        if not replies:
            return httpx.Response(404, json={"error": "not found"})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, httpx.Response):
            return reply
        return reply(request)

    def count(self, host: str, path: str | None = None) -> int:
        return sum(
            1
            for request in self.requests
            if request.url.host == host and (path is None or request.url.path == path)
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingSleep:
    """Stands in for asyncio.sleep and records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ManualClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        content_api_url=f"http://{CONTENT}",
        fitness_api_url=f"http://{FITNESS}",
        social_graph_api_url=f"http://{GRAPH}",
        posts_api_url=f"http://{POSTS}",
    )


@pytest.fixture
def downstream() -> FakeDownstream:
    return FakeDownstream()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest_asyncio.fixture
async def client(settings, downstream, sleep) -> DownstreamClient:
    retry = RetryPolicy(
        max_retries=settings.retry_max_retries,
        backoff_base=settings.retry_backoff_base,
        sleep=sleep,
    )
    async with DownstreamClient(
        settings.endpoints(), retry=retry, transport=downstream.transport()
    ) as downstream_client:
        yield downstream_client


@pytest_asyncio.fixture
async def api(settings, client, clock) -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the app via ASGITransport."""
    app = create_app(settings, client=client, clock=clock)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def log_messages() -> list[str]:
    """Capture loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]), level="DEBUG"
    )
    yield messages
    logger.remove(handler_id)
