"""FastAPI server exposing the aggregated views."""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any
from uuid import UUID

from fastapi import FastAPI, Header
from loguru import logger

from aggregator.api.middleware import RequestLoggingMiddleware
from aggregator.exceptions import UnauthorizedError, ValidationError
from aggregator.models import FeedRecord, GlobalAnalytics, SubjectAnalytics
from aggregator.services.aggregator import Aggregator
from aggregator.services.analytics import AnalyticsAggregator
from aggregator.services.cache import Clock, ResultCache
from aggregator.services.client import DownstreamClient
from aggregator.services.feed import FeedAggregator
from aggregator.services.retry import RetryPolicy
from aggregator.settings import Settings
from aggregator.sources import ContentSource, FitnessSource, SocialGraphSource


def bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if not authorization:
        raise UnauthorizedError("Missing bearer token")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Authorization header must be a bearer token")
    return token


def parse_subject_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError:
        raise ValidationError(f"Invalid subject id: {raw!r}") from None


class AggregationServer:
    """HTTP server wiring the downstream client, cache and aggregations."""

    def __init__(
        self,
        settings: Settings,
        client: DownstreamClient | None = None,
        cache: ResultCache | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings
        self.client = client or DownstreamClient(
            endpoints=settings.endpoints(),
            retry=RetryPolicy(
                max_retries=settings.retry_max_retries,
                backoff_base=settings.retry_backoff_base,
            ),
        )
        self.cache = cache or ResultCache(
            default_ttl=timedelta(seconds=settings.subject_cache_ttl),
            clock=clock,
            max_size=settings.cache_max_size,
        )
        self.aggregator = Aggregator(self.cache, clock=clock)

        social_graph = SocialGraphSource(self.client)
        self.analytics = AnalyticsAggregator(
            self.aggregator,
            content=ContentSource(self.client),
            fitness=FitnessSource(self.client),
            social_graph=social_graph,
            subject_ttl=timedelta(seconds=settings.subject_cache_ttl),
            global_ttl=timedelta(seconds=settings.global_cache_ttl),
            global_fetch_limit=settings.global_fetch_limit,
        )
        self.feeds = FeedAggregator(
            self.aggregator,
            posts=ContentSource(self.client, service_id="posts"),
            social_graph=social_graph,
            ttl=timedelta(seconds=settings.feed_cache_ttl),
            posts_per_user=settings.feed_posts_per_user,
            max_concurrency=settings.feed_max_concurrency,
        )

        self.app = FastAPI(title="Aggregation API", lifespan=self.lifespan)
        self.app.add_middleware(RequestLoggingMiddleware)

        # Register routes
        self.app.get("/aggregate/subject/{subject_id}")(self.get_subject_analytics)
        self.app.get("/aggregate/global")(self.get_global_analytics)
        self.app.get("/aggregate/feed/{subject_id}")(self.get_feed)
        self.app.get("/health")(self.health_check)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        logger.info("Aggregation API starting")
        yield
        await self.aggregator.wait_for_fills()
        await self.client.close()
        logger.info("Aggregation API stopped")

    async def get_subject_analytics(
        self,
        subject_id: str,
        authorization: str | None = Header(None),
    ) -> SubjectAnalytics:
        """Analytics for one user. Always 200 once the request is valid."""
        token = bearer_token(authorization)
        return await self.analytics.subject(parse_subject_id(subject_id), token)

    async def get_global_analytics(
        self,
        authorization: str | None = Header(None),
    ) -> GlobalAnalytics:
        """Platform-wide analytics."""
        token = bearer_token(authorization)
        return await self.analytics.platform(token)

    async def get_feed(
        self,
        subject_id: str,
        authorization: str | None = Header(None),
    ) -> FeedRecord:
        """Recent posts from everyone the subject follows."""
        token = bearer_token(authorization)
        return await self.feeds.feed(parse_subject_id(subject_id), token)

    async def health_check(self) -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "aggregator",
            "cache": self.cache.get_stats().to_dict(),
            "endpoints": {
                name: endpoint.base_url
                for name, endpoint in self.settings.endpoints().items()
            },
        }


def create_app(
    settings: Settings,
    client: DownstreamClient | None = None,
    cache: ResultCache | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Service settings
        client: Downstream client (built from settings if omitted)
        cache: Result cache (a fresh in-memory cache if omitted)
        clock: Time source shared by the cache and the aggregator

    Returns:
        FastAPI app
    """
    server = AggregationServer(settings, client=client, cache=cache, clock=clock)
    return server.app
