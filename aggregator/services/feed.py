"""
Feed aggregation: recent posts from every user the subject follows.
"""

import asyncio
from datetime import timedelta
from uuid import UUID

from loguru import logger

from aggregator.models import FeedRecord
from aggregator.services.aggregator import Aggregator, SourceFetch
from aggregator.services.outcome import CallOutcome, Failure, Success
from aggregator.sources import ContentSource, SocialGraphSource


def feed_key(subject_id: UUID) -> str:
    return f"feed:{subject_id}"


class FeedAggregator:
    """
    Builds FeedRecord values in two steps: ask the social graph whom the
    subject follows, then fetch each followed user's recent posts
    concurrently, at most max_concurrency at a time. A followed user whose
    posts cannot be fetched is skipped.

    Empty feeds are not cached, so a feed emptied by an outage is rebuilt
    on the next request.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        posts: ContentSource,
        social_graph: SocialGraphSource,
        ttl: timedelta = timedelta(minutes=5),
        posts_per_user: int = 10,
        max_concurrency: int = 10,
    ):
        self._aggregator = aggregator
        self._posts = posts
        self._social_graph = social_graph
        self.ttl = ttl
        self.posts_per_user = posts_per_user
        self.max_concurrency = max_concurrency

    async def feed(self, subject_id: UUID, auth_token: str | None) -> FeedRecord:
        user_id = str(subject_id)
        sources = [
            SourceFetch(
                "feed",
                lambda: self._collect_posts(user_id, auth_token),
                lambda posts: {"posts": posts},
            )
        ]
        return await self._aggregator.aggregate(
            feed_key(subject_id),
            FeedRecord,
            sources,
            ttl=self.ttl,
            base_fields={"subject_id": subject_id},
            cache_if=lambda record: bool(record.posts),
        )

    async def _collect_posts(self, user_id: str, auth_token: str | None) -> CallOutcome:
        sources = await self._social_graph.feed_sources(user_id, auth_token)
        if isinstance(sources, Failure):
            return sources

        followed = sources.payload.user_ids
        if not followed:
            logger.info(f"User {user_id} is not following anyone")
            return Success([])

        limit = asyncio.Semaphore(self.max_concurrency)

        async def fetch(followed_id: str) -> CallOutcome:
            async with limit:
                return await self._posts.recent_posts(
                    followed_id, auth_token, self.posts_per_user
                )

        outcomes = await asyncio.gather(*(fetch(followed_id) for followed_id in followed))

        posts = []
        for followed_id, outcome in zip(followed, outcomes):
            if isinstance(outcome, Success):
                posts.extend(outcome.payload)
            else:
                logger.warning(
                    f"Skipping posts of {followed_id} in feed of {user_id}: "
                    f"{outcome.reason}"
                )

        logger.info(f"Retrieved {len(posts)} posts for user {user_id} feed")
        return Success(posts)
