"""
Social graph data source.

Endpoints used:
- GET /api/graph/followers/{user_id}
- GET /api/graph/following/{user_id}
- GET /api/graph/feed-sources?userId=...
"""

from functools import partial

from aggregator.models import FeedSources
from aggregator.services.outcome import CallOutcome
from aggregator.sources.base import BaseSource, count_items


class SocialGraphSource(BaseSource):
    """Follower graph service."""

    SERVICE_ID = "social-graph"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def follower_count(self, user_id: str, auth_token: str | None) -> CallOutcome:
        return await self._get(
            f"/api/graph/followers/{user_id}",
            auth_token,
            decode=partial(count_items, key="followers"),
        )

    async def following_count(
        self, user_id: str, auth_token: str | None
    ) -> CallOutcome:
        return await self._get(
            f"/api/graph/following/{user_id}",
            auth_token,
            decode=partial(count_items, key="following"),
        )

    async def feed_sources(self, user_id: str, auth_token: str | None) -> CallOutcome:
        """Ids of the users whose posts belong in ``user_id``'s feed."""
        return await self._get(
            "/api/graph/feed-sources",
            auth_token,
            params={"userId": user_id},
            decode=FeedSources.model_validate,
        )
