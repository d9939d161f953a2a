"""
Content (posts) data source.

Endpoints used:
- GET /api/posts/user/{user_id}   posts written by one user
- GET /api/posts?limit=N          first page of all posts
"""

from typing import Any

from loguru import logger
from pydantic import ValidationError

from aggregator.models import PostSummary
from aggregator.services.client import DownstreamClient
from aggregator.services.outcome import CallOutcome
from aggregator.sources.base import BaseSource, unwrap_list


def decode_post_summaries(payload: Any) -> list[PostSummary]:
    """
    Decode like/comment counts for every post in the payload.

    A post whose counts cannot be read still counts as a post and
    contributes 0 likes and 0 comments.
    """
    summaries = []
    for post in unwrap_list(payload, "posts"):
        try:
            summaries.append(PostSummary.model_validate(post))
        except ValidationError as e:
            logger.debug(f"Unreadable post counts, using 0: {e.error_count()} errors")
            summaries.append(PostSummary())
    return summaries


def decode_posts(payload: Any) -> list[dict[str, Any]]:
    posts = unwrap_list(payload, "posts")
    if not all(isinstance(post, dict) for post in posts):
        raise ValueError("expected every post to be an object")
    return posts


class ContentSource(BaseSource):
    """
    Posts service.

    The same API is served by the content service (used for analytics)
    and by the posts service (used for feeds), so the endpoint name is
    configurable.
    """

    SERVICE_ID = "content"

    def __init__(self, client: DownstreamClient, service_id: str = SERVICE_ID):
        super().__init__(client)
        self._service_id = service_id

    @property
    def service_id(self) -> str:
        return self._service_id

    async def user_posts(self, user_id: str, auth_token: str | None) -> CallOutcome:
        """Like/comment counts of every post by one user."""
        return await self._get(
            f"/api/posts/user/{user_id}", auth_token, decode=decode_post_summaries
        )

    async def all_posts(self, auth_token: str | None, limit: int) -> CallOutcome:
        """Like/comment counts of the first ``limit`` posts on the platform."""
        return await self._get(
            "/api/posts",
            auth_token,
            params={"limit": limit},
            decode=decode_post_summaries,
        )

    async def recent_posts(
        self, user_id: str, auth_token: str | None, limit: int
    ) -> CallOutcome:
        """Full post objects for one user, newest page only."""
        return await self._get(
            f"/api/posts/user/{user_id}",
            auth_token,
            params={"limit": limit},
            decode=decode_posts,
        )
