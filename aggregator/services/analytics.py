"""
Analytics aggregations: one user, or the whole platform.
"""

from datetime import timedelta
from uuid import UUID

from aggregator.models import GlobalAnalytics, PostSummary, SubjectAnalytics
from aggregator.services.aggregator import Aggregator, SourceFetch
from aggregator.sources import ContentSource, FitnessSource, SocialGraphSource

GLOBAL_KEY = "analytics:global"


def subject_key(subject_id: UUID) -> str:
    return f"analytics:user:{subject_id}"


def fold_posts(posts: list[PostSummary], count_field: str) -> dict[str, int]:
    return {
        count_field: len(posts),
        "total_likes": sum(post.likes_count for post in posts),
        "total_comments": sum(post.comments_count for post in posts),
    }


class AnalyticsAggregator:
    """
    Builds SubjectAnalytics and GlobalAnalytics records.

    Platform totals are computed from the first page of posts and workouts
    (``global_fetch_limit`` items), not from a true aggregate query.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        content: ContentSource,
        fitness: FitnessSource,
        social_graph: SocialGraphSource,
        subject_ttl: timedelta = timedelta(minutes=5),
        global_ttl: timedelta = timedelta(minutes=10),
        global_fetch_limit: int = 10000,
    ):
        self._aggregator = aggregator
        self._content = content
        self._fitness = fitness
        self._social_graph = social_graph
        self.subject_ttl = subject_ttl
        self.global_ttl = global_ttl
        self.global_fetch_limit = global_fetch_limit

    async def subject(self, subject_id: UUID, auth_token: str | None) -> SubjectAnalytics:
        """Analytics for one user."""
        user_id = str(subject_id)
        sources = [
            SourceFetch(
                "content",
                lambda: self._content.user_posts(user_id, auth_token),
                lambda posts: fold_posts(posts, "posts_count"),
            ),
            SourceFetch(
                "fitness",
                lambda: self._fitness.user_workout_count(user_id, auth_token),
                lambda count: {"workouts_count": count},
            ),
            SourceFetch(
                "social-graph:followers",
                lambda: self._social_graph.follower_count(user_id, auth_token),
                lambda count: {"followers_count": count},
            ),
            SourceFetch(
                "social-graph:following",
                lambda: self._social_graph.following_count(user_id, auth_token),
                lambda count: {"following_count": count},
            ),
        ]
        return await self._aggregator.aggregate(
            subject_key(subject_id),
            SubjectAnalytics,
            sources,
            ttl=self.subject_ttl,
            base_fields={"subject_id": subject_id},
        )

    async def platform(self, auth_token: str | None) -> GlobalAnalytics:
        """Analytics for the whole platform."""
        limit = self.global_fetch_limit
        sources = [
            SourceFetch(
                "content",
                lambda: self._content.all_posts(auth_token, limit),
                lambda posts: fold_posts(posts, "total_posts"),
            ),
            SourceFetch(
                "fitness",
                lambda: self._fitness.workout_count(auth_token, limit),
                lambda count: {"total_workouts": count},
            ),
        ]
        return await self._aggregator.aggregate(
            GLOBAL_KEY, GlobalAnalytics, sources, ttl=self.global_ttl
        )
