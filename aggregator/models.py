"""
Aggregated records returned by the service, and the minimal downstream
shapes they are built from.
"""

import copy
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AggregatedRecord(BaseModel):
    """Base for every merged response. Immutable once built."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    last_updated: datetime


class SubjectAnalytics(AggregatedRecord):
    """Per-user analytics."""

    subject_id: UUID
    posts_count: int = 0
    workouts_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    total_likes: int = 0
    total_comments: int = 0


class GlobalAnalytics(AggregatedRecord):
    """Platform-wide analytics."""

    total_posts: int = 0
    total_workouts: int = 0
    total_likes: int = 0
    total_comments: int = 0


class FeedRecord(AggregatedRecord):
    """Recent posts from everyone the subject follows."""

    subject_id: UUID
    posts: tuple[dict[str, Any], ...] = ()

    @field_validator("posts", mode="before")
    @classmethod
    def _detach_posts(cls, value: Any) -> Any:
        # Cached records must not share post objects with source payloads
        if isinstance(value, (list, tuple)):
            return tuple(copy.deepcopy(list(value)))
        return value


# Downstream shapes


def _as_count(value: Any) -> Any:
    """Missing counts are 0; a list of likes/comments counts by its length."""
    if value is None:
        return 0
    if isinstance(value, (list, tuple)):
        return len(value)
    return value


class PostSummary(BaseModel):
    """The part of a post the analytics need."""

    model_config = ConfigDict(extra="ignore")

    likes_count: int = Field(
        default=0, validation_alias=AliasChoices("likesCount", "likes", "likes_count")
    )
    comments_count: int = Field(
        default=0,
        validation_alias=AliasChoices("commentsCount", "comments", "comments_count"),
    )

    @field_validator("likes_count", "comments_count", mode="before")
    @classmethod
    def _normalize_count(cls, value: Any) -> Any:
        return _as_count(value)


class FeedSources(BaseModel):
    """Users whose posts make up a subject's feed."""

    model_config = ConfigDict(extra="ignore")

    user_ids: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("userIds", "user_ids")
    )
