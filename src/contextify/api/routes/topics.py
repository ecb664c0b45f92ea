"""Topic and post query endpoints."""

import asyncio
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from contextify.api.deps import StoreDep
from contextify.logging import get_logger

router = APIRouter(tags=["Topics"])
logger = get_logger(__name__)

DaysQuery = Annotated[int, Query(ge=1, le=365, description="Trailing window in days")]


# =============================================================================
# Response Models
# =============================================================================


class TopicMentionResponse(BaseModel):
    """A topic in a date window."""

    topic_id: int
    topic_name: str
    account: str
    source: str
    publish_date: datetime
    subscriber_count: int | None = None


class TopicsResponse(BaseModel):
    days: int
    account: str | None = None
    count: int
    topics: list[TopicMentionResponse]


class TopicContentResponse(BaseModel):
    """Full content of one topic."""

    topic_id: int
    topic_title: str
    content: str
    account: str
    source: str
    publish_date: datetime
    subscriber_count: int | None = None


class TopicContentListResponse(BaseModel):
    count: int
    topics: list[TopicContentResponse]


class KeywordMentionResponse(BaseModel):
    """A topic matching a search term."""

    topic_id: int
    topic_name: str
    content: str
    keywords: list[str]
    account: str
    source: str
    title: str
    publish_date: datetime
    channel_title: str | None = None
    subscriber_count: int | None = None


class MentionsResponse(BaseModel):
    term: str
    days: int
    count: int
    mentions: list[KeywordMentionResponse]


class PostResponse(BaseModel):
    """A content item with its topic names."""

    id: str
    account: str
    source: str
    title: str
    publish_date: datetime
    stage_status: str
    topics: list[str]


class PostsResponse(BaseModel):
    days: int
    count: int
    posts: list[PostResponse]


def _query_failed(operation: str, error: Exception) -> HTTPException:
    logger.error("query_failed", operation=operation, error=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {operation}",
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "/topics",
    response_model=TopicsResponse,
    summary="List topics by date range",
    description="Topics of content published within the last N days, newest first.",
)
async def list_topics(
    store: StoreDep,
    days: DaysQuery = 7,
    account: Annotated[str | None, Query(description="Account handle, e.g. @channel")] = None,
) -> TopicsResponse:
    try:
        mentions = await asyncio.to_thread(store.topics_by_date_range, days, account)
    except SQLAlchemyError as e:
        raise _query_failed("list topics", e) from e

    return TopicsResponse(
        days=days,
        account=account,
        count=len(mentions),
        topics=[
            TopicMentionResponse(
                topic_id=m.topic_id,
                topic_name=m.topic_name,
                account=m.account,
                source=m.source,
                publish_date=m.publish_date,
                subscriber_count=m.subscriber_count,
            )
            for m in mentions
        ],
    )


@router.get(
    "/topics/content",
    response_model=TopicContentListResponse,
    summary="Get topic content by id",
    description="Full content of the requested topics. Duplicate ids are ignored.",
)
async def get_topic_content(
    store: StoreDep,
    ids: Annotated[list[int], Query(description="Topic ids")],
) -> TopicContentListResponse:
    try:
        topics = await asyncio.to_thread(store.topics_by_ids, ids)
    except SQLAlchemyError as e:
        raise _query_failed("get topic content", e) from e

    return TopicContentListResponse(
        count=len(topics),
        topics=[
            TopicContentResponse(
                topic_id=t.topic_id,
                topic_title=t.topic_title,
                content=t.content,
                account=t.account,
                source=t.source,
                publish_date=t.publish_date,
                subscriber_count=t.subscriber_count,
            )
            for t in topics
        ],
    )


@router.get(
    "/topics/mentions",
    response_model=MentionsResponse,
    summary="Search topics by term",
    description="Topics whose name or keywords contain the term, case-insensitive.",
)
async def search_mentions(
    store: StoreDep,
    term: Annotated[str, Query(min_length=1, max_length=200)],
    days: DaysQuery = 7,
) -> MentionsResponse:
    try:
        mentions = await asyncio.to_thread(store.mentions_by_topic, term, days)
    except SQLAlchemyError as e:
        raise _query_failed("search mentions", e) from e

    return MentionsResponse(
        term=term,
        days=days,
        count=len(mentions),
        mentions=[
            KeywordMentionResponse(
                topic_id=m.topic_id,
                topic_name=m.topic_name,
                content=m.content,
                keywords=[k.strip() for k in m.keywords.split(",") if k.strip()],
                account=m.account,
                source=m.source,
                title=m.title,
                publish_date=m.publish_date,
                channel_title=m.channel_title,
                subscriber_count=m.subscriber_count,
            )
            for m in mentions
        ],
    )


@router.get(
    "/posts",
    response_model=PostsResponse,
    summary="List posts by date range",
    description="Content items published within the last N days with their topic names.",
)
async def list_posts(store: StoreDep, days: DaysQuery = 7) -> PostsResponse:
    try:
        posts = await asyncio.to_thread(store.posts_by_date_range, days)
    except SQLAlchemyError as e:
        raise _query_failed("list posts", e) from e

    return PostsResponse(
        days=days,
        count=len(posts),
        posts=[
            PostResponse(
                id=p.id,
                account=p.account,
                source=p.source,
                title=p.title,
                publish_date=p.publish_date,
                stage_status=p.stage_status.value,
                topics=p.topics,
            )
            for p in posts
        ],
    )
