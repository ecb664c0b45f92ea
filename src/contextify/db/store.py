"""Durable content store and claim queue.

The store is the single source of truth for raw content, derived topics and
the channel metadata cache. It owns the one correctness-critical operation in
the pipeline, :meth:`ContentStore.claim_next`, which hands each pending item
to exactly one worker.

All methods are blocking. Async callers run them through
``asyncio.to_thread`` so that no network call ever happens while a
transaction holds the write lock.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import Engine, String, and_, delete, func, or_, select, update
from sqlalchemy.orm import Session, selectinload, sessionmaker

from contextify.db.models import Base, ChannelMetadataModel, RawContentModel, TopicModel
from contextify.db.session import create_db_engine, create_session_factory, session_scope
from contextify.domain import (
    ChannelMetadata,
    KeywordMention,
    NewTopic,
    PostSummary,
    RawContentItem,
    StageStatus,
    TopicContent,
    TopicMention,
    TopicRecord,
    normalize_account,
)
from contextify.logging import get_logger


def _to_item(row: RawContentModel) -> RawContentItem:
    return RawContentItem(
        id=row.id,
        source=row.source,
        account=row.account,
        title=row.title,
        content=row.content,
        publish_date=row.publish_date,
        stage_status=StageStatus(row.stage_status),
    )


def _window_start(days: int, now: datetime | None) -> datetime:
    now = now or datetime.now(UTC)
    return now - timedelta(days=max(days, 1))


class ContentStore:
    """SQLAlchemy-backed store for content, topics and channel metadata."""

    def __init__(
        self,
        database_url: str | None = None,
        *,
        engine: Engine | None = None,
        busy_timeout: float = 30.0,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if engine is None:
            if database_url is None:
                raise ValueError("Either database_url or engine is required")
            engine = create_db_engine(database_url, busy_timeout=busy_timeout)
        self.engine = engine
        self._session_factory: sessionmaker[Session] = create_session_factory(engine)
        self._logger = logger or get_logger(__name__, component="store")

    def initialize(self) -> int:
        """Create tables and recover items left over from a previous run.

        Must run before any worker starts.

        Returns:
            Number of items reset to pending
        """
        self.create_tables()
        recovered = self.recover_on_startup()
        self._logger.info("store_initialized", url=self.engine.url.render_as_string())
        return recovered

    def create_tables(self) -> None:
        """Create missing tables without touching existing rows."""
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()
        self._logger.info("store_closed")

    # ------------------------------------------------------------------
    # Work queue
    # ------------------------------------------------------------------

    def upsert_item(self, item: RawContentItem) -> bool:
        """Insert an item or refresh its fields, keeping its stage status.

        Returns:
            True if a new row was inserted
        """
        with session_scope(self._session_factory) as session:
            row = session.get(RawContentModel, item.id)
            if row is None:
                session.add(
                    RawContentModel(
                        id=item.id,
                        source=item.source,
                        account=item.account,
                        title=item.title,
                        content=item.content,
                        publish_date=item.publish_date,
                        stage_status=item.stage_status.value,
                    )
                )
                return True

            row.source = item.source
            row.account = item.account
            row.title = item.title
            row.content = item.content
            row.publish_date = item.publish_date
            return False

    def claim_next(self) -> RawContentItem | None:
        """Atomically move the earliest-published pending item to processing.

        The select and update run in one write-exclusive transaction, so
        concurrent callers never receive the same item. Errors propagate.
        """
        with session_scope(self._session_factory) as session:
            stmt = (
                select(RawContentModel)
                .where(RawContentModel.stage_status == StageStatus.PENDING.value)
                .order_by(RawContentModel.publish_date.asc(), RawContentModel.id.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            row = session.scalars(stmt).first()
            if row is None:
                return None

            row.stage_status = StageStatus.PROCESSING.value
            session.flush()
            return _to_item(row)

    def replace_topics(self, item_id: str, topics: Sequence[NewTopic]) -> int:
        """Replace every topic of an item with a new set in one transaction.

        Returns:
            Number of topics written
        """
        with session_scope(self._session_factory) as session:
            session.execute(delete(TopicModel).where(TopicModel.raw_content_id == item_id))
            session.add_all(
                TopicModel(
                    raw_content_id=item_id,
                    name=topic.name,
                    content=topic.content,
                    keywords=topic.keywords,
                    generated_at=topic.generated_at,
                    generated_by_model=topic.generated_by_model,
                )
                for topic in topics
            )
        return len(topics)

    def set_status(self, item_id: str, status: StageStatus) -> bool:
        """Set the stage status of one item.

        Returns:
            True if the item exists
        """
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(RawContentModel)
                .where(RawContentModel.id == item_id)
                .values(stage_status=status.value)
            )
            return result.rowcount > 0

    def recover_on_startup(self) -> int:
        """Reset items stuck in processing or error back to pending."""
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(RawContentModel)
                .where(
                    RawContentModel.stage_status.in_(
                        [StageStatus.PROCESSING.value, StageStatus.ERROR.value]
                    )
                )
                .values(stage_status=StageStatus.PENDING.value)
            )
            changes = result.rowcount

        if changes:
            self._logger.info("raw_content_reset_to_pending", count=changes)
        return changes

    # ------------------------------------------------------------------
    # Item lookups
    # ------------------------------------------------------------------

    def get_item(self, item_id: str) -> RawContentItem | None:
        with session_scope(self._session_factory) as session:
            row = session.get(RawContentModel, item_id)
            return _to_item(row) if row else None

    def is_fetched(self, item_id: str) -> bool:
        with session_scope(self._session_factory) as session:
            count = session.scalar(
                select(func.count()).select_from(RawContentModel).where(RawContentModel.id == item_id)
            )
            return bool(count)

    def last_publish_date(self, source: str, account: str) -> datetime | None:
        """Most recent publish date stored for a source account."""
        with session_scope(self._session_factory) as session:
            return session.scalar(
                select(func.max(RawContentModel.publish_date)).where(
                    RawContentModel.source == source,
                    RawContentModel.account == account,
                )
            )

    def get_topics(self, item_id: str) -> list[TopicRecord]:
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(TopicModel)
                .where(TopicModel.raw_content_id == item_id)
                .order_by(TopicModel.id)
            ).all()
            return [
                TopicRecord(
                    id=row.id,
                    raw_content_id=row.raw_content_id,
                    name=row.name,
                    content=row.content,
                    keywords=row.keywords,
                    generated_at=row.generated_at,
                    generated_by_model=row.generated_by_model,
                )
                for row in rows
            ]

    def status_counts(self) -> dict[StageStatus, int]:
        """Number of items in each stage status."""
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(RawContentModel.stage_status, func.count()).group_by(
                    RawContentModel.stage_status
                )
            ).all()
        counts = {status: 0 for status in StageStatus}
        for status, count in rows:
            counts[StageStatus(status)] = count
        return counts

    # ------------------------------------------------------------------
    # Channel metadata cache
    # ------------------------------------------------------------------

    def get_channel(self, source: str, account: str) -> ChannelMetadata | None:
        with session_scope(self._session_factory) as session:
            row = session.scalars(
                select(ChannelMetadataModel).where(
                    ChannelMetadataModel.source == source,
                    ChannelMetadataModel.account_name == account,
                )
            ).first()
            if row is None:
                return None
            return ChannelMetadata(
                account_name=row.account_name,
                source=row.source,
                channel_id=row.channel_id,
                channel_title=row.channel_title,
                subscriber_count=row.subscriber_count,
                resolved_at=row.resolved_at,
                last_checked=row.last_checked,
            )

    def store_channel(self, metadata: ChannelMetadata) -> None:
        with session_scope(self._session_factory) as session:
            session.merge(
                ChannelMetadataModel(
                    account_name=metadata.account_name,
                    source=metadata.source,
                    channel_id=metadata.channel_id,
                    channel_title=metadata.channel_title,
                    subscriber_count=metadata.subscriber_count,
                    resolved_at=metadata.resolved_at,
                    last_checked=metadata.last_checked,
                )
            )
        self._logger.debug(
            "channel_metadata_cached", source=metadata.source, account=metadata.account_name
        )

    def touch_channel(self, source: str, account: str) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(
                update(ChannelMetadataModel)
                .where(
                    ChannelMetadataModel.source == source,
                    ChannelMetadataModel.account_name == account,
                )
                .values(last_checked=datetime.now(UTC))
            )

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    def topics_by_date_range(
        self,
        days: int,
        account: str | None = None,
        *,
        now: datetime | None = None,
    ) -> list[TopicMention]:
        """Topics of items published in the trailing window, newest first.

        The window's lower bound is inclusive. ``account`` matches regardless
        of case and leading ``@``.
        """
        window_start = _window_start(days, now)
        normalized = normalize_account(account)

        stmt = (
            select(
                TopicModel.id,
                TopicModel.name,
                RawContentModel.account,
                RawContentModel.source,
                RawContentModel.publish_date,
                ChannelMetadataModel.subscriber_count,
            )
            .join(RawContentModel, RawContentModel.id == TopicModel.raw_content_id)
            .outerjoin(
                ChannelMetadataModel,
                and_(
                    ChannelMetadataModel.account_name == RawContentModel.account,
                    ChannelMetadataModel.source == RawContentModel.source,
                ),
            )
            .where(RawContentModel.publish_date >= window_start)
        )
        if normalized:
            stmt = stmt.where(func.lower(func.ltrim(RawContentModel.account, "@")) == normalized)
        stmt = stmt.order_by(RawContentModel.publish_date.desc(), TopicModel.generated_at.desc())

        with session_scope(self._session_factory) as session:
            rows = session.execute(stmt).all()

        return [
            TopicMention(
                topic_id=topic_id,
                topic_name=name,
                account=row_account,
                source=source,
                publish_date=publish_date,
                subscriber_count=subscriber_count,
            )
            for topic_id, name, row_account, source, publish_date, subscriber_count in rows
        ]

    def topics_by_ids(self, topic_ids: Iterable[int]) -> list[TopicContent]:
        """Full topics for a set of ids, grouped by owning item."""
        unique_ids = sorted(set(topic_ids))
        if not unique_ids:
            return []

        stmt = (
            select(
                TopicModel.id,
                TopicModel.name,
                TopicModel.content,
                RawContentModel.account,
                RawContentModel.source,
                RawContentModel.publish_date,
                ChannelMetadataModel.subscriber_count,
            )
            .join(RawContentModel, RawContentModel.id == TopicModel.raw_content_id)
            .outerjoin(
                ChannelMetadataModel,
                and_(
                    ChannelMetadataModel.account_name == RawContentModel.account,
                    ChannelMetadataModel.source == RawContentModel.source,
                ),
            )
            .where(TopicModel.id.in_(unique_ids))
            .order_by(
                RawContentModel.publish_date.desc(),
                RawContentModel.id,
                TopicModel.id,
            )
        )

        with session_scope(self._session_factory) as session:
            rows = session.execute(stmt).all()

        return [
            TopicContent(
                topic_id=topic_id,
                topic_title=name,
                content=content,
                account=account,
                source=source,
                publish_date=publish_date,
                subscriber_count=subscriber_count,
            )
            for topic_id, name, content, account, source, publish_date, subscriber_count in rows
        ]

    def mentions_by_topic(
        self,
        term: str,
        days: int,
        *,
        now: datetime | None = None,
    ) -> list[KeywordMention]:
        """Topics whose name or keywords contain ``term``, newest first."""
        needle = term.strip().lower()
        if not needle:
            return []
        window_start = _window_start(days, now)

        stmt = (
            select(
                TopicModel.id,
                TopicModel.name,
                TopicModel.content,
                TopicModel.keywords,
                RawContentModel.account,
                RawContentModel.source,
                RawContentModel.title,
                RawContentModel.publish_date,
                ChannelMetadataModel.channel_title,
                ChannelMetadataModel.subscriber_count,
            )
            .join(RawContentModel, RawContentModel.id == TopicModel.raw_content_id)
            .outerjoin(
                ChannelMetadataModel,
                and_(
                    ChannelMetadataModel.account_name == RawContentModel.account,
                    ChannelMetadataModel.source == RawContentModel.source,
                ),
            )
            .where(
                RawContentModel.publish_date >= window_start,
                or_(
                    func.lower(TopicModel.name, type_=String).contains(needle, autoescape=True),
                    func.lower(TopicModel.keywords, type_=String).contains(needle, autoescape=True),
                ),
            )
            .order_by(RawContentModel.publish_date.desc(), TopicModel.id)
        )

        with session_scope(self._session_factory) as session:
            rows = session.execute(stmt).all()

        return [
            KeywordMention(
                topic_id=topic_id,
                topic_name=name,
                content=content,
                keywords=keywords,
                account=account,
                source=source,
                title=title,
                publish_date=publish_date,
                channel_title=channel_title,
                subscriber_count=subscriber_count,
            )
            for (
                topic_id,
                name,
                content,
                keywords,
                account,
                source,
                title,
                publish_date,
                channel_title,
                subscriber_count,
            ) in rows
        ]

    def posts_by_date_range(self, days: int, *, now: datetime | None = None) -> list[PostSummary]:
        """Items published in the trailing window with their topic names."""
        window_start = _window_start(days, now)
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(RawContentModel)
                .options(selectinload(RawContentModel.topics))
                .where(RawContentModel.publish_date >= window_start)
                .order_by(RawContentModel.publish_date.desc())
            ).all()
            return [
                PostSummary(
                    id=row.id,
                    account=row.account,
                    source=row.source,
                    title=row.title,
                    publish_date=row.publish_date,
                    stage_status=StageStatus(row.stage_status),
                    topics=[topic.name for topic in sorted(row.topics, key=lambda t: t.id)],
                )
                for row in rows
            ]
