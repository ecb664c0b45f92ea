"""SQLAlchemy ORM models."""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from contextify.domain.enums import StageStatus


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware datetime stored as naive UTC.

    SQLite keeps no offset, so values are converted to UTC on the way in and
    tagged as UTC on the way out. Ordering and range comparisons then work on
    every backend.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class RawContentModel(Base):
    """Raw ingested content (one transcript or post) ORM model."""

    __tablename__ = "raw_content"
    __table_args__ = (
        CheckConstraint(
            "stage_status IN ('pending','processing','done','error')",
            name="ck_raw_content_stage_status",
        ),
        Index("ix_raw_content_publish_date", "publish_date"),
        Index("ix_raw_content_status_publish_date", "stage_status", "publish_date"),
        Index("ix_raw_content_source_account", "source", "account"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    account: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    publish_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    stage_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StageStatus.PENDING.value, server_default="pending"
    )

    # Relationships
    topics: Mapped[list["TopicModel"]] = relationship(
        "TopicModel",
        back_populates="raw_content",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TopicModel(Base):
    """Topic distilled from one raw content item ORM model."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    raw_content_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("raw_content.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    keywords: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    generated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, server_default=func.current_timestamp()
    )
    generated_by_model: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    raw_content: Mapped["RawContentModel"] = relationship(
        "RawContentModel", back_populates="topics"
    )


class ChannelMetadataModel(Base):
    """Cached channel resolution for a source account ORM model."""

    __tablename__ = "channel_metadata"

    account_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    channel_id: Mapped[str] = mapped_column(String(255), nullable=False)
    channel_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subscriber_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resolved_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_checked: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
