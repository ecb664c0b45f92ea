"""Database layer."""

from contextify.db.models import Base, ChannelMetadataModel, RawContentModel, TopicModel
from contextify.db.session import (
    check_connection,
    create_db_engine,
    create_session_factory,
    session_scope,
)
from contextify.db.store import ContentStore

__all__ = [
    "Base",
    "ContentStore",
    "check_connection",
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    # Models
    "ChannelMetadataModel",
    "RawContentModel",
    "TopicModel",
]
