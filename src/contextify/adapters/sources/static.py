"""Static source adapter serving a fixed list of items."""

import asyncio
from datetime import datetime

from contextify.db.store import ContentStore
from contextify.domain import RawContentItem, Source
from contextify.logging import get_logger

logger = get_logger(__name__)


class StaticSource:
    """Upserts preset items published after the watermark.

    Used for tests, demos and seeding a database without network access.
    """

    def __init__(
        self,
        store: ContentStore,
        account: str,
        items: list[RawContentItem] | None = None,
        source: str = Source.STATIC.value,
    ) -> None:
        self.store = store
        self._account = account
        self._source = source
        self.items = list(items or [])
        self.fetch_calls: list[datetime] = []

    @property
    def source_name(self) -> str:
        return self._source

    @property
    def account_name(self) -> str:
        return self._account

    async def fetch(self, since: datetime) -> None:
        self.fetch_calls.append(since)
        new_items = [item for item in self.items if item.publish_date >= since]
        for item in new_items:
            await asyncio.to_thread(self.store.upsert_item, item)
        logger.info(
            "static_source_fetched",
            account=self._account,
            items=len(new_items),
        )
