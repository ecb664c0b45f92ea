"""YouTube source adapter.

Channel lookup and video listing use the YouTube Data API v3. Transcripts
come from the caption tracks that yt-dlp reports for each video.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
import yt_dlp
from yt_dlp.utils import DownloadError

from contextify.db.store import ContentStore
from contextify.domain import ChannelMetadata, RawContentItem, Source
from contextify.errors import SourceError
from contextify.logging import get_logger

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"
CAPTION_LANGUAGES = ("en", "en-US", "en-GB", "en-orig")


def _parse_timestamp(value: str | None) -> datetime:
    if not value:
        return datetime.now(UTC)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TranscriptFetcher:
    """Fetches a video's caption text through yt-dlp caption metadata."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport
        self._ydl_opts: dict[str, Any] = {
            "skip_download": True,
            "quiet": True,
            "no_warnings": True,
            "writesubtitles": True,
            "writeautomaticsub": True,
            "subtitleslangs": list(CAPTION_LANGUAGES),
            "socket_timeout": 30,
        }

    def fetch(self, video_id: str) -> str | None:
        """Return the transcript text, or None if the video has no captions."""
        url = f"https://www.youtube.com/watch?v={video_id}"
        with yt_dlp.YoutubeDL(self._ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)

        caption_url = self._select_caption_url(info or {})
        if caption_url is None:
            return None

        with httpx.Client(timeout=30.0, transport=self._transport) as client:
            response = client.get(caption_url)
            response.raise_for_status()
            data = response.json()

        return self._join_segments(data)

    @staticmethod
    def _select_caption_url(info: dict[str, Any]) -> str | None:
        # Manual subtitles first, then auto-generated captions.
        for key in ("subtitles", "automatic_captions"):
            tracks = info.get(key) or {}
            for lang in CAPTION_LANGUAGES:
                for fmt in tracks.get(lang) or []:
                    if fmt.get("ext") == "json3" and fmt.get("url"):
                        return fmt["url"]
        return None

    @staticmethod
    def _join_segments(data: dict[str, Any]) -> str:
        parts: list[str] = []
        for event in data.get("events") or []:
            for seg in event.get("segs") or []:
                text = (seg.get("utf8") or "").replace("\n", " ").strip()
                if text:
                    parts.append(text)
        return " ".join(parts)


class YouTubeSource:
    """Fetches transcripts of new videos from one YouTube channel."""

    def __init__(
        self,
        api_key: str,
        account: str,
        store: ContentStore,
        transcripts: TranscriptFetcher | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_results: int = 50,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("YouTube API key is required")
        self.api_key = api_key
        self.store = store
        self.transcripts = transcripts or TranscriptFetcher()
        self.max_results = max_results
        self._account = account
        self._transport = transport
        self._logger = logger or get_logger(__name__, source="youtube", account=account)

    @property
    def source_name(self) -> str:
        return Source.YOUTUBE.value

    @property
    def account_name(self) -> str:
        return self._account

    async def fetch(self, since: datetime) -> None:
        async with httpx.AsyncClient(
            base_url=YOUTUBE_API_URL, timeout=30.0, transport=self._transport
        ) as client:
            channel_id = await self._get_channel_id(client)
            if not channel_id:
                raise SourceError(f"Could not find youtube channel for: {self._account}")

            self._logger.info("youtube_search_started", since=since.isoformat())
            data = await self._get(
                client,
                "/search",
                part="id,snippet",
                channelId=channel_id,
                type="video",
                order="date",
                maxResults=self.max_results,
                publishedAfter=since.astimezone(UTC).isoformat().replace("+00:00", "Z"),
            )

        videos = [
            video
            for video in data.get("items") or []
            if (video.get("id") or {}).get("videoId") and (video.get("snippet") or {}).get("title")
        ]
        self._logger.info("youtube_videos_found", count=len(videos))

        processed = skipped = failed = 0
        for video in videos:
            video_id = video["id"]["videoId"]
            title = video["snippet"]["title"]

            if await asyncio.to_thread(self.store.is_fetched, video_id):
                self._logger.debug("youtube_video_skipped", video_id=video_id, reason="already_fetched")
                skipped += 1
                continue

            transcript = await self._fetch_transcript(video_id, title)
            if not transcript:
                failed += 1
                continue

            await asyncio.to_thread(
                self.store.upsert_item,
                RawContentItem(
                    id=video_id,
                    source=self.source_name,
                    account=self._account,
                    title=title,
                    content=transcript,
                    publish_date=_parse_timestamp(video["snippet"].get("publishedAt")),
                ),
            )
            processed += 1

        self._logger.info(
            "youtube_fetch_summary",
            processed=processed,
            skipped=skipped,
            failed=failed,
        )

    async def _fetch_transcript(self, video_id: str, title: str) -> str | None:
        try:
            transcript = await asyncio.to_thread(self.transcripts.fetch, video_id)
        except (DownloadError, httpx.HTTPError, ValueError) as e:
            self._logger.debug("youtube_transcript_failed", video_id=video_id, error=str(e))
            return None

        if not transcript or not transcript.strip():
            self._logger.warning("youtube_transcript_empty", video_id=video_id, title=title)
            return None
        return transcript

    async def _get(self, client: httpx.AsyncClient, path: str, **params: Any) -> dict[str, Any]:
        response = await client.get(path, params={**params, "key": self.api_key})
        response.raise_for_status()
        return response.json()

    async def _get_channel_id(self, client: httpx.AsyncClient) -> str | None:
        cached = await asyncio.to_thread(self.store.get_channel, self.source_name, self._account)
        if cached:
            self._logger.debug("youtube_channel_cache_hit", channel_id=cached.channel_id)
            await asyncio.to_thread(self.store.touch_channel, self.source_name, self._account)
            return cached.channel_id

        self._logger.debug("youtube_channel_cache_miss")
        channel_id = await self._resolve_channel_id(client)
        if not channel_id:
            return None

        details = await self._fetch_channel_details(client, channel_id)
        if details is None:
            self._logger.warning("youtube_channel_details_missing", channel_id=channel_id)
            return channel_id

        now = datetime.now(UTC)
        await asyncio.to_thread(
            self.store.store_channel,
            ChannelMetadata(
                account_name=self._account,
                source=self.source_name,
                channel_id=channel_id,
                channel_title=details.get("title"),
                subscriber_count=details.get("subscriber_count"),
                resolved_at=now,
                last_checked=now,
            ),
        )
        return channel_id

    async def _resolve_channel_id(self, client: httpx.AsyncClient) -> str | None:
        query = self._account.lstrip("@")
        try:
            data = await self._get(
                client, "/search", part="snippet", type="channel", q=query, maxResults=1
            )
        except httpx.HTTPError as e:
            self._logger.error("youtube_channel_resolve_failed", error=str(e))
            return None

        items = data.get("items") or []
        channel_id = (items[0].get("snippet") or {}).get("channelId") if items else None
        if not channel_id:
            self._logger.warning("youtube_channel_not_found")
            return None
        return channel_id

    async def _fetch_channel_details(
        self, client: httpx.AsyncClient, channel_id: str
    ) -> dict[str, Any] | None:
        try:
            data = await self._get(
                client, "/channels", part="snippet,statistics", id=channel_id, maxResults=1
            )
        except httpx.HTTPError as e:
            self._logger.debug("youtube_channel_details_failed", channel_id=channel_id, error=str(e))
            return None

        items = data.get("items") or []
        if not items:
            return None
        channel = items[0]
        subscribers = (channel.get("statistics") or {}).get("subscriberCount")
        return {
            "title": (channel.get("snippet") or {}).get("title"),
            "subscriber_count": int(subscribers) if subscribers else None,
        }
