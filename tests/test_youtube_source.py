"""Tests for the YouTube source adapter."""

from datetime import timedelta

import httpx
import pytest
from yt_dlp.utils import DownloadError

from contextify.adapters.sources import TranscriptFetcher, YouTubeSource, run_adapter
from contextify.db.store import ContentStore
from contextify.domain import ChannelMetadata, StageStatus

from conftest import NOW, make_item

SINCE = NOW - timedelta(days=3)


class FakeTranscripts:
    """Transcript fetcher returning canned text per video id."""

    def __init__(self, transcripts: dict[str, str | Exception | None]) -> None:
        self.transcripts = transcripts
        self.requested: list[str] = []

    def fetch(self, video_id: str) -> str | None:
        self.requested.append(video_id)
        value = self.transcripts.get(video_id)
        if isinstance(value, Exception):
            raise value
        return value


class FakeYouTubeAPI:
    """Mock YouTube Data API recording the requests it receives."""

    def __init__(self, videos: list[dict], channel_found: bool = True) -> None:
        self.videos = videos
        self.channel_found = channel_found
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        assert params["key"] == "yt-key"

        if request.url.path.endswith("/channels"):
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "snippet": {"title": "Crypto Daily"},
                            "statistics": {"subscriberCount": "125000"},
                        }
                    ]
                },
            )
        if params.get("type") == "channel":
            items = [{"snippet": {"channelId": "UC123"}}] if self.channel_found else []
            return httpx.Response(200, json={"items": items})
        return httpx.Response(200, json={"items": self.videos})

    def paths(self) -> list[str]:
        return [f"{r.url.path}?type={r.url.params.get('type')}" for r in self.requests]


def _video(video_id: str, title: str, published: str = "2025-06-14T10:00:00Z") -> dict:
    return {"id": {"videoId": video_id}, "snippet": {"title": title, "publishedAt": published}}


def _source(
    store: ContentStore, api: FakeYouTubeAPI, transcripts: FakeTranscripts
) -> YouTubeSource:
    return YouTubeSource(
        api_key="yt-key",
        account="@CryptoDaily",
        store=store,
        transcripts=transcripts,
        transport=httpx.MockTransport(api),
    )


@pytest.mark.asyncio
async def test_fetch_stores_new_videos_with_transcripts(store: ContentStore) -> None:
    api = FakeYouTubeAPI([_video("v1", "ETH update"), _video("v2", "BTC update")])
    transcripts = FakeTranscripts({"v1": "ETH rallies", "v2": "BTC dips"})

    await _source(store, api, transcripts).fetch(SINCE)

    item = store.get_item("v1")
    assert item.content == "ETH rallies"
    assert item.title == "ETH update"
    assert item.account == "@CryptoDaily"
    assert item.source == "youtube"
    assert item.stage_status == StageStatus.PENDING
    assert item.publish_date.isoformat() == "2025-06-14T10:00:00+00:00"
    assert store.is_fetched("v2")

    search = [r for r in api.requests if r.url.params.get("type") == "video"][0]
    assert search.url.params["channelId"] == "UC123"
    assert search.url.params["publishedAfter"] == "2025-06-12T12:00:00Z"


@pytest.mark.asyncio
async def test_channel_lookup_is_cached(store: ContentStore) -> None:
    api = FakeYouTubeAPI([])
    source = _source(store, api, FakeTranscripts({}))

    await source.fetch(SINCE)
    await source.fetch(SINCE)

    assert api.paths().count("/youtube/v3/search?type=channel") == 1
    assert api.paths().count("/youtube/v3/channels?type=None") == 1
    channel = store.get_channel("youtube", "@CryptoDaily")
    assert channel.channel_id == "UC123"
    assert channel.channel_title == "Crypto Daily"
    assert channel.subscriber_count == 125000


@pytest.mark.asyncio
async def test_cached_channel_skips_resolution(store: ContentStore) -> None:
    store.store_channel(
        ChannelMetadata(account_name="@CryptoDaily", source="youtube", channel_id="UCcached")
    )
    api = FakeYouTubeAPI([])

    await _source(store, api, FakeTranscripts({})).fetch(SINCE)

    assert len(api.requests) == 1
    assert api.requests[0].url.params["channelId"] == "UCcached"


@pytest.mark.asyncio
async def test_already_fetched_and_missing_transcripts_are_skipped(store: ContentStore) -> None:
    store.upsert_item(make_item("old", content="kept"))
    store.set_status("old", StageStatus.DONE)
    api = FakeYouTubeAPI(
        [
            _video("old", "Old"),
            _video("none", "No captions"),
            _video("blank", "Blank captions"),
            _video("broken", "Private video"),
            _video("new", "New"),
        ]
    )
    transcripts = FakeTranscripts(
        {
            "none": None,
            "blank": "   ",
            "broken": DownloadError("Private video"),
            "new": "fresh transcript",
        }
    )

    await _source(store, api, transcripts).fetch(SINCE)

    assert "old" not in transcripts.requested
    assert store.get_item("old").stage_status == StageStatus.DONE
    assert not store.is_fetched("none")
    assert not store.is_fetched("blank")
    assert not store.is_fetched("broken")
    assert store.get_item("new").content == "fresh transcript"


@pytest.mark.asyncio
async def test_unknown_channel_fails_the_run(store: ContentStore) -> None:
    api = FakeYouTubeAPI([], channel_found=False)

    result = await run_adapter(_source(store, api, FakeTranscripts({})), store, SINCE)

    assert result.succeeded is False
    assert "@CryptoDaily" in result.error


def test_api_key_is_required(store: ContentStore) -> None:
    with pytest.raises(ValueError):
        YouTubeSource(api_key="", account="@a", store=store)


class TestTranscriptParsing:
    """Tests for caption track selection and text joining."""

    def test_prefers_manual_subtitles(self) -> None:
        info = {
            "automatic_captions": {"en": [{"ext": "json3", "url": "https://auto"}]},
            "subtitles": {"en-US": [{"ext": "vtt", "url": "https://vtt"}, {"ext": "json3", "url": "https://manual"}]},
        }
        assert TranscriptFetcher._select_caption_url(info) == "https://manual"

    def test_falls_back_to_automatic_captions(self) -> None:
        info = {"subtitles": {}, "automatic_captions": {"en-orig": [{"ext": "json3", "url": "https://auto"}]}}
        assert TranscriptFetcher._select_caption_url(info) == "https://auto"

    def test_no_english_track(self) -> None:
        info = {"subtitles": {"de": [{"ext": "json3", "url": "https://de"}]}}
        assert TranscriptFetcher._select_caption_url(info) is None

    def test_join_segments(self) -> None:
        data = {
            "events": [
                {"segs": [{"utf8": "ETH is"}, {"utf8": " up\n"}]},
                {"tStartMs": 100},
                {"segs": [{"utf8": "\n"}, {"utf8": "eight percent"}]},
            ]
        }
        assert TranscriptFetcher._join_segments(data) == "ETH is up eight percent"
