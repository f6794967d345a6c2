"""Tests for the pipeline coordinator and run_pipeline."""

import asyncio
from unittest.mock import patch

import pytest

from database import Database
from errors import MetadataFetchError, PageFetchError, PersistenceError
from models.comment import VideoMetadata
from pipeline import CommentPipeline, run_pipeline
from tests.conftest import FakeLanguage, FakeSource, FakeStore

VIDEO_ID = "dQw4w9WgXcQ"


def _pages(count, per_page, prefix="comment"):
    return [
        [f"{prefix} {p} {i}" for i in range(per_page)]
        for p in range(count)
    ]


class _VideoRouter:
    """Source that serves each video id from its own FakeSource."""

    def __init__(self, sources):
        self.sources = sources

    async def fetch_video_metadata(self, video_id, api_key):
        return await self.sources[video_id].fetch_video_metadata(video_id, api_key)

    async def fetch_comment_page(self, video_id, api_key, cursor, page_size):
        return await self.sources[video_id].fetch_comment_page(video_id, api_key, cursor, page_size)


class TestEndToEnd:
    """Full runs through run_pipeline with fake collaborators."""

    @pytest.mark.asyncio
    async def test_single_page_scenario(self, config):
        source = FakeSource(
            pages=[["Is this real?", "Check http://spam.com"]],
            metadata=VideoMetadata(
                title="T",
                description="D" * 600,
                channel_title="C",
                reported_comment_count=42,
            ),
        )
        language = FakeLanguage(
            scores={"is this real": 0.5},
            questions={"is this real"},
            trends={"is this real": ["X"]},
        )

        payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=language)

        metadata = payload["metadata"]
        assert metadata["videoTitle"] == "T"
        assert metadata["videoDescription"] == "D" * 500
        assert metadata["channelTitle"] == "C"
        assert metadata["commentCount"] == 42
        assert metadata["commentsAnalyzed"] == 1
        assert metadata["numQuestions"] == 1
        assert metadata["positivePercentage"] == 100.0
        assert metadata["trends"] == {}
        assert payload["comments"] == [
            {"comment": "is this real", "positivePercentage": 75.0, "isQuestion": True},
        ]
        assert language.sentiment_calls == ["is this real"]

    @pytest.mark.asyncio
    async def test_trend_crosses_threshold_across_pages(self, config):
        pages = [["a one", "b two"], ["c three", "d four"], ["e five"]]
        trends = {
            "a one": ["X", "Y"],
            "b two": ["X", "Y"],
            "c three": ["X", "Y"],
            "d four": ["X"],
            "e five": ["Z"],
        }
        source = FakeSource(pages=pages)
        language = FakeLanguage(trends=trends)

        payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=language)

        assert payload["metadata"]["trends"] == {"X": 4}
        assert payload["metadata"]["commentsAnalyzed"] == 5

    @pytest.mark.asyncio
    async def test_metadata_failure_returns_error(self, config):
        source = FakeSource(pages=[["hi"]], metadata_error=MetadataFetchError("Video not found: x"))

        payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=FakeLanguage())

        assert payload == {"error": "Video not found: x"}
        assert source.requests == []

    @pytest.mark.asyncio
    async def test_page_timeout_mid_run_returns_only_error(self, config):
        config.request_timeout = 0.05
        source = FakeSource(pages=_pages(3, 2), slow_page_at=1)

        payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=FakeLanguage())

        assert list(payload) == ["error"]
        assert "timed out" in payload["error"]

    @pytest.mark.asyncio
    async def test_page_error_returns_only_error(self, config):
        source = FakeSource(pages=_pages(3, 2), page_error_at=2)

        payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=FakeLanguage())

        assert list(payload) == ["error"]
        assert "HTTP 503" in payload["error"]

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_change_report(self, config):
        pages = [["Great video", "Terrible audio"]]
        scores = {"great video": 0.9, "terrible audio": -0.7}

        store = FakeStore(error=PersistenceError("disk full"))
        failing = await run_pipeline(
            VIDEO_ID, "yt-key", config,
            source=FakeSource(pages=pages), language=FakeLanguage(scores=scores), store=store,
        )
        clean = await run_pipeline(
            VIDEO_ID, "yt-key", config,
            source=FakeSource(pages=pages), language=FakeLanguage(scores=scores),
        )

        assert failing == clean
        assert len(store.calls) == 1

    @pytest.mark.asyncio
    async def test_comments_stored_in_database(self, config):
        config.persist_comments = True
        source = FakeSource(pages=[["First!", "Second"]])

        payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=FakeLanguage())

        assert payload["metadata"]["commentsAnalyzed"] == 2
        with Database(config.db_path) as db:
            runs = db.recent(hours=1)
            assert [r["video_id"] for r in runs] == [VIDEO_ID]
            stored = db.get_comments(runs[0]["id"])
        assert [c.comment for c in stored] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_no_session_opened_for_injected_clients(self, config):
        source = FakeSource(pages=[["hello"]])

        with patch("pipeline.new_session") as new_session:
            payload = await run_pipeline(VIDEO_ID, "yt-key", config, source=source, language=FakeLanguage())

        new_session.assert_not_called()
        assert payload["metadata"]["commentsAnalyzed"] == 1


class TestCommentPipeline:
    """Coordinator behavior: budget, concurrency and failure isolation."""

    @pytest.mark.asyncio
    async def test_budget_caps_processed_and_stops_pagination(self, config):
        config.max_comments = 5
        source = FakeSource(pages=_pages(4, 3))
        language = FakeLanguage()
        pipeline = CommentPipeline(config, source, language)

        report = await pipeline.run(VIDEO_ID, "yt-key")

        assert report.metadata.comments_analyzed == 5
        assert [c.comment for c in report.comments] == [
            "comment 0 0", "comment 0 1", "comment 0 2", "comment 1 0", "comment 1 1",
        ]
        # Remaining budget is requested as the page size
        assert source.requests == [(None, 5), ("1", 2)]
        # The second page is still analyzed in full
        assert len(language.sentiment_calls) == 6

    @pytest.mark.asyncio
    async def test_page_size_capped_at_api_maximum(self, config):
        config.max_comments = 250
        source = FakeSource(pages=[["only one"]])

        await CommentPipeline(config, source, FakeLanguage()).run(VIDEO_ID, "yt-key")

        assert source.requests == [(None, 100)]

    @pytest.mark.asyncio
    async def test_concurrency_bounded_per_page(self, config):
        config.page_concurrency = 3
        language = FakeLanguage(delay=0.01)
        source = FakeSource(pages=_pages(1, 20))

        report = await CommentPipeline(config, source, language).run(VIDEO_ID, "yt-key")

        assert report.metadata.comments_analyzed == 20
        assert language.peak_in_flight == 3

    @pytest.mark.asyncio
    async def test_sentiment_failure_drops_only_that_comment(self, config):
        source = FakeSource(pages=[["good one", "bad one", "fine one"]])
        language = FakeLanguage(scores={"good one": 0.4}, fail_sentiment={"bad one"})
        pipeline = CommentPipeline(config, source, language)

        report = await pipeline.run(VIDEO_ID, "yt-key")

        assert [c.comment for c in report.comments] == ["good one", "fine one"]
        assert report.metadata.comments_analyzed == 2
        assert report.metadata.positive_percentage == 50.0
        assert report.metadata.neutral_percentage == 50.0
        assert pipeline.last_stats.analysis_failures == 1

    @pytest.mark.asyncio
    async def test_syntax_failure_drops_only_that_comment(self, config):
        source = FakeSource(pages=[["keep me", "drop me"]])
        language = FakeLanguage(fail_syntax={"drop me"})

        report = await CommentPipeline(config, source, language).run(VIDEO_ID, "yt-key")

        assert [c.comment for c in report.comments] == ["keep me"]

    @pytest.mark.asyncio
    async def test_failed_comment_releases_slot_only_after_sub_calls_end(self, config):
        config.page_concurrency = 1
        texts = [f"comment {i}" for i in range(5)]
        source = FakeSource(pages=[texts])
        language = FakeLanguage(fail_sentiment=set(texts), syntax_delay=0.2)

        report = await CommentPipeline(config, source, language).run(VIDEO_ID, "yt-key")

        assert report.metadata.comments_analyzed == 0
        assert language.syntax_peak <= 1
        assert language.syntax_in_flight == 0

    @pytest.mark.asyncio
    async def test_trend_failure_keeps_comment(self, config):
        source = FakeSource(pages=[["python rocks"]])
        language = FakeLanguage(scores={"python rocks": 0.6}, fail_trends={"python rocks"})
        pipeline = CommentPipeline(config, source, language)

        report = await pipeline.run(VIDEO_ID, "yt-key")

        assert report.metadata.comments_analyzed == 1
        assert report.metadata.trends == {}
        assert pipeline.last_stats.trend_failures == 1

    @pytest.mark.asyncio
    async def test_excluded_and_empty_comments_never_analyzed(self, config):
        source = FakeSource(pages=[["see https://spam.example", "?!?", "real comment"]])
        language = FakeLanguage()
        pipeline = CommentPipeline(config, source, language)

        report = await pipeline.run(VIDEO_ID, "yt-key")

        assert language.sentiment_calls == ["real comment"]
        assert report.metadata.comments_analyzed == 1
        stats = pipeline.last_stats.to_dict()
        assert stats["excluded"] == 2
        assert stats["fetched"] == 3
        assert stats["pages"] == 1

    @pytest.mark.asyncio
    async def test_no_comments_yields_zero_percentages(self, config):
        source = FakeSource(pages=[[]])

        report = await CommentPipeline(config, source, FakeLanguage()).run(VIDEO_ID, "yt-key")

        assert report.metadata.comments_analyzed == 0
        assert report.metadata.positive_percentage == 0.0
        assert report.metadata.neutral_percentage == 0.0
        assert report.metadata.negative_percentage == 0.0

    @pytest.mark.asyncio
    async def test_source_errors_are_wrapped(self, config):
        source = FakeSource(pages=[["a"], ["b"]], page_error_at=1)

        with pytest.raises(PageFetchError):
            await CommentPipeline(config, source, FakeLanguage()).run(VIDEO_ID, "yt-key")

    @pytest.mark.asyncio
    async def test_unexpected_metadata_error_is_wrapped(self, config):
        source = FakeSource(pages=[["a"]], metadata_error=RuntimeError("boom"))

        with pytest.raises(MetadataFetchError, match="boom"):
            await CommentPipeline(config, source, FakeLanguage()).run(VIDEO_ID, "yt-key")

    @pytest.mark.asyncio
    async def test_store_receives_kept_comments(self, config):
        store = FakeStore()
        source = FakeSource(pages=[["one", "two"]])

        report = await CommentPipeline(config, source, FakeLanguage(), store).run(VIDEO_ID, "yt-key")

        assert store.calls == [(VIDEO_ID, list(report.comments))]

    @pytest.mark.asyncio
    async def test_concurrent_runs_keep_separate_stats(self, config):
        sources = {
            "short": FakeSource(pages=_pages(1, 2)),
            "long": FakeSource(pages=_pages(3, 4)),
        }
        pipeline = CommentPipeline(config, _VideoRouter(sources), FakeLanguage(delay=0.01))

        (short_report, short_stats), (long_report, long_stats) = await asyncio.gather(
            pipeline.run_with_stats("short", "yt-key"),
            pipeline.run_with_stats("long", "yt-key"),
        )

        assert (short_stats.pages, short_stats.fetched, short_stats.analyzed) == (1, 2, 2)
        assert (long_stats.pages, long_stats.fetched, long_stats.analyzed) == (3, 12, 12)
        assert short_report.metadata.comments_analyzed == 2
        assert long_report.metadata.comments_analyzed == 12

    @pytest.mark.asyncio
    async def test_run_records_last_stats(self, config):
        pipeline = CommentPipeline(config, FakeSource(pages=_pages(2, 3)), FakeLanguage())

        await pipeline.run(VIDEO_ID, "yt-key")

        assert pipeline.last_stats.pages == 2
        assert pipeline.last_stats.analyzed == 6

    @pytest.mark.parametrize("field", ["max_comments", "page_concurrency"])
    def test_non_positive_limits_rejected(self, config, field):
        setattr(config, field, 0)

        with pytest.raises(ValueError):
            CommentPipeline(config, FakeSource(pages=[]), FakeLanguage())
