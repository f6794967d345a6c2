"""Shared fixtures and in-process fakes for the comment pipeline tests."""

import asyncio

import pytest

from config import Config
from errors import APIError
from models.analysis import QuestionCheck, SentimentScore, Trend
from models.comment import CommentPage, RawComment, VideoMetadata


class FakeSource:
    """Comment source serving canned pages.

    Cursors are the string index of the next page. Every page request is
    recorded as (cursor, page_size).
    """

    def __init__(
        self,
        pages: list[list[str]],
        metadata: VideoMetadata | None = None,
        metadata_error: Exception | None = None,
        page_error_at: int | None = None,
        slow_page_at: int | None = None,
    ):
        self.pages = pages
        self.metadata = metadata or VideoMetadata(
            title="Test Video",
            description="A video",
            channel_title="Test Channel",
            reported_comment_count=sum(len(p) for p in pages),
        )
        self.metadata_error = metadata_error
        self.page_error_at = page_error_at
        self.slow_page_at = slow_page_at
        self.requests: list[tuple[str | None, int]] = []

    async def fetch_video_metadata(self, video_id: str, api_key: str) -> VideoMetadata:
        if self.metadata_error is not None:
            raise self.metadata_error
        return self.metadata

    async def fetch_comment_page(
        self,
        video_id: str,
        api_key: str,
        cursor: str | None,
        page_size: int,
    ) -> CommentPage:
        index = int(cursor) if cursor else 0
        self.requests.append((cursor, page_size))
        if self.slow_page_at == index:
            await asyncio.sleep(10)
        if self.page_error_at == index:
            raise APIError("HTTP 503: backend unavailable", status=503)

        items = [RawComment(raw_text=text) for text in self.pages[index]]
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return CommentPage(items=items, next_cursor=next_cursor)


class FakeLanguage:
    """Language back-end with per-text scores, questions, trends and failures.

    Tracks the peak number of concurrent sentiment and syntax calls.
    """

    def __init__(
        self,
        scores: dict[str, float] | None = None,
        questions: set[str] | None = None,
        trends: dict[str, list[str]] | None = None,
        default_score: float = 0.0,
        fail_sentiment: set[str] | None = None,
        fail_syntax: set[str] | None = None,
        fail_trends: set[str] | None = None,
        delay: float = 0.0,
        syntax_delay: float = 0.0,
    ):
        self.scores = scores or {}
        self.questions = questions or set()
        self.trends = trends or {}
        self.default_score = default_score
        self.fail_sentiment = fail_sentiment or set()
        self.fail_syntax = fail_syntax or set()
        self.fail_trends = fail_trends or set()
        self.delay = delay
        self.sentiment_calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.syntax_delay = syntax_delay
        self.syntax_in_flight = 0
        self.syntax_peak = 0

    async def score_sentiment(self, text: str) -> SentimentScore:
        self.sentiment_calls.append(text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if text in self.fail_sentiment:
                raise APIError("HTTP 500: sentiment backend error", status=500)
            return SentimentScore(score=self.scores.get(text, self.default_score))
        finally:
            self.in_flight -= 1

    async def detect_question(self, text: str) -> QuestionCheck:
        self.syntax_in_flight += 1
        self.syntax_peak = max(self.syntax_peak, self.syntax_in_flight)
        try:
            await asyncio.sleep(self.syntax_delay)
            if text in self.fail_syntax:
                raise APIError("HTTP 500: syntax backend error", status=500)
            return QuestionCheck(has_question_token=text in self.questions)
        finally:
            self.syntax_in_flight -= 1

    async def extract_trends(self, text: str) -> list[Trend]:
        if text in self.fail_trends:
            raise APIError("HTTP 500: entity backend error", status=500)
        return [Trend(name=name) for name in self.trends.get(text, [])]


class FakeStore:
    """Persistence sink that records calls and can be told to fail."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[str, list]] = []

    def store(self, video_id: str, comments: list) -> int:
        self.calls.append((video_id, comments))
        if self.error is not None:
            raise self.error
        return len(self.calls)


@pytest.fixture
def config(tmp_path):
    """Configuration for tests: short timeout, no persistence."""
    return Config(
        youtube_api_key="yt-key",
        language_api_key="nl-key",
        max_comments=150,
        page_concurrency=10,
        request_timeout=1.0,
        persist_comments=False,
        db_path=tmp_path / "comments.db",
        log_dir=tmp_path / "log",
    )
