"""Comment pipeline orchestration.

This module coordinates one fetch -> enrich -> aggregate run for a video:

Pipeline Flow:
    1. METADATA: Fetch title, description, channel and comment count
    2. PAGE: Fetch the next page of top-level comments (at most 100)
    3. NORMALIZE: Clean each comment; drop link comments and empty text
    4. ANALYZE: Run sentiment, syntax and entity analysis per comment,
       at most PAGE_CONCURRENCY comments in flight at once
    5. FOLD: Apply the page's successful results to the run aggregate in
       page order, keeping no more than MAX_COMMENTS
    6. Repeat 2-5 until the budget is reached or there is no next page
    7. REPORT: Build the report and store the comment list (best effort)

Failure policy:
    - Metadata or page fetch failure aborts the run (no partial report)
    - Sentiment or syntax failure drops that one comment
    - Entity extraction failure keeps the comment with no trends
    - Storage failure is logged and never changes the report

A page that is started is always analyzed in full; once the budget is
reached the surplus results of that page are discarded.
"""

import asyncio
import logging
import sqlite3
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from aggregate import RunningAggregate, build_report
from analyzer import ItemAnalyzer
from clients import LanguageClient, YouTubeClient, new_session
from clients.youtube import MAX_PAGE_SIZE
from config import Config
from database import Database
from errors import (
    FetchError,
    ItemAnalysisError,
    MetadataFetchError,
    PageFetchError,
    PipelineError,
)
from models.analysis import AnalysisResult
from models.comment import CommentPage, VideoMetadata
from models.report import Report
from observability.logging import clear_context, set_run_context
from observability.tracing import trace_operation
from preprocess import normalize_comment

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    """Statistics from a single pipeline run.

    Logged at the end of every run; not part of the report.

    Attributes:
        pages: Comment pages fetched
        fetched: Raw comments received
        excluded: Comments dropped by normalization (links, empty text)
        analyzed: Comments whose analysis succeeded
        analysis_failures: Comments dropped by a sentiment or syntax failure
        trend_failures: Comments kept with a degraded (empty) trend list
        duration: Total run time in seconds
    """

    pages: int = 0
    fetched: int = 0
    excluded: int = 0
    analyzed: int = 0
    analysis_failures: int = 0
    trend_failures: int = 0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


class CommentPipeline:
    """Fetch, enrich and aggregate the comments of one video.

    Collaborators are injected so that each run can be scoped to its own
    HTTP session and tests can substitute fakes.

    Components:
        - source: fetch_video_metadata / fetch_comment_page coroutines
        - language: score_sentiment / detect_question / extract_trends coroutines
        - store: optional sink with store(video_id, comments)

    Attributes:
        last_stats: RunStats of the most recent successful run()
    """

    def __init__(
        self,
        config: Config,
        source: Any,
        language: Any,
        store: Any | None = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Application configuration (budget, concurrency, timeout)
            source: Comment and metadata source
            language: Analysis back-end
            store: Optional persistence sink

        Raises:
            ValueError: If max_comments or page_concurrency is not positive
        """
        if config.max_comments <= 0:
            raise ValueError("max_comments must be positive")
        if config.page_concurrency <= 0:
            raise ValueError("page_concurrency must be positive")

        self.source = source
        self.store = store
        self.max_comments = config.max_comments
        self.page_concurrency = config.page_concurrency
        self.timeout = config.request_timeout
        self.analyzer = ItemAnalyzer(language, timeout=config.request_timeout)
        self.last_stats = RunStats()

    async def _fetch_metadata(self, video_id: str, api_key: str) -> VideoMetadata:
        """Fetch video metadata, mapping any failure to MetadataFetchError."""
        with trace_operation("fetch_metadata", {"video_id": video_id}) as span:
            try:
                metadata = await asyncio.wait_for(
                    self.source.fetch_video_metadata(video_id, api_key),
                    self.timeout,
                )
            except MetadataFetchError:
                raise
            except asyncio.TimeoutError as e:
                raise MetadataFetchError(f"Metadata fetch timed out after {self.timeout}s") from e
            except Exception as e:
                raise MetadataFetchError(f"Metadata fetch failed: {e}") from e
            span["title"] = metadata.title

        logger.info(
            "Metadata fetched | title='%s' reported_comments=%s",
            metadata.title[:60], metadata.reported_comment_count,
        )
        return metadata

    async def _fetch_page(
        self,
        video_id: str,
        api_key: str,
        cursor: str | None,
        page_size: int,
        page_number: int,
    ) -> CommentPage:
        """Fetch one comment page, mapping any failure to PageFetchError."""
        with trace_operation("fetch_page", {"page": page_number, "page_size": page_size}) as span:
            try:
                page = await asyncio.wait_for(
                    self.source.fetch_comment_page(video_id, api_key, cursor, page_size),
                    self.timeout,
                )
            except PageFetchError:
                raise
            except asyncio.TimeoutError as e:
                raise PageFetchError(
                    f"Comment page {page_number} timed out after {self.timeout}s"
                ) from e
            except Exception as e:
                raise PageFetchError(f"Comment page {page_number} failed: {e}") from e
            span["items"] = len(page.items)

        logger.debug(
            "Page fetched | page=%d items=%d has_next=%s",
            page_number, len(page.items), page.next_cursor is not None,
        )
        return page

    async def _analyze_page(
        self,
        texts: list[str],
        page_number: int,
    ) -> list[AnalysisResult | BaseException]:
        """Analyze a page of normalized comments with bounded concurrency.

        Returns:
            One entry per input text, in input order: the AnalysisResult or
            the exception that analysis raised
        """
        semaphore = asyncio.Semaphore(self.page_concurrency)

        async def analyze_one(text: str) -> AnalysisResult:
            async with semaphore:
                return await self.analyzer.analyze(text)

        with trace_operation("analyze_page", {"page": page_number, "items": len(texts)}) as span:
            results = await asyncio.gather(
                *(analyze_one(text) for text in texts),
                return_exceptions=True,
            )
            span["failures"] = sum(1 for r in results if isinstance(r, BaseException))
        return list(results)

    def _fold_page(
        self,
        aggregate: RunningAggregate,
        texts: list[str],
        results: list[AnalysisResult | BaseException],
        stats: RunStats,
    ) -> None:
        """Apply one page's results to the aggregate in page order."""
        surplus = 0
        for text, result in zip(texts, results):
            if isinstance(result, ItemAnalysisError):
                stats.analysis_failures += 1
                logger.warning(
                    "Comment dropped | capability=%s text='%s' error=%s",
                    result.capability, text[:40], result,
                )
                continue
            if isinstance(result, BaseException):
                stats.analysis_failures += 1
                logger.error(
                    "Comment dropped | text='%s' type=%s error=%s",
                    text[:40], type(result).__name__, result,
                )
                continue

            stats.analyzed += 1
            if result.trends_degraded:
                stats.trend_failures += 1

            if aggregate.processed >= self.max_comments:
                surplus += 1
                continue
            aggregate.fold(result)

        if surplus:
            logger.debug("Budget reached | discarded=%d", surplus)

    async def run(self, video_id: str, api_key: str) -> Report:
        """Execute one complete pipeline run.

        On success the run's statistics are kept in last_stats. Callers
        running several videos concurrently on one pipeline should use
        run_with_stats() instead.

        Args:
            video_id: YouTube video id
            api_key: API key passed to the comment source

        Returns:
            The aggregate Report

        Raises:
            MetadataFetchError: If video metadata could not be fetched
            PageFetchError: If any comment page could not be fetched
        """
        report, stats = await self.run_with_stats(video_id, api_key)
        self.last_stats = stats
        return report

    async def run_with_stats(self, video_id: str, api_key: str) -> tuple[Report, RunStats]:
        """Execute one complete pipeline run and return its statistics.

        Each call owns its RunStats, so concurrent runs never share counters.

        Returns:
            (report, stats)

        Raises:
            MetadataFetchError: If video metadata could not be fetched
            PageFetchError: If any comment page could not be fetched
        """
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id, video_id)
        start = time.time()
        stats = RunStats()

        logger.info(
            "Pipeline started | max_comments=%d concurrency=%d",
            self.max_comments, self.page_concurrency,
        )

        try:
            metadata = await self._fetch_metadata(video_id, api_key)

            aggregate = RunningAggregate()
            cursor: str | None = None
            while aggregate.processed < self.max_comments:
                page_size = min(self.max_comments - aggregate.processed, MAX_PAGE_SIZE)
                page = await self._fetch_page(video_id, api_key, cursor, page_size, stats.pages + 1)
                stats.pages += 1
                stats.fetched += len(page.items)

                texts = []
                for item in page.items:
                    text = normalize_comment(item.raw_text)
                    if text:
                        texts.append(text)
                    else:
                        stats.excluded += 1

                results = await self._analyze_page(texts, stats.pages)
                self._fold_page(aggregate, texts, results, stats)

                failed = sum(1 for r in results if isinstance(r, BaseException))
                logger.info(
                    "Page processed | page=%d items=%d excluded=%d analyzed=%d failed=%d total=%d",
                    stats.pages, len(page.items), len(page.items) - len(texts),
                    len(results) - failed, failed, aggregate.processed,
                )

                cursor = page.next_cursor
                if cursor is None:
                    break

            report = build_report(metadata, aggregate)
            self._persist(video_id, report)
            return report, stats

        except asyncio.CancelledError:
            logger.info("Pipeline run cancelled")
            raise
        except FetchError as e:
            logger.error("Run aborted | type=%s error=%s", type(e).__name__, e)
            raise
        finally:
            stats.duration = time.time() - start
            logger.info(
                "Pipeline done | duration=%.1fs pages=%d fetched=%d excluded=%d "
                "analyzed=%d failures=%d trend_failures=%d",
                stats.duration, stats.pages, stats.fetched, stats.excluded,
                stats.analyzed, stats.analysis_failures, stats.trend_failures,
            )
            clear_context()

    def _persist(self, video_id: str, report: Report) -> None:
        """Hand the kept comments to the store; failures are only logged."""
        if self.store is None:
            return
        try:
            self.store.store(video_id, list(report.comments))
        except Exception as e:
            logger.error("Comment storage failed | type=%s error=%s", type(e).__name__, e)


def _open_store(path: Path) -> Database | None:
    """Open the comment database, or return None if it cannot be opened."""
    try:
        return Database(path)
    except (sqlite3.Error, OSError) as e:
        logger.error("Comment storage unavailable | path=%s error=%s", path, e)
        return None


async def run_pipeline(
    video_id: str,
    api_key: str,
    config: Config,
    *,
    source: Any | None = None,
    language: Any | None = None,
    store: Any | None = None,
) -> dict[str, Any]:
    """Run the pipeline once and return the report payload.

    Clients not passed in are built on one aiohttp session scoped to this
    call; no session is opened when both are passed in. When no store is passed and PERSIST_COMMENTS is on, the SQLite
    database at DB_PATH is used.

    Args:
        video_id: YouTube video id
        api_key: YouTube Data API key
        config: Application configuration
        source: Optional comment source (default: YouTubeClient)
        language: Optional analysis back-end (default: LanguageClient)
        store: Optional persistence sink

    Returns:
        The report payload, or {"error": message} if the run was aborted
    """
    owned_store = None
    if store is None and config.persist_comments:
        store = owned_store = _open_store(config.db_path)

    try:
        if source is not None and language is not None:
            report = await CommentPipeline(config, source, language, store).run(video_id, api_key)
        else:
            async with new_session(max_connections=config.page_concurrency * 3) as session:
                pipeline = CommentPipeline(
                    config,
                    source or YouTubeClient(session, timeout=config.request_timeout),
                    language or LanguageClient(
                        session,
                        config.language_api_key or api_key,
                        timeout=config.request_timeout,
                    ),
                    store,
                )
                report = await pipeline.run(video_id, api_key)
        return report.to_payload()
    except PipelineError as e:
        return {"error": str(e)}
    finally:
        if owned_store is not None:
            owned_store.close()
