"""Per-comment analysis with a two-tier failure policy.

ItemAnalyzer fans out three independent calls for one normalized comment
and waits for all of them:

    Hard dependencies (failure drops the comment):
        - sentiment: score_sentiment(text) -> SentimentScore
        - syntax: detect_question(text) -> QuestionCheck

    Soft dependency (failure degrades to an empty trend list):
        - trends: extract_trends(text) -> list[Trend]

A comment missing sentiment or the question flag cannot be folded into the
run aggregate consistently, so either failure surfaces as exactly one
ItemAnalysisError naming the capability. Entities only feed the trend
histogram, so losing them for one comment is tolerated.

The language back-end is injected; anything with the three coroutine
methods above works (LanguageClient in production, fakes in tests).
"""

import asyncio
import logging
from typing import Any, Awaitable

from errors import ItemAnalysisError, TrendExtractionError
from models.analysis import AnalysisResult, Trend

logger = logging.getLogger(__name__)


class ItemAnalyzer:
    """Runs sentiment, syntax and entity analysis for one comment.

    Example:
        >>> analyzer = ItemAnalyzer(language_client, timeout=30.0)
        >>> result = await analyzer.analyze("is this real")
        >>> result.is_question, result.sentiment_score
    """

    def __init__(self, language: Any, timeout: float = 30.0):
        """Initialize the analyzer.

        Args:
            language: Back-end exposing score_sentiment, detect_question
                      and extract_trends coroutines
            timeout: Per-call timeout in seconds
        """
        self.language = language
        self.timeout = timeout

    async def _required(self, capability: str, call: Awaitable[Any]) -> Any:
        """Await a hard dependency, converting any failure to ItemAnalysisError."""
        try:
            return await asyncio.wait_for(call, self.timeout)
        except asyncio.TimeoutError as e:
            raise ItemAnalysisError(capability, f"timed out after {self.timeout}s") from e
        except Exception as e:
            raise ItemAnalysisError(capability, str(e) or type(e).__name__) from e

    async def _trends(self, text: str) -> tuple[list[Trend], bool]:
        """Await entity extraction, degrading any failure to an empty list.

        Returns:
            (trends, degraded)
        """
        try:
            trends = await asyncio.wait_for(self.language.extract_trends(text), self.timeout)
        except asyncio.TimeoutError:
            error = TrendExtractionError(f"timed out after {self.timeout}s")
        except Exception as e:
            error = TrendExtractionError(str(e) or type(e).__name__)
        else:
            return list(trends), False

        logger.warning("Trend extraction degraded | text='%s' error=%s", text[:40], error)
        return [], True

    async def analyze(self, comment: str) -> AnalysisResult:
        """Analyze one normalized comment.

        The three calls run concurrently. The first sentiment or syntax
        failure cancels the calls still in flight and propagates once they
        have unwound, so no request outlives the comment's analysis. The
        same holds when the caller cancels analyze().

        Args:
            comment: Normalized, non-empty comment text

        Returns:
            Fused AnalysisResult (trends_degraded set when entities were lost)

        Raises:
            ValueError: If called with an excluded (None) or empty comment
            ItemAnalysisError: If sentiment or syntax analysis failed
        """
        if not comment:
            raise ValueError("Cannot analyze an excluded or empty comment")

        tasks = [
            asyncio.ensure_future(self._required("sentiment", self.language.score_sentiment(comment))),
            asyncio.ensure_future(self._required("syntax", self.language.detect_question(comment))),
            asyncio.ensure_future(self._trends(comment)),
        ]
        try:
            sentiment, question, (trends, degraded) = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return AnalysisResult(
            comment=comment,
            sentiment_score=sentiment.score,
            is_question=question.has_question_token,
            trends=tuple(trends),
            trends_degraded=degraded,
        )
