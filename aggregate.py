"""Run-wide aggregation and report assembly.

RunningAggregate is owned by a single pipeline run and written only by the
coordinator's fold step, never by the concurrent analyses themselves.
build_report turns the final counters into an immutable Report.

Report rules:
    - Percentages are bucket / processed * 100, all three 0 when nothing
      was processed.
    - Trends mentioned fewer than 4 times across the run are dropped.
    - The video description is cut to its first 500 characters.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from models.analysis import AnalysisResult
from models.comment import EnrichedComment, VideoMetadata
from models.report import Report, ReportMetadata

logger = logging.getLogger(__name__)

# Entities below this many mentions are noise
TREND_MIN_COUNT = 4

DESCRIPTION_MAX_CHARS = 500


@dataclass
class RunningAggregate:
    """Mutable counters for one pipeline run.

    Invariant: processed == positive + neutral + negative, and every fold
    updates processed together with exactly one sentiment bucket.

    Attributes:
        processed: Comments successfully analyzed and kept
        questions: Kept comments flagged as questions
        positive: Kept comments with sentiment score > 0
        neutral: Kept comments with sentiment score == 0
        negative: Kept comments with sentiment score < 0
        trend_frequency: Entity name -> number of mentions
        comments: Kept comments in fold order
    """

    processed: int = 0
    questions: int = 0
    positive: int = 0
    neutral: int = 0
    negative: int = 0
    trend_frequency: Counter = field(default_factory=Counter)
    comments: list[EnrichedComment] = field(default_factory=list)

    def fold(self, result: AnalysisResult) -> None:
        """Apply one successful analysis to the counters."""
        self.processed += 1
        if result.is_question:
            self.questions += 1

        if result.sentiment_score > 0:
            self.positive += 1
        elif result.sentiment_score < 0:
            self.negative += 1
        else:
            self.neutral += 1

        for trend in result.trends:
            self.trend_frequency[trend.name] += 1

        self.comments.append(result.to_enriched())

    def percentages(self) -> tuple[float, float, float]:
        """Return (positive, neutral, negative) percentages of processed."""
        if self.processed == 0:
            return 0.0, 0.0, 0.0
        total = self.processed
        return (
            self.positive / total * 100,
            self.neutral / total * 100,
            self.negative / total * 100,
        )

    def filtered_trends(self, min_count: int = TREND_MIN_COUNT) -> dict[str, int]:
        """Return trends mentioned at least min_count times."""
        return {name: count for name, count in self.trend_frequency.items() if count >= min_count}


def build_report(metadata: VideoMetadata, aggregate: RunningAggregate) -> Report:
    """Assemble the final report from video metadata and run counters.

    Args:
        metadata: Video details fetched at the start of the run
        aggregate: Final counters of the run

    Returns:
        Immutable Report
    """
    positive, neutral, negative = aggregate.percentages()
    trends = aggregate.filtered_trends()

    logger.debug(
        "Report built | processed=%d trends=%d/%d",
        aggregate.processed, len(trends), len(aggregate.trend_frequency),
    )

    return Report(
        metadata=ReportMetadata(
            video_title=metadata.title,
            video_description=metadata.description[:DESCRIPTION_MAX_CHARS],
            channel_title=metadata.channel_title,
            comment_count=metadata.reported_comment_count,
            num_questions=aggregate.questions,
            comments_analyzed=aggregate.processed,
            positive_percentage=positive,
            neutral_percentage=neutral,
            negative_percentage=negative,
            trends=trends,
        ),
        comments=tuple(aggregate.comments),
    )
