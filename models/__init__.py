"""Pydantic models for the comment analysis pipeline.

RawComment, CommentPage, VideoMetadata:
    What the YouTube source returns (one page at a time, metadata once).

SentimentScore, QuestionCheck, Trend:
    Responses of the three language analysis capabilities.

AnalysisResult:
    Fused per-comment analysis folded into the run aggregate.

EnrichedComment:
    Per-comment record exposed in the report.

Report, ReportMetadata:
    Final output of a run.

Example:
    >>> from models import Report
    >>> payload = report.to_payload()
    >>> sorted(payload)
    ['comments', 'metadata']
"""

from models.comment import CommentPage, EnrichedComment, RawComment, VideoMetadata
from models.analysis import AnalysisResult, QuestionCheck, SentimentScore, Trend
from models.report import Report, ReportMetadata

__all__ = [
    "AnalysisResult",
    "CommentPage",
    "EnrichedComment",
    "QuestionCheck",
    "RawComment",
    "Report",
    "ReportMetadata",
    "SentimentScore",
    "Trend",
    "VideoMetadata",
]
