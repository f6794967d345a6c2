"""Comment and video models for the YouTube data source.

RawComment and CommentPage are what the page fetcher hands to the
coordinator; they live for the duration of one page. VideoMetadata is
fetched once per run before any page. EnrichedComment is the per-comment
record that ends up in the final report.
"""

from pydantic import BaseModel, ConfigDict, Field


class RawComment(BaseModel):
    """A top-level comment exactly as returned by the source.

    Attributes:
        raw_text: Display text (may contain HTML markup and entities)
        comment_id: Source identifier, when available
    """

    model_config = ConfigDict(frozen=True)

    raw_text: str = Field(description="Display text with markup")
    comment_id: str = Field(default="", description="Source comment id")


class CommentPage(BaseModel):
    """One page of raw comments plus the continuation token.

    next_cursor is None when the source reports no more pages.
    """

    model_config = ConfigDict(frozen=True)

    items: list[RawComment] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, description="Token for the next page")


class VideoMetadata(BaseModel):
    """Video details looked up once per run.

    Attributes:
        title: Video title
        description: Full video description (truncated only in the report)
        channel_title: Name of the uploading channel
        reported_comment_count: Comment count reported by the source, or None
            when the source does not expose it (comments disabled)
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    channel_title: str = ""
    reported_comment_count: int | None = None


class EnrichedComment(BaseModel):
    """Externally visible per-comment record.

    Trends are aggregated run-wide and are not exposed per comment.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    comment: str = Field(description="Normalized comment text")
    positive_percentage: float = Field(
        alias="positivePercentage",
        ge=0.0,
        le=100.0,
        description="(sentiment score + 1) / 2 * 100",
    )
    is_question: bool = Field(alias="isQuestion")
