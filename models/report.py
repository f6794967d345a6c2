"""Final report models.

A Report is assembled exactly once at the end of a successful run and is
not mutated afterwards. to_payload() produces the JSON-ready dict with the
camelCase keys consumers of the comment analysis endpoint expect.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from models.comment import EnrichedComment


class ReportMetadata(BaseModel):
    """Video details and run-wide aggregates."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    video_title: str = Field(alias="videoTitle")
    video_description: str = Field(alias="videoDescription", description="First 500 characters")
    channel_title: str = Field(alias="channelTitle")
    comment_count: int | None = Field(alias="commentCount", description="Count reported by the source")
    num_questions: int = Field(alias="numQuestions", ge=0)
    comments_analyzed: int = Field(alias="commentsAnalyzed", ge=0)
    positive_percentage: float = Field(alias="positivePercentage")
    neutral_percentage: float = Field(alias="neutralPercentage")
    negative_percentage: float = Field(alias="negativePercentage")
    trends: dict[str, int] = Field(default_factory=dict, description="Entity name -> mentions (>= 4)")


class Report(BaseModel):
    """Aggregate report plus the cleaned comment list."""

    model_config = ConfigDict(frozen=True)

    metadata: ReportMetadata
    comments: tuple[EnrichedComment, ...] = Field(default_factory=tuple)

    def to_payload(self) -> dict[str, Any]:
        """Serialize with wire-format (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)
