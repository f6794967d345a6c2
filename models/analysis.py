"""Analysis result models.

The language back-end exposes three independent capabilities, each with its
own small response model:

    SentimentScore: document sentiment in [-1, 1]
    QuestionCheck: whether the token stream contains a literal '?' token
    Trend: one extracted entity (name, category, salience)

AnalysisResult fuses the three for a single comment and is what the
coordinator folds into the run aggregate.
"""

from pydantic import BaseModel, ConfigDict, Field

from models.comment import EnrichedComment


class SentimentScore(BaseModel):
    """Document-level sentiment."""

    score: float = Field(ge=-1.0, le=1.0, description="Polarity from -1 (negative) to 1 (positive)")
    magnitude: float = Field(default=0.0, ge=0.0, description="Overall emotional strength")


class QuestionCheck(BaseModel):
    """Result of the token-level question heuristic."""

    has_question_token: bool = False


class Trend(BaseModel):
    """An entity mentioned in a comment.

    The name is the aggregation key; category and salience are kept only
    on the per-comment result.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    category: str = "UNKNOWN"
    salience: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisResult(BaseModel):
    """Fused analysis of one normalized comment."""

    model_config = ConfigDict(frozen=True)

    comment: str = Field(description="Normalized comment text that was analyzed")
    sentiment_score: float = Field(ge=-1.0, le=1.0)
    is_question: bool = False
    trends: tuple[Trend, ...] = Field(default_factory=tuple)
    trends_degraded: bool = Field(default=False, description="Entity extraction failed; trends is empty")

    @property
    def positive_percentage(self) -> float:
        """Sentiment score rescaled from [-1, 1] to [0, 100]."""
        return (self.sentiment_score + 1) / 2 * 100

    def to_enriched(self) -> EnrichedComment:
        """Build the per-comment record exposed in the report."""
        return EnrichedComment(
            comment=self.comment,
            positive_percentage=self.positive_percentage,
            is_question=self.is_question,
        )
