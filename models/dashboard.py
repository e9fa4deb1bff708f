"""Module that provides the models for the dashboard endpoint.

These models describe the data returned by the backend's dashboard endpoint
(daily theme summaries and the most recent feedback entries) and the
aggregated statistics derived from it.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DailySummary(BaseModel):
    """Sentiment summary of one day's feedback."""

    date: str = Field(..., description="Day the summary covers (ISO 8601)")
    nps_average: Optional[float] = Field(None, description="Average NPS for the day")
    positive_themes: list[str] = Field(default_factory=list)
    negative_themes: list[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator("positive_themes", "negative_themes", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        """Treat a missing theme list as empty."""
        return [] if value is None else value

    @field_validator("summary", mode="before")
    @classmethod
    def none_to_blank(cls, value: Any) -> Any:
        """Treat a missing summary as blank."""
        return "" if value is None else value


class CampaignQuestionRef(BaseModel):
    """A campaign question as listed alongside a feedback entry."""

    id: str
    text: str = ""
    type: str = ""


class CampaignRef(BaseModel):
    """The campaign a feedback entry was collected for."""

    name: str = ""
    questions: list[CampaignQuestionRef] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        """Treat a missing question list as empty."""
        return [] if value is None else value


class QuestionResponseRow(BaseModel):
    """One stored answer to a campaign question."""

    question_id: str
    response_value: Any = None


class FeedbackEntry(BaseModel):
    """One stored feedback submission."""

    id: str
    created_at: datetime
    order_id: str = ""
    nps_score: Optional[int] = None
    transcription: Optional[str] = None
    voice_file_url: Optional[str] = None
    feedback_campaigns: CampaignRef = Field(default_factory=CampaignRef)
    question_responses: list[QuestionResponseRow] = Field(default_factory=list)

    @field_validator("feedback_campaigns", mode="before")
    @classmethod
    def none_to_default(cls, value: Any) -> Any:
        """Treat a missing campaign as an unnamed campaign."""
        return {} if value is None else value

    def response_map(self) -> dict[str, Any]:
        """Return the stored answers keyed by question id."""
        return {row.question_id: row.response_value for row in self.question_responses}


class DashboardData(BaseModel):
    """Payload of the dashboard endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    daily_summaries: list[DailySummary] = Field(
        default_factory=list, alias="dailySummaries"
    )
    recent_feedback: list[FeedbackEntry] = Field(
        default_factory=list, alias="recentFeedback"
    )


class NpsTrendPoint(BaseModel):
    """One point of the NPS trend, oldest first."""

    date: str
    nps: Optional[float] = None


class DashboardStats(BaseModel):
    """Aggregated dashboard figures."""

    overall_nps: float = Field(..., description="Mean of the daily NPS averages")
    total_responses: int = Field(..., description="Number of recent feedback entries")
    voice_recordings: int = Field(..., description="Entries with a voice recording")
    nps_breakdown: dict[str, int] = Field(
        default_factory=dict,
        description="Recent entries counted as promoter, passive and detractor",
    )
    nps_trend: list[NpsTrendPoint] = Field(default_factory=list)
    latest_summary: Optional[DailySummary] = None
