"""Module that provides the models for feedback campaigns.

A campaign describes what a feedback session must collect: whether an NPS score
is asked, the ordered list of additional questions and which feedback channels
(voice and/or text) are offered. Campaigns are supplied by the backend (or the
bundled campaign definition) and are immutable once parsed.

Questions are a closed tagged variant keyed on ``type``. A question whose type
is not recognised is kept as an ``UnsupportedQuestion`` so that the remainder
of the form can still be rendered.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

SUPPORTED_QUESTION_TYPES = ("text", "rating", "multiple_choice", "yes_no")


class CampaignModel(BaseModel):
    """Base for campaign models: immutable, populated by field name or alias."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Scale(CampaignModel):
    """Bounds and optional end labels of a rating question."""

    min: int = Field(..., description="Lowest selectable rating")
    max: int = Field(..., description="Highest selectable rating")
    min_label: Optional[str] = Field(
        None, alias="minLabel", description="Label shown at the low end"
    )
    max_label: Optional[str] = Field(
        None, alias="maxLabel", description="Label shown at the high end"
    )

    @model_validator(mode="after")
    def check_bounds(self) -> "Scale":
        """Reject scales whose minimum is not below their maximum."""
        if self.min >= self.max:
            raise ValueError(
                f"scale min ({self.min}) must be less than max ({self.max})"
            )
        return self


class BaseQuestion(CampaignModel):
    """Fields shared by every campaign question."""

    id: str = Field(..., min_length=1, description="Question id, unique per campaign")
    text: str = Field(..., description="Question text shown to the customer")
    required: bool = Field(False, description="Must be answered before submitting")


class TextQuestion(BaseQuestion):
    """Free-form text answer."""

    type: Literal["text"] = "text"


class RatingQuestion(BaseQuestion):
    """Integer answer within the question's scale."""

    type: Literal["rating"] = "rating"
    scale: Scale = Field(
        default_factory=lambda: Scale(min=1, max=5), description="Rating bounds"
    )


class MultipleChoiceQuestion(BaseQuestion):
    """Answer chosen from an ordered list of options."""

    type: Literal["multiple_choice"] = "multiple_choice"
    options: tuple[str, ...] = Field(..., min_length=1, description="Answer options")


class YesNoQuestion(BaseQuestion):
    """Boolean answer."""

    type: Literal["yes_no"] = "yes_no"


class UnsupportedQuestion(BaseQuestion):
    """A question whose declared type is not recognised.

    It is rendered as a placeholder and never collects an answer.
    """

    type: Literal["unsupported"] = "unsupported"
    text: str = ""
    declared_type: str = Field("", description="The type found in the campaign")


CampaignQuestion = Annotated[
    Union[
        TextQuestion,
        RatingQuestion,
        MultipleChoiceQuestion,
        YesNoQuestion,
        UnsupportedQuestion,
    ],
    Field(discriminator="type"),
]


class CampaignSettings(CampaignModel):
    """Channel and order id settings of a campaign."""

    allow_voice: bool = Field(True, alias="allowVoice")
    allow_text: bool = Field(True, alias="allowText")
    require_order_id: bool = Field(False, alias="requireOrderId")


class CampaignSchema(CampaignModel):
    """A feedback campaign definition.

    id - the unique id of the campaign.
    company_id - the company that owns the campaign.
    include_nps - whether the NPS score is collected.
    include_additional_questions - whether ``questions`` are asked.
    questions - ordered list of additional questions (display order).
    settings - channel and order id settings.
    """

    id: str = Field(..., description="Unique id for the campaign")
    name: str = Field("", description="Campaign name")
    company_id: str = Field(..., description="Company that owns the campaign")
    active: bool = True
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    include_nps: bool = False
    nps_question: Optional[str] = Field(
        None, validation_alias=AliasChoices("nps_question", "npsQuestion")
    )
    include_additional_questions: bool = False
    questions: tuple[CampaignQuestion, ...] = ()
    settings: CampaignSettings = Field(default_factory=CampaignSettings)
    created_at: Optional[str] = None

    @field_validator("questions", mode="before")
    @classmethod
    def mark_unsupported_questions(cls, value: Any) -> Any:
        """Rewrite questions with an unknown ``type`` as unsupported questions."""
        if not isinstance(value, (list, tuple)):
            return value

        marked = []
        for question in value:
            if (
                isinstance(question, dict)
                and question.get("type") not in SUPPORTED_QUESTION_TYPES
            ):
                question = {
                    **question,
                    "type": "unsupported",
                    "declared_type": str(question.get("type", "")),
                }
            marked.append(question)
        return marked

    @model_validator(mode="after")
    def check_unique_question_ids(self) -> "CampaignSchema":
        """Reject campaigns that reuse a question id."""
        seen: set[str] = set()
        for question in self.questions:
            if question.id in seen:
                raise ValueError(f"duplicate question id: {question.id}")
            seen.add(question.id)
        return self

    def get_question(self, question_id: str) -> Optional[CampaignQuestion]:
        """Return the question with ``question_id`` or None if not in the campaign."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
