"""Module that provides the models for a feedback session.

This module contains the in-progress feedback session owned by one form and
the opaque audio blob produced by the browser recorder.
"""

import uuid
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr


class FeedbackChannel(str, Enum):
    """The two mutually exclusive feedback channels."""

    VOICE = "voice"
    TEXT = "text"


class CaptureState(str, Enum):
    """States of the voice capture engine."""

    IDLE = "idle"
    RECORDING = "recording"
    RECORDED = "recorded"
    PLAYING = "playing"


class SubmissionState(str, Enum):
    """Lifecycle of a submission."""

    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


# text -> str, rating -> int, multiple_choice -> str, yes_no -> bool.
# Strict members so a stored value is never coerced into another shape.
ResponseValue = Union[StrictBool, StrictInt, StrictStr]


class AudioBlob(BaseModel):
    """A finalised recording. The bytes are opaque to the application."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., repr=False, description="Recorded audio")
    content_type: str = Field("audio/webm", description="MIME type from the recorder")
    filename: str = Field("feedback.webm", description="Upload file name")

    @property
    def size(self) -> int:
        """Size of the recording in bytes."""
        return len(self.data)


class FeedbackSession(BaseModel):
    """In-memory state of one feedback submission.

    company_id / campaign_id - identify who the feedback is for.
    order_id - the order the feedback relates to.
    order_id_editable - True when the form was opened without an order id.
    nps_score - 1 to 10, absent until chosen.
    feedback_mode - the active feedback channel.
    text_feedback / voice_blob - the captured free-form feedback.
    capture_state - state of the voice capture engine.
    question_responses - answers keyed by question id.
    consent_given - the consent checkbox.
    submission_state - editing, submitting, submitted or failed.
    submission_id - identifies this submission so it is sent at most once.
    error - message currently shown to the customer, if any.
    """

    company_id: str = Field(..., description="Company receiving the feedback")
    campaign_id: Optional[str] = Field(None, description="Campaign id, if any")
    order_id: str = Field("", description="Order the feedback relates to")
    order_id_editable: bool = Field(True, description="Order id entered by the user")
    nps_score: Optional[int] = Field(None, ge=1, le=10, description="NPS score")
    feedback_mode: FeedbackChannel = FeedbackChannel.TEXT
    text_feedback: str = ""
    voice_blob: Optional[AudioBlob] = None
    capture_state: CaptureState = CaptureState.IDLE
    question_responses: dict[str, ResponseValue] = Field(default_factory=dict)
    consent_given: bool = False
    submission_state: SubmissionState = SubmissionState.EDITING
    submission_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    error: Optional[str] = None
