"""Feedback session utilities for the Customer Feedback UI.

This module creates feedback sessions and merges customer input into them.
Every update returns a new session with only the named field (or question
answer) replaced, so unrelated input is never clobbered. Values are checked
where they enter the form (see ``utils.question_utils``), not here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Optional, get_args

from models.campaign import CampaignSchema
from models.feedback import (
    AudioBlob,
    FeedbackChannel,
    FeedbackSession,
    ResponseValue,
    SubmissionState,
)
from utils.capture_utils import AudioRecorder, ChangeCallback, VoiceTextCapture
from utils.logging_utils import get_logger
from utils.question_utils import get_question_handler, is_supported

logger = get_logger(__name__, level="INFO")

SessionField = Literal[
    "order_id",
    "nps_score",
    "text_feedback",
    "voice_blob",
    "feedback_mode",
    "consent_given",
    "capture_state",
]
SESSION_FIELDS: tuple[str, ...] = get_args(SessionField)

NPS_MIN = 1
NPS_MAX = 10
CONSENT_VALUES = ("on", "true", "yes", "1")


def new_feedback_session(
    schema: CampaignSchema,
    company_id: str,
    order_id: str = "",
    campaign_id: Optional[str] = None,
) -> FeedbackSession:
    """Create the session for a form opened with a resolved campaign.

    Args:
        schema: The campaign the form collects feedback for.
        company_id: The company receiving the feedback.
        order_id: Order id supplied with the link; empty makes it editable.
        campaign_id: Campaign id supplied with the link, if any.

    Returns:
        FeedbackSession: A fresh session in the editing state.
    """
    mode = (
        FeedbackChannel.VOICE if schema.settings.allow_voice else FeedbackChannel.TEXT
    )
    logger.info(
        f"init feedback session - company_id:{company_id} order_id:{order_id} campaign_id:{campaign_id}"  # pylint: disable=line-too-long
    )
    return FeedbackSession(
        company_id=company_id,
        campaign_id=campaign_id,
        order_id=order_id,
        order_id_editable=not order_id,
        feedback_mode=mode,
    )


def _is_closed(session: FeedbackSession) -> bool:
    if session.submission_state == SubmissionState.SUBMITTED:
        logger.warning(
            f"order_id:{session.order_id} - update ignored, feedback already submitted"
        )
        return True
    return False


def update_response(
    session: FeedbackSession, question_id: str, value: ResponseValue
) -> FeedbackSession:
    """Return a session with the answer to ``question_id`` replaced."""
    if _is_closed(session):
        return session
    responses = {**session.question_responses, question_id: value}
    return session.model_copy(update={"question_responses": responses})


def update_field(
    session: FeedbackSession, field: SessionField, value: Any
) -> FeedbackSession:
    """Return a session with one top-level field replaced.

    Raises:
        ValueError: If ``field`` is not an updatable session field.
    """
    if field not in SESSION_FIELDS:
        raise ValueError(f"Unknown feedback session field: {field}")
    if _is_closed(session):
        return session
    return session.model_copy(update={field: value})


def apply_capture_change(
    session: FeedbackSession, channel: FeedbackChannel, value: AudioBlob | str | None
) -> FeedbackSession:
    """Record a live value change reported by the capture engine."""
    session = update_field(session, "feedback_mode", channel)
    if channel == FeedbackChannel.VOICE:
        return update_field(session, "voice_blob", value)
    return update_field(session, "text_feedback", value or "")


class SessionCapture:
    """Pairs a feedback session with the capture engine for its feedback prompt.

    The engine reports live value changes back into ``session``; callers read
    ``session`` after driving the engine.
    """

    def __init__(
        self,
        schema: CampaignSchema,
        session: FeedbackSession,
        recorder: AudioRecorder,
    ):
        self.session = session
        on_change: ChangeCallback = self._on_change
        self.capture = VoiceTextCapture(
            allow_voice=schema.settings.allow_voice,
            allow_text=schema.settings.allow_text,
            recorder=recorder,
            on_change=on_change,
            channel=session.feedback_mode,
            state=session.capture_state,
            blob=session.voice_blob,
            text=session.text_feedback,
        )

    def _on_change(
        self, channel: FeedbackChannel, value: AudioBlob | str | None
    ) -> None:
        self.session = apply_capture_change(self.session, channel, value)

    def sync(self) -> FeedbackSession:
        """Copy the engine's state into the session and return it."""
        self.session = update_field(self.session, "capture_state", self.capture.state)
        return self.session


def parse_nps_score(raw: Optional[str]) -> Optional[int]:
    """Return the NPS score in ``raw`` or None if it is not 1 to 10."""
    if raw is None:
        return None
    try:
        score = int(raw.strip())
    except ValueError:
        return None
    return score if NPS_MIN <= score <= NPS_MAX else None


def apply_form_to_session(
    schema: CampaignSchema,
    session: FeedbackSession,
    form: Mapping[str, Any],
    *,
    complete: bool = False,
) -> FeedbackSession:
    """Merge posted form fields into the session.

    Only fields present in ``form`` are applied. With ``complete=True`` the
    form is the whole feedback form, so a missing consent checkbox means the
    box is unticked.

    Args:
        schema: The campaign being answered.
        session: The current session.
        form: Posted fields (a werkzeug ``MultiDict`` or a plain dict).
        complete: Whether ``form`` is the full feedback form.

    Returns:
        FeedbackSession: The updated session.
    """
    if session.order_id_editable and "orderId" in form:
        session = update_field(session, "order_id", str(form["orderId"]).strip())

    if schema.include_nps and "npsScore" in form:
        score = parse_nps_score(form.get("npsScore"))
        if score is not None:
            session = update_field(session, "nps_score", score)

    if "textFeedback" in form:
        session = update_field(session, "text_feedback", str(form["textFeedback"]))

    if "consent" in form:
        consent = str(form["consent"]).strip().lower() in CONSENT_VALUES
        session = update_field(session, "consent_given", consent)
    elif complete:
        session = update_field(session, "consent_given", False)

    if schema.include_additional_questions:
        for question in schema.questions:
            if not is_supported(question):
                continue
            handler = get_question_handler(question)
            if handler.input_name not in form:
                continue
            answers: list[ResponseValue] = []
            handler.capture(form.get(handler.input_name), answers.append)
            for answer in answers:
                session = update_response(session, question.id, answer)

    return session


def session_state_to_dict(session: FeedbackSession) -> dict[str, Any]:
    """Summarise the session for JSON responses (audio bytes excluded)."""
    state = session.model_dump(mode="json", exclude={"voice_blob"})
    state["has_recording"] = session.voice_blob is not None
    return state
