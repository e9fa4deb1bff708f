"""Submit-time validation of a feedback session.

The checks run in a fixed order and stop at the first failure so the
customer is shown one actionable message at a time:

1. consent must be given,
2. an NPS score is needed when the campaign asks for one,
3. an order id is needed when the campaign requires one and it was not
   supplied with the link,
4. every required additional question must be answered.

Validation has no side effects.
"""

from enum import Enum
from typing import NamedTuple, Optional

from models.campaign import CampaignSchema
from models.feedback import FeedbackSession
from utils.question_utils import get_question_handler, is_supported


class ValidationReason(str, Enum):
    """Why a session cannot be submitted yet."""

    CONSENT_REQUIRED = "consent_required"
    NPS_REQUIRED = "nps_required"
    ORDER_ID_REQUIRED = "order_id_required"
    REQUIRED_QUESTIONS_UNANSWERED = "required_questions_unanswered"

    @property
    def message(self) -> str:
        """Message shown to the customer."""
        return VALIDATION_MESSAGES[self]


VALIDATION_MESSAGES: dict[ValidationReason, str] = {
    ValidationReason.CONSENT_REQUIRED: (
        "Please accept the consent notice to submit feedback"
    ),
    ValidationReason.NPS_REQUIRED: "Please provide an NPS score",
    ValidationReason.ORDER_ID_REQUIRED: "Please provide an order ID",
    ValidationReason.REQUIRED_QUESTIONS_UNANSWERED: (
        "Please answer all required questions"
    ),
}


class ValidationResult(NamedTuple):
    """Outcome of validation: passed, or the single reason it did not."""

    passed: bool
    reason: Optional[ValidationReason] = None

    @property
    def message(self) -> Optional[str]:
        """Customer-facing message, or None when validation passed."""
        return self.reason.message if self.reason else None


def unanswered_required_questions(
    schema: CampaignSchema, session: FeedbackSession
) -> list[str]:
    """Return ids of required questions without a conforming answer.

    Questions of an unsupported type cannot be answered and are skipped.
    """
    missing = []
    for question in schema.questions:
        if not question.required or not is_supported(question):
            continue
        handler = get_question_handler(question)
        if not handler.is_answered(session.question_responses.get(question.id)):
            missing.append(question.id)
    return missing


def validate_feedback(
    schema: CampaignSchema, session: FeedbackSession
) -> ValidationResult:
    """Decide whether the session is complete enough to submit.

    Args:
        schema: The campaign being answered.
        session: The session to check.

    Returns:
        ValidationResult: ``passed`` True, or False with the first failing reason.
    """
    if not session.consent_given:
        return ValidationResult(False, ValidationReason.CONSENT_REQUIRED)

    if schema.include_nps and session.nps_score is None:
        return ValidationResult(False, ValidationReason.NPS_REQUIRED)

    if (
        schema.settings.require_order_id
        and session.order_id_editable
        and not session.order_id.strip()
    ):
        return ValidationResult(False, ValidationReason.ORDER_ID_REQUIRED)

    if schema.include_additional_questions and unanswered_required_questions(
        schema, session
    ):
        return ValidationResult(False, ValidationReason.REQUIRED_QUESTIONS_UNANSWERED)

    return ValidationResult(True)
