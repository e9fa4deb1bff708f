"""Unit tests for the submit-time validation gate."""

from typing import Any, Callable

import pytest

from models.campaign import CampaignSchema
from models.feedback import FeedbackSession
from utils.validation_utils import (
    ValidationReason,
    unanswered_required_questions,
    validate_feedback,
)


@pytest.mark.utils
def test_complete_session_passes(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """A session with consent, NPS and required answers passes."""
    result = validate_feedback(campaign, complete_session)
    assert result.passed is True
    assert result.reason is None
    assert result.message is None


@pytest.mark.utils
def test_consent_checked_first(
    campaign: CampaignSchema, feedback_session_factory: Callable[..., FeedbackSession]
) -> None:
    """With everything missing, consent is reported first."""
    session = feedback_session_factory(order_id="", order_id_editable=True)
    result = validate_feedback(campaign, session)
    assert result.reason == ValidationReason.CONSENT_REQUIRED
    assert result.message == "Please accept the consent notice to submit feedback"


@pytest.mark.utils
def test_nps_required_when_campaign_includes_it(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """An NPS campaign cannot be submitted without a score."""
    session = complete_session.model_copy(update={"nps_score": None})
    result = validate_feedback(campaign, session)
    assert result.reason == ValidationReason.NPS_REQUIRED
    assert result.message == "Please provide an NPS score"


@pytest.mark.utils
def test_order_id_required_only_when_editable(
    campaign_dict: dict[str, Any], complete_session: FeedbackSession
) -> None:
    """A required order id is checked only when the customer enters it."""
    campaign_dict["settings"]["requireOrderId"] = True
    schema = CampaignSchema.model_validate(campaign_dict)

    editable = complete_session.model_copy(
        update={"order_id": "  ", "order_id_editable": True}
    )
    assert validate_feedback(schema, editable).reason == (
        ValidationReason.ORDER_ID_REQUIRED
    )

    fixed = complete_session.model_copy(update={"order_id": ""})
    assert validate_feedback(schema, fixed).passed is True


@pytest.mark.utils
def test_required_questions_after_order_id(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """Missing required answers are the last check."""
    session = complete_session.model_copy(update={"question_responses": {"q1": 1}})
    result = validate_feedback(campaign, session)
    assert result.reason == ValidationReason.REQUIRED_QUESTIONS_UNANSWERED
    assert result.message == "Please answer all required questions"
    assert unanswered_required_questions(campaign, session) == ["q2"]


@pytest.mark.utils
def test_false_and_scale_minimum_count_as_answers(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """"No" and the lowest rating satisfy required questions."""
    session = complete_session.model_copy(
        update={"question_responses": {"q1": 1, "q2": False}}
    )
    assert validate_feedback(campaign, session).passed is True


@pytest.mark.utils
def test_questions_skipped_when_not_included(
    campaign_dict: dict[str, Any], complete_session: FeedbackSession
) -> None:
    """Additional questions are not checked when the campaign does not ask them."""
    campaign_dict["include_additional_questions"] = False
    schema = CampaignSchema.model_validate(campaign_dict)
    session = complete_session.model_copy(update={"question_responses": {}})
    assert validate_feedback(schema, session).passed is True


@pytest.mark.utils
def test_unsupported_required_question_does_not_block(
    campaign_dict: dict[str, Any], complete_session: FeedbackSession
) -> None:
    """A required question the form cannot show never blocks submission."""
    campaign_dict["questions"].append(
        {"id": "q9", "type": "slider", "text": "Slide", "required": True}
    )
    schema = CampaignSchema.model_validate(campaign_dict)
    assert validate_feedback(schema, complete_session).passed is True


@pytest.mark.utils
def test_nps_only_campaign_scenario(
    nps_only_campaign: CampaignSchema,
    feedback_session_factory: Callable[..., FeedbackSession],
) -> None:
    """NPS-only campaign: consent alone is not enough."""
    session = feedback_session_factory(consent_given=True)
    result = validate_feedback(nps_only_campaign, session)
    assert result.passed is False
    assert result.reason == ValidationReason.NPS_REQUIRED

    session = session.model_copy(update={"nps_score": 1})
    assert validate_feedback(nps_only_campaign, session).passed is True
