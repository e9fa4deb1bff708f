"""Unit tests for the submission coordinator in utils.submission_utils."""

import json
from typing import Callable

import pytest

from models.campaign import CampaignSchema
from models.feedback import (
    AudioBlob,
    CaptureState,
    FeedbackChannel,
    FeedbackSession,
    SubmissionState,
)
from tests.conftest import FakeAPIClient, FakeRecorder
from utils.capture_utils import VoiceTextCapture
from utils.claim_utils import ClaimStatus, SubmissionClaims
from utils.submission_utils import (
    SUBMIT_FAILED,
    SUBMIT_IN_PROGRESS,
    SubmissionCoordinator,
    build_submission_payload,
)


@pytest.mark.utils
def test_voice_submission_payload(
    campaign: CampaignSchema,
    complete_session: FeedbackSession,
    audio_blob: AudioBlob,
    fake_api_client: FakeAPIClient,
) -> None:
    """Voice feedback sends the recording and no text."""
    session = complete_session.model_copy(
        update={
            "feedback_mode": FeedbackChannel.VOICE,
            "voice_blob": audio_blob,
            "question_responses": {"q1": 4, "q2": False},
        }
    )

    result = SubmissionCoordinator(campaign, session, fake_api_client).submit()

    assert result.submission_state == SubmissionState.SUBMITTED
    assert len(fake_api_client.calls) == 1
    call = fake_api_client.calls[0]
    assert call["endpoint"] == "/api/save-feedback"
    assert call["data"]["orderId"] == "ORD-1"
    assert call["data"]["companyId"] == "comp-1"
    assert call["data"]["campaignId"] == "camp-1"
    assert call["data"]["npsScore"] == "9"
    assert json.loads(call["data"]["questionResponses"]) == {"q1": 4, "q2": False}
    assert "textFeedback" not in call["data"]
    assert call["files"]["audio"] == (
        "feedback.webm",
        audio_blob.data,
        "audio/webm",
    )


@pytest.mark.utils
def test_text_payload_without_nps_or_questions(
    campaign_dict: dict,
    feedback_session_factory: Callable[..., FeedbackSession],
) -> None:
    """Optional fields are left out when the campaign does not use them."""
    campaign_dict.update({"include_nps": False, "include_additional_questions": False})
    schema = CampaignSchema.model_validate(campaign_dict)
    session = feedback_session_factory(
        consent_given=True,
        text_feedback="  \u201cQuick\u201d   delivery\u200b ",
        nps_score=3,
    )

    data, files = build_submission_payload(schema, session)

    assert data["textFeedback"] == '"Quick" delivery'
    assert "npsScore" not in data
    assert "questionResponses" not in data
    assert not files


@pytest.mark.utils
def test_blank_text_is_not_sent(
    nps_only_campaign: CampaignSchema,
    feedback_session_factory: Callable[..., FeedbackSession],
) -> None:
    """Whitespace-only feedback is omitted from the payload."""
    session = feedback_session_factory(
        campaign_id=None, consent_given=True, nps_score=5, text_feedback="   "
    )
    data, _files = build_submission_payload(nps_only_campaign, session)
    assert "textFeedback" not in data
    assert "campaignId" not in data


@pytest.mark.utils
def test_validation_failure_makes_no_network_call(
    campaign: CampaignSchema,
    complete_session: FeedbackSession,
    fake_api_client: FakeAPIClient,
) -> None:
    """Withheld consent surfaces the message and stays editing."""
    session = complete_session.model_copy(update={"consent_given": False})

    result = SubmissionCoordinator(campaign, session, fake_api_client).submit()

    assert result.submission_state == SubmissionState.EDITING
    assert result.error == "Please accept the consent notice to submit feedback"
    assert not fake_api_client.calls


@pytest.mark.utils
def test_backend_failure_keeps_captured_state(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """A failed call moves to failed with the generic message."""
    client = FakeAPIClient(response=({"error": "HTTP error: 500"}, 500))

    result = SubmissionCoordinator(campaign, complete_session, client).submit()

    assert result.submission_state == SubmissionState.FAILED
    assert result.error == SUBMIT_FAILED
    assert result.text_feedback == complete_session.text_feedback
    assert result.question_responses == complete_session.question_responses


@pytest.mark.utils
def test_retry_after_failure_is_user_driven(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """A failed submission can be submitted again and succeed."""
    client = FakeAPIClient(response=({"error": "Request timed out"}, 504))
    coordinator = SubmissionCoordinator(campaign, complete_session, client)
    assert coordinator.submit().submission_state == SubmissionState.FAILED
    assert len(client.calls) == 1

    client.response = {"message": "saved"}
    assert coordinator.submit().submission_state == SubmissionState.SUBMITTED
    assert coordinator.session.error is None
    assert len(client.calls) == 2


@pytest.mark.utils
def test_submit_is_idempotent_while_in_flight(
    campaign: CampaignSchema,
    complete_session: FeedbackSession,
    fake_api_client: FakeAPIClient,
) -> None:
    """A second submit during the call and after success sends nothing."""
    coordinator = SubmissionCoordinator(campaign, complete_session, fake_api_client)
    reentrant_states = []

    def _resubmit() -> None:
        reentrant_states.append(coordinator.submit().submission_state)

    fake_api_client.on_post_form = _resubmit

    assert coordinator.submit().submission_state == SubmissionState.SUBMITTED
    assert reentrant_states == [SubmissionState.SUBMITTING]

    fake_api_client.on_post_form = None
    coordinator.submit()
    assert len(fake_api_client.calls) == 1


@pytest.mark.utils
def test_recording_in_progress_is_finalised(
    campaign: CampaignSchema,
    complete_session: FeedbackSession,
    fake_api_client: FakeAPIClient,
    audio_blob: AudioBlob,
) -> None:
    """A take delivered on stop is included in the submission."""

    class DeliveringRecorder(FakeRecorder):
        """Delivers the take synchronously when stopped."""

        def stop(self) -> None:
            super().stop()
            self.deliver(audio_blob)

    session = complete_session.model_copy(
        update={"feedback_mode": FeedbackChannel.VOICE}
    )
    capture = VoiceTextCapture(True, True, DeliveringRecorder())
    capture.start()

    result = SubmissionCoordinator(
        campaign, session, fake_api_client, capture=capture
    ).submit()

    assert result.submission_state == SubmissionState.SUBMITTED
    assert result.capture_state == CaptureState.RECORDED
    assert fake_api_client.calls[0]["files"]["audio"][1] == audio_blob.data


@pytest.mark.utils
def test_text_submission_with_required_choice(fake_api_client: FakeAPIClient) -> None:
    """A complete text submission sends exactly the expected fields."""
    schema = CampaignSchema.model_validate(
        {
            "id": "camp-s",
            "company_id": "comp-1",
            "include_nps": True,
            "include_additional_questions": True,
            "questions": [
                {
                    "id": "q1",
                    "type": "multiple_choice",
                    "text": "Pick one",
                    "required": True,
                    "options": ["A", "B"],
                }
            ],
            "settings": {
                "allowVoice": True,
                "allowText": True,
                "requireOrderId": True,
            },
        }
    )
    session = FeedbackSession(
        company_id="comp-1",
        campaign_id="camp-s",
        order_id="ORD-1",
        order_id_editable=True,
        nps_score=9,
        question_responses={"q1": "B"},
        feedback_mode=FeedbackChannel.TEXT,
        text_feedback="Great!",
        consent_given=True,
    )

    result = SubmissionCoordinator(schema, session, fake_api_client).submit()

    assert result.submission_state == SubmissionState.SUBMITTED
    assert len(fake_api_client.calls) == 1
    data = dict(fake_api_client.calls[0]["data"])
    assert json.loads(data.pop("questionResponses")) == {"q1": "B"}
    assert data == {
        "orderId": "ORD-1",
        "companyId": "comp-1",
        "campaignId": "camp-s",
        "npsScore": "9",
        "textFeedback": "Great!",
    }
    assert "audio" not in fake_api_client.calls[0]["files"]


@pytest.mark.utils
def test_option_values_are_sent_unchanged(
    campaign_dict: dict,
    feedback_session_factory: Callable[..., FeedbackSession],
) -> None:
    """Choice answers go out exactly as listed; only text answers are cleaned."""
    campaign_dict["questions"][2]["options"] = ["Don\u2019t know", "A  B"]
    schema = CampaignSchema.model_validate(campaign_dict)
    session = feedback_session_factory(
        consent_given=True,
        nps_score=8,
        question_responses={
            "q1": 3,
            "q2": True,
            "q3": "Don\u2019t know",
            "q4": "  \u201cfine\u201d   thanks ",
        },
    )

    data, _files = build_submission_payload(schema, session)
    sent = json.loads(data["questionResponses"])

    assert sent["q3"] == "Don\u2019t know"
    assert sent["q3"] in schema.get_question("q3").options
    assert sent["q4"] == '"fine" thanks'
    assert sent["q1"] == 3
    assert sent["q2"] is True

    session = session.model_copy(
        update={"question_responses": {**session.question_responses, "q3": "A  B"}}
    )
    data, _files = build_submission_payload(schema, session)
    assert json.loads(data["questionResponses"])["q3"] == "A  B"


@pytest.mark.utils
def test_validation_failure_after_failed_attempt_returns_to_editing(
    campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """A rejected submit after a failure goes back to editing."""
    client = FakeAPIClient(response=({"error": "HTTP error: 500"}, 500))
    coordinator = SubmissionCoordinator(campaign, complete_session, client)
    assert coordinator.submit().submission_state == SubmissionState.FAILED

    coordinator.session = coordinator.session.model_copy(
        update={"consent_given": False}
    )
    result = coordinator.submit()

    assert result.submission_state == SubmissionState.EDITING
    assert result.error == "Please accept the consent notice to submit feedback"
    assert len(client.calls) == 1


@pytest.mark.utils
def test_claimed_submission_is_sent_once_across_coordinators(
    tmp_path, campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """Two coordinators for the same session make one backend call."""
    claims = SubmissionClaims(tmp_path)
    client = FakeAPIClient()
    duplicates: list[FeedbackSession] = []

    def _duplicate_request() -> None:
        duplicates.append(
            SubmissionCoordinator(
                campaign, complete_session, client, claims=claims
            ).submit()
        )

    client.on_post_form = _duplicate_request
    first = SubmissionCoordinator(
        campaign, complete_session, client, claims=claims
    ).submit()
    client.on_post_form = None

    assert first.submission_state == SubmissionState.SUBMITTED
    assert duplicates[0].submission_state == SubmissionState.SUBMITTING
    assert duplicates[0].error == SUBMIT_IN_PROGRESS

    late = SubmissionCoordinator(
        campaign, complete_session, client, claims=claims
    ).submit()

    assert late.submission_state == SubmissionState.SUBMITTED
    assert len(client.calls) == 1


@pytest.mark.utils
def test_failed_submission_releases_claim(
    tmp_path, campaign: CampaignSchema, complete_session: FeedbackSession
) -> None:
    """After a failure the same submission can be sent again."""
    claims = SubmissionClaims(tmp_path)
    client = FakeAPIClient(response=({"error": "Failed to connect to API"}, 502))

    failed = SubmissionCoordinator(
        campaign, complete_session, client, claims=claims
    ).submit()
    assert failed.submission_state == SubmissionState.FAILED
    assert claims.status(complete_session.submission_id) is None

    client.response = {"message": "saved"}
    retried = SubmissionCoordinator(campaign, failed, client, claims=claims).submit()

    assert retried.submission_state == SubmissionState.SUBMITTED
    assert claims.status(complete_session.submission_id) == ClaimStatus.SUBMITTED
    assert len(client.calls) == 2
