"""Submission of a completed feedback session to the backend.

``SubmissionCoordinator`` owns the submit step of one form: it validates the
session, finalises any recording in progress, builds one multipart payload
and makes exactly one call to the save endpoint. A failed submission keeps
everything the customer entered so they can try again.
"""

import json
from typing import Any, Optional

from models.campaign import CampaignSchema, TextQuestion
from models.feedback import FeedbackChannel, FeedbackSession, SubmissionState
from utils.api_utils import (
    SAVE_FEEDBACK_ENDPOINT,
    APIClient,
    api_error_message,
    is_api_error,
)
from utils.capture_utils import VoiceTextCapture
from utils.claim_utils import ClaimStatus, SubmissionClaims
from utils.input_utils import clean_text
from utils.logging_utils import get_logger
from utils.validation_utils import validate_feedback

logger = get_logger(__name__, level="INFO")

SUBMIT_FAILED = "Failed to submit feedback. Please try again."
SUBMIT_IN_PROGRESS = "Your feedback is already being submitted."

FilePart = tuple[str, bytes, str]


def build_submission_payload(
    schema: CampaignSchema, session: FeedbackSession
) -> tuple[dict[str, str], dict[str, FilePart]]:
    """Build the multipart form fields and file parts for a session.

    At most one feedback channel is sent: the recording in voice mode, the
    text in text mode.

    Args:
        schema: The campaign being answered.
        session: A session that has passed validation.

    Returns:
        tuple: ``(data, files)`` ready for ``APIClient.post_form``.
    """
    data: dict[str, str] = {
        "orderId": session.order_id,
        "companyId": session.company_id,
    }
    files: dict[str, FilePart] = {}

    if session.campaign_id:
        data["campaignId"] = session.campaign_id

    if session.feedback_mode == FeedbackChannel.VOICE and session.voice_blob:
        blob = session.voice_blob
        files["audio"] = (blob.filename, blob.data, blob.content_type)
    elif session.feedback_mode == FeedbackChannel.TEXT:
        text = clean_text(session.text_feedback, "textFeedback", session.order_id)
        if text:
            data["textFeedback"] = text

    if schema.include_nps and session.nps_score is not None:
        data["npsScore"] = str(session.nps_score)

    responses: dict[str, Any] = {}
    for question_id, value in session.question_responses.items():
        # Only free-text answers are cleaned; option values go out as listed
        if isinstance(schema.get_question(question_id), TextQuestion):
            value = clean_text(value, f"question {question_id}", session.order_id)
        responses[question_id] = value
    if responses:
        data["questionResponses"] = json.dumps(responses)

    return data, files


class SubmissionCoordinator:
    """Runs the submit step for one feedback form.

    Calls to ``submit`` while a submission is in flight, or after it has
    succeeded, are ignored. ``session`` always holds the latest state.

    With ``claims`` the guard also holds across requests: the session's
    ``submission_id`` is claimed before the backend is called, so a second
    request carrying the same session makes no network call.
    """

    def __init__(  # noqa: PLR0913 pylint: disable=too-many-arguments
        self,
        schema: CampaignSchema,
        session: FeedbackSession,
        api_client: APIClient,
        capture: Optional[VoiceTextCapture] = None,
        endpoint: str = SAVE_FEEDBACK_ENDPOINT,
        claims: Optional[SubmissionClaims] = None,
    ):
        self.schema = schema
        self.session = session
        self.api_client = api_client
        self.capture = capture
        self.endpoint = endpoint
        self.claims = claims

    def _set_state(self, state: SubmissionState, error: Optional[str]) -> None:
        self.session = self.session.model_copy(
            update={"submission_state": state, "error": error}
        )

    def _claim(self) -> bool:
        """Claim the submission; on a duplicate, adopt the holder's outcome."""
        if self.claims is None:
            return True
        submission_id = self.session.submission_id
        if self.claims.claim(submission_id):
            return True

        if self.claims.status(submission_id) == ClaimStatus.SUBMITTED:
            logger.info(
                f"order_id:{self.session.order_id} - duplicate submit, already submitted"
            )
            self._set_state(SubmissionState.SUBMITTED, None)
        else:
            logger.info(
                f"order_id:{self.session.order_id} - duplicate submit, still in flight"
            )
            self._set_state(SubmissionState.SUBMITTING, SUBMIT_IN_PROGRESS)
        return False

    def submit(self) -> FeedbackSession:
        """Validate and send the session.

        Returns:
            FeedbackSession: The session after the attempt. Its
            ``submission_state`` is ``submitted`` on success, ``failed`` on a
            network or server failure, ``editing`` when validation fails and
            unchanged when the call was ignored. A duplicate of a submission
            held by another request comes back ``submitted`` or
            ``submitting``.
        """
        state = self.session.submission_state
        if state in (SubmissionState.SUBMITTING, SubmissionState.SUBMITTED):
            logger.info(
                f"order_id:{self.session.order_id} - submit ignored, state {state.value}"
            )
            return self.session

        result = validate_feedback(self.schema, self.session)
        if not result.passed:
            logger.info(
                f"order_id:{self.session.order_id} - validation failed: {result.reason.value}"  # pylint: disable=line-too-long
            )
            self._set_state(SubmissionState.EDITING, result.message)
            return self.session

        if not self._claim():
            return self.session

        self._set_state(SubmissionState.SUBMITTING, None)

        if self.capture is not None:
            blob = self.capture.finalize()
            self.session = self.session.model_copy(
                update={"voice_blob": blob, "capture_state": self.capture.state}
            )

        data, files = build_submission_payload(self.schema, self.session)
        logger.info(
            f"order_id:{self.session.order_id} company_id:{self.session.company_id} - submitting feedback"  # pylint: disable=line-too-long
        )
        try:
            response = self.api_client.post_form(self.endpoint, data=data, files=files)
        except Exception:
            self._release()
            raise

        if is_api_error(response):
            logger.error(
                f"order_id:{self.session.order_id} - submit failed: {api_error_message(response)}"  # pylint: disable=line-too-long
            )
            self._release()
            self._set_state(SubmissionState.FAILED, SUBMIT_FAILED)
            return self.session

        if self.claims is not None:
            self.claims.mark_submitted(self.session.submission_id)
        logger.info(f"order_id:{self.session.order_id} - feedback submitted")
        self._set_state(SubmissionState.SUBMITTED, None)
        return self.session

    def _release(self) -> None:
        if self.claims is not None:
            self.claims.release(self.session.submission_id)
