"""Feedback routes for the Customer Feedback UI.

This module defines the routes behind the customer feedback form: opening
(or resuming) a feedback session, accumulating answers as the customer fills
the form in, switching between voice and text feedback, driving the voice
recording and submitting the result to the backend.
"""

import io
from typing import Any, Optional, cast

from flask import (
    Blueprint,
    current_app,
    jsonify,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)
from flask.typing import ResponseReturnValue
from pydantic import ValidationError

from models.campaign import CampaignSchema
from models.feedback import (
    AudioBlob,
    FeedbackChannel,
    FeedbackSession,
    SubmissionState,
)
from utils.api_utils import CAMPAIGN_ENDPOINT, api_error_message, is_api_error
from utils.app_types import FeedbackFlask
from utils.capture_utils import MAX_RECORDING_SECONDS, BrowserRecorder
from utils.feedback_utils import (
    SessionCapture,
    apply_form_to_session,
    new_feedback_session,
    session_state_to_dict,
)
from utils.logging_utils import get_logger
from utils.question_utils import get_question_handler
from utils.session_utils import (
    clear_feedback_session,
    load_feedback_session,
    save_feedback_session,
    session_debug,
)
from utils.submission_utils import SubmissionCoordinator

feedback_blueprint = Blueprint("feedback", __name__)

logger = get_logger(__name__, level="DEBUG")

CAMPAIGN_UNAVAILABLE = "This feedback form is not available right now."
NO_SESSION = "No feedback in progress. Please open your feedback link again."
AUDIO_TOO_LARGE = "The recording is too large. Please record a shorter message."
SUBMITTED_KEY = "feedback_submitted"


class CampaignUnavailable(Exception):
    """Raised when the campaign for a feedback link cannot be loaded."""


def load_campaign(campaign_id: Optional[str]) -> CampaignSchema:
    """Return the campaign for ``campaign_id``, or the default campaign.

    Raises:
        CampaignUnavailable: If the backend fails or returns an invalid campaign.
    """
    app = cast(FeedbackFlask, current_app)
    if not campaign_id:
        return app.default_campaign

    raw = app.api_client.get(f"{CAMPAIGN_ENDPOINT}/{campaign_id}")
    if is_api_error(raw):
        logger.error(
            f"campaign_id:{campaign_id} - campaign fetch failed: {api_error_message(raw)}"  # pylint: disable=line-too-long
        )
        raise CampaignUnavailable(campaign_id)
    try:
        return CampaignSchema.model_validate(raw)
    except ValidationError as err:
        logger.error(f"campaign_id:{campaign_id} - invalid campaign: {err}")
        raise CampaignUnavailable(campaign_id) from err


@feedback_blueprint.errorhandler(CampaignUnavailable)
def campaign_unavailable(e):
    """Renders the error page when a campaign cannot be loaded."""
    return render_template("error.html", message=CAMPAIGN_UNAVAILABLE), 502


def render_feedback_form(
    schema: CampaignSchema, feedback: FeedbackSession, status: int = 200
) -> tuple[str, int]:
    """Render the feedback form for the current session state.

    Questions are rendered through their type's handler, in campaign order.
    """
    questions: list[dict[str, Any]] = []
    if schema.include_additional_questions:
        for question in schema.questions:
            handler = get_question_handler(question)
            questions.append(
                handler.to_dict(feedback.question_responses.get(question.id))
            )

    return (
        render_template(
            "feedback_form.html",
            campaign=schema,
            feedback=feedback,
            questions=questions,
            show_order_input=feedback.order_id_editable,
            has_recording=feedback.voice_blob is not None,
            max_recording_seconds=MAX_RECORDING_SECONDS,
        ),
        status,
    )


def _session_or_error() -> tuple[Optional[FeedbackSession], Any]:
    feedback = load_feedback_session()
    if feedback is None:
        logger.warning(f"{request.endpoint} - no feedback session")
        return None, (jsonify({"error": NO_SESSION}), 400)
    return feedback, None


@feedback_blueprint.route("/feedback", methods=["GET"])
@session_debug
def feedback_form() -> ResponseReturnValue:
    """Opens (or resumes) a feedback session and renders the form.

    Query parameters ``orderId``, ``companyId`` and ``campaignId`` come from
    the customer's feedback link. An unfinished session for the same link is
    resumed.
    """
    order_id = request.args.get("orderId", "").strip()
    campaign_id = request.args.get("campaignId", "").strip() or None
    schema = load_campaign(campaign_id)
    company_id = request.args.get("companyId", "").strip() or schema.company_id

    feedback = load_feedback_session()
    if feedback is not None and (
        feedback.company_id,
        feedback.campaign_id,
        feedback.order_id if not feedback.order_id_editable else "",
    ) == (company_id, campaign_id, order_id):
        logger.debug(f"order_id:{feedback.order_id} - resuming feedback session")
    else:
        if feedback is not None:
            clear_feedback_session()
        feedback = new_feedback_session(schema, company_id, order_id, campaign_id)
        save_feedback_session(feedback)

    session.pop(SUBMITTED_KEY, None)
    return render_feedback_form(schema, feedback)


@feedback_blueprint.route("/feedback/responses", methods=["POST"])
@session_debug
def feedback_responses() -> ResponseReturnValue:
    """Accumulates posted form fields into the session.

    Returns:
        JSON session state, without the recording bytes.
    """
    feedback, error = _session_or_error()
    if feedback is None:
        return error

    schema = load_campaign(feedback.campaign_id)
    feedback = apply_form_to_session(schema, feedback, request.form)
    save_feedback_session(feedback)
    return jsonify(session_state_to_dict(feedback))


def _wants_json() -> bool:
    return "application/json" in request.headers.get("Accept", "")


def _form_url(feedback: FeedbackSession) -> str:
    """URL of the form that resumes ``feedback``."""
    args = {"companyId": feedback.company_id}
    if feedback.campaign_id:
        args["campaignId"] = feedback.campaign_id
    if not feedback.order_id_editable:
        args["orderId"] = feedback.order_id
    return url_for("feedback.feedback_form", **args)


@feedback_blueprint.route("/feedback/channel", methods=["POST"])
@session_debug
def feedback_channel() -> ResponseReturnValue:
    """Switches between voice and text feedback.

    Any other form fields posted with the switch are kept. Script requests
    (``Accept: application/json``) get the session state back; a plain form
    post is redirected to the form.
    """
    feedback, error = _session_or_error()
    if feedback is None:
        return error

    try:
        channel = FeedbackChannel(request.form.get("channel", ""))
    except ValueError:
        return jsonify({"error": "Unknown feedback channel"}), 400

    schema = load_campaign(feedback.campaign_id)
    # A plain form post carries the whole form, consent box included
    feedback = apply_form_to_session(
        schema, feedback, request.form, complete=not _wants_json()
    )
    paired = SessionCapture(schema, feedback, BrowserRecorder())
    if not paired.capture.switch_channel(channel) and channel != feedback.feedback_mode:
        return jsonify({"error": f"{channel.value} feedback is not offered"}), 400

    feedback = paired.sync()
    save_feedback_session(feedback)
    if not _wants_json():
        return redirect(_form_url(feedback))
    return jsonify(session_state_to_dict(feedback))


def _uploaded_blob(max_bytes: int) -> tuple[Optional[AudioBlob], Optional[str]]:
    upload = request.files.get("audio")
    if upload is None:
        return None, None
    data = upload.read()
    if len(data) > max_bytes:
        return None, AUDIO_TOO_LARGE
    if not data:
        return None, None
    return (
        AudioBlob(
            data=data,
            content_type=upload.mimetype or "audio/webm",
            filename=upload.filename or "feedback.webm",
        ),
        None,
    )


@feedback_blueprint.route("/feedback/recording", methods=["POST"])
@session_debug
def feedback_recording() -> ResponseReturnValue:
    """Applies a recording event from the browser.

    ``event`` is one of start, stop, discard, play or pause. A stop carries the
    finished recording as the ``audio`` file; a stop without audio returns
    the recorder to idle.
    """
    feedback, error = _session_or_error()
    if feedback is None:
        return error

    app = cast(FeedbackFlask, current_app)
    event = request.form.get("event", "")
    schema = load_campaign(feedback.campaign_id)
    paired = SessionCapture(schema, feedback, BrowserRecorder())

    status = 200
    message = None
    if event == "stop":
        blob, message = _uploaded_blob(app.config["MAX_AUDIO_BYTES"])
        paired.capture.stop()
        if message:
            logger.warning(f"order_id:{feedback.order_id} - audio upload rejected")
            status = 413
        # An empty or rejected upload returns the recorder to idle
        paired.capture.complete(blob)
    else:
        try:
            paired.capture.handle(event)
        except ValueError:
            return jsonify({"error": f"Unknown recording event: {event}"}), 400
        message = paired.capture.error

    feedback = paired.sync()
    save_feedback_session(feedback)
    state = session_state_to_dict(feedback)
    if message:
        state["error"] = message
    return jsonify(state), status


@feedback_blueprint.route("/feedback/recording/audio", methods=["GET"])
def feedback_recording_audio() -> ResponseReturnValue:
    """Streams the current recording back to the browser for playback."""
    feedback = load_feedback_session()
    if feedback is None or feedback.voice_blob is None:
        return jsonify({"error": "No recording"}), 404
    blob = feedback.voice_blob
    return send_file(
        io.BytesIO(blob.data), mimetype=blob.content_type, download_name=blob.filename
    )


@feedback_blueprint.route("/feedback/submit", methods=["POST"])
@session_debug
def feedback_submit() -> ResponseReturnValue:
    """Applies the posted form and submits the feedback.

    Success redirects to the thank you page. Otherwise the form is shown
    again with the message and everything the customer entered.
    """
    app = cast(FeedbackFlask, current_app)
    feedback = load_feedback_session()
    if feedback is None:
        logger.warning("submit without a feedback session")
        return render_template("error.html", message=NO_SESSION), 400

    schema = load_campaign(feedback.campaign_id)
    feedback = apply_form_to_session(schema, feedback, request.form, complete=True)
    paired = SessionCapture(schema, feedback, BrowserRecorder())

    coordinator = SubmissionCoordinator(
        schema,
        paired.session,
        app.api_client,
        capture=paired.capture,
        claims=app.submission_claims,
    )
    feedback = coordinator.submit()

    if feedback.submission_state == SubmissionState.SUBMITTED:
        clear_feedback_session()
        session[SUBMITTED_KEY] = True
        return redirect(url_for("feedback.thank_you"))

    if feedback.submission_state == SubmissionState.SUBMITTING:
        # Another request holds this submission; keep the stored session as is
        return render_feedback_form(schema, feedback, 409)

    save_feedback_session(feedback)
    return render_feedback_form(schema, feedback)


@feedback_blueprint.route("/feedback/thank_you", methods=["GET"])
def thank_you() -> ResponseReturnValue:
    """Renders the thank you page after a successful submission."""
    if not session.get(SUBMITTED_KEY):
        return redirect(url_for("feedback.feedback_form"))
    return render_template("thank_you.html")
