"""Flask application setup for the Customer Feedback UI.

This module initializes the Flask application, loads configuration and the
default campaign, and registers the route blueprints.

Attributes:
    app (Flask): The Flask application instance.
"""

import os
import tempfile
from pathlib import Path

from feedback_ui.routes import register_blueprints
from utils.api_utils import APIClient
from utils.app_types import FeedbackFlask
from utils.app_utils import load_campaign_definition
from utils.audio_utils import AudioStore
from utils.claim_utils import SubmissionClaims
from utils.logging_utils import get_logger

from .versioning import get_app_version

logger = get_logger(__name__)

DEFAULT_CAMPAIGN_DEFINITION = (
    Path(__file__).parent / "campaign" / "campaign_definition.json"
)
DEFAULT_MAX_AUDIO_BYTES = 25 * 1024 * 1024


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


def create_app(test_config: dict | None = None) -> FeedbackFlask:
    """Initialises and configures the Customer Feedback Flask application.

    This function sets up the Flask app, reads configuration from the
    environment, applies test overrides, loads the default campaign, creates
    the audio store, submission claims and API client and registers blueprints.

    Args:
        test_config (dict | None): Optional dictionary of test configuration overrides.

    Returns:
        FeedbackFlask: The initialised and configured Flask application instance.
    """
    flask_app = FeedbackFlask(__name__)
    flask_app.secret_key = os.getenv("FLASK_SECRET_KEY", os.urandom(24))

    flask_app.jinja_env.trim_blocks = True
    flask_app.jinja_env.lstrip_blocks = True
    flask_app.config.update(
        {
            "BACKEND_API_URL": os.getenv("BACKEND_API_URL", "http://127.0.0.1:5000"),
            "BACKEND_API_TOKEN": os.getenv("BACKEND_API_TOKEN", ""),
            "CAMPAIGN_DEFINITION": os.getenv(
                "CAMPAIGN_DEFINITION", str(DEFAULT_CAMPAIGN_DEFINITION)
            ),
            "AUDIO_UPLOAD_DIR": os.getenv(
                "AUDIO_UPLOAD_DIR",
                str(Path(tempfile.gettempdir()) / "feedback-audio"),
            ),
            "SUBMISSION_CLAIM_DIR": os.getenv(
                "SUBMISSION_CLAIM_DIR",
                str(Path(tempfile.gettempdir()) / "feedback-claims"),
            ),
            "MAX_AUDIO_BYTES": int(
                os.getenv("MAX_AUDIO_BYTES", str(DEFAULT_MAX_AUDIO_BYTES))
            ),
            "SESSION_DEBUG": _env_flag("SESSION_DEBUG"),
            "JSON_DEBUG": _env_flag("JSON_DEBUG"),
        }
    )

    # Allow test overrides
    if test_config:
        flask_app.config.update(test_config)

    flask_app.api_base = flask_app.config["BACKEND_API_URL"]
    load_campaign_definition(flask_app, flask_app.config["CAMPAIGN_DEFINITION"])
    flask_app.audio_store = AudioStore(flask_app.config["AUDIO_UPLOAD_DIR"])
    flask_app.submission_claims = SubmissionClaims(
        flask_app.config["SUBMISSION_CLAIM_DIR"]
    )

    # Initialise API client for the feedback backend
    flask_app.api_client = APIClient(
        base_url=flask_app.api_base,
        token=flask_app.config["BACKEND_API_TOKEN"],
        logger_handle=logger,
    )

    register_blueprints(flask_app)

    @flask_app.context_processor
    def set_variables():
        """Provides the app version to every Jinja template."""
        return {"app_version": get_app_version()}

    @flask_app.after_request
    def add_version_header(resp):
        """Add a version header to requests to trace deployed software version."""
        resp.headers["X-App-Version"] = get_app_version()
        resp.headers["X-App-Revision"] = os.environ.get("APP_GIT_SHA", "unknown")
        return resp

    logger.info(f"Customer Feedback UI initialised - version {get_app_version()}")

    return flask_app


# Create the Flask application instance
app = create_app()
