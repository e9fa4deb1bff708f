"""Pytest configuration and fixtures for Customer Feedback UI tests.

This module provides fixtures for creating and configuring a Flask application
instance, sample campaigns and sessions, and test doubles for the backend API
client, the audio recorder and module loggers.
"""

from types import ModuleType
from typing import Any, Callable, Optional

import pytest
from flask import Flask

from feedback_ui import create_app
from models.campaign import CampaignSchema
from models.feedback import AudioBlob, FeedbackChannel, FeedbackSession

# pylint cannot differentiate the use of fixtures in the test functions
# pylint: disable=unused-argument, disable=redefined-outer-name


# This fixture creates a Flask application instance for testing purposes.
@pytest.fixture
def app(tmp_path) -> Flask:
    """Creates and configures a Flask application instance for testing.

    Returns:
        Flask: A configured Flask application instance with testing enabled.
    """
    test_app = create_app(
        {
            "TESTING": True,
            "AUDIO_UPLOAD_DIR": str(tmp_path / "audio"),
            "SUBMISSION_CLAIM_DIR": str(tmp_path / "claims"),
            "BACKEND_API_URL": "http://backend.test",
            "MAX_AUDIO_BYTES": 1024,
        }
    )
    return test_app


@pytest.fixture
def campaign_dict() -> dict[str, Any]:
    """A campaign with NPS and one question of each supported type."""
    return {
        "id": "camp-1",
        "name": "Spring Survey",
        "company_id": "comp-1",
        "active": True,
        "include_nps": True,
        "nps_question": "How likely are you to recommend us?",
        "include_additional_questions": True,
        "questions": [
            {
                "id": "q1",
                "type": "rating",
                "text": "Rate the delivery",
                "required": True,
                "scale": {"min": 1, "max": 5, "minLabel": "Poor", "maxLabel": "Great"},
            },
            {
                "id": "q2",
                "type": "yes_no",
                "text": "Would you order again?",
                "required": True,
            },
            {
                "id": "q3",
                "type": "multiple_choice",
                "text": "Main reason for buying?",
                "required": False,
                "options": ["Price", "Quality"],
            },
            {
                "id": "q4",
                "type": "text",
                "text": "Anything else?",
                "required": False,
            },
        ],
        "settings": {"allowVoice": True, "allowText": True, "requireOrderId": False},
    }


@pytest.fixture
def campaign(campaign_dict) -> CampaignSchema:
    """The parsed sample campaign."""
    return CampaignSchema.model_validate(campaign_dict)


@pytest.fixture
def nps_only_campaign() -> CampaignSchema:
    """A campaign asking only for an NPS score, text feedback only."""
    return CampaignSchema.model_validate(
        {
            "id": "camp-nps",
            "company_id": "comp-1",
            "include_nps": True,
            "include_additional_questions": False,
            "settings": {"allowVoice": False, "allowText": True},
        }
    )


@pytest.fixture
def audio_blob() -> AudioBlob:
    """A small finalised recording."""
    return AudioBlob(data=b"RIFF-voice-bytes", content_type="audio/webm")


@pytest.fixture
def feedback_session_factory() -> Callable[..., FeedbackSession]:
    """Factory for feedback sessions with sensible defaults."""

    def _factory(**overrides: Any) -> FeedbackSession:
        values: dict[str, Any] = {
            "company_id": "comp-1",
            "campaign_id": "camp-1",
            "order_id": "ORD-1",
            "order_id_editable": False,
            "feedback_mode": FeedbackChannel.TEXT,
        }
        values.update(overrides)
        return FeedbackSession(**values)

    return _factory


@pytest.fixture
def complete_session(feedback_session_factory) -> FeedbackSession:
    """A session that passes validation for the sample campaign."""
    return feedback_session_factory(
        nps_score=9,
        consent_given=True,
        text_feedback="Great service",
        question_responses={"q1": 4, "q2": True},
    )


class FakeAPIClient:
    """Records calls made to the backend and replays canned responses.

    ``on_post_form`` runs before the canned response is returned, which lets a
    test re-enter the code under test while a submission is in flight.
    """

    def __init__(self, response: Any = None) -> None:
        self.response = {"message": "ok"} if response is None else response
        self.get_response: Any = {}
        self.calls: list[dict[str, Any]] = []
        self.on_post_form: Optional[Callable[[], Any]] = None

    def post_form(
        self,
        endpoint: str,
        data: dict[str, str],
        files: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """Record a multipart post."""
        self.calls.append({"endpoint": endpoint, "data": data, "files": files or {}})
        if self.on_post_form is not None:
            self.on_post_form()
        return self.response

    def get(self, endpoint: str, params=None, headers=None, return_json=True) -> Any:
        """Record a GET."""
        self.calls.append({"endpoint": endpoint, "params": params, "method": "GET"})
        return self.get_response

    def post(self, endpoint: str, body=None, params=None, headers=None, return_json=True):
        """Record a JSON POST."""
        self.calls.append({"endpoint": endpoint, "params": params, "method": "POST"})
        return self.response


@pytest.fixture
def fake_api_client() -> FakeAPIClient:
    """A backend client double that accepts every request."""
    return FakeAPIClient()


class FakeRecorder:
    """Audio recorder double that lets a test deliver the take."""

    def __init__(self, fail_with: Optional[Exception] = None) -> None:
        self.fail_with = fail_with
        self.on_complete: Optional[Callable[[Optional[AudioBlob]], Any]] = None
        self.started = 0
        self.stopped = 0

    def start(self, on_complete: Callable[[Optional[AudioBlob]], Any]) -> None:
        """Begin a take, or fail like a denied microphone."""
        if self.fail_with is not None:
            raise self.fail_with
        self.started += 1
        self.on_complete = on_complete

    def stop(self) -> None:
        """Count stops; delivery is left to ``deliver``."""
        self.stopped += 1

    def deliver(self, blob: Optional[AudioBlob]) -> Any:
        """Signal completion for the most recent take."""
        assert self.on_complete is not None
        return self.on_complete(blob)


@pytest.fixture
def recorder() -> FakeRecorder:
    """A recorder double that succeeds."""
    return FakeRecorder()


class LogCapture:
    """Lightweight logger double for tests.

    Captures messages by level and supports %-style formatting to mirror the
    stdlib logging API. Accepts *args and **kwargs so calls with 'extra' work.
    """

    # pylint: disable=too-few-public-methods
    def __init__(self) -> None:
        self.infos: list[str] = []
        self.debugs: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Capture info logs."""
        self.infos.append(_fmt(msg, *args))

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Capture debug logs."""
        self.debugs.append(_fmt(msg, *args))

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Capture warning logs."""
        self.warnings.append(_fmt(msg, *args))

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Capture error logs."""
        self.errors.append(_fmt(msg, *args))

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Capture exception logs (alias to error)."""
        self.error(msg, *args, **kwargs)


def _fmt(msg: Any, *args: Any) -> str:
    """Format like logging.Logger using %-style, falling back safely.

    Args:
        msg: Message template.
        *args: Positional arguments for %-style formatting.

    Returns:
        The formatted message string.
    """
    if args:
        try:
            return msg % args
        except Exception:  # pylint: disable=broad-except
            return str(msg)
    return str(msg)


@pytest.fixture
def log_capture() -> LogCapture:
    """Provide a fresh LogCapture for each test."""
    return LogCapture()


@pytest.fixture
def patch_module_logger(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[ModuleType, LogCapture], LogCapture]:
    """Return a helper that patches `module.logger` with a LogCapture.

    Args:
        monkeypatch: Built-in pytest fixture for safe attribute patching.

    Returns:
        A callable that takes (module, log_capture) and applies the patch.
    """

    def _apply(module: ModuleType, stub: LogCapture) -> LogCapture:
        monkeypatch.setattr(module, "logger", stub, raising=True)
        return stub

    return _apply
