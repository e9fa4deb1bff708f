"""Session utility functions for Flask applications.

This module provides helper functions for debugging and inspecting the Flask
session object, and for keeping the feedback session in it. Recorded audio is
kept in the app's ``AudioStore``; the cookie only holds a reference to it.
"""

import hashlib
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from typing import Optional, TypeVar, cast

from flask import current_app, session
from flask.sessions import SecureCookieSessionInterface
from pydantic import BaseModel

from models.feedback import AudioBlob, FeedbackSession
from utils.app_types import FeedbackFlask
from utils.logging_utils import get_logger

T = TypeVar("T", bound=BaseModel)

FEEDBACK_SESSION_KEY = "feedback_session"
VOICE_BLOB_KEY = "feedback_voice_blob"

logger = get_logger(__name__, level="DEBUG")


def session_debug(f: Callable) -> Callable:
    """Decorator to print session information after a view function is executed.
    This decorator checks if the application's config has SESSION_DEBUG set to True,
    and if so, it prints the session's contents and its size in bytes to the console.

    Args:
        f (function): The view function to be decorated.

    Returns:
        function: The decorated view function.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        print_session_info()
        return response

    return decorated_function


def _convert_datetimes(obj):
    """Recursively converts datetime objects in a dictionary or list to ISO format strings.
    This function is used to ensure that datetime objects in the session are
    serializable to JSON format.

    Args:
        obj (dict or list): The object to be converted. Can be a dictionary, list, or datetime.

    Returns:
        dict or list: The input object with datetime objects converted to ISO format strings.
    """
    if isinstance(obj, dict):
        return {k: _convert_datetimes(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert_datetimes(i) for i in obj]
    elif isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def get_encoded_session_size(session_obj):
    """Calculates the size of the encoded session object in bytes.

    Args:
        session_obj (dict): The session object to be encoded.

    Returns:
        int: The size of the encoded session object in bytes.
    """
    serializer = SecureCookieSessionInterface().get_signing_serializer(current_app)
    if serializer is None:
        return 0
    encoded = serializer.dumps(session_obj)
    return len(encoded.encode("utf-8"))


def print_session_info() -> None:
    """Logs debug information about the current Flask session.

    Only active when the application's config has SESSION_DEBUG set to True.
    The session content is logged as well when JSON_DEBUG is True.
    """
    if not current_app.config.get("SESSION_DEBUG", False):
        return

    try:
        session_data = dict(session)
        cleaned_session_data = _convert_datetimes(session_data)
        session_size = get_encoded_session_size(session_data)
        logger.debug("=== Session Debug Info ===")
        logger.debug(f"Session size: {session_size} bytes")
        if not current_app.config.get("JSON_DEBUG", False):
            return
        logger.debug("Session content:")
        logger.debug(cleaned_session_data)
    except (KeyError, TypeError, ValueError) as err:
        logger.error(f"Error printing session debug info: {err}")


def save_model_to_session(key: str, model: BaseModel, **dump_kwargs) -> None:
    """Convert a Pydantic model to dict and saves in session."""
    session[key] = model.model_dump(mode="json", **dump_kwargs)


def load_model_from_session(key: str, model_class: type[T]) -> T:
    """Loads and reconstructs a Pydantic model from Flask session."""
    return model_class.model_validate(session[key])


def remove_model_from_session(key: str) -> None:
    """Remove a model from the Flask session."""
    session.pop(key, None)
    session.modified = True


def _audio_store():
    return cast(FeedbackFlask, current_app).audio_store


def _save_voice_blob(blob: Optional[AudioBlob]) -> None:
    stored = session.get(VOICE_BLOB_KEY)
    if blob is None:
        if stored:
            _audio_store().discard(stored["blob_id"])
            session.pop(VOICE_BLOB_KEY, None)
        return

    digest = hashlib.sha256(blob.data).hexdigest()
    if stored and stored.get("digest") == digest:
        # Unchanged recording, already in the store
        return
    if stored:
        _audio_store().discard(stored["blob_id"])
    session[VOICE_BLOB_KEY] = {
        "blob_id": _audio_store().put(blob),
        "content_type": blob.content_type,
        "filename": blob.filename,
        "digest": digest,
    }


def save_feedback_session(feedback: FeedbackSession) -> None:
    """Store the feedback session in the Flask session.

    Args:
        feedback: The session to store. Its recording goes to the audio store.
    """
    _save_voice_blob(feedback.voice_blob)
    save_model_to_session(FEEDBACK_SESSION_KEY, feedback, exclude={"voice_blob"})
    session.modified = True


def load_feedback_session() -> Optional[FeedbackSession]:
    """Load the feedback session from the Flask session, or None if there is none."""
    if FEEDBACK_SESSION_KEY not in session:
        return None

    feedback = load_model_from_session(FEEDBACK_SESSION_KEY, FeedbackSession)
    stored = session.get(VOICE_BLOB_KEY)
    if stored:
        blob = _audio_store().get(
            stored["blob_id"],
            content_type=stored["content_type"],
            filename=stored["filename"],
        )
        feedback = feedback.model_copy(update={"voice_blob": blob})
    return feedback


def clear_feedback_session(discard_audio: bool = True) -> None:
    """Remove the feedback session (and optionally its recording)."""
    stored = session.pop(VOICE_BLOB_KEY, None)
    if stored and discard_audio:
        _audio_store().discard(stored["blob_id"])
    remove_model_from_session(FEEDBACK_SESSION_KEY)
