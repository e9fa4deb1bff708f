"""Type definitions and custom Flask app class for the Customer Feedback UI.

This module provides type aliases and a custom Flask app class with additional attributes
for use in the Customer Feedback UI application.
"""

from typing import Any, Union

from flask import Flask
from flask import Response as FlaskResponse
from werkzeug.wrappers import Response as WerkzeugResponse

# Type alias for the response type used in the application
ResponseType = Union[FlaskResponse, WerkzeugResponse]


class FeedbackFlask(Flask):
    """Custom Flask app class with additional attributes for customer feedback.

    Attributes:
        api_client (Any): The API client instance for backend requests.
        api_base (str): The base URL for the backend API.
        default_campaign (Any): Campaign used when a link carries no campaign id.
        audio_store (Any): Server-side store for recorded voice feedback.
        submission_claims (Any): Claims that keep a submission from being sent twice.
    """

    api_client: Any
    api_base: str
    default_campaign: Any
    audio_store: Any
    submission_claims: Any
