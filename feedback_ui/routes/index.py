"""This module defines the index route for the Customer Feedback UI.

Feedback links point at the site root; the form itself lives at /feedback.
"""

from flask import Blueprint, redirect, request, url_for
from flask.typing import ResponseReturnValue

main_blueprint = Blueprint("main", __name__)


@main_blueprint.route("/")
def index() -> ResponseReturnValue:
    """Redirects to the feedback form, keeping the link's query parameters."""
    return redirect(url_for("feedback.feedback_form", **request.args.to_dict()))
