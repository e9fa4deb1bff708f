"""Meta information routes for the Customer Feedback UI.

This module defines a Flask blueprint that exposes version and build details
for health checks and debugging.
"""

import os

from flask import Blueprint, jsonify

from feedback_ui.versioning import get_app_version

meta_blueprint = Blueprint("meta", __name__)


@meta_blueprint.route("/__meta", methods=["GET"])
def meta():
    """Return metadata related to the Customer Feedback UI."""
    # Cloud Run sets K_SERVICE, K_REVISION and K_CONFIGURATION
    return jsonify(
        {
            "app_version": get_app_version(),
            "git_sha": os.environ.get("APP_GIT_SHA", "unknown"),
            "build_date": os.environ.get("APP_BUILD_DATE", "unknown"),
            "service": os.environ.get("K_SERVICE", "unknown"),
            "revision": os.environ.get("K_REVISION", "unknown"),
        }
    )
