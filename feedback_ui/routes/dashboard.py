"""Dashboard routes for the Customer Feedback UI.

Staff-facing endpoints that serve the latest feedback statistics, trigger the
sentiment analysis job and download the feedback as an Excel workbook.
"""

import io
from typing import cast

from flask import Blueprint, current_app, jsonify, send_file
from flask.typing import ResponseReturnValue

from utils.app_types import FeedbackFlask
from utils.dashboard_utils import (
    NO_CACHE_HEADERS,
    DashboardError,
    fetch_dashboard_data,
    run_analysis,
    summarise_dashboard,
)
from utils.export_utils import XLSX_MIMETYPE, export_dashboard, export_filename
from utils.logging_utils import get_logger

dashboard_blueprint = Blueprint("dashboard", __name__, url_prefix="/dashboard")

logger = get_logger(__name__)


@dashboard_blueprint.errorhandler(DashboardError)
def dashboard_error(e):
    """Returns dashboard failures as JSON."""
    return jsonify({"error": str(e) or "Failed to load dashboard data"}), 502


@dashboard_blueprint.route("/data", methods=["GET"])
def dashboard_data() -> ResponseReturnValue:
    """Returns the dashboard statistics and data as JSON, never cached."""
    app = cast(FeedbackFlask, current_app)
    data = fetch_dashboard_data(app.api_client)
    stats = summarise_dashboard(data)
    response = jsonify(
        {
            "stats": stats.model_dump(mode="json"),
            "data": data.model_dump(mode="json", by_alias=True),
        }
    )
    response.headers.update(NO_CACHE_HEADERS)
    return response


@dashboard_blueprint.route("/analysis", methods=["POST"])
def dashboard_analysis() -> ResponseReturnValue:
    """Runs sentiment analysis over the last 30 days."""
    app = cast(FeedbackFlask, current_app)
    if not run_analysis(app.api_client):
        return jsonify({"success": False, "error": "Failed to run analysis"}), 502
    return jsonify(
        {
            "success": True,
            "message": "Sentiment analysis complete. The dashboard has been updated.",
        }
    )


@dashboard_blueprint.route("/export", methods=["GET"])
def dashboard_export() -> ResponseReturnValue:
    """Downloads the dashboard data as an Excel workbook."""
    app = cast(FeedbackFlask, current_app)
    data = fetch_dashboard_data(app.api_client)
    return send_file(
        io.BytesIO(export_dashboard(data)),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_filename(),
    )
