#!/usr/bin/env python3
"""Script for running feedback backend API tasks.

This script provides command-line utilities to interact with the feedback
backend: fetching a campaign, reading the dashboard, running sentiment
analysis, exporting feedback to Excel, submitting a sample feedback and
watching the dashboard for changes.

Example usage:
    python scripts/run_api.py --action dashboard
    python scripts/run_api.py --action export --output feedback.xlsx
"""
import argparse
import json
import os
import sys
import time
from pathlib import Path
from typing import Optional

sys.path.append(str(Path(__file__).resolve().parent.parent))

# Disabling lint error as this is a script to manually verify endpoints, not used
# in production.
# pylint: disable=wrong-import-position
from pydantic import ValidationError

from models.campaign import CampaignSchema
from models.dashboard import DashboardData
from models.feedback import FeedbackChannel, FeedbackSession
from utils.api_utils import CAMPAIGN_ENDPOINT, APIClient, is_api_error
from utils.dashboard_utils import (
    DashboardError,
    DashboardPoller,
    fetch_dashboard_data,
    run_analysis,
    summarise_dashboard,
)
from utils.export_utils import export_dashboard, export_filename
from utils.logging_utils import get_logger
from utils.submission_utils import SubmissionCoordinator

logger = get_logger(__name__, "DEBUG")

ACTIONS = ["campaign", "dashboard", "analysis", "export", "submit", "watch"]


def init_api_client() -> APIClient:
    """Initialises and returns an APIClient instance using environment variables.

    Returns:
        APIClient: Configured API client for the feedback backend.
    """
    return APIClient(
        base_url=os.getenv("BACKEND_API_URL", "http://127.0.0.1:5000"),
        token=os.getenv("BACKEND_API_TOKEN", ""),
        logger_handle=logger,
    )


def get_campaign(client: APIClient, campaign_id: str) -> Optional[CampaignSchema]:
    """Retrieves and validates a campaign.

    Args:
        client (APIClient): The API client instance.
        campaign_id (str): The campaign to fetch.

    Returns:
        Optional[CampaignSchema]: The campaign if successful, else None.
    """
    response = client.get(f"{CAMPAIGN_ENDPOINT}/{campaign_id}")
    if is_api_error(response):
        logger.error(f"Failed to retrieve campaign {campaign_id}.")
        return None
    try:
        campaign = CampaignSchema.model_validate(response)
    except ValidationError as err:
        logger.error(f"Campaign {campaign_id} is invalid: {err}")
        return None
    logger.info(f"Successfully retrieved campaign {campaign.name}.")
    return campaign


def print_dashboard(data: DashboardData) -> None:
    """Logs the headline dashboard figures."""
    stats = summarise_dashboard(data)
    logger.info(
        f"NPS {stats.overall_nps} - {stats.total_responses} responses, {stats.voice_recordings} voice"  # pylint: disable=line-too-long
    )
    if stats.latest_summary:
        logger.info(f"Latest summary ({stats.latest_summary.date}): {stats.latest_summary.summary}")  # pylint: disable=line-too-long


def post_sample_feedback(
    client: APIClient, campaign: CampaignSchema, order_id: str
) -> bool:
    """Submits a text feedback with the highest NPS score for ``campaign``.

    Returns:
        bool: True if the backend accepted the feedback.
    """
    session = FeedbackSession(
        company_id=campaign.company_id,
        campaign_id=campaign.id,
        order_id=order_id,
        order_id_editable=False,
        nps_score=10 if campaign.include_nps else None,
        feedback_mode=FeedbackChannel.TEXT,
        text_feedback="Sample feedback sent from run_api.py",
        consent_given=True,
    )
    result = SubmissionCoordinator(campaign, session, client).submit()
    if result.error:
        logger.error(f"Failed to submit feedback: {result.error}")
        return False
    logger.info(f"Successfully submitted feedback for order {order_id}")
    return True


def prompt_input(prompt_text: str, default: str) -> str:
    """Prompts the user for input, returning the default if no input is given.

    Args:
        prompt_text (str): The prompt message to display.
        default (str): The default value to use if no input is provided.

    Returns:
        str: The user's input or the default value.
    """
    user_input = input(f"{prompt_text} (default: '{default}'): ").strip()
    return user_input or default


# pylint: disable=too-many-return-statements
def main() -> None:  # noqa: C901, PLR0911
    """Main entry point for running feedback backend tasks from the command line.

    Returns:
        None
    """
    parser = argparse.ArgumentParser(description="Run feedback backend API tasks.")
    parser.add_argument("--action", choices=ACTIONS, help="Action to perform")
    parser.add_argument("--campaign-id", help="Campaign id for campaign/submit")
    parser.add_argument("--order-id", help="Order id for submit")
    parser.add_argument("--output", help="Output path for export")
    parser.add_argument(
        "--interval", type=float, default=30, help="Seconds between watch polls"
    )
    args = parser.parse_args()

    action = args.action or prompt_input(
        f"Which action to run? ({'/'.join(ACTIONS)})", "dashboard"
    )
    if action not in ACTIONS:
        parser.error(f"unknown action: {action}")

    api_client = init_api_client()

    if action in ("campaign", "submit"):
        campaign_id = args.campaign_id or prompt_input("Campaign id", "default")
        campaign = get_campaign(api_client, campaign_id)
        if campaign is None:
            return
        if action == "campaign":
            logger.debug(json.dumps(campaign.model_dump(mode="json")))
            return
        order_id = args.order_id or prompt_input("Order id", "TEST-ORDER-1")
        post_sample_feedback(api_client, campaign, order_id)
        return

    if action == "analysis":
        if run_analysis(api_client):
            logger.info("Sentiment analysis complete.")
        return

    if action == "watch":
        poller = DashboardPoller(
            api_client,
            on_data=print_dashboard,
            on_error=lambda message: logger.error(f"Dashboard error: {message}"),
            interval=args.interval,
        )
        poller.start()
        try:
            while poller.running:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Stopping dashboard watch.")
        finally:
            poller.stop()
        return

    try:
        data = fetch_dashboard_data(api_client)
    except DashboardError as err:
        logger.error(f"Failed to retrieve dashboard: {err}")
        return

    if action == "dashboard":
        print_dashboard(data)
        return

    output = Path(args.output or export_filename())
    output.write_bytes(export_dashboard(data))
    logger.info(f"Exported feedback to {output}")


if __name__ == "__main__":
    main()
