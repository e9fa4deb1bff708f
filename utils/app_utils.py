"""Flask application utility functions.

This module provides helper functions setting up the Flask application.
"""

import json
from pathlib import Path
from typing import Any

from models.campaign import CampaignSchema


def load_campaign_definition(flask_app: Any, file_path: str | Path) -> CampaignSchema:
    """Load the default campaign from JSON and set it on the Flask app.

    Args:
        flask_app: The Flask app instance.
        file_path: Path to the campaign definition JSON file.

    Returns:
        CampaignSchema: The loaded campaign.

    Raises:
        FileNotFoundError
        pydantic.ValidationError: If the file does not describe a campaign.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Campaign definition file not found: {file_path}")

    # Load the campaign definition
    with file_path.open(encoding="utf-8") as file:
        campaign_definition = json.load(file)

    flask_app.default_campaign = CampaignSchema.model_validate(campaign_definition)
    return flask_app.default_campaign
