"""Dashboard utilities for the Customer Feedback UI.

This module fetches the feedback dashboard from the backend, derives the
headline statistics shown to staff, triggers the sentiment analysis job and
provides a cancellable poller that keeps the data fresh.
"""

import threading
import time
from typing import Callable, Optional

from pydantic import ValidationError

from models.dashboard import DashboardData, DashboardStats, NpsTrendPoint
from utils.api_utils import (
    DASHBOARD_ENDPOINT,
    RUN_ANALYSIS_ENDPOINT,
    APIClient,
    api_error_message,
    is_api_error,
)
from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

DASHBOARD_LIMIT = 30
ANALYSIS_DAYS = 30
POLL_INTERVAL_SEC = 30
PROMOTER_MIN = 9
PASSIVE_MIN = 7
NPS_CATEGORIES = ("promoter", "passive", "detractor")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
}


class DashboardError(Exception):
    """Raised when dashboard data cannot be fetched or understood."""


def fetch_dashboard_data(
    api_client: APIClient, limit: int = DASHBOARD_LIMIT
) -> DashboardData:
    """Fetch the latest dashboard data, bypassing any caches.

    Args:
        api_client: Client for the feedback backend.
        limit: Maximum number of feedback entries to return.

    Returns:
        DashboardData: Daily summaries (newest first) and recent feedback.

    Raises:
        DashboardError: If the backend call fails or returns malformed data.
    """
    params = {"limit": limit, "timestamp": int(time.time() * 1000)}
    raw = api_client.get(DASHBOARD_ENDPOINT, params=params, headers=NO_CACHE_HEADERS)
    if is_api_error(raw):
        message = api_error_message(raw)
        logger.error(f"dashboard fetch failed: {message}")
        raise DashboardError(message)

    try:
        return DashboardData.model_validate(raw)
    except ValidationError as err:
        logger.error(f"dashboard payload invalid: {err}")
        raise DashboardError("Failed to load dashboard data") from err


def summarise_dashboard(data: DashboardData) -> DashboardStats:
    """Derive the headline statistics from dashboard data.

    The overall NPS is the mean of the daily averages; a day without an
    average counts as 0. Recent entries without a score are left out of the
    promoter/passive/detractor breakdown.
    """
    summaries = data.daily_summaries
    overall = (
        sum(s.nps_average or 0 for s in summaries) / len(summaries) if summaries else 0
    )
    breakdown = {category: 0 for category in NPS_CATEGORIES}
    for entry in data.recent_feedback:
        category = nps_category(entry.nps_score)
        if category in breakdown:
            breakdown[category] += 1

    trend = [NpsTrendPoint(date=s.date, nps=s.nps_average) for s in reversed(summaries)]
    return DashboardStats(
        overall_nps=round(overall, 1),
        total_responses=len(data.recent_feedback),
        voice_recordings=sum(1 for f in data.recent_feedback if f.voice_file_url),
        nps_breakdown=breakdown,
        nps_trend=trend,
        latest_summary=summaries[0] if summaries else None,
    )


def nps_category(score: Optional[int]) -> str:
    """Return promoter, passive or detractor for an NPS score."""
    if score is None:
        return "unknown"
    if score >= PROMOTER_MIN:
        return "promoter"
    if score >= PASSIVE_MIN:
        return "passive"
    return "detractor"


def run_analysis(api_client: APIClient, days: int = ANALYSIS_DAYS) -> bool:
    """Ask the backend to run sentiment analysis over the last ``days`` days.

    Returns:
        bool: True if the backend accepted the job.
    """
    logger.info(f"running sentiment analysis over {days} days")
    raw = api_client.post(RUN_ANALYSIS_ENDPOINT, params={"days": days})
    if is_api_error(raw):
        logger.error(f"sentiment analysis failed: {api_error_message(raw)}")
        return False
    return True


class DashboardPoller:
    """Fetches dashboard data now and then every ``interval`` seconds.

    The poller runs on a daemon thread until ``stop`` is called. Each result
    is passed to ``on_data``; failures are passed to ``on_error`` and do not
    stop polling.

    Typical usage example:
        poller = DashboardPoller(api_client, on_data=render)
        poller.start()
        ...
        poller.stop()
    """

    def __init__(
        self,
        api_client: APIClient,
        on_data: Callable[[DashboardData], None],
        on_error: Optional[Callable[[str], None]] = None,
        interval: float = POLL_INTERVAL_SEC,
    ):
        self.api_client = api_client
        self.on_data = on_data
        self.on_error = on_error
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> Optional[DashboardData]:
        """Fetch once and deliver the result to the callbacks."""
        try:
            data = fetch_dashboard_data(self.api_client)
        except DashboardError as err:
            if self.on_error is not None:
                self.on_error(str(err))
            return None
        self.on_data(data)
        return data

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.interval)

    def start(self) -> None:
        """Start polling in the background."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="dashboard-poller", daemon=True
        )
        self._thread.start()
        logger.debug(f"dashboard poller started, interval {self.interval}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel polling and wait for the background thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("dashboard poller stopped")

    @property
    def running(self) -> bool:
        """True while the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()
