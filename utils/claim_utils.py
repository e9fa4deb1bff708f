"""Server-side claims that let a feedback submission be sent at most once.

The feedback session lives in the browser's cookie, so two requests made
with the same cookie (a double click, a replayed form post) would each see
an unsubmitted session. Before calling the backend a request claims the
session's submission id by creating a marker file with ``O_EXCL``; only the
request that creates the file goes on to submit. The marker records the
outcome so a later duplicate can tell a submission in flight from one that
has completed.
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Optional

from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

SUBMISSION_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class ClaimStatus(str, Enum):
    """What a claim marker says about its submission."""

    PENDING = "pending"
    SUBMITTED = "submitted"


class SubmissionClaims:
    """Directory of claim markers, one per submission id."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, submission_id: str) -> Path:
        if not SUBMISSION_ID_PATTERN.match(submission_id):
            raise ValueError(f"Invalid submission id: {submission_id!r}")
        return self.root / f"{submission_id}.claim"

    def claim(self, submission_id: str) -> bool:
        """Claim ``submission_id`` for the calling request.

        Returns:
            bool: True if this call created the claim, False if it was held.
        """
        try:
            fd = os.open(
                self._path(submission_id), os.O_CREAT | os.O_EXCL | os.O_WRONLY
            )
        except FileExistsError:
            logger.info(f"submission {submission_id} already claimed")
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as marker:
            marker.write(ClaimStatus.PENDING.value)
        return True

    def status(self, submission_id: str) -> Optional[ClaimStatus]:
        """Return the claim's status, or None if it is not claimed."""
        path = self._path(submission_id)
        try:
            content = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        # A marker read between creation and its first write is still pending
        return ClaimStatus(content) if content else ClaimStatus.PENDING

    def mark_submitted(self, submission_id: str) -> None:
        """Record that the claimed submission reached the backend."""
        self._path(submission_id).write_text(
            ClaimStatus.SUBMITTED.value, encoding="utf-8"
        )

    def release(self, submission_id: str) -> None:
        """Drop a claim so the submission can be retried."""
        self._path(submission_id).unlink(missing_ok=True)
        logger.debug(f"released claim on submission {submission_id}")
