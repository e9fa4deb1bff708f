"""Server-side storage for recorded voice feedback.

Flask sessions live in a signed cookie, which is far too small for audio.
Uploaded recordings are written to a directory and the session keeps only
the id, content type and file name needed to read them back.
"""

import re
import uuid
from pathlib import Path
from typing import Optional

from models.feedback import AudioBlob
from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

BLOB_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class AudioStore:
    """Directory-backed store for ``AudioBlob`` data."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, blob_id: str) -> Path:
        if not BLOB_ID_PATTERN.match(blob_id):
            raise ValueError(f"Invalid audio blob id: {blob_id!r}")
        return self.root / f"{blob_id}.bin"

    def put(self, blob: AudioBlob) -> str:
        """Write the blob's bytes and return its new id."""
        blob_id = uuid.uuid4().hex
        self._path(blob_id).write_bytes(blob.data)
        logger.debug(f"stored audio {blob_id} ({blob.size} bytes)")
        return blob_id

    def get(
        self,
        blob_id: str,
        content_type: str = "audio/webm",
        filename: str = "feedback.webm",
    ) -> Optional[AudioBlob]:
        """Read a stored blob back, or None if it no longer exists."""
        path = self._path(blob_id)
        if not path.exists():
            logger.warning(f"audio {blob_id} not found in store")
            return None
        return AudioBlob(
            data=path.read_bytes(), content_type=content_type, filename=filename
        )

    def discard(self, blob_id: str) -> None:
        """Delete a stored blob; deleting a missing blob does nothing."""
        self._path(blob_id).unlink(missing_ok=True)
        logger.debug(f"discarded audio {blob_id}")
