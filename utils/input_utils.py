"""Free-text sanitisation utilities.

Customer text is forwarded to the backend, transcribed feedback included, and
ends up in sentiment analysis and spreadsheet exports. This module normalises
that text before it is serialised: whitespace is collapsed, smart quotes are
replaced, invisible and control characters are removed and the length is
capped.

Typical usage example:
    text_filter = FreeTextFilter()
    safe_text = text_filter.sanitize_input(user_text)
"""

import re

from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

MAX_TEXT_LEN = 5000


class FreeTextFilter:
    """Normalise free-form customer text."""

    # ruff: noqa: RUF001
    SMART_QUOTE_MAP = str.maketrans(
        {
            "’": "'",
            "‘": "'",
            "“": '"',
            "”": '"',
        }
    )

    # ruff: enable: RUF001
    CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B-\x1F\x7F-\x9F\u200B-\u200D\uFEFF]")

    def sanitize_input(self, text: str | None, *, max_len: int = MAX_TEXT_LEN) -> str:
        """Return ``text`` normalised and capped at ``max_len`` characters."""
        if text is None:
            return ""

        # Remove control/invisible characters (newlines and tabs are kept)
        text = re.sub(self.CONTROL_CHARS_PATTERN, "", text)

        # Replace smart quotes with standard quotes
        text = text.translate(self.SMART_QUOTE_MAP)

        # Collapse runs of spaces and tabs, keep line breaks
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r"\n{3,}", "\n\n", text)

        return text.strip()[:max_len]


def clean_text(text: str | None, field_name: str, order_id: str) -> str:
    """Sanitise one free-text field and log when the input was changed.

    Args:
        text: The raw customer text.
        field_name: Name of the field, for the log.
        order_id: The order the feedback belongs to, for the log.

    Returns:
        str: The sanitised text.
    """
    cleaned = FreeTextFilter().sanitize_input(text)
    if text is not None and cleaned != text.strip():
        logger.info(f"order_id:{order_id} - sanitised input for {field_name}")
    return cleaned
