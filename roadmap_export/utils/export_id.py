"""
Export ID and Filename Management

Centralized module for export invocation ids and artifact filenames.
"""

import shortuuid
from datetime import datetime, timezone
from typing import Optional

from roadmap_export.utils.constants import EXPORT_ID_LENGTH, FILENAME_PREFIX


def generate_export_id(length: int = EXPORT_ID_LENGTH) -> str:
    """
    Generate a short, unique export identifier.

    Used to tag the overlay, log file and log lines of one export invocation.

    Args:
        length: Length of the id (minimum 8 characters)

    Returns:
        Short UUID string (e.g., "p0ZoB1FwH6yT")

    Examples:
        >>> len(generate_export_id())
        12
    """
    if length < 8:
        raise ValueError("Export ID length must be at least 8 characters")
    return shortuuid.ShortUUID().random(length=length)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a filename-safe UTC timestamp.

    ISO-8601 truncated to whole seconds, with colons replaced by hyphens.

    Examples:
        >>> format_timestamp(datetime(2026, 10, 18, 9, 35, 0, 123456, tzinfo=timezone.utc))
        '2026-10-18T09-35-00'
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.replace(microsecond=0, tzinfo=None).isoformat()[:19].replace(":", "-")


def build_base_filename(mode: str, moment: Optional[datetime] = None, prefix: str = FILENAME_PREFIX) -> str:
    """Return ``{prefix}-{mode}-{timestamp}`` without an extension."""
    return f"{prefix}-{mode}-{format_timestamp(moment)}"
