"""
Utility functions for the chat service.
"""

from datetime import datetime
from typing import Optional


def format_display_time(now: Optional[datetime] = None) -> str:
    """
    Format a message creation time the way the chat list shows it.

    Args:
        now: Local time to format; defaults to the current local time

    Returns:
        Two-digit hour and minute with AM/PM, e.g. "03:07 PM"
    """
    now = now or datetime.now()
    return now.strftime("%I:%M %p")
