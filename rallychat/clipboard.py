"""
Clipboard side channel for the copy action.

The manager hands message text to a Clipboard and ignores the outcome.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class Clipboard(ABC):
    @abstractmethod
    def set_text(self, text: str) -> None:
        ...


class InMemoryClipboard(Clipboard):
    """Keeps the most recently copied text for the lifetime of the process."""

    def __init__(self):
        self.text: Optional[str] = None

    def set_text(self, text: str) -> None:
        self.text = text
        logger.debug(f"Copied {len(text)} characters to clipboard")
