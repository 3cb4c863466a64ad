"""
Session history for the viewer.

History lives only as long as the session: it is never written to disk.
"""

import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class HistoryState:
    """
    Ordered list of visited URLs with a current position.

    The index is -1 while empty and otherwise points into the list. Entries
    after the index form the forward branch, which is dropped as soon as a
    new, different URL is recorded.
    """

    def __init__(self):
        self._entries: List[str] = []
        self._index = -1

    @property
    def entries(self) -> Tuple[str, ...]:
        """Recorded URLs, oldest first."""
        return tuple(self._entries)

    @property
    def index(self) -> int:
        """Current position, -1 when empty."""
        return self._index

    @property
    def current(self) -> Optional[str]:
        """URL at the current position, if any."""
        if self._index < 0:
            return None
        return self._entries[self._index]

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def record(self, url: str) -> bool:
        """
        Record a completed navigation.

        Args:
            url: Absolute URL that was displayed

        Returns:
            bool: False if the URL is already the current entry
        """
        if self.current == url:
            logger.debug(f"Not recording duplicate history entry: {url}")
            return False

        # Navigating from the middle of history discards the forward branch
        if self.can_go_forward:
            dropped = len(self._entries) - self._index - 1
            del self._entries[self._index + 1:]
            logger.debug(f"Discarded {dropped} forward history entries")

        self._entries.append(url)
        self._index = len(self._entries) - 1
        return True

    def back(self) -> Optional[str]:
        """
        Step back one entry.

        Returns:
            Optional[str]: URL of the new current entry, None at the start
        """
        if not self.can_go_back:
            return None
        self._index -= 1
        return self._entries[self._index]

    def forward(self) -> Optional[str]:
        """
        Step forward one entry.

        Returns:
            Optional[str]: URL of the new current entry, None at the end
        """
        if not self.can_go_forward:
            return None
        self._index += 1
        return self._entries[self._index]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"HistoryState(entries={self._entries!r}, index={self._index})"
