"""
Local-date edge detection.

CHANGELOG:
- 2026-10-15: Initial creation (STORY-106)

TODO:
- None
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class MidnightAlarm:
    """Reports each local midnight crossing exactly once.

    The first observed date is captured at construction, so the first
    :meth:`tick` only fires if the date has already changed since then.

    Args:
        today: Returns the current local date; injectable for tests.
    """

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._last_date = today()

    @property
    def last_date(self) -> date:
        """The most recently observed local date."""
        return self._last_date

    def tick(self) -> bool:
        """Return True if the local date changed since the previous tick."""
        current = self._today()
        if current == self._last_date:
            return False
        self._last_date = current
        return True
