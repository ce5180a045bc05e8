"""
Dirty-field tracking.

Only changes made through Record.set() are recorded. Hydration, inserts
and output filters write with tracking suspended, so a freshly loaded
record always starts with an empty log.
"""

from contextlib import contextmanager
from typing import Any, Optional


def has_changed(old: Any, new: Any) -> bool:
    """
    Value-and-type comparison.

    ``0``, ``0.0``, ``"0"`` and ``False`` are all different values here.
    """
    return type(old) is not type(new) or old != new


class _History(list):
    """Values assigned to a field that changed more than once."""


class DirtyTracker:
    """
    Keeps the history of values assigned to each field since the last
    successful update.

    A field changed once maps to the new value; a field changed more than
    once maps to the list of every value assigned, in order.
    """

    def __init__(self):
        self._log: dict[str, Any] = {}
        self._suspended = 0

    @property
    def suspended(self) -> bool:
        return self._suspended > 0

    @contextmanager
    def suspend(self):
        """Ignore every change made inside the block."""
        self._suspended += 1
        try:
            yield self
        finally:
            self._suspended -= 1

    def record(self, field: str, old: Any, new: Any) -> bool:
        """
        Note an assignment of ``new`` over ``old``.

        Returns:
            True if the change was logged
        """
        if self.suspended or not has_changed(old, new):
            return False

        if field not in self._log:
            self._log[field] = new
            return True

        # already modified, switch to a history list
        if not isinstance(self._log[field], _History):
            self._log[field] = _History([self._log[field]])

        self._log[field].append(new)
        return True

    def is_modified(self) -> Optional[dict[str, Any]]:
        """The modification log, or None when nothing has changed."""
        if not self._log:
            return None
        return {
            field: list(value) if isinstance(value, _History) else value
            for field, value in self._log.items()
        }

    def clear(self) -> None:
        self._log.clear()

    def copy(self) -> "DirtyTracker":
        other = DirtyTracker()
        other._log = {
            field: _History(value) if isinstance(value, _History) else value
            for field, value in self._log.items()
        }
        return other
