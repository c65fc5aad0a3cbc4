"""
Exceptions raised by MarkBoard services.

Repositories raise these; the mark controller catches them at the call
site and reports them to the user.
"""

from typing import Optional


class MarkBoardError(Exception):
    """Base class for all MarkBoard errors."""


class InvalidMarkError(MarkBoardError):
    """A mark record or update carries fields that do not fit its type."""


class RepositoryError(MarkBoardError):
    """A mark repository call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MarkNotFoundError(RepositoryError):
    """The mark addressed by id does not exist (or is no longer visible)."""

    def __init__(self, mark_id: str) -> None:
        super().__init__(f"Mark {mark_id} not found", status_code=404)
        self.mark_id = mark_id
