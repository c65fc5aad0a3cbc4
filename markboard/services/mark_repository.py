"""
Mark repository: persistence for image marks.

The canvas never talks to a database directly. It goes through a
MarkRepository, which lists, creates, updates and deletes marks for an image
and offers a subscription that announces out-of-band changes (for example a
collaborator adding a mark).

Implementations:
- InMemoryMarkRepository: process-local store, used offline and in tests
- SupabaseMarkRepository: hosted backend (see supabase_repository.py)

Repository methods are blocking; callers run them off the UI thread.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from PySide6.QtCore import QObject, Signal

from markboard.editor.marks import (
    MarkBase,
    MarkColor,
    mark_from_record,
    mark_to_record,
)
from markboard.services.errors import InvalidMarkError, MarkNotFoundError
from markboard.services.logging_service import get_logger


# Only these fields may change after a mark has been created
UPDATABLE_FIELDS = ("comment", "color")


def clean_update_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial update and convert it to wire values.

    Raises:
        InvalidMarkError: if the update touches geometry or unknown fields.
    """
    rejected = sorted(set(fields) - set(UPDATABLE_FIELDS))
    if rejected:
        raise InvalidMarkError(
            f"Mark geometry cannot be changed after creation: {', '.join(rejected)}"
        )

    cleaned: Dict[str, Any] = {}
    if "comment" in fields:
        cleaned["comment"] = fields["comment"] or ""
    if "color" in fields:
        color = fields["color"]
        cleaned["color"] = color.value if isinstance(color, MarkColor) else str(color)
    return cleaned


def marks_from_records(records: Iterable[Dict[str, Any]]) -> List[MarkBase]:
    """
    Convert listed rows to marks, skipping rows that are not valid marks.

    Rows with an unknown mark type are logged and left out.
    """
    marks: List[MarkBase] = []
    for record in records:
        try:
            marks.append(mark_from_record(record))
        except InvalidMarkError as e:
            get_logger(__name__).warning(f"Skipping mark {record.get('id')}: {e}")
    return marks


class MarkSubscription(QObject):
    """
    Change feed for the marks of one image.

    The subscription carries no data: ``changed`` only says "the marks of
    this image changed", and the receiver reloads the full list.

    Signals:
        changed: Emitted with the image id when marks were added, edited
                 or removed by anyone.
    """

    changed = Signal(str)

    def __init__(
        self,
        image_id: str,
        on_unsubscribe: Optional[Callable[["MarkSubscription"], None]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._image_id = image_id
        self._on_unsubscribe = on_unsubscribe
        self._active = True

    @property
    def image_id(self) -> str:
        return self._image_id

    @property
    def active(self) -> bool:
        return self._active

    def notify(self) -> None:
        """Announce a change (no-op once unsubscribed)."""
        if self._active:
            self.changed.emit(self._image_id)

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_unsubscribe:
            self._on_unsubscribe(self)


class MarkRepository(ABC):
    """
    Base class for mark persistence backends.

    All methods raise a RepositoryError subclass on failure.
    """

    @abstractmethod
    def list_marks(self, image_id: str) -> List[MarkBase]:
        """Fetch all marks of an image, oldest first."""
        pass

    @abstractmethod
    def create_mark(
        self,
        image_id: str,
        project_id: str,
        mark: MarkBase,
        comment: str,
        author_id: str,
        author_name: str,
    ) -> MarkBase:
        """
        Persist a draft.

        Returns:
            The saved mark with its id and timestamp assigned.
        """
        pass

    @abstractmethod
    def update_mark(self, mark_id: str, fields: Dict[str, Any]) -> MarkBase:
        """
        Change the comment (or color) of a saved mark.

        Raises:
            InvalidMarkError: if fields include geometry.
            MarkNotFoundError: if no mark has this id.
        """
        pass

    @abstractmethod
    def delete_mark(self, mark_id: str) -> bool:
        """Delete a mark. Returns True once it is gone."""
        pass

    @abstractmethod
    def count_marks(self, image_id: str) -> int:
        """Number of marks on an image."""
        pass

    @abstractmethod
    def subscribe(self, image_id: str) -> MarkSubscription:
        """Open a change feed for an image's marks."""
        pass


class InMemoryMarkRepository(MarkRepository):
    """
    Mark repository backed by a dict of database-shaped records.

    Records go through the same conversion as the hosted backend, so
    coordinates are rounded to whole pixels on save. Thread safe.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._records: Dict[str, Dict[str, Any]] = {}
        self._subscriptions: List[MarkSubscription] = []

    def list_marks(self, image_id: str) -> List[MarkBase]:
        with self._lock:
            rows = [r for r in self._records.values() if r["image_id"] == image_id]
        # dicts keep insertion order, which is also created_at order
        return marks_from_records(rows)

    def create_mark(
        self,
        image_id: str,
        project_id: str,
        mark: MarkBase,
        comment: str,
        author_id: str,
        author_name: str,
    ) -> MarkBase:
        record = mark_to_record(
            mark, image_id, project_id, author_id, author_name, comment
        )
        now = datetime.now(timezone.utc).isoformat()
        record.update(id=str(uuid.uuid4()), created_at=now, updated_at=now)

        with self._lock:
            self._records[record["id"]] = record

        self._logger.debug(f"Created {record['mark_type']} mark {record['id']}")
        self._notify(image_id)
        return mark_from_record(record)

    def update_mark(self, mark_id: str, fields: Dict[str, Any]) -> MarkBase:
        cleaned = clean_update_fields(fields)

        with self._lock:
            record = self._records.get(mark_id)
            if record is None:
                raise MarkNotFoundError(mark_id)
            record.update(cleaned)
            record["updated_at"] = datetime.now(timezone.utc).isoformat()
            record = dict(record)

        self._notify(record["image_id"])
        return mark_from_record(record)

    def delete_mark(self, mark_id: str) -> bool:
        with self._lock:
            record = self._records.pop(mark_id, None)
        if record is None:
            raise MarkNotFoundError(mark_id)

        self._notify(record["image_id"])
        return True

    def count_marks(self, image_id: str) -> int:
        with self._lock:
            return sum(1 for r in self._records.values() if r["image_id"] == image_id)

    def subscribe(self, image_id: str) -> MarkSubscription:
        subscription = MarkSubscription(image_id, on_unsubscribe=self._remove_subscription)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: MarkSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self, image_id: str) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.image_id == image_id]
        for subscription in targets:
            subscription.notify()
