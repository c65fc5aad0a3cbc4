"""
Supabase-backed mark repository.

Talks to the project's PostgREST endpoint (``/rest/v1/image_marks``) with
plain HTTP through requests. Collaborator changes are picked up by polling:
PollingSubscription fetches a cheap fingerprint of an image's marks on a
background thread and announces a change whenever it differs.

After each successful mutation, ChangeNotifier asks the
``send-notifications`` edge function to email the project's collaborators.
That call is best-effort and never fails the mutation.
"""

import re
import threading
from typing import Any, Dict, List, Optional

import requests
from PySide6.QtCore import QObject, QTimer, Signal, Slot

from markboard.editor.marks import MarkBase, mark_from_record, mark_to_record
from markboard.services.errors import MarkNotFoundError, RepositoryError
from markboard.services.logging_service import get_logger
from markboard.services.mark_repository import (
    MarkRepository,
    MarkSubscription,
    clean_update_fields,
    marks_from_records,
)


TABLE = "image_marks"
NOTIFY_FUNCTION = "send-notifications"

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


class SupabaseClient:
    """
    Minimal authenticated HTTP access to a Supabase project.

    Args:
        url: Project URL, e.g. https://abc.supabase.co
        api_key: The anon (or service) key.
        timeout: Seconds before a request is abandoned.
        session: Optional requests.Session (tests pass a fake one).
        access_token: User JWT; defaults to the api key.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
        access_token: Optional[str] = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()
        self._access_token = access_token or api_key

    def headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def rest(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        return self._request(method, f"{self._url}/rest/v1/{table}", **kwargs)

    def function(self, name: str, payload: Dict[str, Any]) -> requests.Response:
        return self._request("POST", f"{self._url}/functions/v1/{name}", json=payload)

    def _request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            response = self._session.request(
                method, url, headers=self.headers(headers), timeout=self._timeout, **kwargs
            )
        except requests.RequestException as e:
            raise RepositoryError(f"Could not reach the server: {e}") from e

        if not response.ok:
            raise RepositoryError(
                f"{method} {url} failed: {response.status_code} {_error_detail(response)}",
                status_code=response.status_code,
            )
        return response


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or str(body)
    return str(body)


def _single_row(response: requests.Response, mark_id: Optional[str] = None) -> Dict[str, Any]:
    rows = response.json()
    if isinstance(rows, dict):
        return rows
    if not rows:
        if mark_id is not None:
            raise MarkNotFoundError(mark_id)
        raise RepositoryError("Server returned no rows")
    return rows[0]


class ChangeNotifier:
    """Best-effort collaborator emails for mark changes."""

    def __init__(self, client: SupabaseClient, author_email: str = "") -> None:
        self._logger = get_logger(__name__)
        self._client = client
        self._author_email = author_email

    def notify(self, change: str, record: Dict[str, Any]) -> bool:
        """
        Send a ``mark_added`` / ``mark_updated`` / ``mark_deleted`` notification.

        Returns True if the edge function accepted it. Never raises.
        """
        payload = {
            "notificationData": {
                "type": change,
                "projectId": record.get("project_id"),
                "imageId": record.get("image_id"),
                "authorId": record.get("author_id"),
                "authorName": record.get("author_name"),
                "authorEmail": self._author_email,
                "markType": record.get("mark_type"),
                "markColor": record.get("color"),
                "coordinates": {
                    "x": record.get("x_coordinate"),
                    "y": record.get("y_coordinate"),
                },
                "content": record.get("comment"),
            }
        }
        try:
            self._client.function(NOTIFY_FUNCTION, payload)
        except RepositoryError as e:
            self._logger.warning(f"Failed to send {change} notification: {e}")
            return False
        self._logger.debug(f"Sent {change} notification")
        return True


class PollingSubscription(MarkSubscription):
    """
    Subscription that polls the server for changes.

    Each tick fetches ``id,updated_at`` for the image on a worker thread and
    compares it with the previous fingerprint. The first fetch only records
    the baseline.
    """

    _fingerprint_ready = Signal(object)

    def __init__(
        self,
        repository: "SupabaseMarkRepository",
        image_id: str,
        interval_ms: int,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(image_id, parent=parent)
        self._logger = get_logger(__name__)
        self._repository = repository
        self._fingerprint: Optional[tuple] = None
        self._in_flight = False

        self._fingerprint_ready.connect(self._on_fingerprint)

        self._timer = QTimer(self)
        self._timer.timeout.connect(self.poll)
        self._timer.start(interval_ms)
        self.poll()

    @Slot()
    def poll(self) -> None:
        if not self.active or self._in_flight:
            return
        self._in_flight = True
        threading.Thread(target=self._fetch, daemon=True).start()

    def _fetch(self) -> None:
        try:
            fingerprint = self._repository.fingerprint(self.image_id)
        except (RepositoryError, ValueError) as e:
            self._logger.warning(f"Polling marks for {self.image_id} failed: {e}")
            fingerprint = None
        self._fingerprint_ready.emit(fingerprint)

    @Slot(object)
    def _on_fingerprint(self, fingerprint: Optional[tuple]) -> None:
        self._in_flight = False
        if fingerprint is None or not self.active:
            return
        previous, self._fingerprint = self._fingerprint, fingerprint
        if previous is not None and previous != fingerprint:
            self.notify()

    def unsubscribe(self) -> None:
        self._timer.stop()
        super().unsubscribe()


class SupabaseMarkRepository(MarkRepository):
    """Mark repository on the hosted Supabase database."""

    def __init__(
        self,
        client: SupabaseClient,
        notifier: Optional[ChangeNotifier] = None,
        poll_interval_ms: int = 5000,
    ) -> None:
        self._logger = get_logger(__name__)
        self._client = client
        self._notifier = notifier
        self._poll_interval_ms = poll_interval_ms

    def list_marks(self, image_id: str) -> List[MarkBase]:
        response = self._client.rest(
            "GET",
            TABLE,
            params={
                "select": "*",
                "image_id": f"eq.{image_id}",
                "order": "created_at.asc",
            },
        )
        marks = marks_from_records(response.json())
        self._logger.debug(f"Fetched {len(marks)} marks for image {image_id}")
        return marks

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
        response = self._client.rest(
            "POST",
            TABLE,
            json=[record],
            headers={"Prefer": "return=representation"},
        )
        row = _single_row(response)
        self._logger.info(f"Created {row.get('mark_type')} mark {row.get('id')}")
        self._send_notification("mark_added", row)
        return mark_from_record(row)

    def update_mark(self, mark_id: str, fields: Dict[str, Any]) -> MarkBase:
        cleaned = clean_update_fields(fields)
        response = self._client.rest(
            "PATCH",
            TABLE,
            params={"id": f"eq.{mark_id}"},
            json=cleaned,
            headers={"Prefer": "return=representation"},
        )
        row = _single_row(response, mark_id)
        self._logger.info(f"Updated mark {mark_id}")
        self._send_notification("mark_updated", row)
        return mark_from_record(row)

    def delete_mark(self, mark_id: str) -> bool:
        response = self._client.rest(
            "DELETE",
            TABLE,
            params={"id": f"eq.{mark_id}"},
            headers={"Prefer": "return=representation"},
        )
        row = _single_row(response, mark_id)
        self._logger.info(f"Deleted mark {mark_id}")
        self._send_notification("mark_deleted", row)
        return True

    def count_marks(self, image_id: str) -> int:
        response = self._client.rest(
            "HEAD",
            TABLE,
            params={"select": "*", "image_id": f"eq.{image_id}"},
            headers={"Prefer": "count=exact"},
        )
        match = _CONTENT_RANGE_TOTAL.search(response.headers.get("Content-Range", ""))
        if match is None:
            raise RepositoryError("Server did not report a mark count")
        return int(match.group(1))

    def fingerprint(self, image_id: str) -> tuple:
        """Cheap summary of an image's marks, used to detect changes."""
        response = self._client.rest(
            "GET",
            TABLE,
            params={
                "select": "id,updated_at",
                "image_id": f"eq.{image_id}",
                "order": "id.asc",
            },
        )
        return tuple((row.get("id"), row.get("updated_at")) for row in response.json())

    def subscribe(self, image_id: str) -> MarkSubscription:
        return PollingSubscription(self, image_id, self._poll_interval_ms)

    def _send_notification(self, change: str, row: Dict[str, Any]) -> None:
        if self._notifier is not None:
            self._notifier.notify(change, row)
