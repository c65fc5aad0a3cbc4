import requests
from pytest import raises

from markboard.editor.marks import CircleMark, MarkColor, PointMark
from markboard.services.errors import InvalidMarkError, MarkNotFoundError, RepositoryError
from markboard.services.supabase_repository import (
    ChangeNotifier,
    SupabaseClient,
    SupabaseMarkRepository,
)


URL = "https://example.supabase.co"


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None, text=""):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    """Stands in for requests.Session; replies from a queue or a handler."""

    def __init__(self, *responses, handler=None):
        self.responses = list(responses)
        self.handler = handler
        self.calls = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        call = dict(method=method, url=url, headers=headers, timeout=timeout, **kwargs)
        self.calls.append(call)
        if self.handler is not None:
            return self.handler(call)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def row(**overrides):
    data = {
        "id": "m1",
        "image_id": "img1",
        "project_id": "proj",
        "author_id": "u1",
        "author_name": "Alice",
        "mark_type": "circle",
        "x_coordinate": 10,
        "y_coordinate": 20,
        "radius": 8,
        "color": "blue",
        "comment": "note",
        "created_at": "2024-05-01T10:00:00+00:00",
        "updated_at": "2024-05-01T10:00:00+00:00",
    }
    data.update(overrides)
    return data


def make_repo(*responses, notifier=False):
    session = FakeSession(*responses)
    client = SupabaseClient(URL + "/", "anon-key", timeout=3, session=session)
    repo = SupabaseMarkRepository(client, ChangeNotifier(client, "a@x.io") if notifier else None)
    return repo, session


def test_client_sends_auth_headers() -> None:
    repo, session = make_repo(FakeResponse(body=[]))
    repo.list_marks("img1")
    call = session.calls[0]
    assert call["headers"]["apikey"] == "anon-key"
    assert call["headers"]["Authorization"] == "Bearer anon-key"
    assert call["timeout"] == 3


def test_list_marks_query() -> None:
    repo, session = make_repo(FakeResponse(body=[row(), row(id="m2", mark_type="point")]))
    marks = repo.list_marks("img1")
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == f"{URL}/rest/v1/image_marks"
    assert call["params"] == {
        "select": "*",
        "image_id": "eq.img1",
        "order": "created_at.asc",
    }
    assert [m.id for m in marks] == ["m1", "m2"]
    assert isinstance(marks[0], CircleMark)
    assert isinstance(marks[1], PointMark)


def test_list_marks_skips_unknown_mark_types() -> None:
    repo, _ = make_repo(FakeResponse(body=[row(), row(id="m2", mark_type="arrow"), row(id="m3")]))
    assert [m.id for m in repo.list_marks("img1")] == ["m1", "m3"]

def test_create_posts_record_and_returns_saved_mark() -> None:
    repo, session = make_repo(FakeResponse(201, body=[row(radius=15)]))
    saved = repo.create_mark(
        "img1", "proj", CircleMark(9.6, 20.2, 14.5, color=MarkColor.BLUE), "note", "u1", "Alice"
    )
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["headers"]["Prefer"] == "return=representation"
    record = call["json"][0]
    assert record["x_coordinate"] == 10
    assert record["y_coordinate"] == 20
    assert record["radius"] == 15
    assert record["mark_type"] == "circle"
    assert record["image_id"] == "img1"
    assert record["author_name"] == "Alice"
    assert "id" not in record
    assert saved.id == "m1"


def test_create_sends_notification() -> None:
    repo, session = make_repo(FakeResponse(201, body=[row()]), FakeResponse(body={}), notifier=True)
    repo.create_mark("img1", "proj", CircleMark(10, 20, 8), "note", "u1", "Alice")
    call = session.calls[1]
    assert call["url"] == f"{URL}/functions/v1/send-notifications"
    data = call["json"]["notificationData"]
    assert data["type"] == "mark_added"
    assert data["imageId"] == "img1"
    assert data["authorEmail"] == "a@x.io"
    assert data["coordinates"] == {"x": 10, "y": 20}
    assert data["content"] == "note"


def test_notification_failure_does_not_fail_the_mutation() -> None:
    repo, _ = make_repo(
        FakeResponse(201, body=[row()]),
        FakeResponse(500, body={"message": "mail down"}),
        notifier=True,
    )
    saved = repo.create_mark("img1", "proj", CircleMark(10, 20, 8), "note", "u1", "Alice")
    assert saved.id == "m1"


def test_update_patches_by_id() -> None:
    repo, session = make_repo(FakeResponse(body=[row(comment="changed")]))
    updated = repo.update_mark("m1", {"comment": "changed"})
    call = session.calls[0]
    assert call["method"] == "PATCH"
    assert call["params"] == {"id": "eq.m1"}
    assert call["json"] == {"comment": "changed"}
    assert updated.comment == "changed"


def test_update_rejects_geometry_without_a_request() -> None:
    repo, session = make_repo()
    with raises(InvalidMarkError):
        repo.update_mark("m1", {"x_coordinate": 4})
    assert session.calls == []


def test_update_missing_row_is_not_found() -> None:
    repo, _ = make_repo(FakeResponse(body=[]))
    with raises(MarkNotFoundError):
        repo.update_mark("gone", {"comment": "x"})


def test_delete() -> None:
    repo, session = make_repo(FakeResponse(body=[row()]))
    assert repo.delete_mark("m1")
    assert session.calls[0]["method"] == "DELETE"
    assert session.calls[0]["params"] == {"id": "eq.m1"}


def test_count_marks_reads_content_range() -> None:
    repo, session = make_repo(FakeResponse(headers={"Content-Range": "0-2/3"}))
    assert repo.count_marks("img1") == 3
    assert session.calls[0]["headers"]["Prefer"] == "count=exact"


def test_http_error_becomes_repository_error() -> None:
    repo, _ = make_repo(FakeResponse(403, body={"message": "permission denied"}))
    with raises(RepositoryError) as excinfo:
        repo.list_marks("img1")
    assert excinfo.value.status_code == 403
    assert "permission denied" in str(excinfo.value)


def test_network_error_becomes_repository_error() -> None:
    repo, _ = make_repo(requests.ConnectionError("refused"))
    with raises(RepositoryError, match="Could not reach"):
        repo.list_marks("img1")


def test_polling_subscription_reports_changes(qtbot) -> None:
    rows = [{"id": "m1", "updated_at": "t1"}]
    session = FakeSession(handler=lambda call: FakeResponse(body=list(rows)))
    client = SupabaseClient(URL, "anon-key", session=session)
    repo = SupabaseMarkRepository(client, poll_interval_ms=60000)

    sub = repo.subscribe("img1")
    seen = []
    sub.changed.connect(seen.append)
    qtbot.waitUntil(lambda: len(session.calls) == 1 and not sub._in_flight)
    assert seen == []

    rows.append({"id": "m2", "updated_at": "t2"})
    with qtbot.waitSignal(sub.changed, timeout=2000):
        sub.poll()
    assert seen == ["img1"]
    assert session.calls[-1]["params"]["select"] == "id,updated_at"

    sub.unsubscribe()
    assert not sub.active
