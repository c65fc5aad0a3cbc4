from pytest import raises

from markboard.editor.marks import CircleMark, MarkColor, PointMark, RectangleMark
from markboard.services.errors import InvalidMarkError, MarkNotFoundError, RepositoryError
from markboard.services.mark_repository import InMemoryMarkRepository, clean_update_fields


def add(repo, mark, comment="note", image_id="img1"):
    return repo.create_mark(image_id, "proj", mark, comment, "u1", "Alice")


def test_create_assigns_id_and_rounds(repository: InMemoryMarkRepository) -> None:
    saved = add(repository, CircleMark(10.5, 20.4, 7.6, color=MarkColor.GREEN))
    assert saved.id
    assert saved.timestamp
    assert (saved.x, saved.y, saved.radius) == (11, 20, 8)
    assert saved.comment == "note"
    assert saved.author == "Alice"
    assert saved.color == MarkColor.GREEN


def test_list_is_per_image_in_creation_order(repository) -> None:
    a = add(repository, PointMark(1, 1))
    add(repository, PointMark(2, 2), image_id="other")
    b = add(repository, RectangleMark(0, 0, 10, 10))
    assert [m.id for m in repository.list_marks("img1")] == [a.id, b.id]
    assert repository.count_marks("img1") == 2
    assert repository.count_marks("other") == 1
    assert repository.list_marks("missing") == []


def test_list_skips_unreadable_rows(repository) -> None:
    a = add(repository, PointMark(1, 1))
    bad = add(repository, PointMark(2, 2))
    repository._records[bad.id]["mark_type"] = "triangle"
    assert [m.id for m in repository.list_marks("img1")] == [a.id]

def test_update_comment(repository) -> None:
    saved = add(repository, PointMark(1, 1))
    updated = repository.update_mark(saved.id, {"comment": "changed"})
    assert updated.id == saved.id
    assert updated.comment == "changed"
    assert repository.list_marks("img1")[0].comment == "changed"


def test_update_rejects_geometry(repository) -> None:
    saved = add(repository, CircleMark(5, 5, 10))
    with raises(InvalidMarkError):
        repository.update_mark(saved.id, {"radius": 50})
    assert repository.list_marks("img1")[0].radius == 10


def test_update_missing_mark(repository) -> None:
    with raises(MarkNotFoundError) as excinfo:
        repository.update_mark("nope", {"comment": "x"})
    assert excinfo.value.mark_id == "nope"
    assert isinstance(excinfo.value, RepositoryError)


def test_delete(repository) -> None:
    saved = add(repository, PointMark(1, 1))
    assert repository.delete_mark(saved.id)
    assert repository.list_marks("img1") == []
    with raises(MarkNotFoundError):
        repository.delete_mark(saved.id)


def test_clean_update_fields_converts_color() -> None:
    assert clean_update_fields({"color": MarkColor.RED, "comment": None}) == {
        "color": "red",
        "comment": "",
    }


def test_subscription_fires_for_its_image_only(qapp, repository) -> None:
    seen = []
    sub = repository.subscribe("img1")
    sub.changed.connect(seen.append)

    add(repository, PointMark(1, 1))
    add(repository, PointMark(1, 1), image_id="other")
    assert seen == ["img1"]

    sub.unsubscribe()
    assert not sub.active
    add(repository, PointMark(2, 2))
    assert seen == ["img1"]
    # idempotent
    sub.unsubscribe()
