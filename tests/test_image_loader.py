from PySide6.QtCore import Qt
from PySide6.QtGui import QImage

from markboard.services.image_loader import ImageLoader, is_remote


def test_is_remote() -> None:
    assert is_remote("https://cdn.example.com/a.png")
    assert is_remote("http://localhost/a.png")
    assert not is_remote("/tmp/a.png")
    assert not is_remote("a.png")


def test_loads_local_file(qtbot, tmp_path) -> None:
    path = tmp_path / "shot.png"
    image = QImage(40, 30, QImage.Format.Format_ARGB32)
    image.fill(Qt.GlobalColor.red)
    assert image.save(str(path))

    loader = ImageLoader()
    with qtbot.waitSignal(loader.loaded, timeout=3000) as blocker:
        loader.load(str(path))
    loaded = blocker.args[0]
    assert (loaded.width(), loaded.height()) == (40, 30)


def test_missing_file_fails(qtbot, tmp_path) -> None:
    loader = ImageLoader()
    with qtbot.waitSignal(loader.failed, timeout=3000) as blocker:
        loader.load(str(tmp_path / "nope.png"))
    assert "nope.png" in blocker.args[0]


def test_non_image_fails(qtbot, tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    loader = ImageLoader()
    with qtbot.waitSignal(loader.failed, timeout=3000) as blocker:
        loader.load(str(path))
    assert "Not a supported image" in blocker.args[0]
