import os

# Must be set before the first QApplication is created
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from PySide6.QtCore import Qt
from PySide6.QtGui import QImage

from markboard.core.mark_controller import MarkController
from markboard.core.task_runner import InlineTaskRunner
from markboard.services.mark_repository import InMemoryMarkRepository


@pytest.fixture
def white_image(qapp) -> QImage:
    image = QImage(800, 600, QImage.Format.Format_ARGB32)
    image.fill(Qt.GlobalColor.white)
    return image


@pytest.fixture
def repository() -> InMemoryMarkRepository:
    return InMemoryMarkRepository()


@pytest.fixture
def controller(qapp, repository) -> MarkController:
    c = MarkController(
        repository, InlineTaskRunner(), author_id="u1", author_name="Alice"
    )
    yield c
    c.close_image()
