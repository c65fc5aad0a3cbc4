"""
Image source for the mark canvas.

Loads the image to annotate from an http(s) URL or a local file on a worker
thread, then hands the decoded QImage back on the Qt main thread.
"""

import threading
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests
from PySide6.QtCore import QObject, Signal, Slot
from PySide6.QtGui import QImage

from markboard.services.logging_service import get_logger


def is_remote(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def fetch_image(source: str, timeout: float = 10) -> QImage:
    """
    Load and decode an image synchronously.

    Raises:
        OSError: if the file or URL cannot be read or is not an image.
    """
    if is_remote(source):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise OSError(f"Could not download {source}: {e}") from e
        data = response.content
    else:
        path = Path(source).expanduser()
        data = path.read_bytes()

    image = QImage()
    if not image.loadFromData(data):
        raise OSError(f"Not a supported image: {source}")
    return image


class ImageLoader(QObject):
    """
    Background image loader.

    Signals:
        loaded: Emitted with the decoded image.
        failed: Emitted with a user-facing error message.
    """

    loaded = Signal(QImage)
    failed = Signal(str)

    _done = Signal(object, str)

    def __init__(self, timeout: float = 10, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._timeout = timeout
        self._done.connect(self._deliver)

    def load(self, source: str) -> None:
        """Start loading source; the result arrives via loaded/failed."""
        self._logger.info(f"Loading image from {source}")
        threading.Thread(target=self._work, args=(source,), daemon=True).start()

    def _work(self, source: str) -> None:
        try:
            image = fetch_image(source, self._timeout)
        except OSError as e:
            self._done.emit(None, str(e))
            return
        self._done.emit(image, "")

    @Slot(object, str)
    def _deliver(self, image: Optional[QImage], error: str) -> None:
        if image is None:
            self._logger.error(f"Image load failed: {error}")
            self.failed.emit(error)
        else:
            self._logger.info(f"Image loaded: {image.width()}x{image.height()}")
            self.loaded.emit(image)
