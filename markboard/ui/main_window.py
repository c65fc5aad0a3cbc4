"""
Main window for MarkBoard application.

This module contains the main application window hosting the editor
widget, a small menu bar and the dark theme styling.
"""

from typing import Optional

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QMainWindow,
    QMessageBox,
    QWidget,
)

from markboard.core.mark_controller import MarkController
from markboard.editor.editor_widget import EditorWidget
from markboard.services.config_service import ConfigService
from markboard.services.logging_service import get_logger


class MainWindow(QMainWindow):
    """
    Main application window for MarkBoard.

    Features:
    - Dark themed UI
    - Menu bar with File and Help menus
    - Editor widget for reviewing and marking up one image
    """

    def __init__(
        self,
        controller: MarkController,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            controller: Mark controller for the open image.
            config_service: Optional config service for editor defaults.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._controller = controller
        self._config = config_service

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle("MarkBoard")
        self.setMinimumSize(800, 600)
        self.resize(1200, 800)

    def _setup_central_widget(self) -> None:
        """Set up the central widget (editor)."""
        self._editor = EditorWidget(self._controller, self._config, parent=self)
        self._editor.image_failed.connect(self._on_image_failed)
        self.setCentralWidget(self._editor)

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()

        # ─── File Menu ────────────────────────────────────────────────
        file_menu = menu_bar.addMenu("&File")

        export_action = QAction("&Export Image...", self)
        export_action.setShortcut(QKeySequence.StandardKey.Save)
        export_action.setStatusTip("Save the image with its marks drawn on")
        export_action.triggered.connect(self._editor._export_dialog)
        file_menu.addAction(export_action)

        reload_action = QAction("&Reload Marks", self)
        reload_action.setShortcut(QKeySequence.StandardKey.Refresh)
        reload_action.triggered.connect(self._controller.reload)
        file_menu.addAction(reload_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # ─── Help Menu ────────────────────────────────────────────────
        help_menu = menu_bar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.triggered.connect(self._show_about_dialog)
        help_menu.addAction(about_action)

    # ─── Public Methods ───────────────────────────────────────────────────

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    def open_image(self, source: str, image_id: str, project_id: str) -> None:
        """
        Open an image for review and show the window.

        Args:
            source: URL or local path of the image.
            image_id: Id the image's marks are stored under.
            project_id: Project the image belongs to.
        """
        self.setWindowTitle(f"MarkBoard - {source}")
        self._editor.open_image(source, image_id, project_id)
        self.show()
        self.raise_()
        self.activateWindow()

    # ─── Menu Actions ─────────────────────────────────────────────────────

    def _on_image_failed(self, message: str) -> None:
        self.statusBar().showMessage(f"Could not load image: {message}")

    def _show_about_dialog(self) -> None:
        """Display the About dialog."""
        about_text = (
            "<h2>MarkBoard</h2>"
            "<p>Point, circle and rectangle review marks for images</p>"
            "<hr>"
            "<p><b>Keyboard Shortcuts:</b></p>"
            "<ul>"
            "<li>M - Toggle marking mode</li>"
            "<li>L - List all marks</li>"
            "<li>C / R / P - Circle, rectangle, point</li>"
            "<li>1-5 - Mark color</li>"
            "<li>Esc - Leave marking mode</li>"
            "<li>Ctrl+S - Export image</li>"
            "</ul>"
        )

        QMessageBox.about(self, "About MarkBoard", about_text)

    def closeEvent(self, event) -> None:
        """Stop listening for mark changes before the window goes away."""
        self._logger.info("MainWindow closing")
        self._controller.close_image()
        super().closeEvent(event)
