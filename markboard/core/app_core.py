"""
Application core for MarkBoard.

This module contains the AppCore class which is responsible for:
- Initializing services (config, logging, mark repository)
- Creating the mark controller and the main window
- Applying global styling (dark theme)
- Opening the image to review

This is the central orchestration point for the application.
"""

from typing import Optional

from PySide6.QtCore import QObject
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from markboard.core.mark_controller import MarkController
from markboard.core.task_runner import TaskRunner, ThreadTaskRunner
from markboard.services.config_service import ConfigService
from markboard.services.logging_service import apply_log_levels, get_logger
from markboard.services.mark_repository import InMemoryMarkRepository, MarkRepository
from markboard.services.supabase_repository import (
    ChangeNotifier,
    SupabaseClient,
    SupabaseMarkRepository,
)
from markboard.ui.main_window import MainWindow


def create_repository(config: ConfigService, offline: bool = False) -> MarkRepository:
    """
    Pick the mark repository for this run.

    The hosted backend is used when it is configured and offline mode was
    not requested; otherwise marks live in memory for the session.
    """
    logger = get_logger(__name__)

    if offline or not config.has_remote_backend:
        reason = "offline mode" if offline else "no Supabase project configured"
        logger.info(f"Using in-memory mark repository ({reason})")
        return InMemoryMarkRepository()

    client = SupabaseClient(
        config.supabase_url,
        config.supabase_anon_key,
        timeout=config.request_timeout,
    )
    notifier = ChangeNotifier(client, config.author_email) if config.notifications else None
    logger.info(f"Using Supabase mark repository at {config.supabase_url}")
    return SupabaseMarkRepository(client, notifier, config.poll_interval_ms)


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize the config service and mark repository
    - Apply global dark theme
    - Create the MarkController and MainWindow
    - Open the requested image in the editor
    """

    def __init__(
        self,
        app: QApplication,
        config_service: Optional[ConfigService] = None,
        offline: bool = False,
        runner: Optional[TaskRunner] = None,
        debug: bool = False,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            config_service: Config to use; loaded from disk if omitted.
            offline: Keep marks in memory even if a backend is configured.
            runner: Task runner for repository calls.
            debug: --debug was given; overrides configured log levels.
        """
        super().__init__()
        self._app = app
        self._logger = get_logger(__name__)
        self._logger.info("Initializing MarkBoard application core...")

        self._config_service = config_service or ConfigService()
        apply_log_levels(self._config_service.log_levels, debug=debug)
        self._repository = create_repository(self._config_service, offline)
        self._controller = MarkController(
            self._repository,
            runner or ThreadTaskRunner(),
            author_id=self._config_service.author_id,
            author_name=self._config_service.author_name,
            parent=self,
        )

        self._apply_dark_theme()
        self._main_window = MainWindow(self._controller, self._config_service)
        self._app.aboutToQuit.connect(self.shutdown)

    def _apply_dark_theme(self) -> None:
        """
        Apply a dark color palette to the application.

        Uses Qt's QPalette for a native-looking dark theme.
        """
        self._logger.debug("Applying dark theme...")

        palette = QPalette()

        palette.setColor(QPalette.ColorRole.Window, QColor(45, 45, 45))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor(50, 50, 50))
        palette.setColor(QPalette.ColorRole.Text, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.BrightText, QColor(255, 255, 255))
        palette.setColor(QPalette.ColorRole.Button, QColor(55, 55, 55))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Highlight, QColor(22, 173, 124))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
        palette.setColor(QPalette.ColorRole.ToolTipBase, QColor(60, 60, 60))
        palette.setColor(QPalette.ColorRole.ToolTipText, QColor(220, 220, 220))

        for role in (
            QPalette.ColorRole.WindowText,
            QPalette.ColorRole.Text,
            QPalette.ColorRole.ButtonText,
        ):
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(127, 127, 127))

        self._app.setPalette(palette)

        self._app.setStyleSheet("""
            QToolTip {
                background-color: #3d3d3d;
                color: #dcdcdc;
                border: 1px solid #5a5a5a;
                padding: 4px;
            }
            QMenuBar {
                background-color: #2d2d2d;
                padding: 2px;
            }
            QMenuBar::item:selected {
                background-color: #4a4a4a;
            }
            QMenu {
                background-color: #2d2d2d;
                border: 1px solid #3a3a3a;
            }
            QMenu::item:selected {
                background-color: #16ad7c;
            }
        """)

        self._logger.info("Dark theme applied")

    # ─── Editor Integration ───────────────────────────────────────────────

    def open_image(self, source: str, image_id: str, project_id: str) -> None:
        """
        Show the editor for an image.

        Args:
            source: URL or local path of the image.
            image_id: Id the image's marks are stored under.
            project_id: Project the image belongs to.
        """
        self._logger.info(f"Opening {source} as image {image_id} in project {project_id}")
        self._main_window.open_image(source, image_id, project_id)

    # ─── Application Lifecycle ────────────────────────────────────────────

    def shutdown(self) -> None:
        """Stop listening for mark changes."""
        self._logger.info("Shutting down MarkBoard...")
        self._controller.close_image()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        return self._config_service

    @property
    def repository(self) -> MarkRepository:
        return self._repository

    @property
    def controller(self) -> MarkController:
        return self._controller

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        return self._main_window
