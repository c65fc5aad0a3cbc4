"""
MarkBoard - review marks for images.

This is the main entry point for the application.
Run with: python -m markboard.app IMAGE [--image-id ID] [--project-id ID]
"""

import argparse
import logging
import signal
import sys
from pathlib import PurePosixPath
from typing import List, Optional
from urllib.parse import urlparse

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from markboard import __version__
from markboard.core.app_core import AppCore
from markboard.services.logging_service import get_logger, setup_logging


# Global app reference for signal handlers
_app: Optional[QApplication] = None
_should_quit = False


def default_image_id(source: str) -> str:
    """Derive an image id from the file name when none is given."""
    path = urlparse(source).path or source
    return PurePosixPath(path.replace("\\", "/")).stem or "image"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="markboard",
        description="Mark up an image with points, circles and rectangles.",
    )
    parser.add_argument("image", help="URL or path of the image to review")
    parser.add_argument(
        "--image-id",
        help="id the marks are stored under (default: the file name)",
    )
    parser.add_argument(
        "--project-id",
        default="local",
        help="project the image belongs to (default: %(default)s)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="keep marks in memory even if a Supabase project is configured",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def cleanup_and_quit(signum, frame):
    """Handle termination signals."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if _should_quit and _app:
        get_logger(__name__).info("Signal received, quitting...")
        _app.quit()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for MarkBoard application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app

    args = parse_args(argv)

    # Initialize logging first to catch early errors
    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger(__name__)

    try:
        logger.info("Starting MarkBoard application...")

        _app = QApplication(sys.argv[:1])
        _app.setApplicationName("MarkBoard")
        _app.setOrganizationName("MarkBoard")
        _app.setApplicationVersion(__version__)

        signal.signal(signal.SIGINT, cleanup_and_quit)
        signal.signal(signal.SIGTERM, cleanup_and_quit)

        # Timer to poll for quit signal (Qt event loop blocks Python signals)
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        app_core = AppCore(_app, offline=args.offline, debug=args.debug)
        app_core.open_image(
            args.image,
            args.image_id or default_image_id(args.image),
            args.project_id,
        )

        logger.info("MarkBoard initialization complete. Entering event loop...")

        exit_code = _app.exec()

        logger.info(f"MarkBoard exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
