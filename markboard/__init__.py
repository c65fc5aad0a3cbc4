"""
MarkBoard - point, circle and rectangle review marks for images.

This package contains the main application modules:
- core: Application core, mark controller and background task runner
- ui: Main window
- editor: Mark model, interaction state machine, canvas and editor widget
- services: Config, logging, errors, image loading and mark repositories
"""

__version__ = "0.1.0"
