"""
Runs blocking repository calls without freezing the UI.

ThreadTaskRunner executes each call on a background thread and hands the
outcome back on the Qt main thread, where the callbacks are free to touch
widgets and the local mark set. InlineTaskRunner runs calls immediately on
the caller's thread; it is used by tests and scripts where there is no
event loop to wait on.

Callbacks are always invoked as: exactly one of on_success/on_error,
then on_finished.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Set

from PySide6.QtCore import QObject, Signal, Slot

from markboard.services.errors import MarkBoardError
from markboard.services.logging_service import get_logger


logger = get_logger(__name__)

SuccessCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]
FinishedCallback = Callable[[], None]


def _run(fn: Callable[[], Any]) -> tuple:
    """Call fn and return (ok, result_or_exception)."""
    try:
        return True, fn()
    except MarkBoardError as e:
        return False, e
    except Exception as e:
        # A bug in a repository must not leave the UI waiting forever
        logger.error(f"Unexpected error in background task: {e}", exc_info=True)
        return False, e


class TaskRunner(ABC):
    """Base class for task runners."""

    @abstractmethod
    def submit(
        self,
        fn: Callable[[], Any],
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        on_finished: Optional[FinishedCallback] = None,
    ) -> None:
        """Run fn and report its result through the callbacks."""
        pass


class InlineTaskRunner(TaskRunner):
    """Runs tasks synchronously."""

    def submit(
        self,
        fn: Callable[[], Any],
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        on_finished: Optional[FinishedCallback] = None,
    ) -> None:
        ok, value = _run(fn)
        try:
            if ok:
                on_success(value)
            else:
                on_error(value)
        finally:
            if on_finished:
                on_finished()


class _Task(QObject):
    """
    One background call.

    Lives on the main thread; the worker thread emits ``done`` and Qt
    queues delivery of _deliver() back onto the main thread.
    """

    done = Signal(bool, object)

    def __init__(
        self,
        fn: Callable[[], Any],
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        on_finished: Optional[FinishedCallback],
        on_cleanup: Callable[["_Task"], None],
    ) -> None:
        super().__init__()
        self._fn = fn
        self._on_success = on_success
        self._on_error = on_error
        self._on_finished = on_finished
        self._on_cleanup = on_cleanup
        self.done.connect(self._deliver)

    def start(self) -> None:
        threading.Thread(target=self._work, daemon=True).start()

    def _work(self) -> None:
        ok, value = _run(self._fn)
        self.done.emit(ok, value)

    @Slot(bool, object)
    def _deliver(self, ok: bool, value: object) -> None:
        try:
            if ok:
                self._on_success(value)
            else:
                self._on_error(value)
        finally:
            if self._on_finished:
                self._on_finished()
            self._on_cleanup(self)


class ThreadTaskRunner(TaskRunner):
    """Runs each task on its own daemon thread."""

    def __init__(self) -> None:
        # Keep tasks alive until they have delivered their result
        self._tasks: Set[_Task] = set()

    def submit(
        self,
        fn: Callable[[], Any],
        on_success: SuccessCallback,
        on_error: ErrorCallback,
        on_finished: Optional[FinishedCallback] = None,
    ) -> None:
        task = _Task(fn, on_success, on_error, on_finished, self._tasks.discard)
        self._tasks.add(task)
        task.start()

    @property
    def pending(self) -> int:
        return len(self._tasks)
