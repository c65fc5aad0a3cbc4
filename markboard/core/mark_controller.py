"""
Mark controller for MarkBoard.

The MarkController owns the local mark set of the image currently open in
the editor. It is the only writer of that set:

- open_image() bulk-loads the marks and subscribes to remote changes
- create/update/delete run one repository call each and, only once the call
  succeeds, apply the same change locally
- a subscription event dispatches reload(), which replaces the set with the
  server's full list; a list fetched before the latest local change is
  thrown away and fetched again

Repository failures are reported through ``error_occurred`` and leave the
local set untouched. Every request ends with ``busy_changed(False)`` once
nothing else is in flight, success or not.
"""

from typing import Callable, List, Optional

from PySide6.QtCore import QObject, Signal, Slot

from markboard.core.task_runner import TaskRunner, ThreadTaskRunner
from markboard.editor.interaction import CreateMark, DeleteMark, UpdateMark
from markboard.editor.marks import MarkBase
from markboard.services.logging_service import get_logger
from markboard.services.mark_repository import MarkRepository, MarkSubscription


class MarkController(QObject):
    """
    Keeps the local mark set in step with the mark repository.

    Signals:
        marks_changed: Emitted with the new list whenever the set changes.
        busy_changed: True while at least one request is in flight.
        error_occurred: User-facing message for a failed request.
        message: User-facing confirmation for a successful mutation.
        request_settled: Emitted after each create/update/delete with
                         whether it succeeded.
    """

    marks_changed = Signal(list)
    busy_changed = Signal(bool)
    error_occurred = Signal(str)
    message = Signal(str)
    request_settled = Signal(bool)

    def __init__(
        self,
        repository: MarkRepository,
        runner: Optional[TaskRunner] = None,
        author_id: str = "",
        author_name: str = "Current User",
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._repository = repository
        self._runner = runner or ThreadTaskRunner()
        self._author_id = author_id
        self._author_name = author_name

        self._image_id: Optional[str] = None
        self._project_id: Optional[str] = None
        self._marks: List[MarkBase] = []
        self._subscription: Optional[MarkSubscription] = None
        self._in_flight = 0
        # Bumped on every image switch so late results for the old image are dropped
        self._generation = 0
        # Bumped on every applied create/update/delete; a list fetched before
        # the latest one is out of date
        self._mutation_seq = 0

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def marks(self) -> List[MarkBase]:
        return list(self._marks)

    @property
    def image_id(self) -> Optional[str]:
        return self._image_id

    @property
    def project_id(self) -> Optional[str]:
        return self._project_id

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    # ─── Image Lifecycle ──────────────────────────────────────────────────

    def open_image(self, image_id: str, project_id: str) -> None:
        """Load the marks of an image and start listening for changes."""
        self.close_image()

        self._image_id = image_id
        self._project_id = project_id
        self._logger.info(f"Opening marks for image {image_id}")

        self._subscription = self._repository.subscribe(image_id)
        self._subscription.changed.connect(self._on_remote_change)

        self.reload()

    def close_image(self) -> None:
        """Stop listening and forget the current image's marks."""
        if self._subscription is not None:
            self._subscription.changed.disconnect(self._on_remote_change)
            self._subscription.unsubscribe()
            self._subscription = None

        self._generation += 1
        self._image_id = None
        self._project_id = None
        if self._marks:
            self._set_marks([])

    @Slot(str)
    def _on_remote_change(self, image_id: str) -> None:
        if image_id == self._image_id:
            self._logger.debug(f"Marks changed remotely for image {image_id}, reloading")
            self.reload()

    def reload(self) -> None:
        """Replace the local set with the repository's current list."""
        if self._image_id is None:
            return

        image_id = self._image_id
        generation = self._generation
        mutation_seq = self._mutation_seq

        def apply(marks: List[MarkBase]) -> None:
            if generation != self._generation:
                return
            if mutation_seq != self._mutation_seq:
                self._logger.debug("Mark list is older than the last change, reloading")
                self.reload()
                return
            self._set_marks(marks)

        self._submit(
            lambda: self._repository.list_marks(image_id),
            apply,
            "Failed to load marks",
        )

    # ─── Mutations ────────────────────────────────────────────────────────

    def create_mark(self, draft: MarkBase, comment: str) -> None:
        """Persist a draft and add the saved mark to the local set."""
        if self._image_id is None:
            self._logger.warning("Cannot add a mark with no image open")
            self.request_settled.emit(False)
            return

        image_id, project_id = self._image_id, self._project_id
        generation = self._generation

        def apply(saved: MarkBase) -> None:
            if generation != self._generation:
                return
            if all(m.id != saved.id for m in self._marks):
                self._apply_mutation(self._marks + [saved])
            else:
                self._mutation_seq += 1
            self.message.emit("Mark added")

        self._submit(
            lambda: self._repository.create_mark(
                image_id, project_id, draft, comment,
                self._author_id, self._author_name,
            ),
            apply,
            "Failed to add mark",
            settles=True,
        )

    def update_mark(self, mark: MarkBase, comment: str) -> None:
        """Change a saved mark's comment."""
        generation = self._generation

        def apply(updated: MarkBase) -> None:
            if generation != self._generation:
                return
            self._apply_mutation([updated if m.id == updated.id else m for m in self._marks])
            self.message.emit("Mark updated")

        self._submit(
            lambda: self._repository.update_mark(mark.id, {"comment": comment}),
            apply,
            "Failed to update mark",
            settles=True,
        )

    def delete_mark(self, mark: MarkBase) -> None:
        """Delete a saved mark and drop it from the local set."""
        generation = self._generation

        def apply(deleted: bool) -> None:
            if generation != self._generation or not deleted:
                return
            self._apply_mutation([m for m in self._marks if m.id != mark.id])
            self.message.emit("Mark deleted")

        self._submit(
            lambda: self._repository.delete_mark(mark.id),
            apply,
            "Failed to delete mark",
            settles=True,
        )

    def apply_effect(self, effect: object) -> bool:
        """
        Carry out a repository effect from the interaction state machine.

        Returns:
            True if the effect was a repository effect and was started.
        """
        if isinstance(effect, CreateMark):
            self.create_mark(effect.draft, effect.comment)
        elif isinstance(effect, UpdateMark):
            self.update_mark(effect.mark, effect.comment)
        elif isinstance(effect, DeleteMark):
            self.delete_mark(effect.mark)
        else:
            return False
        return True

    # ─── Internals ────────────────────────────────────────────────────────

    def _apply_mutation(self, marks: List[MarkBase]) -> None:
        self._mutation_seq += 1
        self._set_marks(marks)

    def _set_marks(self, marks: List[MarkBase]) -> None:
        self._marks = list(marks)
        self.marks_changed.emit(self.marks)

    def _submit(
        self,
        fn: Callable,
        on_success: Callable,
        failure_message: str,
        settles: bool = False,
    ) -> None:
        outcome = {"ok": False}

        def succeeded(result) -> None:
            outcome["ok"] = True
            on_success(result)

        def failed(error: Exception) -> None:
            self._logger.warning(f"{failure_message}: {error}")
            self.error_occurred.emit(f"{failure_message}: {error}")

        def finished() -> None:
            self._in_flight -= 1
            if self._in_flight == 0:
                self.busy_changed.emit(False)
            if settles:
                self.request_settled.emit(outcome["ok"])

        self._in_flight += 1
        if self._in_flight == 1:
            self.busy_changed.emit(True)

        self._runner.submit(fn, succeeded, failed, finished)
