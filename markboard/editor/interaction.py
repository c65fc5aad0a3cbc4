"""
Interaction state machine for the mark canvas.

The canvas feeds pointer and dialog events into transition(), which returns
the next state plus a list of effects for the caller to carry out (repaint,
open the comment dialog, call the mark repository). The function is pure:
it never touches widgets or the network, so every transition can be tested
on its own.

States:
- IDLE: marking mode off; clicks select existing marks
- ARMED: marking mode on, no drag in progress
- DRAGGING: pointer held down, live preview visible
- COMMENT_EDITING: a new draft or an existing mark is open in the dialog
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Callable, Dict, Optional, Sequence, Tuple, Type

from PySide6.QtCore import QPointF

from markboard.editor.marks import (
    MarkBase,
    MarkColor,
    MarkType,
    build_draft,
    find_mark_at,
    shape_from_drag,
)


class InteractionMode(Enum):
    """Enum for interaction states."""
    IDLE = auto()
    ARMED = auto()
    DRAGGING = auto()
    COMMENT_EDITING = auto()


@dataclass(frozen=True)
class DrawingSession:
    """
    Ephemeral drawing settings.

    The anchor and current position are only set while a drag is in
    progress; both are cleared after each completed or discarded gesture.
    """
    shape: MarkType = MarkType.CIRCLE
    color: MarkColor = MarkColor.BLUE
    anchor: Optional[QPointF] = None
    current: Optional[QPointF] = None

    def preview(self) -> Optional[MarkBase]:
        """The shape currently being dragged, if any."""
        if self.anchor is None or self.current is None:
            return None
        return shape_from_drag(self.shape, self.anchor, self.current, self.color)

    def cleared(self) -> "DrawingSession":
        return replace(self, anchor=None, current=None)


@dataclass(frozen=True)
class InteractionState:
    mode: InteractionMode = InteractionMode.IDLE
    session: DrawingSession = field(default_factory=DrawingSession)
    # Mark open in the comment dialog: a draft (no id) or a saved mark
    editing: Optional[MarkBase] = None
    # Where to go back to when the dialog closes
    return_mode: InteractionMode = InteractionMode.IDLE
    # A repository request for the open mark is in flight
    busy: bool = False

    @property
    def marking_mode(self) -> bool:
        if self.mode == InteractionMode.COMMENT_EDITING:
            return self.return_mode == InteractionMode.ARMED
        return self.mode != InteractionMode.IDLE


# ─── Events ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ToggleMarking:
    pass


@dataclass(frozen=True)
class SelectShape:
    shape: MarkType


@dataclass(frozen=True)
class SelectColor:
    color: MarkColor


@dataclass(frozen=True)
class PointerDown:
    pos: QPointF


@dataclass(frozen=True)
class PointerMove:
    pos: QPointF


@dataclass(frozen=True)
class PointerUp:
    pos: QPointF


@dataclass(frozen=True)
class Click:
    pos: QPointF
    marks: Sequence[MarkBase] = ()


@dataclass(frozen=True)
class SelectMark:
    """A saved mark was picked from the marks list."""
    mark: MarkBase


@dataclass(frozen=True)
class SubmitComment:
    text: str


@dataclass(frozen=True)
class DeleteRequested:
    pass


@dataclass(frozen=True)
class DialogClosed:
    pass


@dataclass(frozen=True)
class RequestSettled:
    success: bool


# ─── Effects ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Redraw:
    pass


@dataclass(frozen=True)
class OpenCommentDialog:
    mark: MarkBase
    comment: str


@dataclass(frozen=True)
class CloseCommentDialog:
    pass


@dataclass(frozen=True)
class CreateMark:
    draft: MarkBase
    comment: str


@dataclass(frozen=True)
class UpdateMark:
    mark: MarkBase
    comment: str


@dataclass(frozen=True)
class DeleteMark:
    mark: MarkBase


@dataclass(frozen=True)
class Transition:
    state: InteractionState
    effects: Tuple[object, ...] = ()


# ─── Transitions ──────────────────────────────────────────────────────────────

def _on_toggle(state: InteractionState, event: ToggleMarking) -> Transition:
    if state.mode == InteractionMode.IDLE:
        return Transition(replace(state, mode=InteractionMode.ARMED), (Redraw(),))
    if state.mode in (InteractionMode.ARMED, InteractionMode.DRAGGING):
        # Any drag in progress is dropped
        return Transition(
            replace(state, mode=InteractionMode.IDLE, session=state.session.cleared()),
            (Redraw(),),
        )
    return Transition(state)


def _on_select_shape(state: InteractionState, event: SelectShape) -> Transition:
    new_state = replace(state, session=replace(state.session, shape=event.shape))
    effects = (Redraw(),) if state.mode == InteractionMode.DRAGGING else ()
    return Transition(new_state, effects)


def _on_select_color(state: InteractionState, event: SelectColor) -> Transition:
    new_state = replace(state, session=replace(state.session, color=event.color))
    effects = (Redraw(),) if state.mode == InteractionMode.DRAGGING else ()
    return Transition(new_state, effects)


def _on_pointer_down(state: InteractionState, event: PointerDown) -> Transition:
    if state.mode != InteractionMode.ARMED:
        return Transition(state)
    session = replace(state.session, anchor=event.pos, current=event.pos)
    return Transition(
        replace(state, mode=InteractionMode.DRAGGING, session=session),
        (Redraw(),),
    )


def _on_pointer_move(state: InteractionState, event: PointerMove) -> Transition:
    if state.mode != InteractionMode.DRAGGING:
        return Transition(state)
    session = replace(state.session, current=event.pos)
    return Transition(replace(state, session=session), (Redraw(),))


def _on_pointer_up(state: InteractionState, event: PointerUp) -> Transition:
    if state.mode != InteractionMode.DRAGGING or state.session.anchor is None:
        return Transition(state)

    session = state.session
    draft = build_draft(session.shape, session.anchor, event.pos, session.color)

    if draft is None:
        # Too small: silently discarded
        return Transition(
            replace(state, mode=InteractionMode.ARMED, session=session.cleared()),
            (Redraw(),),
        )

    return Transition(
        replace(
            state,
            mode=InteractionMode.COMMENT_EDITING,
            session=session.cleared(),
            editing=draft,
            return_mode=InteractionMode.ARMED,
        ),
        (Redraw(), OpenCommentDialog(draft, "")),
    )


def _open_saved_mark(state: InteractionState, mark: MarkBase) -> Transition:
    return Transition(
        replace(
            state,
            mode=InteractionMode.COMMENT_EDITING,
            editing=mark,
            return_mode=state.mode,
        ),
        (OpenCommentDialog(mark, mark.comment),),
    )


def _on_click(state: InteractionState, event: Click) -> Transition:
    if state.mode != InteractionMode.IDLE:
        return Transition(state)

    hit = find_mark_at(event.marks, event.pos)
    if hit is None:
        return Transition(state)
    return _open_saved_mark(state, hit)


def _on_select_mark(state: InteractionState, event: SelectMark) -> Transition:
    # Not while a drag or another mark is in progress
    if state.mode not in (InteractionMode.IDLE, InteractionMode.ARMED):
        return Transition(state)
    if event.mark.is_draft:
        return Transition(state)
    return _open_saved_mark(state, event.mark)


def _on_submit(state: InteractionState, event: SubmitComment) -> Transition:
    if state.mode != InteractionMode.COMMENT_EDITING or state.busy or state.editing is None:
        return Transition(state)

    comment = event.text.strip()
    if not comment:
        return Transition(state)

    mark = state.editing
    effect = CreateMark(mark, comment) if mark.is_draft else UpdateMark(mark, comment)
    return Transition(replace(state, busy=True), (effect,))


def _on_delete(state: InteractionState, event: DeleteRequested) -> Transition:
    if state.mode != InteractionMode.COMMENT_EDITING or state.busy:
        return Transition(state)
    if state.editing is None or state.editing.is_draft:
        return Transition(state)
    return Transition(replace(state, busy=True), (DeleteMark(state.editing),))


def _close_dialog(state: InteractionState) -> Transition:
    return Transition(
        replace(
            state,
            mode=state.return_mode,
            editing=None,
            busy=False,
            session=state.session.cleared(),
        ),
        (CloseCommentDialog(), Redraw()),
    )


def _on_dialog_closed(state: InteractionState, event: DialogClosed) -> Transition:
    # The only way out while a request is in flight is for it to settle
    if state.mode != InteractionMode.COMMENT_EDITING or state.busy:
        return Transition(state)
    # An unsaved draft is discarded here
    return _close_dialog(state)


def _on_settled(state: InteractionState, event: RequestSettled) -> Transition:
    if not state.busy:
        return Transition(state)
    if state.mode != InteractionMode.COMMENT_EDITING:
        return Transition(replace(state, busy=False))
    if event.success:
        return _close_dialog(state)
    # Keep the dialog open so the comment can be retried or abandoned
    return Transition(replace(state, busy=False))


_HANDLERS: Dict[Type, Callable[[InteractionState, object], Transition]] = {
    ToggleMarking: _on_toggle,
    SelectShape: _on_select_shape,
    SelectColor: _on_select_color,
    PointerDown: _on_pointer_down,
    PointerMove: _on_pointer_move,
    PointerUp: _on_pointer_up,
    Click: _on_click,
    SelectMark: _on_select_mark,
    SubmitComment: _on_submit,
    DeleteRequested: _on_delete,
    DialogClosed: _on_dialog_closed,
    RequestSettled: _on_settled,
}


def transition(state: InteractionState, event: object) -> Transition:
    """
    Compute the next state and the effects of an event.

    Args:
        state: The current state.
        event: One of the event classes in this module.

    Returns:
        The new state and the effects to perform, in order.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise ValueError(f"Unknown interaction event: {event!r}")
    return handler(state, event)
