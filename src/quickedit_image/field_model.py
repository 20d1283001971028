"""
Field and entity models observed by the in-place editors.

A ``FieldModel`` holds the interaction state of one editable field. State
changes are synchronous and notify listeners in registration order. Nested
state changes are rejected: a listener that needs to move the field on must
defer the change to the next event-loop turn with :meth:`FieldModel.defer_state`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from .errors import InvalidTransitionError, ReentrantTransitionError
from .models import EditorState, FieldId

logger = logging.getLogger(__name__)

S = EditorState

ALLOWED_TRANSITIONS: Dict[EditorState, FrozenSet[EditorState]] = {
    S.INACTIVE: frozenset({S.CANDIDATE}),
    S.CANDIDATE: frozenset({S.HIGHLIGHTED, S.ACTIVATING, S.INVALID, S.INACTIVE}),
    S.HIGHLIGHTED: frozenset({S.CANDIDATE, S.ACTIVATING}),
    S.ACTIVATING: frozenset({S.ACTIVE, S.CANDIDATE}),
    S.ACTIVE: frozenset({S.CHANGED, S.INVALID, S.CANDIDATE}),
    S.CHANGED: frozenset({S.SAVING, S.INVALID, S.CANDIDATE}),
    S.SAVING: frozenset({S.SAVED, S.INVALID, S.CHANGED, S.CANDIDATE}),
    S.SAVED: frozenset({S.CANDIDATE}),
    S.INVALID: frozenset({S.CANDIDATE, S.CHANGED, S.SAVING}),
}

StateListener = Callable[["FieldModel", EditorState, Optional[Dict[str, Any]]], None]


@dataclass
class EntityModel:
    """The entity a field belongs to.

    ``in_temp_store`` is set once any of its fields holds an uncommitted edit
    on the server.
    """

    entity_key: str
    in_temp_store: bool = False


class FieldModel:
    def __init__(self, field_id: FieldId, field_type: str, entity: EntityModel) -> None:
        self.field_id = field_id
        self.field_type = field_type
        self.entity = entity
        self.state = EditorState.INACTIVE
        self.previous_state: Optional[EditorState] = None
        self._listeners: List[StateListener] = []
        self._transitioning = False

    def on_state_change(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def is_transitioning(self) -> bool:
        return self._transitioning

    def can_transition(self, state: EditorState) -> bool:
        return state == self.state or state in ALLOWED_TRANSITIONS[self.state]

    def set_state(self, state: EditorState | str, options: Optional[Dict[str, Any]] = None) -> None:
        state = EditorState(state)
        if state == self.state:
            return
        if self._transitioning:
            raise ReentrantTransitionError(
                f"{self.field_id}: change to '{state.value}' requested while entering '{self.state.value}'"
            )
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.field_id}: '{self.state.value}' -> '{state.value}' is not allowed")

        self._transitioning = True
        try:
            self.previous_state, self.state = self.state, state
            logger.debug(f"{self.field_id}: {self.previous_state.value} -> {state.value}")
            for listener in list(self._listeners):
                listener(self, state, options)
        finally:
            self._transitioning = False

    def defer_state(self, state: EditorState, expected: Optional[EditorState] = None) -> asyncio.Handle:
        """Request ``state`` once the current event-loop turn has finished.

        When ``expected`` is given, the deferred change only happens if the
        field is still in that state by then.
        """

        def _apply() -> None:
            if expected is not None and self.state != expected:
                logger.debug(f"{self.field_id}: deferred '{state.value}' dropped, field is '{self.state.value}'")
                return
            self.set_state(state)

        return asyncio.get_running_loop().call_soon(_apply)
