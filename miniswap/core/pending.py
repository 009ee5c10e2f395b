"""
State machine for one in-flight user action.

A ``PendingAction`` is created on submit and reaches exactly one terminal
state. Transitions are table-driven; anything not in ``_TRANSITIONS`` raises
``InvalidTransition``.

    IDLE -> VALIDATING -> [AWAITING_APPROVAL] -> SUBMITTING -> CONFIRMING -> SUCCEEDED
                 \\                \\                  \\             \\
                  +-------------------------------------------------+-> FAILED

Once ``SUBMITTING`` is entered the remote write is irrevocable, so the action
can no longer be abandoned.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Dict, FrozenSet, List, Optional

from ..errors import InvalidTransition, MiniswapError


logger = logging.getLogger(__name__)


@unique
class ActionKind(Enum):
    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


@unique
class ActionState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    AWAITING_APPROVAL = "awaiting_approval"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: Dict[ActionState, FrozenSet[ActionState]] = {
    ActionState.IDLE: frozenset({ActionState.VALIDATING}),
    ActionState.VALIDATING: frozenset(
        {ActionState.AWAITING_APPROVAL, ActionState.SUBMITTING, ActionState.FAILED}
    ),
    ActionState.AWAITING_APPROVAL: frozenset({ActionState.SUBMITTING, ActionState.FAILED}),
    ActionState.SUBMITTING: frozenset({ActionState.CONFIRMING, ActionState.FAILED}),
    ActionState.CONFIRMING: frozenset({ActionState.SUCCEEDED, ActionState.FAILED}),
    ActionState.SUCCEEDED: frozenset(),
    ActionState.FAILED: frozenset(),
}

TERMINAL_STATES: FrozenSet[ActionState] = frozenset({ActionState.SUCCEEDED, ActionState.FAILED})

# States from which the user may still walk away without side effects.
ABANDONABLE_STATES: FrozenSet[ActionState] = frozenset(
    {ActionState.IDLE, ActionState.VALIDATING, ActionState.AWAITING_APPROVAL}
)

_ids = itertools.count(1)


@dataclass
class PendingAction:
    """Mutable scratch state owned by exactly one orchestrated action."""

    kind: ActionKind
    form_id: str
    action_id: int = field(default_factory=lambda: next(_ids))
    state: ActionState = ActionState.IDLE
    history: List[ActionState] = field(default_factory=lambda: [ActionState.IDLE])
    error: Optional[MiniswapError] = None
    abandon_requested: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, new_state: ActionState) -> None:
        allowed = _TRANSITIONS[self.state]
        if new_state not in allowed:
            raise InvalidTransition(f"{self.kind.value}#{self.action_id}: {self.state.value} -> {new_state.value}")
        logger.info(
            "%s#%d %s -> %s", self.kind.value, self.action_id, self.state.value, new_state.value
        )
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: MiniswapError) -> None:
        self.error = error
        self.advance(ActionState.FAILED)

    def request_abandon(self) -> bool:
        """
        Ask the action to stop at its next checkpoint.

        Returns False once the action has reached ``SUBMITTING`` (or finished):
        the remote write can no longer be taken back.
        """
        if self.state not in ABANDONABLE_STATES:
            return False
        self.abandon_requested = True
        return True
