"""Swap request state machine.

Pure functions only: given a swap, an action and the acting user, decide the
next status or raise. Persistence and side effects live in SwapManager.

    pending --accept (recipient)--> accepted --complete (either)--> completed
    pending --reject (recipient)--> rejected
    pending --cancel (requester)--> cancelled
"""
from enum import Enum
from typing import Any, Mapping, NamedTuple, Optional
from uuid import UUID

from common import AuthorizationError, ConflictError


class SwapStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SwapAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"


class SwapRole(str, Enum):
    REQUESTER = "requester"
    RECIPIENT = "recipient"


class SwapPermissionError(AuthorizationError):
    """Raised when the actor may not perform an action on a swap."""
    pass


class SwapStateError(ConflictError):
    """Raised when a swap's status does not allow the action."""
    pass


class Transition(NamedTuple):
    source: SwapStatus
    target: SwapStatus
    actors: frozenset
    forbidden: str
    conflict: str


TRANSITIONS = {
    SwapAction.ACCEPT: Transition(
        SwapStatus.PENDING, SwapStatus.ACCEPTED,
        frozenset({SwapRole.RECIPIENT}),
        "Only the recipient can accept swap requests",
        "Can only accept pending swap requests",
    ),
    SwapAction.REJECT: Transition(
        SwapStatus.PENDING, SwapStatus.REJECTED,
        frozenset({SwapRole.RECIPIENT}),
        "Only the recipient can reject swap requests",
        "Can only reject pending swap requests",
    ),
    SwapAction.CANCEL: Transition(
        SwapStatus.PENDING, SwapStatus.CANCELLED,
        frozenset({SwapRole.REQUESTER}),
        "Only the sender can cancel swap requests",
        "Can only cancel pending swap requests",
    ),
    SwapAction.COMPLETE: Transition(
        SwapStatus.ACCEPTED, SwapStatus.COMPLETED,
        frozenset({SwapRole.REQUESTER, SwapRole.RECIPIENT}),
        "Not authorized to complete this swap",
        "Can only complete accepted swap requests",
    ),
}


def participant_role(swap: Mapping[str, Any], user_id: UUID) -> Optional[SwapRole]:
    """Return the user's role in the swap, or None for outsiders."""
    if swap['from_user_id'] == user_id:
        return SwapRole.REQUESTER
    if swap['to_user_id'] == user_id:
        return SwapRole.RECIPIENT
    return None


def counterparty(swap: Mapping[str, Any], user_id: UUID) -> UUID:
    """Return the other participant's id."""
    return swap['to_user_id'] if swap['from_user_id'] == user_id else swap['from_user_id']


def check_transition(swap: Mapping[str, Any], action: SwapAction, actor_id: UUID) -> SwapStatus:
    """Validate an action against the swap and return the resulting status.

    The actor is checked before the status, so outsiders always get a
    permission error regardless of where the swap is in its lifecycle.

    Raises:
        SwapPermissionError: If the actor may not perform the action
        SwapStateError: If the swap's current status does not allow it
    """
    transition = TRANSITIONS[SwapAction(action)]
    role = participant_role(swap, actor_id)
    if role not in transition.actors:
        raise SwapPermissionError(transition.forbidden)
    if SwapStatus(swap['status']) != transition.source:
        raise SwapStateError(transition.conflict)
    return transition.target


def is_feedback_complete(swap: Mapping[str, Any]) -> bool:
    feedback = swap.get('feedback') or {}
    return feedback.get('from_user') is not None and feedback.get('to_user') is not None
