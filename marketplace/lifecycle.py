"""
Swap request lifecycle.

The lifecycle is a transition table: every legal move is one
``Transition(from_state, action, to_state, guard)`` entry, and every
status change in the application goes through ``resolve_transition``.

    pending  --accept-->   accepted   (recipient)
    pending  --reject-->   rejected   (recipient)
    pending  --cancel-->   cancelled  (requester)
    accepted --complete--> completed  (either participant)

rejected, cancelled and completed are terminal.
"""

from collections import namedtuple

from django.db import models
from django.utils.translation import gettext_lazy as _

from .exceptions import AuthorizationError, InvalidStateError


class SwapStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    ACCEPTED = 'accepted', _('Accepted')
    REJECTED = 'rejected', _('Rejected')
    CANCELLED = 'cancelled', _('Cancelled')
    COMPLETED = 'completed', _('Completed')


class SwapAction(models.TextChoices):
    ACCEPT = 'accept', _('Accept')
    REJECT = 'reject', _('Reject')
    CANCEL = 'cancel', _('Cancel')
    COMPLETE = 'complete', _('Complete')


# Guards name the participant role allowed to fire a transition.
RECIPIENT = 'recipient'
REQUESTER = 'requester'
PARTICIPANT = 'participant'

Transition = namedtuple('Transition', ['from_state', 'action', 'to_state', 'guard'])

TRANSITIONS = (
    Transition(SwapStatus.PENDING, SwapAction.ACCEPT, SwapStatus.ACCEPTED, RECIPIENT),
    Transition(SwapStatus.PENDING, SwapAction.REJECT, SwapStatus.REJECTED, RECIPIENT),
    Transition(SwapStatus.PENDING, SwapAction.CANCEL, SwapStatus.CANCELLED, REQUESTER),
    Transition(SwapStatus.ACCEPTED, SwapAction.COMPLETE, SwapStatus.COMPLETED, PARTICIPANT),
)

TERMINAL_STATES = frozenset({
    SwapStatus.REJECTED,
    SwapStatus.CANCELLED,
    SwapStatus.COMPLETED,
})

ACTIVE_STATES = frozenset({SwapStatus.PENDING, SwapStatus.ACCEPTED})

_TABLE = {(t.from_state, t.action): t for t in TRANSITIONS}
_EDGES = {(t.from_state, t.to_state) for t in TRANSITIONS}

_GUARD_MESSAGES = {
    RECIPIENT: 'Only the recipient can {action} a swap request.',
    REQUESTER: 'Only the requester can {action} a swap request.',
    PARTICIPANT: 'Only participants of this swap can {action} it.',
}

_STATE_MESSAGES = {
    SwapAction.ACCEPT: 'Swap request is no longer pending.',
    SwapAction.REJECT: 'Swap request is no longer pending.',
    SwapAction.CANCEL: 'Swap request is no longer pending.',
    SwapAction.COMPLETE: 'Swap request must be accepted before it can be completed.',
}


def transitions_for(action):
    """Return the table entries that fire on ``action``."""
    return [t for t in TRANSITIONS if t.action == action]


def is_allowed_edge(from_state, to_state):
    """True if the table contains an edge from ``from_state`` to ``to_state``."""
    if from_state == to_state:
        return True
    return (from_state, to_state) in _EDGES


def guard_allows(guard, swap_request, user_id):
    if guard == RECIPIENT:
        return swap_request.recipient_id == user_id
    if guard == REQUESTER:
        return swap_request.requester_id == user_id
    if guard == PARTICIPANT:
        return user_id in (swap_request.requester_id, swap_request.recipient_id)
    return False


def resolve_transition(swap_request, action, user_id):
    """
    Look up the transition for ``action`` from the request's current status.

    The actor guard is checked before the state so that non-participants
    learn nothing about a swap's status.

    Args:
        swap_request: SwapRequest instance (current status)
        action: SwapAction value
        user_id: primary key of the acting user

    Returns:
        Transition: the matching table entry

    Raises:
        AuthorizationError: if the actor does not satisfy the guard
        InvalidStateError: if the table has no entry for (status, action)
    """
    candidates = transitions_for(action)
    if not candidates:
        raise InvalidStateError(f'Unknown swap action "{action}".')

    guard = candidates[0].guard
    if not guard_allows(guard, swap_request, user_id):
        raise AuthorizationError(
            _GUARD_MESSAGES[guard].format(action=SwapAction(action).value)
        )

    transition = _TABLE.get((swap_request.status, action))
    if transition is None:
        raise InvalidStateError(
            _STATE_MESSAGES.get(action, 'Invalid swap transition.'),
            current_status=swap_request.status,
        )
    return transition
