"""
Domain errors for swap lifecycle and rating operations, and the DRF
exception handler that turns them into typed API responses.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SwapError(Exception):
    """
    Base class for domain failures.

    Every subclass carries a machine-checkable ``kind`` and the HTTP status
    it is surfaced with at the API boundary.
    """

    kind = 'error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The operation could not be completed.'

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def as_dict(self):
        payload = {'kind': self.kind, 'detail': self.message}
        payload.update(self.extra)
        return payload


class NotFoundError(SwapError):
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class AuthorizationError(SwapError):
    kind = 'authorization'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action.'


class InvalidStateError(SwapError):
    kind = 'invalid_state'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This operation is not allowed in the current state.'


class SwapValidationError(SwapError):
    kind = 'validation'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Validation failed.'


class DuplicateRatingError(SwapError):
    kind = 'duplicate_rating'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'You have already rated this swap.'


class NotCompletedError(SwapError):
    kind = 'not_completed'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Can only rate completed swaps.'


class NotParticipantError(SwapError):
    kind = 'not_participant'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You can only rate swaps you participated in.'


def api_exception_handler(exc, context):
    """
    Render ``SwapError`` as ``{"kind": ..., "detail": ...}``.

    Anything else falls through to DRF's default handler.
    """
    if isinstance(exc, SwapError):
        view = context.get('view')
        logger.warning(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: "
            f"{exc.message}"
        )
        return Response(exc.as_dict(), status=exc.status_code)

    return exception_handler(exc, context)
