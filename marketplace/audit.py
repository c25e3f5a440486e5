"""
Activity log writes.

Audit records are written inside a savepoint of the caller's transaction:
they commit together with the operation they describe, but a failed audit
insert is rolled back on its own and never fails the operation.
"""

import logging

from django.db import DatabaseError, transaction

from .models import ActivityLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    if request is None:
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def log_activity(user, action, details=None, target_user=None, target_swap=None, request=None):
    """
    Record one audit entry.

    Args:
        user: acting User
        action: one of ActivityLog.ACTION_CHOICES
        details: JSON-serializable dict
        target_user: optional User the action was aimed at
        target_swap: optional SwapRequest the action concerns
        request: optional HTTP request for IP address and user agent

    Returns:
        ActivityLog or None if the write failed
    """
    user_agent = ''
    if request is not None:
        user_agent = request.META.get('HTTP_USER_AGENT', '')[:255]

    try:
        with transaction.atomic():
            return ActivityLog.objects.create(
                user=user,
                action=action,
                details=details or {},
                target_user=target_user,
                target_swap=target_swap,
                ip_address=get_client_ip(request),
                user_agent=user_agent,
            )
    except (DatabaseError, ValueError, TypeError) as e:
        logger.error(
            f"Failed to write activity log. Action: {action}, "
            f"User ID: {getattr(user, 'id', None)}, Error: {e}",
            exc_info=True
        )
        return None
