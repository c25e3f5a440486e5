"""
Swap lifecycle, rating and moderation operations.

Views call these functions instead of touching models directly. Each
mutating operation runs in one ``transaction.atomic()`` block: status
changes, counters, aggregates and the activity log entry commit together
or not at all.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, F, Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken

from .audit import log_activity
from .exceptions import (
    AuthorizationError,
    DuplicateRatingError,
    InvalidStateError,
    NotCompletedError,
    NotFoundError,
    NotParticipantError,
    SwapValidationError,
)
from .lifecycle import SwapAction, SwapStatus, resolve_transition
from .models import ActivityLog, Rating, Skill, SwapRequest, User
from .validators import SKILL_LEVELS

logger = logging.getLogger(__name__)


AUDIT_ACTIONS = {
    SwapAction.ACCEPT: 'swap_request_accepted',
    SwapAction.REJECT: 'swap_request_rejected',
    SwapAction.CANCEL: 'swap_request_cancelled',
    SwapAction.COMPLETE: 'swap_completed',
}

SWAP_DIRECTIONS = ('all', 'incoming', 'outgoing')

USER_SORT_FIELDS = ('created_at', 'name', 'average_rating', 'completed_swaps')

BAN_REASON_MIN_LENGTH = 10
BAN_REASON_MAX_LENGTH = 500


def _validation_error_from(exc):
    """Convert a Django ValidationError raised by model validation."""
    if hasattr(exc, 'message_dict'):
        fields = {field: list(messages) for field, messages in exc.message_dict.items()}
        first = next(iter(fields.values()), ['Validation failed.'])
        return SwapValidationError(first[0], errors=fields)
    return SwapValidationError(' '.join(exc.messages))


def _lock_users(*user_ids):
    """
    Lock user rows in primary-key order.

    A fixed order keeps two requests that lock the same pair from
    deadlocking each other.
    """
    return list(
        User.objects.select_for_update()
        .filter(pk__in=sorted(set(user_ids)))
        .order_by('pk')
    )


# ============================================================================
# Swap requests
# ============================================================================

def create_swap_request(requester, recipient_id, requested_skill_name, offered_skill_name,
                        message='', scheduled_date=None, request=None):
    """
    Create a pending swap request.

    The skill snapshots are copied from the matching entries of the
    recipient's and requester's offered skills.

    Raises:
        NotFoundError: recipient does not exist
        SwapValidationError: recipient banned, self-request, skill not
            offered, or a pending request already exists for the pair
    """
    with transaction.atomic():
        recipient = User.objects.filter(pk=recipient_id).first()
        if recipient is None:
            raise NotFoundError('Recipient not found.')

        if recipient.is_banned:
            raise SwapValidationError('Cannot send swap request to a banned user.')

        if recipient.pk == requester.pk:
            raise SwapValidationError('You cannot send a swap request to yourself.')

        requested_skill = recipient.offered_skills().filter(
            name__iexact=(requested_skill_name or '').strip()
        ).first()
        if requested_skill is None:
            raise SwapValidationError('Recipient does not offer the requested skill.')

        offered_skill = requester.offered_skills().filter(
            name__iexact=(offered_skill_name or '').strip()
        ).first()
        if offered_skill is None:
            raise SwapValidationError('You do not offer the skill you are offering in exchange.')

        _lock_users(requester.pk, recipient.pk)

        pending_exists = SwapRequest.objects.filter(status=SwapStatus.PENDING).filter(
            Q(requester_id=requester.pk, recipient_id=recipient.pk)
            | Q(requester_id=recipient.pk, recipient_id=requester.pk)
        ).exists()
        if pending_exists:
            raise SwapValidationError('A pending swap request already exists between these users.')

        try:
            swap_request = SwapRequest.objects.create(
                requester=requester,
                recipient=recipient,
                requested_skill=requested_skill.snapshot(),
                offered_skill=offered_skill.snapshot(),
                message=message or '',
                scheduled_date=scheduled_date,
            )
        except DjangoValidationError as e:
            raise _validation_error_from(e)

        log_activity(
            requester,
            'swap_request_created',
            details={
                'requested_skill': requested_skill.name,
                'offered_skill': offered_skill.name,
            },
            target_user=recipient,
            target_swap=swap_request,
            request=request,
        )

    logger.info(
        f"Swap request created. Swap ID: {swap_request.id}, "
        f"Requester ID: {requester.id}, Recipient ID: {recipient.id}, "
        f"Requested: {requested_skill.name}, Offered: {offered_skill.name}"
    )
    return swap_request


def list_swap_requests(user, direction='all', status=None):
    """
    Return the swap requests ``user`` takes part in, newest first.

    ``direction`` is ``incoming`` (user is recipient), ``outgoing`` (user is
    requester) or ``all``.
    """
    if direction not in SWAP_DIRECTIONS:
        raise SwapValidationError(
            f'Invalid direction. Must be one of: {", ".join(SWAP_DIRECTIONS)}.'
        )

    queryset = SwapRequest.objects.select_related('requester', 'recipient')
    if direction == 'incoming':
        queryset = queryset.filter(recipient=user)
    elif direction == 'outgoing':
        queryset = queryset.filter(requester=user)
    else:
        queryset = queryset.filter(Q(requester=user) | Q(recipient=user))

    if status:
        if status not in SwapStatus.values:
            raise SwapValidationError(
                f'Invalid status. Must be one of: {", ".join(SwapStatus.values)}.'
            )
        queryset = queryset.filter(status=status)

    return queryset.order_by('-created_at', '-id')


def get_swap_request(swap_request_id, user):
    """Return a swap request visible to ``user`` (participants only)."""
    swap_request = (
        SwapRequest.objects.select_related('requester', 'recipient')
        .filter(pk=swap_request_id)
        .first()
    )
    if swap_request is None:
        raise NotFoundError('Swap request not found.')

    if not swap_request.is_participant(user.pk):
        raise AuthorizationError('You do not have access to this swap request.')

    return swap_request


def _apply_transition(swap_request_id, action, user, request=None):
    """
    Move a swap request along one edge of the lifecycle table.

    The row is locked, the actor guard and table are checked, and the
    status write is conditional on the status read under the lock. A
    conditional write that matches no row means another request moved the
    swap first.
    """
    with transaction.atomic():
        try:
            swap_request = SwapRequest.objects.select_for_update().get(pk=swap_request_id)
        except SwapRequest.DoesNotExist:
            raise NotFoundError('Swap request not found.')

        transition = resolve_transition(swap_request, action, user.pk)

        now = timezone.now()
        changes = {'status': transition.to_state, 'updated_at': now}
        if transition.to_state == SwapStatus.COMPLETED:
            changes['completed_date'] = now

        updated = SwapRequest.objects.filter(
            pk=swap_request.pk,
            status=transition.from_state,
        ).update(**changes)
        if updated == 0:
            current_status = (
                SwapRequest.objects.filter(pk=swap_request.pk)
                .values_list('status', flat=True)
                .first()
            )
            raise InvalidStateError(
                'Swap request was modified by another request.',
                current_status=current_status,
            )

        if transition.to_state == SwapStatus.COMPLETED:
            User.objects.filter(
                pk__in=[swap_request.requester_id, swap_request.recipient_id]
            ).update(completed_swaps=F('completed_swaps') + 1)

        swap_request.refresh_from_db()

        log_activity(
            user,
            AUDIT_ACTIONS[transition.action],
            details={
                'requested_skill': swap_request.requested_skill.get('name'),
                'offered_skill': swap_request.offered_skill.get('name'),
                'from_status': transition.from_state,
                'to_status': transition.to_state,
            },
            target_user=User.objects.get(pk=swap_request.other_participant_id(user.pk)),
            target_swap=swap_request,
            request=request,
        )

    logger.info(
        f"Swap request status updated. Swap ID: {swap_request.id}, "
        f"Old Status: {transition.from_state}, New Status: {transition.to_state}, "
        f"User ID: {user.id}"
    )
    return swap_request


def accept_swap_request(swap_request_id, user, request=None):
    return _apply_transition(swap_request_id, SwapAction.ACCEPT, user, request=request)


def reject_swap_request(swap_request_id, user, request=None):
    return _apply_transition(swap_request_id, SwapAction.REJECT, user, request=request)


def cancel_swap_request(swap_request_id, user, request=None):
    return _apply_transition(swap_request_id, SwapAction.CANCEL, user, request=request)


def complete_swap_request(swap_request_id, user, request=None):
    """Complete an accepted swap; both participants' completed_swaps go up by one."""
    return _apply_transition(swap_request_id, SwapAction.COMPLETE, user, request=request)


# ============================================================================
# Ratings
# ============================================================================

def round_rating(value):
    """Round a mean rating half-up to one decimal; no ratings means 0.0."""
    if value is None:
        return Decimal('0.0')
    return Decimal(str(value)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)


def recompute_user_rating(user_id):
    """
    Recompute a user's average_rating and total_ratings from all ratings
    they received, under a lock on the user row.

    Returns:
        tuple: (average_rating, total_ratings)
    """
    with transaction.atomic():
        _lock_users(user_id)

        stats = Rating.objects.filter(rated_user_id=user_id).aggregate(
            avg_rating=Avg('rating'),
            total=Count('id'),
        )
        average = round_rating(stats['avg_rating'])
        total = stats['total'] or 0

        # update() skips User.save() validation for a pure aggregate write
        User.objects.filter(pk=user_id).update(
            average_rating=average,
            total_ratings=total,
        )

    return average, total


def can_rate(swap_request_id, user_id):
    """
    True if the swap exists, is completed, ``user_id`` took part in it and
    has not rated it yet.
    """
    swap_request = SwapRequest.objects.filter(pk=swap_request_id).first()
    if swap_request is None:
        return False
    if swap_request.status != SwapStatus.COMPLETED:
        return False
    if not swap_request.is_participant(user_id):
        return False
    return not Rating.objects.filter(swap_request=swap_request, rater_id=user_id).exists()


def _received_skill(swap_request, rater_id):
    """The {name, level} of the skill the rater received in the swap."""
    if rater_id == swap_request.requester_id:
        skill = swap_request.requested_skill
    else:
        skill = swap_request.offered_skill
    return {'name': skill.get('name'), 'level': skill.get('level')}


def _validate_rating_value(value):
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise SwapValidationError('Rating must be an integer between 1 and 5.')


def _validate_comment(comment):
    if comment is not None and len(comment) > 500:
        raise SwapValidationError('Comment cannot exceed 500 characters.')


def submit_rating(swap_request_id, rater, rating, skill_rated=None, comment='', request=None):
    """
    Rate the other participant of a completed swap.

    The (swap_request, rater) unique constraint decides duplicates; the
    insert runs in a savepoint so a constraint violation leaves the outer
    transaction usable.

    Raises:
        NotFoundError: swap request does not exist
        NotCompletedError: swap is not completed
        NotParticipantError: rater did not take part in the swap
        DuplicateRatingError: rater already rated this swap
        SwapValidationError: rating value, comment or skill snapshot invalid
    """
    _validate_rating_value(rating)
    _validate_comment(comment)

    with transaction.atomic():
        try:
            swap_request = SwapRequest.objects.select_for_update().get(pk=swap_request_id)
        except SwapRequest.DoesNotExist:
            raise NotFoundError('Swap request not found.')

        if swap_request.status != SwapStatus.COMPLETED:
            raise NotCompletedError()

        if not swap_request.is_participant(rater.pk):
            raise NotParticipantError()

        rated_user_id = swap_request.other_participant_id(rater.pk)

        try:
            with transaction.atomic():
                rating_obj = Rating.objects.create(
                    swap_request=swap_request,
                    rater=rater,
                    rated_user_id=rated_user_id,
                    rating=rating,
                    comment=comment or '',
                    skill_rated=skill_rated or _received_skill(swap_request, rater.pk),
                )
        except IntegrityError:
            raise DuplicateRatingError()
        except DjangoValidationError as e:
            raise _validation_error_from(e)

        SwapRequest.objects.filter(pk=swap_request.pk).update(
            is_rated=True,
            updated_at=timezone.now(),
        )

        log_activity(
            rater,
            'rating_given',
            details={
                'rating': rating,
                'skill_rated': rating_obj.skill_rated.get('name'),
            },
            target_user=rating_obj.rated_user,
            target_swap=swap_request,
            request=request,
        )

    logger.info(
        f"Rating submitted. Rating ID: {rating_obj.id}, Swap ID: {swap_request.id}, "
        f"Rater ID: {rater.id}, Rated User ID: {rated_user_id}, Rating: {rating}"
    )
    return Rating.objects.select_related('rater', 'rated_user', 'swap_request').get(pk=rating_obj.pk)


def _get_own_rating_for_update(rating_id, user, verb):
    try:
        rating_obj = Rating.objects.select_for_update().get(pk=rating_id)
    except Rating.DoesNotExist:
        raise NotFoundError('Rating not found.')

    if rating_obj.rater_id != user.pk:
        raise AuthorizationError(f'You can only {verb} your own ratings.')
    return rating_obj


def update_rating(rating_id, user, rating=None, comment=None, request=None):
    """Change the value and/or comment of the caller's own rating."""
    if rating is not None:
        _validate_rating_value(rating)
    _validate_comment(comment)

    with transaction.atomic():
        rating_obj = _get_own_rating_for_update(rating_id, user, 'update')

        old_rating = rating_obj.rating
        update_fields = ['updated_at']
        if rating is not None:
            rating_obj.rating = rating
            update_fields.append('rating')
        if comment is not None:
            rating_obj.comment = comment
            update_fields.append('comment')

        rating_obj.save(update_fields=update_fields)

        log_activity(
            user,
            'rating_updated',
            details={'old_rating': old_rating, 'new_rating': rating_obj.rating},
            target_user=rating_obj.rated_user,
            target_swap=rating_obj.swap_request,
            request=request,
        )

    logger.info(
        f"Rating updated. Rating ID: {rating_obj.id}, User ID: {user.id}, "
        f"Old Rating: {old_rating}, New Rating: {rating_obj.rating}"
    )
    return Rating.objects.select_related('rater', 'rated_user', 'swap_request').get(pk=rating_obj.pk)


def delete_rating(rating_id, user, request=None):
    """
    Delete the caller's own rating.

    The swap's is_rated flag is re-derived from the ratings that remain.
    """
    with transaction.atomic():
        rating_obj = _get_own_rating_for_update(rating_id, user, 'delete')

        swap_request = rating_obj.swap_request
        rated_user = rating_obj.rated_user
        deleted_id = rating_obj.id
        value = rating_obj.rating

        rating_obj.delete()

        remaining = Rating.objects.filter(swap_request=swap_request).exists()
        SwapRequest.objects.filter(pk=swap_request.pk).update(
            is_rated=remaining,
            updated_at=timezone.now(),
        )

        log_activity(
            user,
            'rating_deleted',
            details={'rating_id': deleted_id, 'rating': value},
            target_user=rated_user,
            target_swap=swap_request,
            request=request,
        )

    logger.info(
        f"Rating deleted. Rating ID: {deleted_id}, User ID: {user.id}, "
        f"Rated User ID: {rated_user.id}"
    )


def get_rating(rating_id, user):
    """Return a rating visible to its rater or rated user."""
    rating_obj = (
        Rating.objects.select_related('rater', 'rated_user', 'swap_request')
        .filter(pk=rating_id)
        .first()
    )
    if rating_obj is None:
        raise NotFoundError('Rating not found.')

    if user.pk not in (rating_obj.rater_id, rating_obj.rated_user_id):
        raise AuthorizationError('Access denied.')

    return rating_obj


def list_ratings_for_user(user_id):
    """
    Ratings received by a user, newest first.

    Returns:
        tuple: (user, queryset)
    """
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFoundError('User not found.')

    ratings = (
        Rating.objects.filter(rated_user=user)
        .select_related('rater', 'rated_user', 'swap_request')
        .order_by('-created_at', '-id')
    )
    return user, ratings


def list_my_ratings(user):
    """Ratings given by ``user``, newest first."""
    return (
        Rating.objects.filter(rater=user)
        .select_related('rater', 'rated_user', 'swap_request')
        .order_by('-created_at', '-id')
    )


# ============================================================================
# Users and skills
# ============================================================================

def list_public_users(location=None, skill=None, availability=None,
                      sort_by='created_at', sort_order='desc', exclude_user=None):
    """
    Public, non-banned profiles with optional filters.

    ``skill`` matches offered or wanted skill names case-insensitively.
    """
    queryset = User.objects.filter(is_profile_public=True, is_banned=False, is_active=True)

    if exclude_user is not None:
        queryset = queryset.exclude(pk=exclude_user.pk)

    if location:
        queryset = queryset.filter(location__icontains=location.strip())

    if availability:
        valid = [choice for choice, _label in User.AVAILABILITY_CHOICES]
        if availability not in valid:
            raise SwapValidationError(
                f'Invalid availability. Must be one of: {", ".join(valid)}.'
            )
        queryset = queryset.filter(availability=availability)

    if skill:
        queryset = queryset.filter(skills__name__icontains=skill.strip()).distinct()

    if sort_by not in USER_SORT_FIELDS:
        raise SwapValidationError(
            f'Invalid sort field. Must be one of: {", ".join(USER_SORT_FIELDS)}.'
        )
    if sort_order not in ('asc', 'desc'):
        raise SwapValidationError('Invalid sort order. Must be "asc" or "desc".')

    prefix = '-' if sort_order == 'desc' else ''
    return queryset.prefetch_related('skills').order_by(f'{prefix}{sort_by}', f'{prefix}id')


def get_user_profile(user_id, viewer):
    """
    Return a user's profile.

    Private profiles are visible only to their owner and to staff.
    """
    user = User.objects.prefetch_related('skills').filter(pk=user_id).first()
    if user is None:
        raise NotFoundError('User not found.')

    is_owner = viewer is not None and viewer.is_authenticated and viewer.pk == user.pk
    is_staff = viewer is not None and viewer.is_authenticated and viewer.is_staff
    if not user.is_profile_public and not (is_owner or is_staff):
        raise AuthorizationError('This profile is private.')

    return user


def update_profile(user, changes, request=None):
    """Apply validated profile changes and record a profile_update entry."""
    with transaction.atomic():
        for field, value in changes.items():
            setattr(user, field, value)
        try:
            user.save()
        except DjangoValidationError as e:
            raise _validation_error_from(e)

        log_activity(
            user,
            'profile_update',
            details={'fields': sorted(changes.keys())},
            request=request,
        )

    logger.info(
        f"Profile updated. User ID: {user.id}, Fields: {', '.join(sorted(changes.keys()))}"
    )
    return user


def _check_side(side):
    valid = [choice for choice, _label in Skill.SIDE_CHOICES]
    if side not in valid:
        raise SwapValidationError(f'Invalid skill type. Must be one of: {", ".join(valid)}.')


def add_skill(user, side, name, description, level='intermediate'):
    """
    Add an offered or wanted skill.

    Raises:
        SwapValidationError: invalid fields or a case-insensitive duplicate
            on the same side
    """
    _check_side(side)
    if level not in SKILL_LEVELS:
        raise SwapValidationError(
            f'Invalid skill level. Must be one of: {", ".join(SKILL_LEVELS)}.'
        )

    try:
        with transaction.atomic():
            skill = Skill.objects.create(
                user=user,
                side=side,
                name=name,
                description=description,
                level=level,
            )
    except DjangoValidationError as e:
        raise _validation_error_from(e)
    except IntegrityError:
        raise SwapValidationError(f'Skill already exists in your {side} skills.')

    logger.info(f"Skill added. User ID: {user.id}, Side: {side}, Name: {skill.name}")
    return skill


def remove_skill(user, side, skill_id):
    _check_side(side)
    deleted, _ = Skill.objects.filter(pk=skill_id, user=user, side=side).delete()
    if not deleted:
        raise NotFoundError('Skill not found.')
    logger.info(f"Skill removed. User ID: {user.id}, Side: {side}, Skill ID: {skill_id}")


def user_stats(user):
    """Summary counters for the caller's dashboard."""
    skill_counts = user.skills.aggregate(
        offered=Count('id', filter=Q(side=Skill.SIDE_OFFERED)),
        wanted=Count('id', filter=Q(side=Skill.SIDE_WANTED)),
    )
    user.refresh_from_db(fields=['average_rating', 'total_ratings', 'completed_swaps'])
    return {
        'skills_offered': skill_counts['offered'],
        'skills_wanted': skill_counts['wanted'],
        'average_rating': user.average_rating,
        'total_ratings': user.total_ratings,
        'completed_swaps': user.completed_swaps,
        'member_since': user.created_at,
    }


# ============================================================================
# Administration
# ============================================================================

def dashboard_stats():
    """Counts for the administration dashboard."""
    now = timezone.now()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    users = User.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(is_banned=False)),
        banned=Count('id', filter=Q(is_banned=True)),
        new_this_month=Count('id', filter=Q(created_at__gte=month_start)),
    )
    swaps = SwapRequest.objects.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status=SwapStatus.PENDING)),
        completed=Count('id', filter=Q(status=SwapStatus.COMPLETED)),
        this_month=Count('id', filter=Q(created_at__gte=month_start)),
    )
    activity = {
        row['action']: row['count']
        for row in ActivityLog.objects.values('action').annotate(count=Count('id')).order_by('action')
    }
    recent = list(
        ActivityLog.objects.select_related('user', 'target_user')
        .order_by('-created_at', '-id')[:10]
    )

    return {
        'users': users,
        'swaps': swaps,
        'activity_by_action': activity,
        'recent_activity': recent,
    }


def list_users_for_admin(search=None, is_banned=None):
    queryset = User.objects.all()
    if search:
        search = search.strip()
        queryset = queryset.filter(
            Q(name__icontains=search)
            | Q(email__icontains=search)
            | Q(location__icontains=search)
        )
    if is_banned is not None:
        queryset = queryset.filter(is_banned=is_banned)
    return queryset.order_by('-created_at', '-id')


def _blacklist_user_tokens(user):
    """Blacklist every outstanding refresh token of ``user``."""
    count = 0
    for token in OutstandingToken.objects.filter(user=user):
        _, created = BlacklistedToken.objects.get_or_create(token=token)
        if created:
            count += 1
    return count


def ban_user(admin, user_id, reason, request=None):
    """
    Ban a user and revoke their refresh tokens.

    Raises:
        NotFoundError: user does not exist
        SwapValidationError: target is staff or reason length is invalid
    """
    reason = (reason or '').strip()
    if not BAN_REASON_MIN_LENGTH <= len(reason) <= BAN_REASON_MAX_LENGTH:
        raise SwapValidationError(
            f'Ban reason must be between {BAN_REASON_MIN_LENGTH} and '
            f'{BAN_REASON_MAX_LENGTH} characters.'
        )

    with transaction.atomic():
        target = User.objects.select_for_update().filter(pk=user_id).first()
        if target is None:
            raise NotFoundError('User not found.')

        if target.is_staff:
            raise SwapValidationError('Cannot ban admin users.')

        User.objects.filter(pk=target.pk).update(
            is_banned=True,
            ban_reason=reason,
            updated_at=timezone.now(),
        )
        revoked = _blacklist_user_tokens(target)
        target.refresh_from_db()

        log_activity(
            admin,
            'user_banned',
            details={'banned_user_id': target.id, 'ban_reason': reason},
            target_user=target,
            request=request,
        )

    logger.info(
        f"User banned. Target User ID: {target.id}, Admin ID: {admin.id}, "
        f"Tokens revoked: {revoked}"
    )
    return target


def unban_user(admin, user_id, request=None):
    with transaction.atomic():
        target = User.objects.select_for_update().filter(pk=user_id).first()
        if target is None:
            raise NotFoundError('User not found.')

        User.objects.filter(pk=target.pk).update(
            is_banned=False,
            ban_reason='',
            updated_at=timezone.now(),
        )
        target.refresh_from_db()

        log_activity(
            admin,
            'user_unbanned',
            details={'unbanned_user_id': target.id},
            target_user=target,
            request=request,
        )

    logger.info(f"User unbanned. Target User ID: {target.id}, Admin ID: {admin.id}")
    return target


def list_all_swaps(status=None):
    queryset = SwapRequest.objects.select_related('requester', 'recipient')
    if status:
        if status not in SwapStatus.values:
            raise SwapValidationError(
                f'Invalid status. Must be one of: {", ".join(SwapStatus.values)}.'
            )
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at', '-id')


def _parse_date_bound(value, name):
    """
    Parse a date-range bound.

    A bare YYYY-MM-DD stays a date so the whole day is included; anything
    else must be an ISO 8601 datetime and is made timezone-aware.
    """
    error = SwapValidationError(f'Invalid {name}. Use YYYY-MM-DD or an ISO 8601 datetime.')
    try:
        day = parse_date(value)
        if day is not None:
            return day
        parsed = parse_datetime(value)
    except ValueError:
        raise error
    if parsed is None:
        raise error
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def list_activity_logs(action=None, user_id=None, start_date=None, end_date=None):
    """
    Activity log entries, newest first.

    Date bounds accept a date (whole day, inclusive) or an ISO datetime.
    """
    queryset = ActivityLog.objects.select_related('user', 'target_user', 'target_swap')

    if action:
        valid = [choice for choice, _label in ActivityLog.ACTION_CHOICES]
        if action not in valid:
            raise SwapValidationError(f'Invalid action. Must be one of: {", ".join(valid)}.')
        queryset = queryset.filter(action=action)

    if user_id:
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise SwapValidationError('Invalid user_id.')
        queryset = queryset.filter(user_id=user_id)

    if start_date:
        bound = _parse_date_bound(start_date, 'start_date')
        if hasattr(bound, 'hour'):
            queryset = queryset.filter(created_at__gte=bound)
        else:
            queryset = queryset.filter(created_at__date__gte=bound)

    if end_date:
        bound = _parse_date_bound(end_date, 'end_date')
        if hasattr(bound, 'hour'):
            queryset = queryset.filter(created_at__lte=bound)
        else:
            queryset = queryset.filter(created_at__date__lte=bound)

    return queryset.order_by('-created_at', '-id')


def moderate_skill(admin, user_id, side, skill_id, action, changes=None, request=None):
    """
    Remove or update one of a user's skills.

    Args:
        action: ``remove`` or ``update``
        changes: for ``update``, any of name, description, level

    Returns:
        Skill for ``update``, None for ``remove``
    """
    if action not in ('remove', 'update'):
        raise SwapValidationError('Invalid action. Must be "remove" or "update".')
    _check_side(side)

    with transaction.atomic():
        target = User.objects.filter(pk=user_id).first()
        if target is None:
            raise NotFoundError('User not found.')

        skill = Skill.objects.select_for_update().filter(pk=skill_id, user=target, side=side).first()
        if skill is None:
            raise NotFoundError('Skill not found.')

        details = {
            'moderation': action,
            'side': side,
            'skill_id': skill.id,
            'skill_name': skill.name,
        }

        if action == 'remove':
            skill.delete()
            result = None
        else:
            changes = changes or {}
            if 'level' in changes and changes['level'] not in SKILL_LEVELS:
                raise SwapValidationError(
                    f'Invalid skill level. Must be one of: {", ".join(SKILL_LEVELS)}.'
                )
            for field in ('name', 'description', 'level'):
                if field in changes:
                    setattr(skill, field, changes[field])
            try:
                with transaction.atomic():
                    skill.save()
            except DjangoValidationError as e:
                raise _validation_error_from(e)
            except IntegrityError:
                raise SwapValidationError(f'Skill already exists in the {side} skills of this user.')
            details['changes'] = {k: v for k, v in changes.items() if k in ('name', 'description', 'level')}
            result = skill

        log_activity(
            admin,
            'admin_action',
            details=details,
            target_user=target,
            request=request,
        )

    logger.info(
        f"Skill moderated. Action: {action}, Target User ID: {target.id}, "
        f"Skill ID: {skill_id}, Admin ID: {admin.id}"
    )
    return result
