"""
Models for the SkillSwap marketplace.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import (
    MaxLengthValidator,
    MaxValueValidator,
    MinLengthValidator,
    MinValueValidator,
)
from django.db import models
from django.db.models.functions import Lower
from django.utils.translation import gettext_lazy as _

from .lifecycle import ACTIVE_STATES, SwapStatus, is_allowed_edge
from .validators import (
    SKILL_DESCRIPTION_MAX_LENGTH,
    SKILL_DESCRIPTION_MIN_LENGTH,
    SKILL_LEVELS,
    SKILL_NAME_MAX_LENGTH,
    SKILL_NAME_MIN_LENGTH,
    validate_profile_image,
    validate_rated_skill,
    validate_skill_snapshot,
)


SKILL_LEVEL_CHOICES = [(level, level.title()) for level in SKILL_LEVELS]


def user_profile_image_upload_path(instance, filename):
    """
    Generate upload path for user profile images.

    Path format: profile_images/{user_id}/{filename}
    If user_id is not yet available (user not saved), uses 'temp' as placeholder.
    """
    user_id = instance.id if instance.id else 'temp'
    return f'profile_images/{user_id}/{filename}'


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - name: Display name shown on public profiles
    - location: Free-text location
    - availability: When the user is available for swaps
    - profile_image: Optional profile picture
    - is_profile_public: Whether the profile appears in public listings
    - is_banned / ban_reason: Moderation state set by administrators
    - average_rating / total_ratings: Recomputed from ratings received
    - completed_swaps: Number of swaps this user has completed
    """

    AVAILABILITY_CHOICES = [
        ('weekdays', 'Weekdays'),
        ('weekends', 'Weekends'),
        ('evenings', 'Evenings'),
        ('flexible', 'Flexible'),
        ('not-available', 'Not Available'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    name = models.CharField(
        _('name'),
        max_length=50,
        blank=True,
        default='',
        help_text=_('Display name shown to other users.')
    )

    location = models.CharField(
        _('location'),
        max_length=100,
        blank=True,
        default='',
        help_text=_('City or region where the user is based.')
    )

    availability = models.CharField(
        _('availability'),
        max_length=20,
        choices=AVAILABILITY_CHOICES,
        default='flexible',
        help_text=_('When the user is available for skill swaps.')
    )

    profile_image = models.ImageField(
        _('profile image'),
        upload_to=user_profile_image_upload_path,
        blank=True,
        null=True,
        validators=[validate_profile_image],
        help_text=_('Optional. Upload a profile picture (max 5MB, formats: jpg, png, gif).')
    )

    is_profile_public = models.BooleanField(
        _('public profile'),
        default=True,
        help_text=_('Whether the profile appears in public listings.')
    )

    is_banned = models.BooleanField(
        _('banned'),
        default=False,
        help_text=_('Banned users cannot use the API or receive swap requests.')
    )

    ban_reason = models.CharField(
        _('ban reason'),
        max_length=500,
        blank=True,
        default='',
    )

    average_rating = models.DecimalField(
        _('average rating'),
        max_digits=2,
        decimal_places=1,
        default=Decimal('0.0'),
        validators=[
            MinValueValidator(Decimal('0.0'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.0'), message=_('Rating cannot exceed 5.0.'))
        ],
        help_text=_('Mean of all ratings received, rounded to one decimal.')
    )

    total_ratings = models.PositiveIntegerField(
        _('total ratings'),
        default=0,
        help_text=_('Number of ratings received.')
    )

    completed_swaps = models.PositiveIntegerField(
        _('completed swaps'),
        default=0,
        help_text=_('Number of swaps completed.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='mkt_user_email_idx'),
            models.Index(fields=['location'], name='mkt_user_location_idx'),
            models.Index(fields=['is_banned'], name='mkt_user_banned_idx'),
        ]

    def __str__(self):
        return self.email or self.username

    @property
    def display_name(self):
        return self.name or self.username

    def offered_skills(self):
        return self.skills.filter(side=Skill.SIDE_OFFERED)

    def wanted_skills(self):
        return self.skills.filter(side=Skill.SIDE_WANTED)

    def offers_skill(self, name):
        """Case-insensitive check against the user's offered skills."""
        if not name:
            return False
        return self.offered_skills().filter(name__iexact=name.strip()).exists()

    def clean(self):
        super().clean()

        # Normalize email to lowercase for case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """
        Normalize the email and validate on update.

        Creation skips full_clean so that duplicate emails surface as
        IntegrityError from the database.
        """
        if self.email:
            self.email = self.email.lower()

        if self.pk is not None:
            self.full_clean()

        super().save(*args, **kwargs)


class Skill(models.Model):
    """
    A skill listed by a user, either offered or wanted.

    Names are unique per (user, side), compared case-insensitively.
    """

    SIDE_OFFERED = 'offered'
    SIDE_WANTED = 'wanted'
    SIDE_CHOICES = [
        (SIDE_OFFERED, 'Offered'),
        (SIDE_WANTED, 'Wanted'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='skills',
    )

    side = models.CharField(
        _('side'),
        max_length=10,
        choices=SIDE_CHOICES,
    )

    name = models.CharField(
        _('name'),
        max_length=SKILL_NAME_MAX_LENGTH,
        validators=[MinLengthValidator(SKILL_NAME_MIN_LENGTH)],
    )

    description = models.TextField(
        _('description'),
        validators=[
            MinLengthValidator(SKILL_DESCRIPTION_MIN_LENGTH),
            MaxLengthValidator(SKILL_DESCRIPTION_MAX_LENGTH),
        ],
    )

    level = models.CharField(
        _('level'),
        max_length=20,
        choices=SKILL_LEVEL_CHOICES,
        default='intermediate',
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    class Meta:
        verbose_name = _('skill')
        verbose_name_plural = _('skills')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['user', 'side'], name='mkt_skill_user_side_idx'),
            models.Index(fields=['name'], name='mkt_skill_name_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                Lower('name'),
                'user',
                'side',
                name='unique_skill_name_per_side',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.side})"

    def clean(self):
        super().clean()

        if self.name:
            self.name = self.name.strip()
        if self.description:
            self.description = self.description.strip()

        if self.user_id and self.name:
            duplicates = Skill.objects.filter(
                user_id=self.user_id,
                side=self.side,
                name__iexact=self.name,
            )
            if self.pk:
                duplicates = duplicates.exclude(pk=self.pk)
            if duplicates.exists():
                raise ValidationError({
                    'name': _('Skill already exists in your %(side)s skills.') % {'side': self.side}
                })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def snapshot(self):
        """Copy of this skill for embedding in a swap request."""
        return {
            'name': self.name,
            'description': self.description,
            'level': self.level,
        }


class SwapRequest(models.Model):
    """
    A proposed exchange of one user's skill for another's.

    Status changes follow the table in ``marketplace.lifecycle``; the skill
    fields are snapshots taken at creation and do not follow later edits of
    either user's skill list.
    """

    requester = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='swaps_requested',
    )

    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='swaps_received',
    )

    requested_skill = models.JSONField(
        _('requested skill'),
        validators=[validate_skill_snapshot],
        help_text=_('Snapshot of the recipient skill being requested.')
    )

    offered_skill = models.JSONField(
        _('offered skill'),
        validators=[validate_skill_snapshot],
        help_text=_('Snapshot of the requester skill offered in return.')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=SwapStatus.choices,
        default=SwapStatus.PENDING,
    )

    message = models.TextField(
        _('message'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(1000)],
    )

    scheduled_date = models.DateTimeField(
        _('scheduled date'),
        null=True,
        blank=True,
    )

    completed_date = models.DateTimeField(
        _('completed date'),
        null=True,
        blank=True,
    )

    is_rated = models.BooleanField(
        _('rated'),
        default=False,
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
    )

    class Meta:
        verbose_name = _('swap request')
        verbose_name_plural = _('swap requests')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['requester', 'status'], name='mkt_swap_requester_status_idx'),
            models.Index(fields=['recipient', 'status'], name='mkt_swap_recipient_status_idx'),
            models.Index(fields=['status'], name='mkt_swap_status_idx'),
            models.Index(fields=['created_at'], name='mkt_swap_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(requester=models.F('recipient')),
                name='swap_requester_differs_from_recipient',
            ),
        ]

    def __str__(self):
        return (
            f"Swap #{self.pk}: {self.requested_skill.get('name')} for "
            f"{self.offered_skill.get('name')} ({self.status})"
        )

    @property
    def is_active(self):
        return self.status in ACTIVE_STATES

    def is_participant(self, user_id):
        return user_id in (self.requester_id, self.recipient_id)

    def other_participant_id(self, user_id):
        """Return the id of the participant who is not ``user_id``."""
        if user_id == self.requester_id:
            return self.recipient_id
        if user_id == self.recipient_id:
            return self.requester_id
        return None

    def clean(self):
        """
        Validate participants and status changes.

        Status changes made through ``save()`` must follow an edge of the
        lifecycle table, the same as the service-level transitions.
        """
        super().clean()

        if self.requester_id and self.recipient_id and self.requester_id == self.recipient_id:
            raise ValidationError({
                'recipient': _('You cannot send a swap request to yourself.')
            })

        if self.pk is not None:
            old_status = (
                SwapRequest.objects.filter(pk=self.pk)
                .values_list('status', flat=True)
                .first()
            )
            if old_status is not None and not is_allowed_edge(old_status, self.status):
                raise ValidationError({
                    'status': _('Invalid status transition from %(old)s to %(new)s.') % {
                        'old': old_status,
                        'new': self.status,
                    }
                })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Rating(models.Model):
    """
    A rating one participant gives the other after a completed swap.

    The (swap_request, rater) pair is unique at the database level, so
    concurrent duplicate submissions fail with IntegrityError.
    """

    swap_request = models.ForeignKey(
        SwapRequest,
        on_delete=models.CASCADE,
        related_name='ratings',
    )

    rater = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='ratings_given',
    )

    rated_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='ratings_received',
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
    )

    comment = models.TextField(
        _('comment'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(500)],
    )

    skill_rated = models.JSONField(
        _('skill rated'),
        validators=[validate_rated_skill],
        help_text=_('Snapshot {name, level} of the skill being rated.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
    )

    class Meta:
        verbose_name = _('rating')
        verbose_name_plural = _('ratings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['rater', 'rated_user'], name='mkt_rating_rater_rated_idx'),
            models.Index(fields=['rated_user'], name='mkt_rating_rated_user_idx'),
            models.Index(fields=['created_at'], name='mkt_rating_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['swap_request', 'rater'],
                name='unique_rating_per_swap_and_rater',
            ),
        ]

    def __str__(self):
        return f"Rating by {self.rater_id} for {self.rated_user_id} - {self.rating}★"

    def _validate_participation(self):
        if self.rater_id and self.rated_user_id and self.rater_id == self.rated_user_id:
            raise ValidationError({
                'rated_user': _('You cannot rate yourself.')
            })

        if not self.swap_request_id:
            return

        swap = self.swap_request
        current_status = (
            SwapRequest.objects.filter(pk=self.swap_request_id)
            .values_list('status', flat=True)
            .first()
        )
        if current_status != SwapStatus.COMPLETED:
            raise ValidationError({
                'swap_request': _('Only completed swaps can be rated.')
            })

        if self.rater_id and not swap.is_participant(self.rater_id):
            raise ValidationError({
                'rater': _('Rater must be a participant of the swap.')
            })

        if self.rater_id and self.rated_user_id:
            if self.rated_user_id != swap.other_participant_id(self.rater_id):
                raise ValidationError({
                    'rated_user': _('Rated user must be the other participant of the swap.')
                })

    def clean(self):
        super().clean()
        self._validate_participation()

    def save(self, *args, **kwargs):
        """
        Validate swap participation on creation.

        full_clean() is not called here so that the (swap_request, rater)
        unique constraint raises IntegrityError from the database.
        """
        if not self.pk:
            self._validate_participation()
            validate_rated_skill(self.skill_rated)
        super().save(*args, **kwargs)


class ActivityLog(models.Model):
    """
    Audit record written for swap transitions, ratings and admin actions.
    """

    ACTION_CHOICES = [
        ('register', 'Register'),
        ('profile_update', 'Profile Update'),
        ('swap_request_created', 'Swap Request Created'),
        ('swap_request_accepted', 'Swap Request Accepted'),
        ('swap_request_rejected', 'Swap Request Rejected'),
        ('swap_request_cancelled', 'Swap Request Cancelled'),
        ('swap_completed', 'Swap Completed'),
        ('rating_given', 'Rating Given'),
        ('rating_updated', 'Rating Updated'),
        ('rating_deleted', 'Rating Deleted'),
        ('user_banned', 'User Banned'),
        ('user_unbanned', 'User Unbanned'),
        ('admin_action', 'Admin Action'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='activity_logs',
    )

    action = models.CharField(
        _('action'),
        max_length=40,
        choices=ACTION_CHOICES,
    )

    details = models.JSONField(
        _('details'),
        default=dict,
        blank=True,
    )

    target_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='targeted_activity_logs',
    )

    target_swap = models.ForeignKey(
        SwapRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activity_logs',
    )

    ip_address = models.GenericIPAddressField(
        _('IP address'),
        null=True,
        blank=True,
    )

    user_agent = models.CharField(
        _('user agent'),
        max_length=255,
        blank=True,
        default='',
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
    )

    class Meta:
        verbose_name = _('activity log')
        verbose_name_plural = _('activity logs')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='mkt_log_user_created_idx'),
            models.Index(fields=['action', 'created_at'], name='mkt_log_action_created_idx'),
            models.Index(fields=['created_at'], name='mkt_log_created_idx'),
        ]

    def __str__(self):
        return f"{self.action} by {self.user_id} at {self.created_at}"
