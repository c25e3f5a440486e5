"""
Serializers for authentication, profiles, skills, swaps, ratings and
administration.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import ActivityLog, Rating, Skill, SwapRequest
from .validators import (
    SKILL_DESCRIPTION_MAX_LENGTH,
    SKILL_DESCRIPTION_MIN_LENGTH,
    SKILL_LEVELS,
    SKILL_NAME_MAX_LENGTH,
    SKILL_NAME_MIN_LENGTH,
)

User = get_user_model()

USERNAME_MAX_LENGTH = User._meta.get_field('username').max_length


def _validate_length(value, label, min_length, max_length):
    value = value.strip()
    if len(value) < min_length or len(value) > max_length:
        raise serializers.ValidationError(
            f"{label} must be between {min_length} and {max_length} characters."
        )
    return value


# ============================================================================
# Authentication
# ============================================================================

class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom serializer to use email instead of username for authentication.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()


class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration with comprehensive validation.

    Fields:
    - email: Required, unique (case-insensitive), valid email format
    - password: Required, must pass Django's password validators
    - confirm_password: Required, must match password
    - name: Required, 2-50 characters
    - location: Optional, 2-100 characters if provided
    - availability: Optional, one of the availability choices
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'confirm_password', 'name',
                  'location', 'availability', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
            'name': {'required': True, 'allow_blank': False},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        # The address doubles as the username
        if len(value) > USERNAME_MAX_LENGTH:
            raise serializers.ValidationError(
                f"Email cannot exceed {USERNAME_MAX_LENGTH} characters."
            )

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate_name(self, value):
        return _validate_length(value, 'Name', 2, 50)

    def validate_location(self, value):
        if not value:
            return ''
        return _validate_length(value, 'Location', 2, 100)

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def create(self, validated_data):
        """
        Create the user with a hashed password and no elevated privileges.

        The username is the full lower-cased e-mail address, so two
        addresses sharing a local part never collide.
        """
        validated_data.pop('confirm_password', None)
        validated_data['password'] = make_password(validated_data.pop('password'))

        for field in ('is_superuser', 'is_staff', 'is_active', 'is_banned',
                      'groups', 'user_permissions'):
            validated_data.pop(field, None)

        validated_data['username'] = validated_data['email']

        return User.objects.create(**validated_data)


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=True, help_text='Refresh token to revoke')


# ============================================================================
# Skills and profiles
# ============================================================================

class SkillSerializer(serializers.ModelSerializer):
    class Meta:
        model = Skill
        fields = ['id', 'name', 'description', 'level', 'created_at']
        read_only_fields = fields


class SkillInputSerializer(serializers.Serializer):
    """Input for adding a skill or moderating one."""

    name = serializers.CharField(max_length=SKILL_NAME_MAX_LENGTH + 20)
    description = serializers.CharField(max_length=SKILL_DESCRIPTION_MAX_LENGTH + 20)
    level = serializers.ChoiceField(choices=SKILL_LEVELS, default='intermediate')

    def validate_name(self, value):
        return _validate_length(value, 'Skill name', SKILL_NAME_MIN_LENGTH, SKILL_NAME_MAX_LENGTH)

    def validate_description(self, value):
        return _validate_length(
            value, 'Skill description', SKILL_DESCRIPTION_MIN_LENGTH, SKILL_DESCRIPTION_MAX_LENGTH
        )


class _SkillListsMixin:
    """Split a user's prefetched skills into offered and wanted lists."""

    def _skills(self, obj, side):
        skills = [skill for skill in obj.skills.all() if skill.side == side]
        return SkillSerializer(skills, many=True).data

    def get_skills_offered(self, obj):
        return self._skills(obj, Skill.SIDE_OFFERED)

    def get_skills_wanted(self, obj):
        return self._skills(obj, Skill.SIDE_WANTED)


class UserPublicSerializer(_SkillListsMixin, serializers.ModelSerializer):
    """Profile fields visible to other users."""

    skills_offered = serializers.SerializerMethodField()
    skills_wanted = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'location', 'availability', 'profile_image',
                  'skills_offered', 'skills_wanted', 'average_rating',
                  'total_ratings', 'completed_swaps', 'created_at']
        read_only_fields = fields


class UserProfileSerializer(_SkillListsMixin, serializers.ModelSerializer):
    """The caller's own profile."""

    skills_offered = serializers.SerializerMethodField()
    skills_wanted = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'location', 'availability', 'profile_image',
                  'is_profile_public', 'is_staff', 'skills_offered', 'skills_wanted',
                  'average_rating', 'total_ratings', 'completed_swaps',
                  'created_at', 'updated_at']
        read_only_fields = fields


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Partial profile update.

    Only display fields may change here; e-mail, staff and moderation flags
    and rating aggregates are not writable.
    """

    class Meta:
        model = User
        fields = ['name', 'location', 'availability', 'is_profile_public', 'profile_image']

    def validate_name(self, value):
        return _validate_length(value, 'Name', 2, 50)

    def validate_location(self, value):
        return _validate_length(value, 'Location', 2, 100)


class UserBriefSerializer(serializers.ModelSerializer):
    """Minimal user representation embedded in swaps, ratings and logs."""

    class Meta:
        model = User
        fields = ['id', 'name', 'profile_image', 'average_rating']
        read_only_fields = fields


# ============================================================================
# Swap requests
# ============================================================================

class SkillReferenceSerializer(serializers.Serializer):
    """
    Names one skill on either side of a swap request.

    Only ``name`` is used for matching; description and level are taken
    from the owner's skill list when the snapshot is stored.
    """

    name = serializers.CharField(max_length=SKILL_NAME_MAX_LENGTH + 20)
    description = serializers.CharField(required=False, allow_blank=True)
    level = serializers.ChoiceField(choices=SKILL_LEVELS, required=False)

    def validate_name(self, value):
        return _validate_length(value, 'Skill name', SKILL_NAME_MIN_LENGTH, SKILL_NAME_MAX_LENGTH)


class SwapRequestCreateSerializer(serializers.Serializer):
    recipient_id = serializers.IntegerField(min_value=1)
    requested_skill = SkillReferenceSerializer()
    offered_skill = SkillReferenceSerializer()
    message = serializers.CharField(required=False, allow_blank=True, max_length=1000, default='')
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate_scheduled_date(self, value):
        if value is not None and value < timezone.now():
            raise serializers.ValidationError("Scheduled date cannot be in the past.")
        return value


class SwapRequestSerializer(serializers.ModelSerializer):
    requester = UserBriefSerializer(read_only=True)
    recipient = UserBriefSerializer(read_only=True)

    class Meta:
        model = SwapRequest
        fields = ['id', 'requester', 'recipient', 'requested_skill', 'offered_skill',
                  'status', 'message', 'scheduled_date', 'completed_date', 'is_rated',
                  'created_at', 'updated_at']
        read_only_fields = fields


# ============================================================================
# Ratings
# ============================================================================

class RatedSkillSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=SKILL_NAME_MAX_LENGTH + 20)
    level = serializers.ChoiceField(choices=SKILL_LEVELS)

    def validate_name(self, value):
        return _validate_length(value, 'Skill name', SKILL_NAME_MIN_LENGTH, SKILL_NAME_MAX_LENGTH)


class RatingCreateSerializer(serializers.Serializer):
    """
    Input for rating a completed swap.

    ``skill_rated`` defaults to the skill the rater received in the swap.
    """

    swap_request_id = serializers.IntegerField(min_value=1)
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')
    skill_rated = RatedSkillSerializer(required=False)


class RatingUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):
        if 'rating' not in attrs and 'comment' not in attrs:
            raise serializers.ValidationError(
                "Provide at least one of 'rating' or 'comment'."
            )
        return attrs


class RatingSerializer(serializers.ModelSerializer):
    rater = UserBriefSerializer(read_only=True)
    rated_user = UserBriefSerializer(read_only=True)
    swap_request = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Rating
        fields = ['id', 'swap_request', 'rater', 'rated_user', 'rating', 'comment',
                  'skill_rated', 'created_at', 'updated_at']
        read_only_fields = fields


# ============================================================================
# Administration
# ============================================================================

class AdminUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'location', 'availability', 'is_profile_public',
                  'is_staff', 'is_active', 'is_banned', 'ban_reason', 'average_rating',
                  'total_ratings', 'completed_swaps', 'created_at', 'updated_at']
        read_only_fields = fields


class BanUserSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=10, max_length=500, trim_whitespace=True)


class SkillModerationSerializer(serializers.Serializer):
    """
    Remove or update one of a user's skills.

    For ``update`` at least one of name, description or level is required.
    """

    user_id = serializers.IntegerField(min_value=1)
    side = serializers.ChoiceField(choices=[choice for choice, _label in Skill.SIDE_CHOICES])
    skill_id = serializers.IntegerField(min_value=1)
    action = serializers.ChoiceField(choices=['remove', 'update'])
    name = serializers.CharField(required=False, max_length=SKILL_NAME_MAX_LENGTH + 20)
    description = serializers.CharField(required=False, max_length=SKILL_DESCRIPTION_MAX_LENGTH + 20)
    level = serializers.ChoiceField(choices=SKILL_LEVELS, required=False)

    def validate_name(self, value):
        return _validate_length(value, 'Skill name', SKILL_NAME_MIN_LENGTH, SKILL_NAME_MAX_LENGTH)

    def validate_description(self, value):
        return _validate_length(
            value, 'Skill description', SKILL_DESCRIPTION_MIN_LENGTH, SKILL_DESCRIPTION_MAX_LENGTH
        )

    def validate(self, attrs):
        if attrs['action'] == 'update' and not any(
            field in attrs for field in ('name', 'description', 'level')
        ):
            raise serializers.ValidationError(
                "Provide at least one of 'name', 'description' or 'level' to update."
            )
        return attrs

    def changes(self):
        return {
            field: self.validated_data[field]
            for field in ('name', 'description', 'level')
            if field in self.validated_data
        }


class ActivityLogSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)
    target_user = UserBriefSerializer(read_only=True)
    target_swap = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = ActivityLog
        fields = ['id', 'user', 'action', 'details', 'target_user', 'target_swap',
                  'ip_address', 'user_agent', 'created_at']
        read_only_fields = fields
