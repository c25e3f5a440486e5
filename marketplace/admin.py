"""
Django admin configuration for marketplace models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import ActivityLog, Rating, Skill, SwapRequest, User


class SkillInline(admin.TabularInline):
    model = Skill
    extra = 0
    fields = ('side', 'name', 'level', 'description')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Rating aggregates and completed swap counts are maintained by the
    application and shown read-only.
    """

    list_display = [
        'email',
        'name',
        'location',
        'availability',
        'is_banned',
        'average_rating',
        'completed_swaps',
        'is_staff',
        'created_at',
    ]

    list_filter = [
        'is_banned',
        'availability',
        'is_profile_public',
        'is_staff',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'name',
        'location',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Profile'), {
            'fields': (
                'email',
                'name',
                'location',
                'availability',
                'profile_image',
                'is_profile_public',
            )
        }),
        (_('Moderation'), {
            'fields': ('is_banned', 'ban_reason')
        }),
        (_('Reputation'), {
            'fields': ('average_rating', 'total_ratings', 'completed_swaps')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'name',
                'password1',
                'password2',
            ),
        }),
    )

    readonly_fields = [
        'average_rating',
        'total_ratings',
        'completed_swaps',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    inlines = [SkillInline]

    date_hierarchy = 'created_at'

    list_per_page = 25


@admin.register(SwapRequest)
class SwapRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'requester', 'recipient', 'status', 'is_rated', 'created_at', 'completed_date']
    list_filter = ['status', 'is_rated', 'created_at']
    search_fields = ['requester__email', 'recipient__email']
    raw_id_fields = ['requester', 'recipient']
    # Status changes go through the API so counters and audit entries stay consistent
    readonly_fields = ['status', 'completed_date', 'is_rated', 'created_at', 'updated_at']
    list_per_page = 25


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ['id', 'swap_request', 'rater', 'rated_user', 'rating', 'created_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['rater__email', 'rated_user__email', 'comment']
    raw_id_fields = ['swap_request', 'rater', 'rated_user']
    readonly_fields = ['created_at', 'updated_at']
    list_per_page = 25


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'action', 'target_user', 'target_swap', 'ip_address', 'created_at']
    list_filter = ['action', 'created_at']
    search_fields = ['user__email', 'target_user__email']
    date_hierarchy = 'created_at'
    list_per_page = 50

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
