"""
URL configuration for the skillswap project.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, re_path
from rest_framework_simplejwt.views import TokenRefreshView, TokenVerifyView

from marketplace.lifecycle import SwapAction
from marketplace.views import (
    AdminActivityLogView,
    AdminBanUserView,
    AdminDashboardView,
    AdminModerateSkillView,
    AdminSwapListView,
    AdminUnbanUserView,
    AdminUserListView,
    EmailTokenObtainPairView,
    LogoutView,
    MyProfileView,
    MyRatingsView,
    MySkillDetailView,
    MySkillsView,
    MyStatsView,
    RatingCreateView,
    RatingDetailView,
    SwapCanRateView,
    SwapRequestDetailView,
    SwapRequestListCreateView,
    SwapTransitionView,
    UserDetailView,
    UserListView,
    UserRatingsView,
    UserRegistrationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/auth/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
    path('api/auth/logout/', LogoutView.as_view(), name='user_logout'),

    # User endpoints
    path('api/users/', UserListView.as_view(), name='user_list'),
    path('api/users/me/', MyProfileView.as_view(), name='my_profile'),
    path('api/users/me/stats/', MyStatsView.as_view(), name='my_stats'),
    re_path(r'^api/users/me/skills/(?P<side>offered|wanted)/$',
            MySkillsView.as_view(), name='my_skills'),
    re_path(r'^api/users/me/skills/(?P<side>offered|wanted)/(?P<skill_id>\d+)/$',
            MySkillDetailView.as_view(), name='my_skill_detail'),
    path('api/users/<int:pk>/', UserDetailView.as_view(), name='user_detail'),

    # Swap endpoints
    path('api/swaps/', SwapRequestListCreateView.as_view(), name='swap_list_create'),
    path('api/swaps/<int:pk>/', SwapRequestDetailView.as_view(), name='swap_detail'),
    path('api/swaps/<int:pk>/accept/',
         SwapTransitionView.as_view(action=SwapAction.ACCEPT), name='swap_accept'),
    path('api/swaps/<int:pk>/reject/',
         SwapTransitionView.as_view(action=SwapAction.REJECT), name='swap_reject'),
    path('api/swaps/<int:pk>/cancel/',
         SwapTransitionView.as_view(action=SwapAction.CANCEL), name='swap_cancel'),
    path('api/swaps/<int:pk>/complete/',
         SwapTransitionView.as_view(action=SwapAction.COMPLETE), name='swap_complete'),
    path('api/swaps/<int:pk>/can-rate/', SwapCanRateView.as_view(), name='swap_can_rate'),

    # Rating endpoints
    path('api/ratings/', RatingCreateView.as_view(), name='rating_create'),
    path('api/ratings/mine/', MyRatingsView.as_view(), name='my_ratings'),
    path('api/ratings/user/<int:user_id>/', UserRatingsView.as_view(), name='user_ratings'),
    path('api/ratings/<int:pk>/', RatingDetailView.as_view(), name='rating_detail'),

    # Administration endpoints
    path('api/admin/dashboard/', AdminDashboardView.as_view(), name='admin_dashboard'),
    path('api/admin/users/', AdminUserListView.as_view(), name='admin_users'),
    path('api/admin/users/<int:pk>/ban/', AdminBanUserView.as_view(), name='admin_ban_user'),
    path('api/admin/users/<int:pk>/unban/', AdminUnbanUserView.as_view(), name='admin_unban_user'),
    path('api/admin/swaps/', AdminSwapListView.as_view(), name='admin_swaps'),
    path('api/admin/activity-logs/', AdminActivityLogView.as_view(), name='admin_activity_logs'),
    path('api/admin/moderate-skill/', AdminModerateSkillView.as_view(), name='admin_moderate_skill'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
