"""
API views for the SkillSwap marketplace.

Views validate input with serializers, delegate to ``marketplace.services``
and render results. Domain errors raised by the services are turned into
responses by ``marketplace.exceptions.api_exception_handler``.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from rest_framework import generics, status
from rest_framework.generics import ListAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from . import services
from .audit import get_client_ip, log_activity
from .lifecycle import SwapAction
from .permissions import MEMBER_PERMISSIONS, STAFF_PERMISSIONS, IsNotBanned
from .serializers import (
    ActivityLogSerializer,
    AdminUserSerializer,
    BanUserSerializer,
    EmailTokenObtainPairSerializer,
    LogoutSerializer,
    RatingCreateSerializer,
    RatingSerializer,
    RatingUpdateSerializer,
    SkillInputSerializer,
    SkillModerationSerializer,
    SkillSerializer,
    SwapRequestCreateSerializer,
    SwapRequestSerializer,
    UserBriefSerializer,
    UserProfileSerializer,
    UserProfileUpdateSerializer,
    UserPublicSerializer,
    UserRegistrationSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)


class StandardPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


def _parse_bool(value):
    if value is None:
        return None
    value = value.strip().lower()
    if value in ('true', '1', 'yes'):
        return True
    if value in ('false', '0', 'no'):
        return False
    return None


# ============================================================================
# Authentication
# ============================================================================

class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Obtain an access/refresh token pair with e-mail and password.

    Banned users are refused by the authentication backend.
    """
    serializer_class = EmailTokenObtainPairSerializer


class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for user registration.

    POST /api/auth/register/
    Request body:
    {
        "email": "ada@example.com",
        "password": "...",
        "confirm_password": "...",
        "name": "Ada",
        "location": "London",
        "availability": "weekends"
    }

    Returns the created user (without password) and a token pair.
    Concurrent registrations with the same e-mail are caught as
    IntegrityError and reported as a field error.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'registration'

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = serializer.save()
        except IntegrityError as e:
            if 'email' in str(e).lower() or 'unique' in str(e).lower():
                return Response(
                    {'email': ['A user with that email already exists.']},
                    status=status.HTTP_400_BAD_REQUEST
                )
            raise

        log_activity(user, 'register', details={'email': user.email}, request=request)
        logger.info(f"User registered. User ID: {user.id}, IP: {get_client_ip(request)}")

        refresh = RefreshToken.for_user(user)
        data = dict(serializer.data)
        data['tokens'] = {
            'access': str(refresh.access_token),
            'refresh': str(refresh),
        }
        return Response(data, status=status.HTTP_201_CREATED)


class LogoutView(APIView):
    """
    Blacklist a refresh token.

    POST /api/auth/logout/
    Request body: {"refresh": "<refresh_token>"}
    """
    permission_classes = MEMBER_PERMISSIONS

    def post(self, request, *args, **kwargs):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            token = RefreshToken(serializer.validated_data['refresh'])
            if str(token.get('user_id')) != str(request.user.id):
                return Response(
                    {'detail': 'Token does not belong to the current user.'},
                    status=status.HTTP_403_FORBIDDEN
                )
            token.blacklist()
        except TokenError as e:
            logger.warning(
                f"Logout with invalid refresh token. User ID: {request.user.id}, "
                f"IP: {get_client_ip(request)}, Error: {e}"
            )
            return Response(
                {'detail': 'Invalid or expired refresh token.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        logger.info(f"User logged out. User ID: {request.user.id}, IP: {get_client_ip(request)}")
        return Response({'detail': 'Successfully logged out.'}, status=status.HTTP_200_OK)


# ============================================================================
# Users and skills
# ============================================================================

class UserListView(ListAPIView):
    """
    Public, non-banned profiles.

    GET /api/users/

    Query Parameters:
    - location: substring match, case-insensitive
    - skill: offered or wanted skill name, case-insensitive
    - availability: one of the availability choices
    - sort_by: created_at (default), name, average_rating, completed_swaps
    - sort_order: asc or desc (default)
    - page, page_size
    """
    serializer_class = UserPublicSerializer
    pagination_class = StandardPagination
    permission_classes = [AllowAny, IsNotBanned]

    def get_queryset(self):
        params = self.request.query_params
        viewer = self.request.user if self.request.user.is_authenticated else None
        return services.list_public_users(
            location=params.get('location'),
            skill=params.get('skill'),
            availability=params.get('availability'),
            sort_by=params.get('sort_by', 'created_at'),
            sort_order=params.get('sort_order', 'desc'),
            exclude_user=viewer,
        )


class UserDetailView(APIView):
    """GET /api/users/<id>/ : a user's profile; private profiles only for their owner."""
    permission_classes = [AllowAny, IsNotBanned]

    def get(self, request, *args, **kwargs):
        user = services.get_user_profile(kwargs['pk'], request.user)
        return Response(UserPublicSerializer(user).data, status=status.HTTP_200_OK)


class MyProfileView(APIView):
    """
    The caller's own profile.

    GET /api/users/me/
    PATCH /api/users/me/  (name, location, availability, is_profile_public, profile_image)
    """
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        user = User.objects.prefetch_related('skills').get(pk=request.user.pk)
        return Response(UserProfileSerializer(user).data, status=status.HTTP_200_OK)

    def patch(self, request, *args, **kwargs):
        serializer = UserProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        services.update_profile(request.user, dict(serializer.validated_data), request=request)

        user = User.objects.prefetch_related('skills').get(pk=request.user.pk)
        return Response(UserProfileSerializer(user).data, status=status.HTTP_200_OK)

    def put(self, request, *args, **kwargs):
        """PUT method not allowed; use PATCH."""
        return Response(
            {'detail': 'Method "PUT" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )


class MyStatsView(APIView):
    """GET /api/users/me/stats/"""
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        return Response(services.user_stats(request.user), status=status.HTTP_200_OK)


class MySkillsView(APIView):
    """
    Add a skill to one side of the caller's skill lists.

    POST /api/users/me/skills/<side>/   side is "offered" or "wanted"
    Request body: {"name": "Guitar", "description": "...", "level": "advanced"}
    """
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        side = kwargs['side']
        skills = request.user.skills.filter(side=side)
        return Response(SkillSerializer(skills, many=True).data, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = SkillInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        skill = services.add_skill(request.user, kwargs['side'], **serializer.validated_data)
        return Response(SkillSerializer(skill).data, status=status.HTTP_201_CREATED)


class MySkillDetailView(APIView):
    """DELETE /api/users/me/skills/<side>/<skill_id>/"""
    permission_classes = MEMBER_PERMISSIONS

    def delete(self, request, *args, **kwargs):
        services.remove_skill(request.user, kwargs['side'], kwargs['skill_id'])
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Swap requests
# ============================================================================

class SwapRequestListCreateView(APIView):
    """
    List or create swap requests.

    GET /api/swaps/?direction=all|incoming|outgoing&status=<status>&page=<n>
    POST /api/swaps/
    Request body:
    {
        "recipient_id": 2,
        "requested_skill": {"name": "Painting"},
        "offered_skill": {"name": "Guitar"},
        "message": "Happy to swap lessons",
        "scheduled_date": "2026-11-01T10:00:00Z"
    }

    Error responses:
    - 400 (kind=validation): recipient banned, self-request, skill not
      offered, or a pending request already exists between the two users
    - 404 (kind=not_found): recipient does not exist
    """
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        queryset = services.list_swap_requests(
            request.user,
            direction=request.query_params.get('direction', 'all'),
            status=request.query_params.get('status'),
        )
        paginator = StandardPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = SwapRequestSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def post(self, request, *args, **kwargs):
        serializer = SwapRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        swap_request = services.create_swap_request(
            request.user,
            data['recipient_id'],
            data['requested_skill']['name'],
            data['offered_skill']['name'],
            message=data.get('message', ''),
            scheduled_date=data.get('scheduled_date'),
            request=request,
        )
        return Response(SwapRequestSerializer(swap_request).data, status=status.HTTP_201_CREATED)


class SwapRequestDetailView(APIView):
    """GET /api/swaps/<id>/ : participants only."""
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        swap_request = services.get_swap_request(kwargs['pk'], request.user)
        return Response(SwapRequestSerializer(swap_request).data, status=status.HTTP_200_OK)


class SwapTransitionView(APIView):
    """
    Move a swap request through its lifecycle.

    PUT /api/swaps/<id>/accept/    recipient, pending -> accepted
    PUT /api/swaps/<id>/reject/    recipient, pending -> rejected
    PUT /api/swaps/<id>/cancel/    requester, pending -> cancelled
    PUT /api/swaps/<id>/complete/  either participant, accepted -> completed

    Error responses:
    - 403 (kind=authorization): caller may not fire this action
    - 404 (kind=not_found): swap request does not exist
    - 409 (kind=invalid_state): no transition from the current status
    """
    permission_classes = MEMBER_PERMISSIONS
    action = None

    handlers = {
        SwapAction.ACCEPT: services.accept_swap_request,
        SwapAction.REJECT: services.reject_swap_request,
        SwapAction.CANCEL: services.cancel_swap_request,
        SwapAction.COMPLETE: services.complete_swap_request,
    }

    def put(self, request, *args, **kwargs):
        handler = self.handlers[self.action]
        swap_request = handler(kwargs['pk'], request.user, request=request)
        return Response(SwapRequestSerializer(swap_request).data, status=status.HTTP_200_OK)

    def get(self, request, *args, **kwargs):
        """GET method not allowed."""
        return Response(
            {'detail': 'Method "GET" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )

    def post(self, request, *args, **kwargs):
        """POST method not allowed."""
        return Response(
            {'detail': 'Method "POST" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )

    def patch(self, request, *args, **kwargs):
        """PATCH method not allowed."""
        return Response(
            {'detail': 'Method "PATCH" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )

    def delete(self, request, *args, **kwargs):
        """DELETE method not allowed."""
        return Response(
            {'detail': 'Method "DELETE" not allowed.'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )


class SwapCanRateView(APIView):
    """GET /api/swaps/<id>/can-rate/"""
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        return Response(
            {
                'swap_request_id': kwargs['pk'],
                'can_rate': services.can_rate(kwargs['pk'], request.user.id),
            },
            status=status.HTTP_200_OK
        )


# ============================================================================
# Ratings
# ============================================================================

class RatingCreateView(APIView):
    """
    Rate the other participant of a completed swap.

    POST /api/ratings/
    Request body:
    {
        "swap_request_id": 1,
        "rating": 5,
        "comment": "Patient and well prepared",
        "skill_rated": {"name": "Painting", "level": "advanced"}
    }

    Error responses:
    - 400 (kind=not_completed): swap is not completed
    - 403 (kind=not_participant): caller did not take part in the swap
    - 404 (kind=not_found): swap request does not exist
    - 409 (kind=duplicate_rating): caller already rated this swap
    """
    permission_classes = MEMBER_PERMISSIONS

    def post(self, request, *args, **kwargs):
        serializer = RatingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        skill_rated = data.get('skill_rated')
        rating = services.submit_rating(
            data['swap_request_id'],
            request.user,
            data['rating'],
            skill_rated=dict(skill_rated) if skill_rated else None,
            comment=data.get('comment', ''),
            request=request,
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)


class RatingDetailView(APIView):
    """
    GET /api/ratings/<id>/     rater or rated user
    PUT|PATCH /api/ratings/<id>/  rater only
    DELETE /api/ratings/<id>/  rater only
    """
    permission_classes = MEMBER_PERMISSIONS

    def get(self, request, *args, **kwargs):
        rating = services.get_rating(kwargs['pk'], request.user)
        return Response(RatingSerializer(rating).data, status=status.HTTP_200_OK)

    def put(self, request, *args, **kwargs):
        return self._update(request, kwargs['pk'])

    def patch(self, request, *args, **kwargs):
        return self._update(request, kwargs['pk'])

    def _update(self, request, rating_id):
        serializer = RatingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rating = services.update_rating(
            rating_id,
            request.user,
            rating=serializer.validated_data.get('rating'),
            comment=serializer.validated_data.get('comment'),
            request=request,
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_200_OK)

    def delete(self, request, *args, **kwargs):
        services.delete_rating(kwargs['pk'], request.user, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserRatingsView(ListAPIView):
    """
    Ratings received by a user, with their aggregate.

    GET /api/ratings/user/<user_id>/

    Success response (200):
    {
        "count": 3,
        "next": null,
        "previous": null,
        "results": [...],
        "user": {"id": 2, "name": "Ben", ...},
        "average_rating": "4.3",
        "total_ratings": 3
    }
    """
    serializer_class = RatingSerializer
    pagination_class = StandardPagination
    permission_classes = [AllowAny, IsNotBanned]

    def list(self, request, *args, **kwargs):
        user, queryset = services.list_ratings_for_user(kwargs['user_id'])
        page = self.paginate_queryset(queryset)
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        response.data['user'] = UserBriefSerializer(user).data
        response.data['average_rating'] = str(user.average_rating)
        response.data['total_ratings'] = user.total_ratings
        return response


class MyRatingsView(ListAPIView):
    """GET /api/ratings/mine/ : ratings the caller has given."""
    serializer_class = RatingSerializer
    pagination_class = StandardPagination
    permission_classes = MEMBER_PERMISSIONS

    def get_queryset(self):
        return services.list_my_ratings(self.request.user)


# ============================================================================
# Administration
# ============================================================================

class AdminDashboardView(APIView):
    """GET /api/admin/dashboard/"""
    permission_classes = STAFF_PERMISSIONS

    def get(self, request, *args, **kwargs):
        stats = services.dashboard_stats()
        stats['recent_activity'] = ActivityLogSerializer(stats['recent_activity'], many=True).data
        return Response(stats, status=status.HTTP_200_OK)


class AdminUserListView(ListAPIView):
    """
    GET /api/admin/users/?search=<text>&is_banned=true|false
    """
    serializer_class = AdminUserSerializer
    pagination_class = StandardPagination
    permission_classes = STAFF_PERMISSIONS

    def get_queryset(self):
        params = self.request.query_params
        return services.list_users_for_admin(
            search=params.get('search'),
            is_banned=_parse_bool(params.get('is_banned')),
        )


class AdminBanUserView(APIView):
    """
    POST /api/admin/users/<id>/ban/
    Request body: {"reason": "Repeated no-shows for agreed swaps"}
    """
    permission_classes = STAFF_PERMISSIONS

    def post(self, request, *args, **kwargs):
        serializer = BanUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = services.ban_user(
            request.user,
            kwargs['pk'],
            serializer.validated_data['reason'],
            request=request,
        )
        return Response(AdminUserSerializer(user).data, status=status.HTTP_200_OK)


class AdminUnbanUserView(APIView):
    """POST /api/admin/users/<id>/unban/"""
    permission_classes = STAFF_PERMISSIONS

    def post(self, request, *args, **kwargs):
        user = services.unban_user(request.user, kwargs['pk'], request=request)
        return Response(AdminUserSerializer(user).data, status=status.HTTP_200_OK)


class AdminSwapListView(ListAPIView):
    """GET /api/admin/swaps/?status=<status>"""
    serializer_class = SwapRequestSerializer
    pagination_class = StandardPagination
    permission_classes = STAFF_PERMISSIONS

    def get_queryset(self):
        return services.list_all_swaps(status=self.request.query_params.get('status'))


class AdminActivityLogView(ListAPIView):
    """
    GET /api/admin/activity-logs/

    Query Parameters:
    - action: one of the activity actions
    - user_id: acting user
    - start_date, end_date: YYYY-MM-DD (inclusive) or ISO 8601 datetime
    """
    serializer_class = ActivityLogSerializer
    pagination_class = StandardPagination
    permission_classes = STAFF_PERMISSIONS

    def get_queryset(self):
        params = self.request.query_params
        return services.list_activity_logs(
            action=params.get('action'),
            user_id=params.get('user_id'),
            start_date=params.get('start_date'),
            end_date=params.get('end_date'),
        )


class AdminModerateSkillView(APIView):
    """
    POST /api/admin/moderate-skill/
    Request body:
    {
        "user_id": 4,
        "side": "offered",
        "skill_id": 12,
        "action": "update",
        "description": "Beginner-friendly guitar lessons"
    }
    """
    permission_classes = STAFF_PERMISSIONS

    def post(self, request, *args, **kwargs):
        serializer = SkillModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        skill = services.moderate_skill(
            request.user,
            data['user_id'],
            data['side'],
            data['skill_id'],
            data['action'],
            changes=serializer.changes(),
            request=request,
        )
        if skill is None:
            return Response({'detail': 'Skill removed successfully.'}, status=status.HTTP_200_OK)
        return Response(SkillSerializer(skill).data, status=status.HTTP_200_OK)
