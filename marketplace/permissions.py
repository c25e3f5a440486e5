"""
Custom permission classes for the SkillSwap marketplace.
"""

from rest_framework import permissions


class IsNotBanned(permissions.BasePermission):
    """
    Permission class that refuses banned users.

    Authenticated endpoints combine it with IsAuthenticated; anonymous
    requests are left for the other permission classes to decide.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsNotBanned]
    """

    message = 'Your account has been banned.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return True
        return not getattr(user, 'is_banned', False)


class IsStaffUser(permissions.BasePermission):
    """
    Permission class that allows only staff users to access the endpoint.

    This permission checks if the authenticated user has is_staff=True.
    Returns 403 Forbidden for non-staff users.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsStaffUser]
    """

    message = 'You do not have permission to perform this action. Staff privileges required.'

    def has_permission(self, request, view):
        """
        Check if user is authenticated and has staff privileges.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True if user is staff, False otherwise
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_staff


# Default stack for member endpoints.
MEMBER_PERMISSIONS = [permissions.IsAuthenticated, IsNotBanned]

# Default stack for administration endpoints.
STAFF_PERMISSIONS = [permissions.IsAuthenticated, IsNotBanned, IsStaffUser]
