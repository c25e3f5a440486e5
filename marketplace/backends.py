"""
Authentication backend that logs users in by e-mail address.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

User = get_user_model()


class EmailBackend(ModelBackend):
    """
    Authenticate with an e-mail address in place of a username.

    Banned users are refused here as well as by the API permission
    classes, so no new tokens are issued to them.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        email = kwargs.get('email', username)

        if email is None or password is None:
            return None

        try:
            user = User.objects.get(email__iexact=email.strip())
        except User.DoesNotExist:
            # Run the default password hasher once to reduce the timing
            # difference between an existing and a nonexistent user
            User().set_password(password)
            return None

        if not user.check_password(password):
            return None

        if not self.user_can_authenticate(user):
            return None

        return user

    def user_can_authenticate(self, user):
        if getattr(user, 'is_banned', False):
            return False
        return super().user_can_authenticate(user)
