"""
JWT authentication for the API.

Kept apart from the views so that DRF can import the class while it
initialises without pulling in view modules.
"""
from __future__ import annotations

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from core.models import StudentProfile, User


class HostelJWTAuthentication(JWTAuthentication):
    """simplejwt bearer tokens, refused for students whose record is deactivated."""

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if user.role == User.ROLE_STUDENT:
            active = StudentProfile.objects.filter(user=user).values_list('is_active', flat=True).first()
            if not active:
                raise AuthenticationFailed('Student account is inactive', code='student_inactive')
        return user
