"""
Authentication views.

Login issues a simplejwt access/refresh pair.  These views live apart
from ``core.authentication`` so that DRF can import the authentication
class during start-up without importing view modules.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from core.models import StudentProfile, User
from core.responses import ok
from core.serializers.auth import ChangePasswordSerializer, LoginSerializer
from core.services.audit import log_action
from core.services.students import change_password

logger = logging.getLogger(__name__)


def _client_ip(request):
    return request.META.get('REMOTE_ADDR')


def user_payload(user: User) -> dict:
    data = {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'role': user.role,
    }
    profile = getattr(user, 'student_profile', None) if user.role == User.ROLE_STUDENT else None
    if profile is not None:
        data.update(studentId=profile.id, rollNumber=profile.roll_number, hostelId=profile.hostel_id)
    return data


# ---------------------------------------------------------------------
# Username/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Accepts ``username`` (students use their roll number) and ``password``.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if user is None and username.upper() != username:
        # roll numbers are stored upper-case
        user = authenticate(request, username=username.upper(), password=password)
    if user is None:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': _client_ip(request)})
        raise AuthenticationFailed('Invalid username or password')

    if user.role == User.ROLE_STUDENT:
        active = StudentProfile.objects.filter(user=user).values_list('is_active', flat=True).first()
        if not active:
            log_action(user=user, action='login', object_type='user', object_id=user.id,
                       detail={'result': 'inactive', 'ip': _client_ip(request)})
            raise AuthenticationFailed('Student account is inactive')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': _client_ip(request)})
    refresh = RefreshToken.for_user(user)
    return ok({
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': user_payload(user),
        'mustChangePassword': user.role == User.ROLE_STUDENT and not user.is_password_changed,
    })

# ScopedRateThrottle reads throttle_scope from the APIView class behind the function
login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data={'refresh': request.data.get('refresh') or request.data.get('jwt_refresh')})
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise AuthenticationFailed(str(e))
    data = {'jwt_access': s.validated_data['access']}
    if 'refresh' in s.validated_data:
        data['jwt_refresh'] = s.validated_data['refresh']
    return ok(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding token of the caller."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            raise ValidationError(str(e))
        if str(token.get('user_id')) != str(request.user.id):
            raise ValidationError('Token does not belong to the current user')
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    return ok({'blacklisted': count}, message='Logged out')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return ok(user_payload(request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    change_password(request.user, s.validated_data['currentPassword'], s.validated_data['newPassword'])
    log_action(user=request.user, action='change_password', object_type='user', object_id=request.user.id)
    return ok(message='Password changed successfully')
