"""
Authentication views: login, registration, JWT refresh/logout and the
current user's profile.

These live apart from :mod:`care.authentication` so that DRF can import
the authentication class during start-up without importing any views.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from care.rbac import dashboard_for_role
from care.serializers.auth import LoginSerializer, RegisterSerializer
from care.services.accounts import create_account, user_dict
from care.services.audit import log_action

logger = logging.getLogger(__name__)


def _client_ip(request):
    return request.META.get('REMOTE_ADDR')


# ---------------------------------------------------------------------
# Email/password login (role in the body is ignored)
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def login_view(request):
    """
    Log in with email (or username) and password.
    Accepts fields:
      - email, username or account
      - password or pwd
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username.lower(), password=password)
    if user is None and username.lower() != username:
        user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': _client_ip(request)})
        logger.info("failed login for %s", username)
        raise ValidationError('Invalid email or password')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': _client_ip(request)})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)

    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'dashboard': dashboard_for_role(user.role),
        'user': user_dict(user),
    }, status=200)

login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    user = create_account(
        email=v['email'],
        password=v['password'],
        full_name=v['fullName'],
        role=v['role'],
        phone=v.get('phone') or '',
    )
    return Response({
        'ok': True,
        'user': {'id': user.id, 'email': user.email},
        'message': 'Account created successfully. You can now log in.',
    }, status=status.HTTP_201_CREATED)

register_view.cls.throttle_scope = 'register'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    data = user_dict(request.user)
    data['dashboard'] = dashboard_for_role(request.user.role)
    return Response({'ok': True, 'user': data})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    data = dict(s.validated_data)
    data['jwt_access'] = data.pop('access')
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            raise ValidationError(str(e))
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
