"""
Authentication views: login, registration, JWT refresh/logout and profile.

These live apart from ``clinic.authentication`` so DRF can load the
authentication classes from settings without importing any view module.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from django.db import transaction
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from clinic.models import Organization, User
from clinic.serializers.auth import LoginSerializer, RegisterSerializer
from clinic.services.activity import Actions, EntityTypes, log_activity

logger = logging.getLogger(__name__)


def serialize_organization(org: Organization | None) -> dict | None:
    if not org:
        return None
    return {
        'id': org.id,
        'name': org.name,
        'email': org.email or None,
        'phone': org.phone or None,
        'address': org.address or None,
        'website': org.website or None,
        'logoUrl': org.logo_url or None,
    }


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email or None,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'name': user.get_full_name() or user.username,
        'role': user.role,
        'phone': user.phone or None,
        'isDisabled': user.is_disabled,
        'organizationId': user.organization_id,
        'organization': serialize_organization(user.organization),
    }


# ---------------------------------------------------------------------
# Username/password login (role comes from the database only)
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Login with username and password.
    Any ``role`` sent by the client is ignored.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user or user.is_disabled:
        known = user or User.objects.select_related('organization').filter(username=username).first()
        log_activity(
            user=None, action=Actions.LOGIN, entity_type=EntityTypes.USER, request=request, severity='WARN',
            organization=known.organization if known else None,
            description=f'Failed login for {username}', details={'result': 'fail', 'username': username},
        )
        return Response(
            {'ok': False, 'error': {'code': 'invalid_credentials', 'message': 'Invalid username or password'}},
            status=401,
        )

    log_activity(
        user=user, action=Actions.LOGIN, entity_type=EntityTypes.USER, entity_id=user.id, request=request,
        description=f'{user.username} logged in', details={'result': 'ok'},
    )

    # legacy token for clients that do not speak JWT
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': serialize_user(user),
    })

# ScopedRateThrottle reads throttle_scope from the view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data

    with transaction.atomic():
        if v['role'] == 'owner':
            org_data = v['organization']
            org = Organization.objects.create(
                name=org_data['name'],
                email=org_data.get('email') or '',
                phone=org_data.get('phone') or '',
                address=org_data.get('address') or '',
                website=org_data.get('website') or '',
            )
        else:
            org = Organization.objects.filter(id=v['organizationId']).first()
            if not org:
                raise NotFound('Organization not found')
        user = User.objects.create_user(
            username=v['username'],
            password=v['password'],
            email=v.get('email') or '',
            first_name=v.get('firstName') or '',
            last_name=v.get('lastName') or '',
            role=v['role'],
            organization=org,
        )
    logger.info('registered user %s (%s) in organization %s', user.id, user.role, org.id)
    return Response({'ok': True, 'user': serialize_user(user)}, status=201)

register_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


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
            raise InvalidToken(e.args[0])
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_activity(
        user=request.user, action=Actions.LOGOUT, entity_type=EntityTypes.USER, entity_id=request.user.id,
        request=request, description=f'{request.user.username} logged out', details={'blacklisted': count},
    )
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    return Response({'ok': True, 'data': serialize_user(request.user)})
