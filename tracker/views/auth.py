"""
Login, logout and profile endpoints.

Login exchanges email and password for an opaque DRF token which the
client then sends as ``Authorization: Bearer <token>``.  Logging out
deletes the token.
"""
from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from tracker.serializers.auth import LoginSerializer
from tracker.services.audit import client_ip, log_action
from tracker.services.directory import serialize_user

logger = logging.getLogger(__name__)
User = get_user_model()


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    ip = client_ip(request)

    user = User.objects.select_related('batch').filter(email__iexact=email).first()
    if user is None or not user.check_password(s.validated_data['password']):
        log_action(user=None, action='login', object_type='User',
                   detail={'result': 'fail', 'email': email}, ip=ip)
        logger.warning('Failed login for %s from %s', email, ip)
        raise AuthenticationFailed('Invalid email or password')
    if not user.is_active:
        log_action(user=user, action='login', object_type='User', object_id=user.pk,
                   detail={'result': 'disabled'}, ip=ip)
        raise PermissionDenied('User account is deactivated')

    token, _ = Token.objects.get_or_create(user=user)
    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    log_action(user=user, action='login', object_type='User', object_id=user.pk,
               detail={'result': 'ok'}, ip=ip)
    logger.info('User %s logged in', user.pk)
    return Response({'success': True, 'data': {'token': token.key, 'user': serialize_user(user)}})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='User', object_id=request.user.pk,
               ip=client_ip(request))
    return Response({'success': True, 'data': {'message': 'Logged out'}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'success': True, 'data': serialize_user(request.user)})
