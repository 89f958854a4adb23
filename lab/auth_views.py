"""
Sign-up and login endpoints.

Patients register themselves; staff accounts are created by an
administrator (see ``views/users.py``). Both log in here with their
email address and receive a seven-day bearer token.
"""
from __future__ import annotations

from django.contrib.auth.hashers import check_password
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .authentication import issue_token
from .exceptions import error_response
from .models import User
from .serializers.auth import LoginSerializer, SignupPatientSerializer
from .services.audit import client_ip, log_action
from .validation import validate

INVALID_LOGIN = 'Invalid email or password'


@api_view(['POST'])
@permission_classes([AllowAny])
@validate(SignupPatientSerializer)
def signup_patient(request):
    vd = request.validated_data
    if User.objects.filter(email__iexact=vd['email']).exists():
        return error_response('Email already in use', 400)
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=vd['email'],
                email=vd['email'],
                password=vd['password'],
                name=vd['name'],
                role='patient',
            )
    except IntegrityError:
        return error_response('Email already in use', 400)

    log_action(user=user, action='signup', object_type='user', object_id=user.id,
               detail={'ip': client_ip(request)})
    return Response({
        'success': True,
        'user': {'id': user.id, 'email': user.email, 'name': user.name, 'role': user.role},
    })

signup_patient.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
@validate(LoginSerializer)
def login_view(request):
    vd = request.validated_data
    identifier = vd['emailOrPhone']
    user = User.objects.filter(Q(email__iexact=identifier) | Q(phone=identifier)).order_by('id').first()

    if user is None or not user.is_active or not check_password(vd['password'], user.password):
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'identifier': identifier, 'ip': client_ip(request)})
        return error_response(INVALID_LOGIN, 400)

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': client_ip(request)})

    return Response({
        'success': True,
        'token': issue_token(user),
        'user': {
            'id': user.id,
            'email': user.email,
            'name': user.name,
            'role': user.role,
            'permissions': user.permissions if isinstance(user.permissions, list) else [],
        },
    })

# ScopedRateThrottle reads throttle_scope from the wrapped APIView class
login_view.cls.throttle_scope = 'login'
