"""
Staff account and role administration.

Listing is open so the login screen can offer role names; every change
needs an admin-equivalent role.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import error_response
from ..models import Role, User
from ..permissions import IsAdminOrReadOnly, IsAdminRole
from ..serializers.users import (
    PermissionsSerializer,
    RoleSerializer,
    RoleUpdateSerializer,
    UserCreateSerializer,
    UserUpdateSerializer,
)
from ..services.audit import log_action
from ..validation import validate


def serialize_user(u: User) -> dict:
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'role': u.role,
        'status': u.status,
        'permissions': u.permissions or [],
        'createdAt': u.created_at,
        'updatedAt': u.updated_at,
    }


def serialize_role(r: Role) -> dict:
    return {
        'id': r.id,
        'name': r.name,
        'permissions': r.permissions or [],
        'createdAt': r.created_at,
        'updatedAt': r.updated_at,
    }


def _user_or_404(pk) -> User:
    user = User.objects.exclude(role='patient').filter(pk=pk).first()
    if user is None:
        raise NotFound('User not found')
    return user


def _role_or_404(pk) -> Role:
    role = Role.objects.filter(pk=pk).first()
    if role is None:
        raise NotFound('Role not found')
    return role


def _email_taken(email: str, exclude_pk=None) -> bool:
    qs = User.objects.filter(email__iexact=email)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def users(request):
    if request.method == 'POST':
        return _create_user(request)
    rows = User.objects.exclude(role='patient').order_by('-created_at', '-id')
    return Response([serialize_user(u) for u in rows])


@validate(UserCreateSerializer)
def _create_user(request):
    vd = request.validated_data
    if _email_taken(vd['email']):
        return error_response('Email already in use', 409)
    user = User.objects.create_user(
        username=vd['email'],
        email=vd['email'],
        password=vd['password'],
        name=vd['name'],
        role=vd['role'],
        status=vd['status'],
    )
    log_action(user=request.user, action='user_create', object_type='user', object_id=user.pk,
               detail={'role': user.role})
    return Response(serialize_user(user), status=201)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk: int):
    user = _user_or_404(pk)
    if request.method == 'DELETE':
        user.delete()
        log_action(user=request.user, action='user_delete', object_type='user', object_id=pk)
        return Response({'success': True})
    return _update_user(request, user)


@validate(UserUpdateSerializer)
def _update_user(request, user: User):
    vd = request.validated_data
    if 'email' in vd:
        if _email_taken(vd['email'], exclude_pk=user.pk):
            return error_response('Email already in use', 409)
        user.email = vd['email']
        user.username = vd['email']
    for field in ('name', 'role', 'status'):
        if field in vd:
            setattr(user, field, vd[field])
    if vd.get('password'):
        user.set_password(vd['password'])
    user.save()
    log_action(user=request.user, action='user_update', object_type='user', object_id=user.pk,
               detail={'fields': sorted(vd.keys() - {'password'})})
    return Response(serialize_user(user))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
@validate(PermissionsSerializer)
def user_permissions(request, pk: int):
    user = _user_or_404(pk)
    user.permissions = [dict(p) for p in request.validated_data['permissions']]
    user.save(update_fields=['permissions', 'updated_at'])
    log_action(user=request.user, action='user_permissions', object_type='user', object_id=user.pk,
               detail={'modules': [p['name'] for p in user.permissions]})
    return Response(serialize_user(user))


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def roles(request):
    if request.method == 'POST':
        return _create_role(request)
    return Response([serialize_role(r) for r in Role.objects.order_by('name')])


@validate(RoleSerializer)
def _create_role(request):
    vd = request.validated_data
    if Role.objects.filter(name__iexact=vd['name']).exists():
        return error_response('Role already exists', 409)
    role = Role.objects.create(name=vd['name'], permissions=[dict(p) for p in vd.get('permissions') or []])
    return Response(serialize_role(role), status=201)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def role_detail(request, pk: int):
    role = _role_or_404(pk)
    if request.method == 'DELETE':
        role.delete()
        return Response({'success': True})
    return _update_role(request, role)


@validate(RoleUpdateSerializer)
def _update_role(request, role: Role):
    vd = request.validated_data
    if vd.get('name'):
        name = vd['name'].strip()
        if Role.objects.filter(name__iexact=name).exclude(pk=role.pk).exists():
            return error_response('Role already exists', 409)
        role.name = name
    if 'permissions' in vd:
        role.permissions = [dict(p) for p in vd['permissions']]
    role.save()
    return Response(serialize_role(role))
