from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import error_response
from ..models import User
from ..permissions import capability_map
from ..serializers.users import ProfileUpdateSerializer, PushTokenSerializer
from ..validation import validate

PROFILE_FIELDS = {
    'fullName': 'name',
    'email': 'email',
    'phone': 'phone',
    'gender': 'gender',
    'age': 'age',
    'profileImage': 'profile_image_url',
}


def _profile(user: User) -> dict:
    return {
        'fullName': user.name or '',
        'role': user.role or '',
        'email': user.email or '',
        'phone': user.phone or '',
        'gender': user.gender or '',
        'age': user.age or None,
        'profileImage': user.profile_image_url or None,
    }


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile_me(request):
    if request.method == 'GET':
        return Response({'success': True, 'profile': _profile(request.user)})
    return _update_profile(request)


@validate(ProfileUpdateSerializer)
def _update_profile(request):
    user = request.user
    vd = request.validated_data
    if 'email' in vd and User.objects.filter(email__iexact=vd['email']).exclude(pk=user.pk).exists():
        return error_response('Email already in use', 409)
    for key, attr in PROFILE_FIELDS.items():
        if key in vd:
            setattr(user, attr, vd[key])
    if 'email' in vd:
        user.username = vd['email']
    user.save()
    return Response({'success': True, 'profile': _profile(user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@validate(PushTokenSerializer)
def push_token(request):
    user = request.user
    user.expo_push_token = request.validated_data['expoPushToken']
    user.save(update_fields=['expo_push_token', 'updated_at'])
    return Response({'success': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def capabilities(request):
    """Per-module view/edit/delete flags for the current user."""
    return Response({'success': True, 'role': request.user.role, 'capabilities': capability_map(request.user)})
