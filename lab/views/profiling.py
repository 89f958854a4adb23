"""
Patient profiling: one row per identity seen in samples, with notes.

Rows without a stored record carry a synthetic id (``CNIC:<cnic>`` or
``PHONE:<phone>``); saving notes against one creates the record.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import module_capability
from ..serializers.profiling import ProfilingCreateSerializer, ProfilingUpdateSerializer
from ..services.profiling import find_record, profiling_list, serialize_record, update_record, upsert_by_cnic
from ..validation import validate

ProfilingAccess = module_capability('Profiling')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ProfilingAccess])
def profiling(request):
    if request.method == 'POST':
        return _upsert(request)
    return Response({'success': True, 'items': profiling_list()})


@validate(ProfilingCreateSerializer)
def _upsert(request):
    record, created = upsert_by_cnic(request.validated_data)
    return Response({'success': True, 'item': serialize_record(record)}, status=201 if created else 200)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, ProfilingAccess])
def profiling_detail(request, ident: str):
    if request.method == 'PUT':
        return _update(request, ident)
    record = find_record(ident)
    if record is None:
        raise NotFound('Profile not found')
    if request.method == 'DELETE':
        record.delete()
        return Response({'success': True})
    return Response({'success': True, 'item': serialize_record(record)})


@validate(ProfilingUpdateSerializer)
def _update(request, ident: str):
    record = update_record(ident, request.validated_data)
    if record is None:
        raise NotFound('Profile not found')
    return Response({'success': True, 'item': serialize_record(record)})
