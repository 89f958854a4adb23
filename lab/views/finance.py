"""
Lab ledger. Sample registration and supplier payments write here too;
these endpoints cover manual entries and reporting.

The IPD desk books into the same ledger under its own department.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import FinanceRecord
from ..permissions import IsAdminOrReadOnly, module_capability
from ..serializers.finance import FinanceRecordSerializer
from ..services.audit import actor_name
from ..services.finance import as_datetime, ledger_queryset, serialize_record, summary
from ..validation import validate

FinanceAccess = module_capability('Finance')


def _book(request, department: str) -> FinanceRecord:
    vd = request.validated_data
    return FinanceRecord.objects.create(
        date=as_datetime(vd.get('date')),
        amount=vd['amount'],
        category=vd['category'],
        description=vd['description'] or vd['category'],
        department=department,
        type=vd['type'],
        recorded_by=actor_name(request.user),
        patient_id=vd.get('patientId') or '',
        admission_id=vd.get('admissionId') or '',
        reference=vd.get('reference') or '',
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, FinanceAccess])
def ledger(request):
    if request.method == 'POST':
        return _create(request)
    return Response([serialize_record(r) for r in ledger_queryset(request.query_params)])


@validate(FinanceRecordSerializer)
def _create(request):
    record = _book(request, request.validated_data['department'])
    return Response(serialize_record(record), status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, FinanceAccess])
def ledger_entry(request, pk: int):
    deleted, _ = FinanceRecord.objects.filter(pk=pk).delete()
    if not deleted:
        raise NotFound('Record not found')
    return Response({'success': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated, FinanceAccess])
def ledger_summary(request):
    return Response(summary(request.query_params))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def ipd_finance(request):
    if request.method == 'POST':
        return _create_ipd(request)
    params = {'department': 'IPD', 'type': request.query_params.get('type')}
    return Response([serialize_record(r) for r in ledger_queryset(params)])


@validate(FinanceRecordSerializer)
def _create_ipd(request):
    return Response(serialize_record(_book(request, 'IPD')), status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def ipd_finance_entry(request, pk: int):
    deleted, _ = FinanceRecord.objects.filter(pk=pk, department='IPD').delete()
    if not deleted:
        raise NotFound('Record not found')
    return Response({'ok': True})
