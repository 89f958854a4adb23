"""
Sample intake, tracking and result entry.

Samples are addressed either by numeric id or by their sample number
(``LAB-2025-001``). Reading needs ``view`` on the Samples module,
changes need ``edit`` or ``delete``.
"""
from __future__ import annotations

from django.db.models import Q
from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import module_capability
from ..models import Sample
from ..serializers.samples import SampleCreateSerializer, SampleUpdateSerializer
from ..services.lab_settings import get_settings
from ..services.reports import print_document, render_sample_report, render_sample_slip
from ..services.samples import (
    create_sample,
    delete_sample,
    find_sample,
    latest_result,
    normalize_status,
    serialize_result,
    serialize_sample,
    update_sample,
)
from ..validation import validate

SampleAccess = module_capability('Samples')


def _truthy(value) -> bool:
    return str(value or '').strip().lower() in ('1', 'true', 'yes')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, SampleAccess])
def samples(request):
    if request.method == 'POST':
        return _create(request)
    qs = Sample.objects.order_by('-created_at', '-id')
    status = request.query_params.get('status')
    if status:
        qs = qs.filter(status=normalize_status(status))
    q = (request.query_params.get('q') or '').strip()
    if q:
        qs = qs.filter(
            Q(sample_number__icontains=q) | Q(patient_name__icontains=q)
            | Q(phone__icontains=q) | Q(cnic__icontains=q) | Q(barcode__icontains=q)
        )
    return Response([serialize_sample(s) for s in qs])


@validate(SampleCreateSerializer)
def _create(request):
    sample = create_sample(request.validated_data, request.user)
    return Response(serialize_sample(sample), status=201)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, SampleAccess])
def sample_detail(request, ident: str):
    sample = find_sample(ident)
    if request.method == 'GET':
        return Response(serialize_sample(sample))
    if request.method == 'DELETE':
        delete_sample(sample)
        return Response({'success': True})
    return _update(request, sample)


@validate(SampleUpdateSerializer)
def _update(request, sample: Sample):
    update_sample(sample, request.validated_data)
    return Response(serialize_sample(sample))


@api_view(['GET'])
@permission_classes([IsAuthenticated, SampleAccess])
def sample_test_result(request, ident: str):
    return Response(serialize_result(latest_result(ident)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, SampleAccess])
def sample_report(request, ident: str):
    """Printable HTML report; the receipt slip stands in if rendering fails."""
    sample = find_sample(ident)
    body, _ = render_sample_report(sample, get_settings())
    html = print_document(body, auto_print=_truthy(request.query_params.get('autoPrint')),
                          title=f"Report {sample.sample_number}")
    return HttpResponse(html, content_type='text/html; charset=utf-8')


@api_view(['GET'])
@permission_classes([IsAuthenticated, SampleAccess])
def sample_slip(request, ident: str):
    sample = find_sample(ident)
    obj = get_settings()
    html = print_document(render_sample_slip(sample, obj.lab, obj.pricing),
                          auto_print=_truthy(request.query_params.get('autoPrint')),
                          title=f"Slip {sample.sample_number}")
    return HttpResponse(html, content_type='text/html; charset=utf-8')
