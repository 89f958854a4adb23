"""
Test catalog. Anyone may browse it; changes need the Test Catalog
module capability.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from ..models import LabTest
from ..permissions import module_capability
from ..serializers.catalog import LabTestSerializer
from ..validation import validate

CatalogAccess = module_capability('Test Catalog', public_read=True)


def serialize_test(t: LabTest) -> dict:
    return {
        'id': t.id,
        'name': t.name,
        'category': t.category,
        'description': t.description,
        'price': t.price,
        'sampleType': t.sample_type,
        'fastingRequired': t.fasting_required,
        'parameters': t.parameters,
        'createdAt': t.created_at,
        'updatedAt': t.updated_at,
    }


def _apply(test: LabTest, vd: dict) -> LabTest:
    test.name = vd['name']
    test.category = vd.get('category') or ''
    test.description = vd.get('description') or vd.get('notes') or ''
    if vd.get('price') is not None:
        test.price = vd['price']
    if vd.get('sampleType'):
        test.sample_type = vd['sampleType']
    test.fasting_required = bool(vd.get('fastingRequired'))
    if 'parameters' in vd:
        test.parameters = vd['parameters']
    test.save()
    return test


def _get_or_404(pk) -> LabTest:
    test = LabTest.objects.filter(pk=pk).first()
    if test is None:
        raise NotFound('Test not found')
    return test


@api_view(['GET', 'POST'])
@permission_classes([CatalogAccess])
def catalog_list(request):
    if request.method == 'POST':
        return _create(request)
    return Response([serialize_test(t) for t in LabTest.objects.order_by('name')])


@validate(LabTestSerializer)
def _create(request):
    test = _apply(LabTest(price=0, sample_type='blood'), request.validated_data)
    return Response(serialize_test(test), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([CatalogAccess])
def catalog_detail(request, pk: int):
    test = _get_or_404(pk)
    if request.method == 'GET':
        return Response(serialize_test(test))
    if request.method == 'DELETE':
        return _delete(request, test)
    return _update(request, test)


@validate(LabTestSerializer)
def _update(request, test: LabTest):
    _apply(test, request.validated_data)
    return Response(serialize_test(test))


def _delete(request, test: LabTest):
    test.delete()
    return Response({'success': True})
