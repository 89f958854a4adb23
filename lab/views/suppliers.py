"""
Suppliers, their purchase history and payments against it.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Supplier
from ..permissions import module_capability
from ..serializers.stock import SupplierPaymentSerializer, SupplierSerializer, SupplierUpdateSerializer
from ..services.audit import actor_name, log_action
from ..services.suppliers import create_supplier, record_payment, serialize_supplier, update_supplier
from ..validation import validate

SupplierAccess = module_capability('Suppliers')


def _supplier_or_404(pk) -> Supplier:
    supplier = Supplier.objects.filter(pk=pk).first()
    if supplier is None:
        raise NotFound('Supplier not found')
    return supplier


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, SupplierAccess])
def suppliers(request):
    if request.method == 'POST':
        return _create(request)
    qs = Supplier.objects.order_by('name')
    status = request.query_params.get('status')
    if status:
        qs = qs.filter(status=status)
    return Response([serialize_supplier(s) for s in qs])


@validate(SupplierSerializer)
def _create(request):
    supplier = create_supplier(request.validated_data)
    return Response(serialize_supplier(supplier), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, SupplierAccess])
def supplier_detail(request, pk: int):
    supplier = _supplier_or_404(pk)
    if request.method == 'GET':
        return Response(serialize_supplier(supplier))
    if request.method == 'DELETE':
        supplier.delete()
        return Response({'success': True})
    return _update(request, supplier)


@validate(SupplierUpdateSerializer)
def _update(request, supplier: Supplier):
    update_supplier(supplier, request.validated_data)
    return Response(serialize_supplier(supplier))


@api_view(['POST'])
@permission_classes([IsAuthenticated, SupplierAccess])
@validate(SupplierPaymentSerializer)
def supplier_payments(request, pk: int):
    supplier = record_payment(_supplier_or_404(pk), request.validated_data, actor_name(request.user))
    log_action(user=request.user, action='supplier_payment', object_type='supplier', object_id=supplier.pk,
               detail={'amount': request.validated_data['amount']})
    return Response(serialize_supplier(supplier), status=201)
