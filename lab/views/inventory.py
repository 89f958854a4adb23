"""
Inventory categories, items and the stock summary.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import error_response
from ..models import InventoryCategory, InventoryItem
from ..permissions import module_capability
from ..serializers.stock import CategorySerializer, InventoryItemSerializer, InventoryItemUpdateSerializer
from ..services.inventory import create_item, delete_item, inventory_summary, serialize_item, update_item
from ..validation import validate

InventoryAccess = module_capability('Inventory')


def serialize_category(c: InventoryCategory) -> dict:
    return {'id': c.id, 'name': c.name, 'description': c.description, 'createdAt': c.created_at}


def _item_or_404(pk) -> InventoryItem:
    item = InventoryItem.objects.select_related('category').filter(pk=pk).first()
    if item is None:
        raise NotFound('Item not found')
    return item


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, InventoryAccess])
def categories(request):
    if request.method == 'POST':
        return _create_category(request)
    return Response([serialize_category(c) for c in InventoryCategory.objects.order_by('name')])


@validate(CategorySerializer)
def _create_category(request):
    vd = request.validated_data
    if InventoryCategory.objects.filter(name__iexact=vd['name']).exists():
        return error_response('Category already exists', 409)
    category = InventoryCategory.objects.create(name=vd['name'], description=vd.get('description') or '')
    return Response(serialize_category(category), status=201)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, InventoryAccess])
def items(request):
    if request.method == 'POST':
        return _create_item(request)
    qs = InventoryItem.objects.select_related('category').order_by('name')
    category = request.query_params.get('category')
    if category and category.isdigit():
        qs = qs.filter(category_id=int(category))
    q = (request.query_params.get('q') or '').strip()
    if q:
        qs = qs.filter(name__icontains=q)
    return Response([serialize_item(i) for i in qs])


@validate(InventoryItemSerializer)
def _create_item(request):
    vd = request.validated_data
    if not InventoryCategory.objects.filter(pk=vd['category']).exists():
        return error_response('Category not found', 400)
    item = create_item(vd)
    return Response(serialize_item(item), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, InventoryAccess])
def item_detail(request, pk: int):
    item = _item_or_404(pk)
    if request.method == 'GET':
        return Response(serialize_item(item))
    if request.method == 'DELETE':
        delete_item(item)
        return Response({'success': True})
    return _update_item(request, item)


@validate(InventoryItemUpdateSerializer)
def _update_item(request, item: InventoryItem):
    vd = request.validated_data
    if vd.get('category') and not InventoryCategory.objects.filter(pk=vd['category']).exists():
        return error_response('Category not found', 400)
    update_item(item, vd)
    return Response(serialize_item(_item_or_404(item.pk)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, InventoryAccess])
def summary(request):
    return Response(inventory_summary())
