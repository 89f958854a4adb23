import bleach
from rest_framework import serializers

from lab.validation import LabSerializer


def _text(**kwargs):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, **kwargs)


def _amount(**kwargs):
    return serializers.FloatField(min_value=0, required=False, allow_null=True, **kwargs)


class CategorySerializer(LabSerializer):
    name = serializers.CharField(max_length=128, error_messages={'blank': 'Category name is required'})
    description = _text()

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)


class InventoryItemSerializer(LabSerializer):
    name = serializers.CharField(max_length=255, error_messages={'blank': 'Item name is required'})
    category = serializers.IntegerField(min_value=1, error_messages={'required': 'Category is required'})
    currentStock = _amount()
    minThreshold = _amount()
    maxCapacity = _amount()
    unit = _text(max_length=32)
    costPerUnit = _amount()
    supplier = _text(max_length=255)
    location = _text(max_length=255)
    expiryDate = serializers.DateField(required=False, allow_null=True)
    packs = _amount()
    itemsPerPack = _amount()
    buyPricePerPack = _amount()
    salePricePerPack = _amount()
    salePricePerUnit = _amount()
    invoiceNumber = _text(max_length=64)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)


class InventoryItemUpdateSerializer(InventoryItemSerializer):
    name = _text(max_length=255)
    category = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True) if v else v


class PurchaseLineSerializer(serializers.Serializer):
    amount = serializers.FloatField(min_value=0)
    itemId = serializers.IntegerField(required=False, allow_null=True)
    itemName = serializers.CharField(required=False, allow_blank=True)
    invoiceNumber = serializers.CharField(required=False, allow_blank=True)
    quantityUnits = serializers.FloatField(required=False, default=0)
    packs = serializers.FloatField(required=False, default=0)


class SupplierSerializer(LabSerializer):
    name = serializers.CharField(max_length=255, error_messages={'blank': 'Supplier name is required'})
    contactPerson = _text(max_length=255)
    email = _text(max_length=255)
    phone = _text(max_length=32)
    address = _text()
    products = serializers.JSONField(required=False)
    contractStartDate = _text(max_length=10)
    contractEndDate = _text(max_length=10)
    status = serializers.ChoiceField(choices=['Active', 'Expiring', 'Inactive', 'Cancelled'], required=False)
    totalPurchase = _amount(error_messages={'min_value': 'Total purchase must be a valid number (>= 0)'})

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)


class SupplierUpdateSerializer(SupplierSerializer):
    name = _text(max_length=255)
    purchases = PurchaseLineSerializer(many=True, required=False)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True) if v else v


class SupplierPaymentSerializer(LabSerializer):
    amount = serializers.FloatField(error_messages={'invalid': 'Payment amount must be greater than 0'})
    note = _text()
    method = _text(max_length=32)
    invoiceNumber = _text(max_length=64)
    itemId = serializers.IntegerField(required=False, allow_null=True)
    itemName = _text(max_length=255)

    def validate_amount(self, v):
        if v <= 0:
            raise serializers.ValidationError('Payment amount must be greater than 0')
        return v
