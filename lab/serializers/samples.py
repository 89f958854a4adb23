import bleach
from rest_framework import serializers

from lab.validation import LabSerializer


def _text(**kwargs):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, **kwargs)


class ConsumableLineSerializer(serializers.Serializer):
    item = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid consumable item id'})
    quantity = serializers.FloatField(required=False, default=1)


class SampleCreateSerializer(LabSerializer):
    patientName = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=32)
    age = _text(max_length=16)
    gender = _text(max_length=16)
    address = _text()
    guardianRelation = _text(max_length=16)
    guardianName = _text(max_length=255)
    cnic = _text(max_length=32)
    sampleCollectedBy = _text(max_length=255)
    collectedSample = _text()
    collectedSamples = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)
    referringDoctor = _text(max_length=255)
    tests = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    consumables = ConsumableLineSerializer(many=True, required=False, default=list)
    totalAmount = serializers.FloatField(required=False, default=0)
    paymentMethod = _text(max_length=64)
    paymentStatus = serializers.ChoiceField(choices=['Pending', 'Paid', 'Not paid'], required=False)
    paidAmount = serializers.FloatField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=['normal', 'urgent'], required=False, default='normal')
    status = _text()

    def validate_patientName(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_age(self, v):
        return str(v).strip() if v is not None else ''


class SampleUpdateSerializer(LabSerializer):
    status = _text()
    sampleStatus = _text()
    barcode = _text(max_length=128)
    processingBy = _text(max_length=255)
    expectedCompletionAt = serializers.DateTimeField(required=False, allow_null=True)
    results = serializers.ListField(child=serializers.DictField(), required=False)
    interpretation = _text()
    interpretations = serializers.ListField(child=serializers.DictField(), required=False)
    testInterpretations = serializers.ListField(child=serializers.DictField(), required=False)
    editExisting = serializers.BooleanField(required=False, default=False)

    def validate_interpretation(self, v):
        return bleach.clean(v or '', strip=True)
