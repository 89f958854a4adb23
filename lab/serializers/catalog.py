import bleach
from rest_framework import serializers

from lab.validation import LabSerializer


class LabTestSerializer(LabSerializer):
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    price = serializers.FloatField(min_value=0, required=False, allow_null=True)
    sampleType = serializers.ChoiceField(choices=['blood', 'urine', 'other'], required=False, allow_null=True)
    fastingRequired = serializers.BooleanField(required=False, default=False)
    parameters = serializers.ListField(child=serializers.DictField(), required=False)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)
