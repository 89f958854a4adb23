from rest_framework import serializers

from lab.validation import LabSerializer


class FinanceRecordSerializer(LabSerializer):
    date = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    amount = serializers.FloatField(error_messages={'invalid': 'Invalid amount', 'required': 'Invalid amount'})
    category = serializers.CharField(max_length=128, required=False, default='General')
    description = serializers.CharField(required=False, allow_blank=True, default='')
    department = serializers.ChoiceField(choices=['IPD', 'OPD', 'Pharmacy', 'Lab'], required=False, default='Lab')
    type = serializers.ChoiceField(choices=['Income', 'Expense'], required=False, default='Expense')
    patientId = serializers.CharField(max_length=32, required=False, allow_blank=True)
    admissionId = serializers.CharField(max_length=32, required=False, allow_blank=True)
    reference = serializers.CharField(max_length=64, required=False, allow_blank=True)

    def validate_amount(self, v):
        if v <= 0:
            raise serializers.ValidationError('Invalid amount')
        return v
