import bleach
from rest_framework import serializers

from lab.validation import LabSerializer

PRIORITIES = ['normal', 'urgent']
PAYMENT_STATUSES = ['Pending', 'Online', 'Pay at Lab', 'Paid', 'Not paid']
APPOINTMENT_STATUSES = ['Pending', 'Confirmed', 'Cancelled']


def _optional_text(**kwargs):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, **kwargs)


def _optional_choice(choices, allow_blank=True):
    return serializers.ChoiceField(choices=choices, required=False, allow_blank=allow_blank, allow_null=True)


class AppointmentCreateSerializer(LabSerializer):
    selectedTest = serializers.CharField(min_length=2)
    fullName = serializers.CharField(min_length=3)
    email = serializers.CharField(min_length=3)
    cnic = serializers.CharField(min_length=5)
    selectedGuardian = _optional_text()
    guardianName = _optional_text()
    referringDoctor = _optional_text()
    address = _optional_text()
    priority = _optional_choice(PRIORITIES)
    testPriority = _optional_choice(PRIORITIES)
    homeSamplingPriority = _optional_choice(PRIORITIES)
    gender = serializers.CharField()
    age = serializers.IntegerField(min_value=1, max_value=120)
    date = serializers.CharField()
    time = serializers.CharField()
    paymentMethod = _optional_text()
    paymentStatus = _optional_choice(PAYMENT_STATUSES, allow_blank=False)
    testFee = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    isReschedule = serializers.BooleanField(required=False, default=False)

    def validate_fullName(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_address(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class AppointmentUpdateSerializer(LabSerializer):
    selectedTest = _optional_text(min_length=2)
    fullName = _optional_text(min_length=3)
    email = _optional_text(min_length=3)
    cnic = _optional_text(min_length=5)
    selectedGuardian = _optional_text()
    guardianName = _optional_text()
    referringDoctor = _optional_text()
    address = _optional_text()
    priority = _optional_choice(PRIORITIES)
    testPriority = _optional_choice(PRIORITIES)
    homeSamplingPriority = _optional_choice(PRIORITIES)
    gender = _optional_text()
    age = serializers.IntegerField(min_value=1, max_value=120, required=False, allow_null=True)
    date = _optional_text()
    time = _optional_text()
    paymentMethod = _optional_text()
    paymentStatus = _optional_choice(PAYMENT_STATUSES, allow_blank=False)
    testFee = serializers.FloatField(min_value=0, required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('value must have at least 1 key')
        return attrs


class AppointmentStatusSerializer(LabSerializer):
    status = serializers.ChoiceField(choices=APPOINTMENT_STATUSES, error_messages={
        'invalid_choice': 'status must be one of [Pending, Confirmed, Cancelled]',
    })


class CancelAppointmentSerializer(serializers.Serializer):
    isReschedule = serializers.BooleanField(required=False, default=False)
    newDate = serializers.CharField(required=False, allow_blank=True)
    newTime = serializers.CharField(required=False, allow_blank=True)
