import re

import bleach
from rest_framework import serializers

from lab.validation import LabSerializer

MONTH_RE = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


def _text(**kwargs):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, **kwargs)


class StaffSerializer(LabSerializer):
    name = serializers.CharField(max_length=255)
    position = serializers.CharField(max_length=128)
    phone = _text(max_length=32)
    email = _text(max_length=255)
    address = _text()
    salary = serializers.FloatField(min_value=0, required=False, allow_null=True)
    joinDate = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=['active', 'inactive'], required=False)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)


class StaffUpdateSerializer(StaffSerializer):
    name = _text(max_length=255)
    position = _text(max_length=128)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True) if v else v


class SalarySerializer(LabSerializer):
    month = serializers.CharField(error_messages={'blank': 'month must be YYYY-MM'})
    amount = serializers.FloatField(min_value=0, error_messages={
        'min_value': 'amount must be a valid number (>=0)',
        'invalid': 'amount must be a valid number (>=0)',
    })
    bonus = serializers.FloatField(min_value=0, required=False, default=0, error_messages={
        'min_value': 'bonus must be a valid number (>=0)',
    })
    status = serializers.ChoiceField(choices=['pending', 'paid'], required=False)

    def validate_month(self, v):
        v = v.strip()
        if not MONTH_RE.match(v):
            raise serializers.ValidationError('month must be YYYY-MM')
        return v


class SalaryUpdateSerializer(LabSerializer):
    amount = serializers.FloatField(min_value=0, required=False, error_messages={
        'min_value': 'amount must be a valid number (>=0)',
        'invalid': 'amount must be a valid number (>=0)',
    })
    bonus = serializers.FloatField(min_value=0, required=False, error_messages={
        'min_value': 'bonus must be a valid number (>=0)',
        'invalid': 'bonus must be a valid number (>=0)',
    })
    status = serializers.ChoiceField(choices=['pending', 'paid'], required=False)


class LeaveSerializer(LabSerializer):
    date = _text()
    days = serializers.FloatField(min_value=0, required=False, allow_null=True, error_messages={
        'min_value': 'days must be a valid number (>=0)',
        'invalid': 'days must be a valid number (>=0)',
    })
    type = _text(max_length=64)
    reason = _text()


class DeductionSerializer(LabSerializer):
    date = _text()
    amount = serializers.FloatField(min_value=0, error_messages={
        'required': 'amount must be a valid number (>=0)',
        'null': 'amount must be a valid number (>=0)',
        'min_value': 'amount must be a valid number (>=0)',
        'invalid': 'amount must be a valid number (>=0)',
    })
    reason = _text()


class AttendanceSerializer(LabSerializer):
    staffId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid staffId'})
    date = _text()
    status = serializers.ChoiceField(
        choices=['present', 'absent', 'leave', 'late', 'half_day', 'official_off'], required=False,
    )
    checkIn = _text()
    checkOut = _text()
    notes = _text()


class ClockSerializer(LabSerializer):
    staffId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Invalid staffId'})
