import bleach
from rest_framework import serializers

from lab.validation import LabSerializer

REQUIRED_MESSAGE = 'Name, CNIC and phone are required.'


class ProfilingCreateSerializer(LabSerializer):
    name = serializers.CharField(max_length=255, error_messages={
        'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE,
    })
    cnic = serializers.CharField(max_length=32, error_messages={
        'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE,
    })
    phone = serializers.CharField(max_length=32, error_messages={
        'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE,
    })
    profilingNotes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_profilingNotes(self, v):
        return bleach.clean(v, strip=True)


class ProfilingUpdateSerializer(LabSerializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    cnic = serializers.CharField(max_length=32, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    profilingNotes = serializers.CharField(required=False, allow_blank=True)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_profilingNotes(self, v):
        return bleach.clean(v, strip=True)
