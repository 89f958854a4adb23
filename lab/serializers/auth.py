import bleach
from rest_framework import serializers

from lab.validation import LabSerializer


class SignupPatientSerializer(LabSerializer):
    name = serializers.CharField(min_length=2, max_length=100, error_messages={
        'blank': 'Name is required',
    })
    email = serializers.EmailField(error_messages={
        'blank': 'Email is required',
        'invalid': 'Please provide a valid email address',
    })
    password = serializers.CharField(min_length=8, max_length=128, trim_whitespace=False, error_messages={
        'blank': 'Password is required',
        'min_length': 'Password must be at least 8 characters long',
    })

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if len(v) < 2:
            raise serializers.ValidationError('Name is required')
        return v

    def validate_email(self, v):
        return v.strip().lower()


class LoginSerializer(LabSerializer):
    emailOrPhone = serializers.CharField(min_length=3, error_messages={
        'blank': 'Email or phone is required',
    })
    password = serializers.CharField(trim_whitespace=False, error_messages={
        'blank': 'Password is required',
    })

    def validate_emailOrPhone(self, v):
        return v.strip().lower()
