import bleach
from rest_framework import serializers

from lab.validation import LabSerializer

REQUIRED_MESSAGE = 'name, email and password are required'


class PermissionEntrySerializer(serializers.Serializer):
    name = serializers.CharField()
    view = serializers.BooleanField(required=False, default=False)
    edit = serializers.BooleanField(required=False, default=False)
    delete = serializers.BooleanField(required=False, default=False)


class UserCreateSerializer(LabSerializer):
    name = serializers.CharField(max_length=255, error_messages={
        'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE,
    })
    email = serializers.EmailField(error_messages={'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE})
    password = serializers.CharField(trim_whitespace=False, error_messages={
        'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE,
    })
    role = serializers.CharField(max_length=64, required=False, default='Lab Technician')
    status = serializers.ChoiceField(choices=['Active', 'Inactive'], required=False, default='Active')

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_email(self, v):
        return v.strip().lower()


class UserUpdateSerializer(LabSerializer):
    name = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(required=False)
    password = serializers.CharField(trim_whitespace=False, required=False, allow_blank=True)
    role = serializers.CharField(max_length=64, required=False)
    status = serializers.ChoiceField(choices=['Active', 'Inactive'], required=False)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_email(self, v):
        return v.strip().lower()


class PermissionsSerializer(LabSerializer):
    permissions = PermissionEntrySerializer(many=True, error_messages={
        'required': 'permissions must be an array',
        'not_a_list': 'permissions must be an array',
        'null': 'permissions must be an array',
    })


class RoleSerializer(LabSerializer):
    name = serializers.CharField(max_length=64, error_messages={'required': 'name is required'})
    permissions = PermissionEntrySerializer(many=True, required=False)

    def validate_name(self, v):
        return v.strip()


class RoleUpdateSerializer(LabSerializer):
    name = serializers.CharField(max_length=64, required=False)
    permissions = PermissionEntrySerializer(many=True, required=False)


class ProfileUpdateSerializer(LabSerializer):
    fullName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    email = serializers.EmailField(required=False)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    gender = serializers.CharField(max_length=16, required=False, allow_blank=True)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    profileImage = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate_fullName(self, v):
        return bleach.clean(v.strip(), strip=True)

    def validate_email(self, v):
        return v.strip().lower()


class PushTokenSerializer(LabSerializer):
    expoPushToken = serializers.CharField(max_length=255, error_messages={
        'required': 'expoPushToken is required', 'blank': 'expoPushToken is required',
    })


class NotificationCreateSerializer(LabSerializer):
    userId = serializers.IntegerField(required=False, allow_null=True)
    audience = serializers.ChoiceField(choices=['patient', 'admin'], required=False, allow_null=True)
    type = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')
    title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    message = serializers.CharField(required=False, allow_blank=True)
    icon = serializers.CharField(max_length=64, required=False)
    iconColor = serializers.CharField(max_length=16, required=False)
    appointmentId = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if not all(attrs.get(k) for k in ('userId', 'audience', 'title', 'message')):
            raise serializers.ValidationError('Missing required fields')
        return attrs
