"""
Request body validation helpers.

``validate(SerializerClass)`` runs a serializer over ``request.data``
before the view body executes. Unknown keys are dropped, every error is
collected and the first one becomes the envelope's ``message``. On
success the cleaned data is available as ``request.validated_data``.
"""
from __future__ import annotations

import functools

from rest_framework import serializers

from .exceptions import error_response, flatten_errors

FIELD_MESSAGES = {
    'required': '"{name}" is required',
    'blank': '"{name}" is not allowed to be empty',
    'null': '"{name}" must not be null',
}


def _class_default(field, key):
    for klass in type(field).__mro__:
        messages = getattr(klass, 'default_error_messages', None) or {}
        if key in messages:
            return messages[key]
    return None


class LabSerializer(serializers.Serializer):
    """Serializer whose generic field messages name the offending field.

    Only messages still equal to DRF's defaults are replaced, so a
    field declared with its own ``error_messages`` keeps them.
    """

    def get_fields(self):
        fields = super().get_fields()
        for name, field in fields.items():
            for key, template in FIELD_MESSAGES.items():
                current = field.error_messages.get(key)
                if current is not None and current == _class_default(field, key):
                    field.error_messages[key] = template.format(name=name)
        return fields


def validate(serializer_class):
    def decorator(view_func):
        @functools.wraps(view_func)
        def wrapper(request, *args, **kwargs):
            s = serializer_class(data=request.data, context={'request': request})
            if not s.is_valid():
                errors = flatten_errors(s.errors)
                return error_response(errors[0] if errors else 'Validation failed', 400, errors)
            request.validated_data = s.validated_data
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
