"""
Uniform error envelope for the API.

Every failure leaves the server as ``{success: false, message, errors?}``.
DRF routes its exceptions through :func:`api_exception_handler`
(configured as ``EXCEPTION_HANDLER``); views that return an error
directly use :func:`error_response` so both paths look the same.
"""
from __future__ import annotations

import logging
from typing import Any

from django.db import IntegrityError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework_simplejwt.exceptions import InvalidToken

from .authentication import TOKEN_INVALID, TOKEN_MISSING

logger = logging.getLogger(__name__)



class ConflictError(exceptions.APIException):
    """409 carrying extra top-level keys for the envelope."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict'
    default_code = 'conflict'

    def __init__(self, detail=None, code=None, **extra: Any):
        super().__init__(detail, code)
        self.extra = extra


class DomainError(exceptions.APIException):
    """A rule violation raised by a service and shown to the caller as 400."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Bad request'
    default_code = 'bad_request'

    def __init__(self, detail=None, code=None, **extra: Any):
        super().__init__(detail, code)
        if code:
            extra.setdefault('code', code)
        self.extra = extra


def _clean(text: Any) -> str:
    return str(text).replace('"', '').strip()


def flatten_errors(detail: Any, field: str | None = None) -> list[str]:
    """Flatten a DRF error structure into readable messages.

    Field errors are prefixed with the field name unless the message
    already mentions it.
    """
    if isinstance(detail, dict):
        out: list[str] = []
        for key, value in detail.items():
            sub = None if key in ('non_field_errors', 'detail') else str(key)
            out.extend(flatten_errors(value, sub))
        return out
    if isinstance(detail, (list, tuple)):
        out = []
        for item in detail:
            out.extend(flatten_errors(item, field))
        return out
    text = _clean(detail)
    if field and field.lower() not in text.lower():
        text = f"{field}: {text}"
    return [text]


def error_response(message: str, status_code: int = 400, errors: list[str] | None = None, **extra: Any) -> Response:
    body: dict[str, Any] = {'success': False, 'message': message}
    if errors:
        body['errors'] = errors
    body.update(extra)
    return Response(body, status=status_code)


def api_exception_handler(exc, context):
    if isinstance(exc, IntegrityError):
        logger.warning("integrity error: %s", exc)
        return error_response('Duplicate record', status.HTTP_409_CONFLICT)
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view') if context else None
        logger.error("unhandled error in %s", getattr(view, '__name__', view), exc_info=exc)
        return error_response('Server error', status.HTTP_500_INTERNAL_SERVER_ERROR)

    errors: list[str] | None = None
    if isinstance(exc, exceptions.NotAuthenticated):
        message = TOKEN_MISSING
    elif isinstance(exc, (exceptions.AuthenticationFailed, InvalidToken)):
        message = TOKEN_INVALID
    elif isinstance(exc, exceptions.ValidationError):
        errors = flatten_errors(exc.detail)
        message = errors[0] if errors else 'Validation failed'
    else:
        detail = exc.detail if isinstance(exc, exceptions.APIException) else resp.data
        flat = flatten_errors(detail)
        message = flat[0] if flat else 'Request failed'

    out = error_response(message, resp.status_code, errors, **getattr(exc, 'extra', {}))
    for header, value in resp.items():
        out[header] = value
    return out
