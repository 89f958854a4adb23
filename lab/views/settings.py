"""
Lab settings, the report template store and the designer's live preview.

Writes accept an optional expected revision, either as ``revision`` in
the body or as an ``If-Match`` header; a stale one is answered with 409
and the current revision.
"""
from __future__ import annotations

from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import error_response
from ..permissions import IsAdminOrReadOnly, module_capability
from ..services.audit import log_action
from ..services.lab_settings import (
    get_settings,
    parse_revision,
    save_report_template,
    serialize_settings,
    update_settings,
)
from ..services.reports import print_document, render_report_body
from ..services.samples import sample_from_payload

CanDesignReports = module_capability('Report Designer')
SECTIONS = ('lab', 'pricing', 'notifications', 'backup')


def _expected_revision(request):
    body = request.data if isinstance(request.data, dict) else {}
    if 'revision' in body:
        return parse_revision(body.get('revision'))
    return parse_revision(request.headers.get('If-Match'))


def _with_etag(response: Response, revision: int) -> Response:
    response['ETag'] = f'"{revision}"'
    return response


@api_view(['GET', 'PUT'])
@permission_classes([IsAdminOrReadOnly])
def lab_settings(request):
    if request.method == 'GET':
        obj = get_settings()
        return _with_etag(Response(serialize_settings(obj)), obj.revision)

    body = request.data
    if not isinstance(body, dict):
        return error_response('Settings body must be an object', 400)
    bad = [s for s in SECTIONS if s in body and body[s] is not None and not isinstance(body[s], dict)]
    if bad:
        return error_response(f"{bad[0]} must be an object", 400)

    obj = update_settings(body, _expected_revision(request))
    log_action(user=request.user, action='settings_update', object_type='settings', object_id=obj.pk,
               detail={'sections': [s for s in SECTIONS if s in body], 'revision': obj.revision})
    return _with_etag(Response(serialize_settings(obj)), obj.revision)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, CanDesignReports])
def report_template(request):
    body = request.data
    if not isinstance(body, dict):
        return error_response('Request body must be an object', 400)
    template = body.get('reportTemplate')
    if template is not None and not isinstance(template, dict):
        return error_response('reportTemplate must be an object or null', 400)

    obj = save_report_template(template, _expected_revision(request))
    log_action(user=request.user, action='report_template_update', object_type='settings', object_id=obj.pk,
               detail={'revision': obj.revision, 'components': len((template or {}).get('components') or [])})
    return _with_etag(Response({'reportTemplate': obj.report_template, 'revision': obj.revision}), obj.revision)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanDesignReports])
def report_preview(request):
    """Render a sample with a draft template without saving anything."""
    body = request.data
    if not isinstance(body, dict):
        return error_response('Request body must be an object', 400)
    obj = get_settings()
    template = body['reportTemplate'] if 'reportTemplate' in body else obj.report_template
    if template is not None and not isinstance(template, dict):
        return error_response('reportTemplate must be an object or null', 400)
    sample = sample_from_payload(body.get('sample'))
    html = print_document(render_report_body(template, sample, obj.lab), title='Report Preview')
    return HttpResponse(html, content_type='text/html; charset=utf-8')
