"""
Patient lookup for the intake form.

The patient master is filled implicitly by sample registration; this
endpoint lets the front desk prefill a returning patient's details.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import error_response
from ..models import Patient, Sample
from ..services.samples import serialize_sample


def serialize_patient(p: Patient) -> dict:
    return {
        'patientId': p.patient_id or None,
        'name': p.name or '',
        'cnic': p.cnic or '',
        'phone': p.phone or '',
        'age': p.age or '',
        'gender': p.gender or '',
        'address': p.address or '',
        'guardianRelation': p.guardian_relation or '',
        'guardianName': p.guardian_name or '',
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def lookup_patient(request):
    cnic = (request.query_params.get('cnic') or '').strip()
    phone = (request.query_params.get('phone') or '').strip()
    if not cnic and not phone:
        return error_response('cnic or phone is required', 400)

    patient = Patient.objects.filter(cnic=cnic).first() if cnic else Patient.objects.filter(phone=phone).first()
    if patient is None:
        return Response({'success': True, 'patient': None, 'latestSample': None})

    latest = patient.samples.order_by('-created_at', '-id').first()
    if latest is None:
        latest = Sample.objects.filter(phone=patient.phone).order_by('-created_at', '-id').first() if patient.phone else None
    return Response({
        'success': True,
        'patient': serialize_patient(patient),
        'latestSample': serialize_sample(latest) if latest else None,
    })
