"""
Lab dashboard counters.

All counts cover samples registered today in the server's local time
zone.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Sample
from ..permissions import module_capability


def _is_urgent(sample: Sample) -> bool:
    if sample.priority in ('urgent', 'high'):
        return True
    return any(isinstance(r, dict) and r.get('isCritical') for r in sample.results or [])


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_capability('Dashboard')])
def dashboard_kpis(request):
    """Return ``{pending, inProgress, completedToday, urgent}`` for today."""
    start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    today = Sample.objects.filter(created_at__gte=start)
    urgent = sum(1 for s in today.only('priority', 'results') if _is_urgent(s))
    return Response({
        'pending': today.filter(status='collected').count(),
        'inProgress': today.filter(status='processing').count(),
        'completedToday': today.filter(status='completed').count(),
        'urgent': urgent,
    })
