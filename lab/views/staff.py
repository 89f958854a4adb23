"""
Staff directory, salaries, leaves, deductions and attendance.

Each staff row comes back with today's attendance so the roster screen
can show who is in without a second request.
"""
from __future__ import annotations

from django.db.models import Prefetch
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import error_response
from ..models import Attendance, Staff, StaffDeduction, StaffLeave, StaffSalary
from ..permissions import IsAdminOrReadOnly, module_capability
from ..serializers.staff import (
    AttendanceSerializer,
    ClockSerializer,
    DeductionSerializer,
    LeaveSerializer,
    SalarySerializer,
    SalaryUpdateSerializer,
    StaffSerializer,
    StaffUpdateSerializer,
)
from ..services.attendance import (
    add_deduction,
    add_leave,
    add_salary,
    check_in,
    check_out,
    create_staff,
    date_key,
    delete_salary,
    load_attendance_settings,
    monthly,
    save_attendance_settings,
    serialize_attendance,
    serialize_deduction,
    serialize_leave,
    serialize_salary,
    serialize_staff,
    server_time as current_server_time,
    today_key,
    update_salary,
    upsert_attendance,
)
from ..services.audit import actor_name
from ..validation import validate

StaffAccess = module_capability('Staff Attendance')

STAFF_FIELDS = {
    'name': 'name',
    'position': 'position',
    'phone': 'phone',
    'email': 'email',
    'address': 'address',
    'salary': 'salary',
    'joinDate': 'join_date',
    'status': 'status',
}


def _staff_or_404(pk) -> Staff:
    staff = Staff.objects.filter(pk=pk).first()
    if staff is None:
        raise NotFound('Staff not found')
    return staff


def _with_today(staff: Staff) -> dict:
    return serialize_staff(staff, list(staff.attendance.filter(date=today_key())))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_list(request):
    if request.method == 'POST':
        return _create_staff(request)
    today = Prefetch('attendance', queryset=Attendance.objects.filter(date=today_key()), to_attr='today_rows')
    rows = Staff.objects.prefetch_related(today).order_by('name')
    return Response([serialize_staff(s, s.today_rows) for s in rows])


@validate(StaffSerializer)
def _create_staff(request):
    staff = create_staff(request.validated_data)
    return Response(serialize_staff(staff), status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_detail(request, pk: int):
    staff = _staff_or_404(pk)
    if request.method == 'GET':
        return Response(_with_today(staff))
    if request.method == 'DELETE':
        staff.delete()
        return Response({'success': True})
    return _update_staff(request, staff)


@validate(StaffUpdateSerializer)
def _update_staff(request, staff: Staff):
    vd = request.validated_data
    for key, attr in STAFF_FIELDS.items():
        if key in vd and vd[key] is not None:
            setattr(staff, attr, vd[key])
    staff.save()
    return Response(_with_today(staff))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_salaries(request, pk: int):
    staff = _staff_or_404(pk)
    if request.method == 'POST':
        return _add_salary(request, staff)
    return Response([serialize_salary(s) for s in staff.salaries.order_by('-month')])


@validate(SalarySerializer)
def _add_salary(request, staff: Staff):
    salary = add_salary(staff, request.validated_data, actor_name(request.user))
    return Response(serialize_salary(salary), status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def server_time(request):
    return Response(current_server_time())


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffAccess])
def attendance(request):
    if request.method == 'POST':
        return _upsert_attendance(request)
    params = request.query_params
    staff_id = params.get('staffId')
    month = params.get('month')
    if staff_id and month:
        if not staff_id.isdigit():
            return error_response('Invalid staffId', 400)
        return Response(monthly(_staff_or_404(int(staff_id)), month)['days'])
    day = date_key(params.get('date'))
    rows = Attendance.objects.select_related('staff').filter(date=day).order_by('staff__name')
    return Response([serialize_attendance(r, with_staff=True) for r in rows])


@validate(AttendanceSerializer)
def _upsert_attendance(request):
    vd = request.validated_data
    row = upsert_attendance(_staff_or_404(vd['staffId']), vd)
    return Response(serialize_attendance(row), status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, StaffAccess])
@validate(ClockSerializer)
def attendance_check_in(request):
    row = check_in(_staff_or_404(request.validated_data['staffId']))
    return Response(serialize_attendance(row), status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, StaffAccess])
@validate(ClockSerializer)
def attendance_check_out(request):
    row = check_out(_staff_or_404(request.validated_data['staffId']))
    return Response(serialize_attendance(row))


@api_view(['GET'])
@permission_classes([IsAuthenticated, StaffAccess])
def attendance_monthly(request):
    staff_id = request.query_params.get('staffId') or ''
    if not staff_id.isdigit():
        return error_response('staffId is required', 400)
    staff = _staff_or_404(int(staff_id))
    return Response({'staffId': staff.pk, 'month': request.query_params.get('month'),
                     **monthly(staff, request.query_params.get('month') or '')})


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_salary_detail(request, pk: int, salary_id: int):
    salary = StaffSalary.objects.filter(pk=salary_id, staff=_staff_or_404(pk)).first()
    if salary is None:
        raise NotFound('Salary record not found')
    if request.method == 'DELETE':
        delete_salary(salary)
        return Response({'success': True})
    return _update_salary(request, salary)


@validate(SalaryUpdateSerializer)
def _update_salary(request, salary: StaffSalary):
    return Response(serialize_salary(update_salary(salary, request.validated_data)))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_leaves(request, pk: int):
    staff = _staff_or_404(pk)
    if request.method == 'POST':
        return _add_leave(request, staff)
    return Response([serialize_leave(r) for r in staff.leaves.order_by('-date', '-created_at')])


@validate(LeaveSerializer)
def _add_leave(request, staff: Staff):
    return Response(serialize_leave(add_leave(staff, request.validated_data)), status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_leave_detail(request, pk: int, leave_id: int):
    deleted, _ = StaffLeave.objects.filter(pk=leave_id, staff=_staff_or_404(pk)).delete()
    if not deleted:
        raise NotFound('Leave not found')
    return Response({'success': True})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_deductions(request, pk: int):
    staff = _staff_or_404(pk)
    if request.method == 'POST':
        return _add_deduction(request, staff)
    return Response([serialize_deduction(r) for r in staff.deductions.order_by('-date', '-created_at')])


@validate(DeductionSerializer)
def _add_deduction(request, staff: Staff):
    return Response(serialize_deduction(add_deduction(staff, request.validated_data)), status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, StaffAccess])
def staff_deduction_detail(request, pk: int, deduction_id: int):
    deleted, _ = StaffDeduction.objects.filter(pk=deduction_id, staff=_staff_or_404(pk)).delete()
    if not deleted:
        raise NotFound('Deduction not found')
    return Response({'success': True})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdminOrReadOnly])
def attendance_settings(request):
    if request.method == 'GET':
        return Response(load_attendance_settings())
    if not isinstance(request.data, dict):
        return error_response('Request body must be an object', 400)
    return Response(save_attendance_settings(request.data))
