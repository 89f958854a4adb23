"""
URL mappings for the lab backend API.

Paths mirror the routes the web dashboard and the patient app already
call, without trailing slashes.
"""
from django.urls import path, include

from .auth_views import login_view, signup_patient
from .views import (
    appointments,
    catalog,
    dashboard,
    finance,
    health,
    inventory,
    notifications,
    patients,
    profile,
    profiling,
    samples,
    settings,
    staff,
    suppliers,
    users,
)


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/signup-patient', signup_patient),
    path('api/auth/login', login_view),
    # Profile
    path('api/profile/me', profile.profile_me),
    path('api/profile/push-token', profile.push_token),
    path('api/profile/capabilities', profile.capabilities),
    # Appointments
    path('api/appointments', appointments.create_appointment),
    path('api/appointments/mine', appointments.my_appointments),
    path('api/appointments/mine/<int:pk>/cancel', appointments.cancel_my_appointment),
    path('api/appointments/admin', appointments.admin_appointments),
    path('api/appointments/admin/<int:pk>', appointments.admin_appointment_detail),
    path('api/appointments/admin/<int:pk>/status', appointments.admin_appointment_status),
    # Notifications
    path('api/notifications', notifications.create_notification),
    path('api/notifications/mine', notifications.my_notifications),
    path('api/notifications/mine/read-all', notifications.mark_all_read),
    path('api/notifications/mine/<int:pk>/read', notifications.mark_read),
    # Test catalog
    path('api/tests', catalog.catalog_list),
    path('api/tests/<int:pk>', catalog.catalog_detail),
    # Settings and report designer
    path('api/settings', settings.lab_settings),
    path('api/settings/report-template', settings.report_template),
    path('api/reports/preview', settings.report_preview),
    # Samples
    path('api/labtech/samples', samples.samples),
    path('api/labtech/samples/<str:ident>', samples.sample_detail),
    path('api/labtech/samples/<str:ident>/test-result', samples.sample_test_result),
    path('api/labtech/samples/<str:ident>/report', samples.sample_report),
    path('api/labtech/samples/<str:ident>/slip', samples.sample_slip),
    # Dashboard
    path('api/lab/dashboard/kpis', dashboard.dashboard_kpis),
    # User administration
    path('api/admin/users', users.users),
    path('api/admin/users/<int:pk>', users.user_detail),
    path('api/admin/users/<int:pk>/permissions', users.user_permissions),
    path('api/admin/roles', users.roles),
    path('api/admin/roles/<int:pk>', users.role_detail),
    # Inventory
    path('api/lab/inventory/categories', inventory.categories),
    path('api/lab/inventory/inventory', inventory.items),
    path('api/lab/inventory/inventory/summary', inventory.summary),
    path('api/lab/inventory/inventory/<int:pk>', inventory.item_detail),
    # Suppliers
    path('api/lab/suppliers', suppliers.suppliers),
    path('api/lab/suppliers/<int:pk>', suppliers.supplier_detail),
    path('api/lab/suppliers/<int:pk>/payments', suppliers.supplier_payments),
    # Finance
    path('api/finance/ledger', finance.ledger),
    path('api/finance/ledger/<int:pk>', finance.ledger_entry),
    path('api/finance/summary', finance.ledger_summary),
    path('api/ipd/finance', finance.ipd_finance),
    path('api/ipd/finance/<int:pk>', finance.ipd_finance_entry),
    # Staff and attendance
    path('api/lab/staff', staff.staff_list),
    path('api/lab/staff/<int:pk>', staff.staff_detail),
    path('api/lab/staff/<int:pk>/salaries', staff.staff_salaries),
    path('api/lab/staff/<int:pk>/salaries/<int:salary_id>', staff.staff_salary_detail),
    path('api/lab/staff/<int:pk>/leaves', staff.staff_leaves),
    path('api/lab/staff/<int:pk>/leaves/<int:leave_id>', staff.staff_leave_detail),
    path('api/lab/staff/<int:pk>/deductions', staff.staff_deductions),
    path('api/lab/staff/<int:pk>/deductions/<int:deduction_id>', staff.staff_deduction_detail),
    path('api/lab/staff-settings/attendance', staff.attendance_settings),
    path('api/lab/attendance/server-time', staff.server_time),
    path('api/lab/attendance/attendance', staff.attendance),
    path('api/lab/attendance/attendance/check-in', staff.attendance_check_in),
    path('api/lab/attendance/attendance/check-out', staff.attendance_check_out),
    path('api/lab/attendance/attendance/monthly', staff.attendance_monthly),
    # Patients and profiling
    path('api/lab/patients/lookup', patients.lookup_patient),
    path('api/lab/profiling', profiling.profiling),
    path('api/lab/profiling/<str:ident>', profiling.profiling_detail),
]
