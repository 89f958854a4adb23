"""
Django admin registrations for the lab models.

Lets superusers inspect samples, stock and ledger rows through the
``/admin/`` URL. The JSON columns are edited as raw JSON.
"""

from django.contrib import admin

from .models import (
    Appointment,
    Attendance,
    AuditEvent,
    FinanceRecord,
    InventoryCategory,
    InventoryItem,
    LabResult,
    LabSettings,
    LabTest,
    Notification,
    Patient,
    ProfilingRecord,
    Role,
    Sample,
    Staff,
    StaffDeduction,
    StaffLeave,
    StaffSalary,
    StaffSetting,
    Supplier,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'status', 'is_staff', 'is_superuser')
    list_filter = ('role', 'status')
    search_fields = ('email', 'name', 'phone')


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'updated_at')
    search_fields = ('name',)


@admin.register(LabSettings)
class LabSettingsAdmin(admin.ModelAdmin):
    list_display = ('id', 'revision', 'updated_at')


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'sample_type', 'fasting_required')
    list_filter = ('category', 'sample_type')
    search_fields = ('name',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_id', 'name', 'cnic', 'phone')
    search_fields = ('patient_id', 'name', 'cnic', 'phone')


@admin.register(Sample)
class SampleAdmin(admin.ModelAdmin):
    list_display = ('sample_number', 'patient_name', 'status', 'priority', 'payment_status', 'created_at')
    list_filter = ('status', 'priority', 'payment_status')
    search_fields = ('sample_number', 'patient_name', 'phone', 'cnic', 'barcode')


@admin.register(LabResult)
class LabResultAdmin(admin.ModelAdmin):
    list_display = ('sample_number', 'patient_name', 'status', 'created_at')
    search_fields = ('sample_number', 'patient_name')


@admin.register(InventoryCategory)
class InventoryCategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'created_at')


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'current_stock', 'min_threshold', 'unit', 'expiry_date')
    list_filter = ('category',)
    search_fields = ('name', 'supplier')


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ('name', 'status', 'total_purchase', 'paid_amount')
    list_filter = ('status',)
    search_fields = ('name', 'contact_person')


@admin.register(FinanceRecord)
class FinanceRecordAdmin(admin.ModelAdmin):
    list_display = ('date', 'type', 'department', 'category', 'amount', 'recorded_by')
    list_filter = ('type', 'department', 'category')
    search_fields = ('description', 'reference')


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('staff_code', 'name', 'position', 'status')
    list_filter = ('status',)
    search_fields = ('staff_code', 'name')


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('staff', 'date', 'status', 'check_in', 'check_out')
    list_filter = ('status',)


@admin.register(StaffSalary)
class StaffSalaryAdmin(admin.ModelAdmin):
    list_display = ('staff', 'month', 'amount', 'bonus', 'status')


@admin.register(StaffLeave)
class StaffLeaveAdmin(admin.ModelAdmin):
    list_display = ('staff', 'date', 'days', 'type')


@admin.register(StaffDeduction)
class StaffDeductionAdmin(admin.ModelAdmin):
    list_display = ('staff', 'date', 'amount', 'reason')


@admin.register(StaffSetting)
class StaffSettingAdmin(admin.ModelAdmin):
    list_display = ('key', 'updated_at')


@admin.register(ProfilingRecord)
class ProfilingRecordAdmin(admin.ModelAdmin):
    list_display = ('name', 'cnic', 'phone', 'updated_at')
    search_fields = ('name', 'cnic', 'phone')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('appointment_code', 'patient_name', 'test_name', 'date', 'time', 'status')
    list_filter = ('status',)
    search_fields = ('appointment_code', 'patient_name', 'cnic')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('user', 'audience', 'title', 'read', 'created_at')
    list_filter = ('audience', 'read')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
