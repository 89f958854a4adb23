"""
Database models for the lab management backend.

These models capture the lab's working set: users and roles, the
singleton lab settings (which also holds the report template), the
test catalog, patients and their samples, results, inventory,
suppliers, the finance ledger, staff attendance, appointments and
notifications. JSON columns are used where the dashboard treats a
nested structure as one value (test parameters, sample results,
supplier payments) so the API can return it unchanged.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """A login identity for staff, administrators and patients.

    ``role`` is free-form because administrators name their own roles
    (e.g. 'Lab Technician'); admin-equivalence is decided by
    :func:`lab.permissions.is_admin_role`. ``permissions`` holds the
    per-module capability entries ``{name, view, edit, delete}``.
    """
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
    ]
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=64, default='patient', db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='Active')
    phone = models.CharField(max_length=32, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    age = models.PositiveIntegerField(null=True, blank=True)
    profile_image_url = models.CharField(max_length=500, blank=True)
    expo_push_token = models.CharField(max_length=255, blank=True)
    permissions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Role(models.Model):
    """A named permission preset that administrators copy onto users."""
    name = models.CharField(max_length=64, unique=True)
    permissions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name


def default_lab() -> dict:
    return {
        'labName': '',
        'address': '',
        'phone': '',
        'email': '',
        'website': '',
        'license': '',
        'currency': '',
        'timezone': '',
        'defaultLanguage': '',
        'directorName': '',
        'accreditationBody': '',
        'consultants': [],
        'logoUrl': '',
    }


def default_pricing() -> dict:
    return {
        'defaultCurrency': 'PKR',
        'taxRate': 0,
        'bulkDiscountRate': 0,
        'urgentTestUpliftRate': 0,
        'homeSamplingChargesRate': 0,
        'homeSamplingChargesUrgentRate': 0,
    }


def default_notifications() -> dict:
    return {
        'emailNotifications': False,
        'smsNotifications': False,
        'criticalAlerts': False,
        'reportReady': False,
        'appointmentReminders': False,
        'systemMaintenance': False,
    }


def default_backup() -> dict:
    return {'enabled': False, 'time': '02:00'}


class LabSettings(models.Model):
    """The single lab-wide configuration row (pk=1).

    ``report_template`` is stored as opaque JSON. ``revision`` is bumped
    on every write so concurrent editors can detect a stale copy.
    """
    lab = models.JSONField(default=default_lab)
    pricing = models.JSONField(default=default_pricing)
    notifications = models.JSONField(default=default_notifications)
    backup = models.JSONField(default=default_backup)
    report_template = models.JSONField(null=True, blank=True, default=None)
    revision = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'lab settings'

    def __str__(self) -> str:
        return f"LabSettings(rev={self.revision})"


class Counter(models.Model):
    """Named monotonically increasing sequence (e.g. 'patientId')."""
    name = models.CharField(max_length=64, primary_key=True)
    seq = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.name}={self.seq}"


class LabTest(models.Model):
    SAMPLE_TYPE_CHOICES = [
        ('blood', 'Blood'),
        ('urine', 'Urine'),
        ('other', 'Other'),
    ]
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=128, blank=True)
    description = models.TextField(blank=True)
    price = models.FloatField(default=0)
    sample_type = models.CharField(max_length=10, choices=SAMPLE_TYPE_CHOICES, default='blood')
    fasting_required = models.BooleanField(default=False)
    # [{id, name, unit, normalRangeMale, normalRangeFemale, normalRangePediatric,
    #   normalRange: {min, max}, criticalRange: {min, max}}]
    parameters = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name


class Patient(models.Model):
    """Patient master record, created on first sample intake."""
    patient_id = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    cnic = models.CharField(max_length=32, unique=True, null=True, blank=True)
    phone = models.CharField(max_length=32, blank=True, db_index=True)
    age = models.CharField(max_length=16, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    address = models.TextField(blank=True)
    guardian_relation = models.CharField(max_length=16, blank=True)
    guardian_name = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.patient_id} {self.name}"


class Sample(models.Model):
    """A specimen taken at intake, with its ordered tests and results.

    ``results`` rows carry a composite ``parameterId`` of the form
    ``<testKey>::<paramId>``; that prefix is the only link between a
    multi-test sample and the result rows of each test.
    """
    STATUS_CHOICES = [
        ('collected', 'Collected'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    PRIORITY_CHOICES = [
        ('normal', 'Normal'),
        ('urgent', 'Urgent'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Paid', 'Paid'),
        ('Not paid', 'Not paid'),
    ]
    sample_number = models.CharField(max_length=32, unique=True)
    barcode = models.CharField(max_length=128, blank=True)
    patient = models.ForeignKey(Patient, null=True, blank=True, on_delete=models.SET_NULL, related_name='samples')
    patient_code = models.CharField(max_length=20, blank=True)
    patient_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, db_index=True)
    age = models.CharField(max_length=16, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    address = models.TextField(blank=True)
    guardian_relation = models.CharField(max_length=16, blank=True)
    guardian_name = models.CharField(max_length=255, blank=True)
    cnic = models.CharField(max_length=32, blank=True, db_index=True)

    sample_collected_by = models.CharField(max_length=255, blank=True)
    processing_by = models.CharField(max_length=255, blank=True)
    expected_completion_at = models.DateTimeField(null=True, blank=True)
    collected_sample = models.CharField(max_length=255, blank=True)
    collected_samples = models.JSONField(default=list, blank=True)
    referring_doctor = models.CharField(max_length=255, blank=True)

    # [{test, name, price}]
    tests = models.JSONField(default=list, blank=True)
    # [{item, quantity}]
    consumables = models.JSONField(default=list, blank=True)

    total_amount = models.FloatField(default=0)
    payment_method = models.CharField(max_length=64, blank=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='Paid')
    paid_amount = models.FloatField(default=0)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal', db_index=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='collected', db_index=True)

    # [{parameterId, value, comment, isAbnormal, isCritical, label, unit, normalText}]
    results = models.JSONField(default=list, blank=True)
    interpretation = models.TextField(blank=True)
    # [{testKey, testName, text}]
    interpretations = models.JSONField(default=list, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.sample_number} ({self.patient_name})"


class LabResult(models.Model):
    """Snapshot of the results entered for a sample."""
    sample = models.ForeignKey(Sample, on_delete=models.CASCADE, related_name='lab_results')
    sample_number = models.CharField(max_length=32, db_index=True)
    patient_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    age = models.CharField(max_length=16, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    address = models.TextField(blank=True)
    cnic = models.CharField(max_length=32, blank=True)
    tests = models.JSONField(default=list, blank=True)
    results = models.JSONField(default=list, blank=True)
    interpretation = models.TextField(blank=True)
    interpretations = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=16, default='completed')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Result for {self.sample_number}"


class InventoryCategory(models.Model):
    name = models.CharField(max_length=128, unique=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'inventory categories'

    def __str__(self) -> str:
        return self.name


class InventoryItem(models.Model):
    """A consumable or reagent tracked in stock units."""
    name = models.CharField(max_length=255)
    category = models.ForeignKey(InventoryCategory, on_delete=models.PROTECT, related_name='items')
    current_stock = models.FloatField(default=0)
    min_threshold = models.FloatField(default=0)
    max_capacity = models.FloatField(default=0)
    unit = models.CharField(max_length=32, default='unit')
    cost_per_unit = models.FloatField(default=0)
    supplier = models.CharField(max_length=255, blank=True)
    location = models.CharField(max_length=255, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    last_restocked = models.DateTimeField(null=True, blank=True)
    packs = models.FloatField(default=0)
    items_per_pack = models.FloatField(default=0)
    buy_price_per_pack = models.FloatField(default=0)
    sale_price_per_pack = models.FloatField(null=True, blank=True)
    sale_price_per_unit = models.FloatField(null=True, blank=True)
    invoice_number = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.current_stock} {self.unit})"


class Supplier(models.Model):
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Expiring', 'Expiring'),
        ('Inactive', 'Inactive'),
        ('Cancelled', 'Cancelled'),
    ]
    name = models.CharField(max_length=255)
    contact_person = models.CharField(max_length=255, blank=True)
    email = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    products = models.JSONField(default=list, blank=True)
    contract_start_date = models.CharField(max_length=10, blank=True)
    contract_end_date = models.CharField(max_length=10, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='Active')
    total_purchase = models.FloatField(default=0)
    paid_amount = models.FloatField(default=0)
    # [{amount, note, method, invoiceNumber, itemId, itemName, paidAt}]
    payments = models.JSONField(default=list, blank=True)
    # [{amount, itemId, itemName, invoiceNumber, quantityUnits, packs, createdAt}]
    purchases = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def outstanding(self) -> float:
        return max(self.total_purchase - self.paid_amount, 0)

    def __str__(self) -> str:
        return self.name


class FinanceRecord(models.Model):
    DEPARTMENT_CHOICES = [
        ('IPD', 'IPD'),
        ('OPD', 'OPD'),
        ('Pharmacy', 'Pharmacy'),
        ('Lab', 'Lab'),
    ]
    TYPE_CHOICES = [
        ('Income', 'Income'),
        ('Expense', 'Expense'),
    ]
    date = models.DateTimeField()
    amount = models.FloatField()
    category = models.CharField(max_length=128)
    description = models.TextField()
    department = models.CharField(max_length=10, choices=DEPARTMENT_CHOICES, default='Lab')
    type = models.CharField(max_length=8, choices=TYPE_CHOICES)
    recorded_by = models.CharField(max_length=255, blank=True)
    patient_id = models.CharField(max_length=32, blank=True)
    admission_id = models.CharField(max_length=32, blank=True)
    reference = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['-date']),
            models.Index(fields=['department', 'type', '-date']),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.amount} ({self.category})"


class Staff(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]
    staff_code = models.CharField(max_length=32, unique=True, null=True, blank=True)
    name = models.CharField(max_length=255, db_index=True)
    position = models.CharField(max_length=128)
    phone = models.CharField(max_length=32, blank=True)
    email = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    salary = models.FloatField(default=0)
    join_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'staff'

    def __str__(self) -> str:
        return f"{self.name} ({self.position})"


class Attendance(models.Model):
    STATUS_CHOICES = [
        ('present', 'Present'),
        ('absent', 'Absent'),
        ('leave', 'Leave'),
        ('late', 'Late'),
        ('half_day', 'Half day'),
        ('official_off', 'Official off'),
    ]
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='attendance')
    date = models.CharField(max_length=10, db_index=True)  # YYYY-MM-DD
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='present')
    check_in = models.CharField(max_length=8, blank=True)  # HH:MM
    check_out = models.CharField(max_length=8, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['staff', 'date'], name='uniq_attendance_staff_date'),
        ]

    def __str__(self) -> str:
        return f"{self.staff_id}@{self.date}: {self.status}"


class StaffSalary(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
    ]
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='salaries')
    month = models.CharField(max_length=7)  # YYYY-MM
    amount = models.FloatField()
    bonus = models.FloatField(default=0)
    status = models.CharField(max_length=8, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['staff', 'month'], name='uniq_salary_staff_month'),
        ]

    def __str__(self) -> str:
        return f"{self.staff_id}@{self.month}: {self.amount}"


class StaffLeave(models.Model):
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='leaves')
    date = models.CharField(max_length=10)  # YYYY-MM-DD
    days = models.FloatField(default=1)
    type = models.CharField(max_length=64, blank=True)
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['staff', '-date'])]

    def __str__(self) -> str:
        return f"{self.staff_id}@{self.date}: {self.days}d"


class StaffDeduction(models.Model):
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='deductions')
    date = models.CharField(max_length=10)  # YYYY-MM-DD
    amount = models.FloatField()
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['staff', '-date'])]

    def __str__(self) -> str:
        return f"{self.staff_id}@{self.date}: -{self.amount}"


class StaffSetting(models.Model):
    """Keyed JSON blobs for staff policy (currently only ``attendance``)."""
    key = models.CharField(max_length=64, unique=True)
    value = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.key


class ProfilingRecord(models.Model):
    """Free-text profiling notes kept against a patient identity."""
    name = models.CharField(max_length=255)
    cnic = models.CharField(max_length=32, unique=True, null=True, blank=True)
    phone = models.CharField(max_length=32, db_index=True)
    profiling_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.cnic or self.phone})"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Confirmed', 'Confirmed'),
        ('Cancelled', 'Cancelled'),
    ]
    patient = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    patient_name = models.CharField(max_length=255)
    contact = models.CharField(max_length=255)
    cnic = models.CharField(max_length=32)
    gender = models.CharField(max_length=16)
    age = models.PositiveIntegerField()
    guardian = models.CharField(max_length=16, blank=True)
    guardian_name = models.CharField(max_length=255, blank=True)
    referring_doctor = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    priority = models.CharField(max_length=10, default='normal')
    test_priority = models.CharField(max_length=10, default='normal')
    home_sampling_priority = models.CharField(max_length=10, default='normal')
    test_name = models.CharField(max_length=255)
    test_fee = models.FloatField(null=True, blank=True)
    date = models.CharField(max_length=10)  # YYYY-MM-DD
    time = models.CharField(max_length=16)  # e.g. '10:30 AM'
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='Pending', db_index=True)
    cancelled_by = models.CharField(max_length=10, blank=True)
    payment_method = models.CharField(max_length=64, blank=True)
    payment_status = models.CharField(max_length=16, default='Pending')
    appointment_sequence = models.PositiveIntegerField(unique=True)
    appointment_code = models.CharField(max_length=16, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['date', 'time']),
        ]

    def __str__(self) -> str:
        return f"{self.appointment_code} {self.test_name} {self.date} {self.time}"


class Notification(models.Model):
    AUDIENCE_CHOICES = [
        ('patient', 'Patient'),
        ('admin', 'Admin'),
    ]
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    audience = models.CharField(max_length=10, choices=AUDIENCE_CHOICES)
    type = models.CharField(max_length=64, blank=True)
    title = models.CharField(max_length=255)
    message = models.TextField()
    icon = models.CharField(max_length=64, default='notifications')
    icon_color = models.CharField(max_length=16, default='#3B82F6')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications'
    )
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', 'read', 'created_at']),
        ]

    def __str__(self) -> str:
        return f"{self.title} -> {self.user_id}"


class AuditEvent(models.Model):
    """Append-only trail of security-relevant actions."""
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["action", "created_at"]),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
