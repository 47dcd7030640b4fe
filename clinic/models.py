"""
Database models for the dental practice backend.

Every clinical object is scoped to an :class:`Organization` (a practice).
Charts and structured questionnaires are stored as JSON documents so that
the front-end can evolve their shape without schema migrations; the rest
is plain relational data.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class Organization(models.Model):
    """A dental practice. Users, patients and settings belong to one."""
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    address = models.CharField(max_length=255, blank=True)
    website = models.CharField(max_length=255, blank=True)
    logo_url = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class User(AbstractUser):
    """Staff member of a practice.

    The role drives authorization: owners, admins and managers administer
    the practice; clinical roles are the practitioners that appear as
    columns in the calendar.
    """
    ROLE_CHOICES = [
        ('owner', 'Owner'),
        ('admin', 'Administrator'),
        ('manager', 'Manager'),
        ('practitioner', 'Practitioner'),
        ('dentist', 'Dentist'),
        ('hygienist', 'Hygienist'),
        ('orthodontist', 'Orthodontist'),
        ('periodontologist', 'Periodontologist'),
        ('assistant', 'Assistant'),
        ('receptionist', 'Receptionist'),
        ('clerk', 'Clerk'),
    ]
    MANAGER_ROLES = frozenset({'owner', 'admin', 'manager'})
    CLINICAL_ROLES = frozenset({'practitioner', 'dentist', 'hygienist', 'orthodontist', 'periodontologist'})

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='practitioner')
    organization = models.ForeignKey(
        Organization, null=True, blank=True, on_delete=models.SET_NULL, related_name='users', db_index=True
    )
    phone = models.CharField(max_length=50, blank=True)
    is_disabled = models.BooleanField(default=False)

    @property
    def is_manager(self) -> bool:
        return self.role in self.MANAGER_ROLES

    @property
    def is_clinical(self) -> bool:
        return self.role in self.CLINICAL_ROLES

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """A patient of a practice, including chart documents."""
    GENDER_CHOICES = [
        ('MALE', 'Male'),
        ('FEMALE', 'Female'),
        ('OTHER', 'Other'),
    ]
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='patients')
    patient_code = models.CharField(max_length=32, db_index=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    # {"display_name": ..., "lat": ..., "lon": ...}
    address = models.JSONField(default=dict, blank=True)
    bsn = models.CharField(max_length=20)
    country = models.CharField(max_length=100, default='Netherlands')
    health_insurance = models.JSONField(default=dict, blank=True)
    medical_history = models.JSONField(default=dict, blank=True)
    dental_history = models.JSONField(default=dict, blank=True)
    status_praesens = models.JSONField(default=dict, blank=True)
    allow_early_spot_contact = models.BooleanField(default=False)
    # Long-term care act (WLZ) patients are billed differently
    is_long_term_care_act = models.BooleanField(default=False)
    family_head_code = models.CharField(max_length=32, blank=True, db_index=True)
    family_position = models.PositiveIntegerField(null=True, blank=True)
    is_disabled = models.BooleanField(default=False, db_index=True)
    disabled_reason = models.TextField(blank=True)
    disabled_at = models.DateTimeField(null=True, blank=True)
    disabled_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='disabled_patients'
    )
    dental_chart = models.JSONField(default=dict, blank=True)
    periodontal_charts = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['organization', 'patient_code'], name='uniq_patient_code_per_org'),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_code})"


class PatientStatusRecord(models.Model):
    """History of disable/enable actions on a patient."""
    ACTION_CHOICES = [
        ('DISABLE', 'Disable'),
        ('ENABLE', 'Enable'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='status_records')
    action = models.CharField(max_length=10, choices=ACTION_CHOICES)
    reason = models.TextField(blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)


class ActivityLog(models.Model):
    """Business audit trail. Also the source of undo/redo for procedures."""
    SEVERITY_CHOICES = [
        ('DEBUG', 'Debug'),
        ('INFO', 'Info'),
        ('WARN', 'Warn'),
        ('ERROR', 'Error'),
        ('CRITICAL', 'Critical'),
    ]
    organization = models.ForeignKey(
        Organization, null=True, blank=True, on_delete=models.CASCADE, related_name='activity_logs'
    )
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='activity_logs')
    action = models.CharField(max_length=64, db_index=True)
    entity_type = models.CharField(max_length=64, db_index=True)
    entity_id = models.CharField(max_length=64, blank=True)
    description = models.TextField(blank=True)
    details = models.JSONField(default=dict, blank=True)
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES, default='INFO')
    ip_address = models.CharField(max_length=64, blank=True)
    user_agent = models.TextField(blank=True)
    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.SET_NULL, related_name='activity_logs'
    )
    appointment = models.ForeignKey(
        'Appointment', null=True, blank=True, on_delete=models.SET_NULL, related_name='activity_logs'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']


class AsaRecord(models.Model):
    """ASA physical status classification recorded for a patient."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='asa_records')
    score = models.PositiveSmallIntegerField()
    notes = models.TextField(blank=True)
    date = models.DateTimeField()
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)


class PpsRecord(models.Model):
    """Periodontal screening score (0..3) per quadrant."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='pps_records')
    quadrant1 = models.PositiveSmallIntegerField(default=0)
    quadrant2 = models.PositiveSmallIntegerField(default=0)
    quadrant3 = models.PositiveSmallIntegerField(default=0)
    quadrant4 = models.PositiveSmallIntegerField(default=0)
    treatment = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    date = models.DateTimeField()
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)


class ScreeningRecallRecord(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='screening_recalls')
    screening_months = models.PositiveSmallIntegerField()
    notes = models.TextField(blank=True)
    date = models.DateTimeField()
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)


class CleaningRecallRecord(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='cleaning_recalls')
    procedures = models.JSONField(default=list, blank=True)
    interval_months = models.PositiveSmallIntegerField()
    notes = models.TextField(blank=True)
    date = models.DateTimeField()
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)


class CarePlan(models.Model):
    patient = models.OneToOneField(Patient, on_delete=models.CASCADE, related_name='care_plan')
    care_request = models.TextField(blank=True)
    care_goal = models.TextField(blank=True)
    policy = models.TextField(blank=True)
    risk_profile = models.TextField(blank=True)
    updated_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)


class NoteFolder(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='note_folders')
    name = models.CharField(max_length=100)
    color = models.CharField(max_length=20, default='#6b7280')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Note(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='notes')
    folder = models.ForeignKey(NoteFolder, null=True, blank=True, on_delete=models.SET_NULL, related_name='notes')
    content = models.TextField()
    is_pinned = models.BooleanField(default=False)
    pin_order = models.IntegerField(null=True, blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)
    # Only bumped when the content changes, not on pin/move
    updated_at = models.DateTimeField()


class DentalCode(models.Model):
    """Billing code from the national tariff table."""
    code = models.CharField(max_length=32, unique=True)
    description = models.TextField()
    category = models.CharField(max_length=100)
    section = models.CharField(max_length=100)
    sub_section = models.CharField(max_length=100)
    patient_type = models.CharField(max_length=50)
    points = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    requirements = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['code']

    def __str__(self) -> str:
        return self.code


class DentalProcedure(models.Model):
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('PLANNED', 'Planned'),
        ('IN_PROGRESS', 'In progress'),
        ('COMPLETED', 'Completed'),
        ('CANCELLED', 'Cancelled'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('CASH', 'Cash'),
        ('CARD', 'Card'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='procedures')
    code = models.ForeignKey(DentalCode, on_delete=models.PROTECT, related_name='procedures')
    date = models.DateTimeField()
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='PENDING')
    tooth_number = models.PositiveSmallIntegerField(null=True, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    practitioner = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='procedures'
    )
    sub_surfaces = models.JSONField(default=list, blank=True)
    filling_material = models.CharField(max_length=30, default='composite')
    is_paid = models.BooleanField(default=False)
    payment_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    payment_method = models.CharField(max_length=4, choices=PAYMENT_METHOD_CHOICES, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    invoice_email = models.BooleanField(default=False)
    invoice_printed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['date', 'id']


class ProcedureBackup(models.Model):
    """Snapshot of a procedure taken before an edit or delete.

    Only the most recent backup of an organization is kept.
    """
    BACKUP_TYPE_CHOICES = [
        ('edit', 'Edit'),
        ('delete', 'Delete'),
    ]
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='procedure_backups')
    procedure_id = models.CharField(max_length=64)
    backup_type = models.CharField(max_length=10, choices=BACKUP_TYPE_CHOICES)
    data = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('SCHEDULED', 'Scheduled'),
        ('PENDING', 'Pending'),
        ('COMPLETED', 'Completed'),
        ('CANCELLED', 'Cancelled'),
    ]
    APPOINTMENT_TYPE_CHOICES = [
        ('REGULAR', 'Regular'),
        ('RESERVATION', 'Reservation'),
        ('FAMILY', 'Family'),
    ]
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='appointments')
    # Reservations are blocks without a patient
    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.CASCADE, related_name='appointments'
    )
    practitioner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    duration = models.PositiveIntegerField(default=15)
    type = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='SCHEDULED')
    notes = models.TextField(blank=True)
    appointment_type = models.CharField(max_length=12, choices=APPOINTMENT_TYPE_CHOICES, default='REGULAR')
    reservation_color = models.CharField(max_length=20, blank=True)
    is_reservation = models.BooleanField(default=False)
    is_family_appointment = models.BooleanField(default=False)
    family_appointment_id = models.CharField(max_length=64, blank=True, db_index=True)
    appointment_status = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start_time', 'id']


def _all_weekdays() -> list:
    return ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


class CalendarSettings(models.Model):
    """Per-user calendar preferences (column color, visible weekdays)."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='calendar_settings')
    color = models.CharField(max_length=20, default='#cfdbff')
    visible_days = models.JSONField(default=_all_weekdays)
    updated_at = models.DateTimeField(auto_now=True)


class EmailTemplate(models.Model):
    """Practice specific email template, shown next to the built-in ones."""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='email_templates')
    category = models.CharField(max_length=100)
    key = models.CharField(max_length=100)
    subject = models.CharField(max_length=255)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['organization', 'category', 'key'], name='uniq_email_template_key'),
        ]
