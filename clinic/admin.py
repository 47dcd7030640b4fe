"""
Django admin registrations for the clinic models.

Superusers can inspect and correct practice data at ``/admin/``.
"""

from django.contrib import admin

from .models import (
    ActivityLog,
    Appointment,
    CalendarSettings,
    DentalCode,
    DentalProcedure,
    EmailTemplate,
    Note,
    NoteFolder,
    Organization,
    Patient,
    User,
)


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'email', 'phone', 'created_at')
    search_fields = ('name', 'email')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'organization', 'is_disabled', 'is_staff')
    list_filter = ('role', 'organization', 'is_disabled')
    search_fields = ('username', 'first_name', 'last_name', 'email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_code', 'first_name', 'last_name', 'date_of_birth', 'organization', 'is_disabled')
    list_filter = ('organization', 'is_disabled', 'is_long_term_care_act')
    search_fields = ('patient_code', 'first_name', 'last_name', 'email', 'bsn')


@admin.register(DentalCode)
class DentalCodeAdmin(admin.ModelAdmin):
    list_display = ('code', 'category', 'section', 'points', 'rate')
    list_filter = ('category',)
    search_fields = ('code', 'description')


@admin.register(DentalProcedure)
class DentalProcedureAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'code', 'tooth_number', 'status', 'cost', 'is_paid', 'date')
    list_filter = ('status', 'is_paid', 'payment_method')
    search_fields = ('patient__last_name', 'code__code', 'notes')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'start_time', 'practitioner', 'patient', 'appointment_type', 'status')
    list_filter = ('organization', 'appointment_type', 'status')
    search_fields = ('patient__last_name', 'notes', 'family_appointment_id')


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'entity_type', 'entity_id', 'user', 'severity')
    list_filter = ('action', 'entity_type', 'severity')
    search_fields = ('description', 'entity_id')


admin.site.register(NoteFolder)
admin.site.register(Note)
admin.site.register(CalendarSettings)
admin.site.register(EmailTemplate)
