"""
URL mappings for the dental practice API.

Trailing slashes are deliberately omitted; ``APPEND_SLASH`` is off.
"""
from django.urls import path, include

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, register_view, user_profile
from .views import (
    appointments,
    billing,
    calendar,
    codes,
    communication,
    dental,
    health,
    logs,
    notes,
    patients,
    records,
)


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/user/profile', user_profile, name='user_profile'),
    # Patients
    path('api/patients', patients.patients),
    path('api/patients/<int:pk>', patients.patient_detail),
    path('api/patients/<int:pk>/status', patients.patient_status),
    path('api/families', patients.families),
    path('api/families/<str:code>', patients.family),
    # Clinical records
    path('api/patients/<int:pk>/asa', records.asa_records),
    path('api/patients/<int:pk>/pps', records.pps_records),
    path('api/patients/<int:pk>/recall', records.recall_records),
    path('api/patients/<int:pk>/cleaning-recall', records.cleaning_recall_records),
    path('api/patients/<int:pk>/care-plan', records.care_plan),
    path('api/patients/<int:pk>/c002-checkup', records.checkup),
    # Notes
    path('api/patients/<int:pk>/notes', notes.notes),
    path('api/patients/<int:pk>/note-folders', notes.note_folders),
    # Charts and procedures
    path('api/patients/<int:pk>/dental', dental.dental_data),
    path('api/patients/<int:pk>/periodontal-charts', dental.periodontal_charts),
    path('api/patients/<int:pk>/periodontal-charts/compare', dental.periodontal_compare),
    path('api/patients/<int:pk>/dental-procedures', dental.procedures),
    path('api/patients/<int:pk>/dental-procedures/pay', billing.pay),
    path('api/patients/<int:pk>/dental-procedures/<int:pid>', dental.procedure_detail),
    path('api/patients/<int:pk>/scaling', dental.scaling),
    path('api/patients/<int:pk>/sealings', dental.sealings),
    path('api/dental-procedures/undo', dental.undo),
    path('api/dental-procedures/redo', dental.redo),
    path('api/periodontal/analyze', dental.periodontal_analyze),
    path('api/dental-codes', codes.dental_codes),
    # Billing
    path('api/patients/<int:pk>/treatment-plan', billing.treatment_plan_view),
    path('api/patients/<int:pk>/treatment-plan/print', billing.treatment_plan_print),
    # Appointments and calendar
    path('api/appointments', appointments.appointments),
    path('api/appointments/statuses', appointments.appointment_statuses),
    path('api/appointments/slots', appointments.appointment_slots),
    path('api/appointments/send-confirmation', appointments.send_confirmation),
    path('api/appointments/<int:pk>/status', appointments.appointment_status),
    path('api/calendar', calendar.calendar),
    path('api/practitioners', calendar.practitioners),
    path('api/calendar-settings/personal', calendar.calendar_settings_personal),
    # Communication
    path('api/email-templates', communication.email_templates),
    path('api/patients/<int:pk>/email', communication.patient_email),
    # Activity log
    path('api/logs', logs.logs),
    path('api/logs/download', logs.logs_download),
]
