"""
Integration tests for the dental practice API.

These tests exercise the most critical behaviours of the system:
organization isolation, patient intake, procedures with undo/redo,
payment and the appointment calendar. They use Django REST Framework's
APIClient within the APITestCase base class.

To run the tests:

```
pytest -q clinic/tests
```
"""
import csv
import io
import json
import os
import tempfile
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.core import mail
from django.core.management import call_command
from django.core.cache import cache
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from ..models import (
    ActivityLog,
    Appointment,
    CalendarSettings,
    CarePlan,
    DentalCode,
    DentalProcedure,
    Note,
    Organization,
    Patient,
    User,
)


def _patient_payload(**overrides):
    data = {
        'firstName': 'Anna',
        'lastName': 'de Boer',
        'dateOfBirth': '1980-05-01',
        'gender': 'FEMALE',
        'email': 'anna@example.com',
        'bsn': '123456782',
        'address': {'display_name': 'Utrecht, Netherlands'},
    }
    data.update(overrides)
    return data


class DentalAPITests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.org1 = Organization.objects.create(name='Smile Utrecht', phone='030-1111111', address='Oudegracht 1')
        self.org2 = Organization.objects.create(name='Smile Leiden')
        self.owner = User.objects.create_user(
            username='owner1', password='P@ssw0rd1', role='owner', organization=self.org1,
            first_name='Olga', last_name='Owner',
        )
        self.dentist = User.objects.create_user(
            username='dentist1', password='P@ssw0rd1', role='dentist', organization=self.org1,
            first_name='Dirk', last_name='Dentist',
        )
        self.other = User.objects.create_user(
            username='other1', password='P@ssw0rd1', role='owner', organization=self.org2,
        )
        self.patient = Patient.objects.create(
            organization=self.org1, patient_code='1', first_name='Piet', last_name='Pieters',
            date_of_birth=date(1975, 3, 3), gender='MALE', bsn='111222333', email='piet@example.com',
        )
        self.c002 = DentalCode.objects.create(
            code='C002', description='Periodic check-up', category='Consultation', section='C',
            sub_section='Consultation', patient_type='ALL', rate=Decimal('24.47'),
        )
        self.x10 = DentalCode.objects.create(
            code='X10', description='Small X-ray', category='Imaging', section='X',
            sub_section='X-ray', patient_type='ALL', rate=Decimal('17.13'),
        )
        self.client.force_authenticate(self.owner)

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------
    def test_create_patient_assigns_code_and_asa_record(self):
        resp = self.client.post('/api/patients', _patient_payload(
            medicalHistory={'diabetes': True, 'smoking': True},
        ), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.data['data']
        # one patient already exists in the organization
        self.assertEqual(data['patientCode'], '2')

        detail = self.client.get(f"/api/patients/{data['id']}")
        self.assertEqual(detail.status_code, 200)
        asa = detail.data['data']['asaRecords']
        self.assertEqual(len(asa), 1)
        self.assertEqual(asa[0]['score'], 3)
        self.assertIn('Diabetes', asa[0]['notes'])
        self.assertTrue(ActivityLog.objects.filter(action='CREATE_PATIENT', entity_id=str(data['id'])).exists())

    def test_patient_of_other_organization_is_not_found(self):
        self.client.force_authenticate(self.other)
        resp = self.client.get(f'/api/patients/{self.patient.id}')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(resp.data['ok'])
        listing = self.client.get('/api/patients')
        self.assertEqual(listing.data['data'], [])

    def test_disable_patient_records_history(self):
        resp = self.client.post(
            f'/api/patients/{self.patient.id}/status', {'action': 'DISABLE', 'reason': 'Moved away'}, format='json',
        )
        self.assertEqual(resp.status_code, 201)
        self.patient.refresh_from_db()
        self.assertTrue(self.patient.is_disabled)
        history = self.client.get(f'/api/patients/{self.patient.id}/status')
        self.assertEqual(history.data['data'][0]['action'], 'DISABLE')
        listing = self.client.get('/api/patients')
        self.assertNotIn(self.patient.id, [p['id'] for p in listing.data['data']])

    # ------------------------------------------------------------------
    # Procedures, undo and redo
    # ------------------------------------------------------------------
    def _create_procedure(self, code=None, **extra):
        body = {'codeId': (code or self.c002).id, 'date': timezone.now().isoformat(), 'toothNumber': 16}
        body.update(extra)
        resp = self.client.post(f'/api/patients/{self.patient.id}/dental-procedures', body, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        return resp.data['data']

    def test_procedure_cost_uses_rate_times_quantity(self):
        proc = self._create_procedure(quantity=2)
        self.assertEqual(proc['cost'], 48.94)

    def test_long_term_care_patient_is_not_billed(self):
        self.patient.is_long_term_care_act = True
        self.patient.save()
        proc = self._create_procedure()
        self.assertEqual(proc['cost'], 0.0)

    def test_undo_create_then_redo(self):
        proc = self._create_procedure()

        undo = self.client.post('/api/dental-procedures/undo', HTTP_X_ENTITY_ID=str(proc['id']))
        self.assertEqual(undo.status_code, 200, undo.data)
        self.assertEqual(undo.data['data']['action'], 'UNDO_CREATE_DENTAL_PROCEDURE')
        self.assertFalse(DentalProcedure.objects.filter(id=proc['id']).exists())

        redo = self.client.post('/api/dental-procedures/redo')
        self.assertEqual(redo.status_code, 200, redo.data)
        self.assertEqual(redo.data['data']['action'], 'CREATE_DENTAL_PROCEDURE')
        self.assertTrue(DentalProcedure.objects.filter(id=proc['id']).exists())

        again = self.client.post('/api/dental-procedures/redo')
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.data['error']['code'], 'NO_UNDO_LOG')

    def test_undo_update_restores_previous_values(self):
        proc = self._create_procedure(notes='first')
        resp = self.client.put(
            f"/api/patients/{self.patient.id}/dental-procedures/{proc['id']}",
            {'notes': 'second', 'status': 'COMPLETED'}, format='json',
        )
        self.assertEqual(resp.status_code, 200)
        undo = self.client.post('/api/dental-procedures/undo')
        self.assertEqual(undo.data['data']['action'], 'UNDO_UPDATE_DENTAL_PROCEDURE')
        restored = DentalProcedure.objects.get(id=proc['id'])
        self.assertEqual(restored.notes, 'first')
        self.assertEqual(restored.status, 'PENDING')

    def test_undo_delete_recreates_procedure(self):
        proc = self._create_procedure()
        resp = self.client.delete(f"/api/patients/{self.patient.id}/dental-procedures/{proc['id']}")
        self.assertEqual(resp.status_code, 200)
        undo = self.client.post('/api/dental-procedures/undo')
        self.assertEqual(undo.status_code, 200, undo.data)
        self.assertEqual(undo.data['data']['action'], 'UNDO_DELETE_DENTAL_PROCEDURE')
        self.assertTrue(DentalProcedure.objects.filter(id=proc['id']).exists())

    def test_undo_without_history(self):
        resp = self.client.post('/api/dental-procedures/undo')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['error']['code'], 'NO_LOG')

    def test_second_disabled_marker_on_same_tooth_conflicts(self):
        disabled = DentalCode.objects.create(
            code='DISABLED', description='Missing tooth', category='Chart', section='-',
            sub_section='-', patient_type='ALL', rate=Decimal('0'),
        )
        self._create_procedure(code=disabled)
        resp = self.client.post(f'/api/patients/{self.patient.id}/dental-procedures', {
            'codeId': disabled.id, 'date': timezone.now().isoformat(), 'toothNumber': 16,
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------
    def test_cash_payment_rounds_to_five_cents(self):
        a = self._create_procedure()
        b = self._create_procedure(code=self.x10)
        resp = self.client.post(f'/api/patients/{self.patient.id}/dental-procedures/pay', {
            'procedureIds': [a['id'], b['id']], 'paymentMethod': 'CASH', 'printInvoice': True,
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        invoice = resp.data['data']
        self.assertEqual(invoice['subtotal'], 41.6)
        self.assertEqual(invoice['finalAmount'], 41.6)
        self.assertTrue(invoice['invoiceNumber'].startswith('INV-'))
        self.assertIn('Piet Pieters', invoice['invoiceHtml'])
        paid = DentalProcedure.objects.filter(id__in=[a['id'], b['id']], is_paid=True)
        self.assertEqual(paid.count(), 2)
        self.assertTrue(ActivityLog.objects.filter(action='GENERATE_INVOICE', entity_id=invoice['invoiceNumber']).exists())

        again = self.client.post(f'/api/patients/{self.patient.id}/dental-procedures/pay', {
            'procedureIds': [a['id']], 'paymentMethod': 'CARD',
        }, format='json')
        self.assertEqual(again.status_code, 400)

    def test_treatment_plan_applies_vat(self):
        self._create_procedure()
        resp = self.client.get(f'/api/patients/{self.patient.id}/treatment-plan?vatRate=0.10')
        self.assertEqual(resp.status_code, 200)
        plan = resp.data['data']
        self.assertEqual(plan['subtotal'], 24.47)
        self.assertEqual(plan['vat'], 2.45)
        self.assertEqual(plan['total'], 26.92)
        printable = self.client.get(f'/api/patients/{self.patient.id}/treatment-plan/print')
        self.assertEqual(printable.status_code, 200)
        self.assertIn(b'C002', printable.content)

    # ------------------------------------------------------------------
    # Dental codes
    # ------------------------------------------------------------------
    def test_dental_code_search_and_manager_only_create(self):
        resp = self.client.get('/api/dental-codes?search=x')
        self.assertEqual([c['code'] for c in resp.data['data']], ['X10'])
        resp = self.client.get('/api/dental-codes?search=check')
        self.assertEqual([c['code'] for c in resp.data['data']], ['C002'])

        body = {
            'code': 'V30', 'description': 'Sealing', 'category': 'Preventive', 'section': 'V',
            'subSection': 'Sealing', 'patientType': 'ALL', 'rate': '34.26',
        }
        self.client.force_authenticate(self.dentist)
        self.assertEqual(self.client.post('/api/dental-codes', body, format='json').status_code, 403)
        self.client.force_authenticate(self.owner)
        self.assertEqual(self.client.post('/api/dental-codes', body, format='json').status_code, 201)
        self.assertEqual(self.client.post('/api/dental-codes', body, format='json').status_code, 400)
        codes = [c['code'] for c in self.client.get('/api/dental-codes').data['data']]
        self.assertEqual(codes, ['C002', 'V30', 'X10'])

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------
    def test_explicit_periodontal_save_appends_history_and_suggests_scaling(self):
        chart = {'teeth': {'16': {'buccal': {'distal': {'pocketDepth': 6, 'bleeding': True}}}}}
        resp = self.client.post(f'/api/patients/{self.patient.id}/dental', {
            'periodontalChart': dict(chart, isExplicitlySaved=True),
            'dentalChart': {'teeth': {'18': {'isDisabled': True}, '11': {'zones': {}}}},
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data['data']['scalingSuggestions'][0]['code'], 't021')
        self.assertEqual(list(resp.data['data']['dentalChart']['teeth']), ['11'])

        self.client.post(f'/api/patients/{self.patient.id}/dental', {
            'periodontalChart': {'teeth': {'16': {'buccal': {'distal': {'pocketDepth': 4}}}}, 'isExplicitlySaved': True},
        }, format='json')
        history = self.client.get(f'/api/patients/{self.patient.id}/periodontal-charts')
        self.assertEqual(len(history.data['data']), 2)
        compare = self.client.get(f'/api/patients/{self.patient.id}/periodontal-charts/compare?from=0&to=1')
        self.assertEqual(compare.data['data']['teeth'][0]['delta'], -2)
        missing = self.client.get(f'/api/patients/{self.patient.id}/periodontal-charts/compare?from=0&to=5')
        self.assertEqual(missing.status_code, 404)

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------
    def _tomorrow_at(self, hour):
        day = timezone.localdate() + timedelta(days=1)
        return timezone.make_aware(datetime.combine(day, time(hour, 0)), timezone.get_current_timezone())

    def test_regular_appointment_defaults_end_time(self):
        start = self._tomorrow_at(9)
        resp = self.client.post('/api/appointments', {
            'patientId': self.patient.id, 'practitionerId': self.dentist.id,
            'startTime': start.isoformat(), 'duration': 30, 'type': {'name': 'Check-up'},
        }, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        appt = Appointment.objects.get(id=resp.data['data']['id'])
        self.assertEqual(appt.end_time - appt.start_time, timedelta(minutes=30))
        self.assertEqual(appt.type, 'Check-up')

    def test_family_appointments_are_consecutive(self):
        sibling = Patient.objects.create(
            organization=self.org1, patient_code='2', first_name='Kees', last_name='Pieters',
            date_of_birth=date(2012, 1, 1), gender='MALE', bsn='444555666',
        )
        start = self._tomorrow_at(10)
        resp = self.client.post('/api/appointments', {
            'isFamilyAppointment': True,
            'familyAppointmentRequest': {
                'selectedPatientCodes': ['2', '1'], 'startTime': start.isoformat(),
                'duration': 20, 'practitionerId': self.dentist.id,
            },
        }, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        rows = resp.data['data']
        self.assertEqual([r['patientId'] for r in rows], [sibling.id, self.patient.id])
        self.assertEqual(rows[0]['endTime'], rows[1]['startTime'])
        self.assertEqual(rows[0]['familyAppointmentId'], rows[1]['familyAppointmentId'])
        self.assertTrue(rows[0]['familyAppointmentId'].startswith('family_'))

        group = self.client.delete(f"/api/appointments?id={rows[0]['id']}&deleteFamilyGroup=true")
        self.assertEqual(group.data['data']['deleted'], 2)

    def test_family_request_with_unknown_code_is_not_found(self):
        resp = self.client.post('/api/appointments', {
            'isFamilyAppointment': True,
            'familyAppointmentRequest': {
                'selectedPatientCodes': ['1', '99'], 'startTime': self._tomorrow_at(10).isoformat(),
                'duration': 20, 'practitionerId': self.dentist.id,
            },
        }, format='json')
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(Appointment.objects.count(), 0)

    def test_reservation_and_calendar_view(self):
        start = self._tomorrow_at(11)
        resp = self.client.post('/api/appointments', {
            'isReservation': True,
            'reservationRequest': {
                'startTime': start.isoformat(), 'duration': 45, 'practitionerId': self.dentist.id,
                'notes': 'Emergencies',
            },
        }, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertEqual(resp.data['data']['type'], 'Reservation')
        self.assertIsNone(resp.data['data']['patientId'])

        cal = self.client.get(f'/api/calendar?date={start.date().isoformat()}&view=day')
        self.assertEqual(cal.status_code, 200, cal.data)
        self.assertEqual(len(cal.data['data']['events']), 1)
        self.assertTrue(cal.data['data']['events'][0]['isReservation'])
        resource_ids = [r['resourceId'] for r in cal.data['data']['resources']]
        self.assertIn(self.dentist.id, resource_ids)

        hidden = self.client.get(
            f'/api/calendar?date={start.date().isoformat()}&view=day&includeReservations=false'
        )
        self.assertEqual(hidden.data['data']['events'], [])

    def test_reschedule_is_logged(self):
        appt = Appointment.objects.create(
            organization=self.org1, patient=self.patient, practitioner=self.dentist,
            start_time=self._tomorrow_at(9), end_time=self._tomorrow_at(9) + timedelta(minutes=15), duration=15,
        )
        resp = self.client.put('/api/appointments', {
            'id': appt.id, 'startTime': self._tomorrow_at(13).isoformat(),
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        appt.refresh_from_db()
        self.assertEqual(appt.end_time - appt.start_time, timedelta(minutes=15))
        self.assertTrue(ActivityLog.objects.filter(action='RESCHEDULE_APPOINTMENT', entity_id=str(appt.id)).exists())

    def test_important_status_merges_into_notes_and_clears(self):
        appt = Appointment.objects.create(
            organization=self.org1, patient=self.patient, practitioner=self.dentist, notes='Bring X-rays',
            start_time=self._tomorrow_at(9), end_time=self._tomorrow_at(9) + timedelta(minutes=15), duration=15,
        )
        resp = self.client.patch(f'/api/appointments/{appt.id}/status', {
            'status': {'type': 'important', 'importantNote': 'Allergic to latex'},
            'mergeWithNotes': True, 'importantNote': 'Allergic to latex',
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        appt.refresh_from_db()
        self.assertIn('[IMPORTANT] Allergic to latex', appt.notes)
        self.assertEqual(appt.appointment_status['type'], 'important')

        late = self.client.patch(f'/api/appointments/{appt.id}/status', {
            'status': {'type': 'running_late'},
        }, format='json')
        self.assertEqual(late.status_code, 400)

        cleared = self.client.delete(f'/api/appointments/{appt.id}/status', {'clearNotes': True}, format='json')
        self.assertEqual(cleared.status_code, 200)
        appt.refresh_from_db()
        self.assertIsNone(appt.appointment_status)
        self.assertEqual(appt.notes, 'Bring X-rays')

    def test_send_confirmation_mails_upcoming_appointments(self):
        Appointment.objects.create(
            organization=self.org1, patient=self.patient, practitioner=self.dentist,
            start_time=self._tomorrow_at(9), end_time=self._tomorrow_at(9) + timedelta(minutes=15), duration=15,
        )
        resp = self.client.post('/api/appointments/send-confirmation', {'patientId': self.patient.id}, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data['data']['appointmentCount'], 1)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['piet@example.com'])

    def test_practitioners_listing_is_cached_and_invalidated_by_settings(self):
        first = self.client.get('/api/practitioners?includeColors=true')
        colors = {p['id']: p['color'] for p in first.data['data']}
        self.assertEqual(colors[self.dentist.id], '#cfdbff')
        resp = self.client.post(
            f'/api/calendar-settings/personal?userId={self.dentist.id}', {'color': '#ff0000'}, format='json',
        )
        self.assertEqual(resp.status_code, 200, resp.data)
        second = self.client.get('/api/practitioners?includeColors=true')
        colors = {p['id']: p['color'] for p in second.data['data']}
        self.assertEqual(colors[self.dentist.id], '#ff0000')

    # ------------------------------------------------------------------
    # Notes, email and logs
    # ------------------------------------------------------------------
    def test_pinned_notes_come_first(self):
        url = f'/api/patients/{self.patient.id}/notes'
        self.client.post(url, {'content': 'plain'}, format='json')
        pinned = self.client.post(url, {'content': '<script>x</script>pinned', 'isPinned': True}, format='json')
        self.assertEqual(pinned.status_code, 201)
        notes = self.client.get(url).data['data']
        self.assertEqual(notes[0]['id'], pinned.data['data']['id'])
        self.assertNotIn('<script>', notes[0]['content'])
        deleted = self.client.delete(f"{url}?noteId={pinned.data['data']['id']}")
        self.assertEqual(deleted.status_code, 204)

    def test_patient_email_from_builtin_template(self):
        resp = self.client.post(f'/api/patients/{self.patient.id}/email', {
            'templateCategory': 'Welcome & New Patients', 'templateKey': 'welcome',
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(len(mail.outbox), 1)
        self.assertNotIn('[Practice Name]', mail.outbox[0].body)
        self.assertIn('Smile Utrecht', mail.outbox[0].body)
        self.assertTrue(ActivityLog.objects.filter(action='SEND_EMAIL').exists())

    def test_logs_are_for_managers_of_the_organization(self):
        self.client.post('/api/patients', _patient_payload(), format='json')
        resp = self.client.get('/api/logs?action=CREATE_PATIENT')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['pagination']['total'], 1)
        self.client.force_authenticate(self.dentist)
        self.assertEqual(self.client.get('/api/logs').status_code, 403)
        self.client.force_authenticate(self.other)
        self.assertEqual(self.client.get('/api/logs').data['pagination']['total'], 0)

    def test_calendar_settings_of_others_are_manager_only(self):
        receptionist = User.objects.create_user(
            username='desk1', password='P@ssw0rd1', role='receptionist', organization=self.org1,
        )
        self.client.force_authenticate(receptionist)
        url = f'/api/calendar-settings/personal?userId={self.owner.id}'
        resp = self.client.post(url, {'color': '#000000'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(CalendarSettings.objects.filter(user=self.owner).exists())

        read = self.client.get(url)
        self.assertEqual(read.status_code, 200)
        self.assertEqual(read.data['data']['userId'], self.owner.id)
        own = self.client.post(
            f'/api/calendar-settings/personal?userId={receptionist.id}', {'color': '#00ff00'}, format='json',
        )
        self.assertEqual(own.status_code, 200, own.data)
        bad = self.client.get('/api/calendar-settings/personal?userId=abc')
        self.assertEqual(bad.status_code, 400)

    # ------------------------------------------------------------------
    # Email content
    # ------------------------------------------------------------------
    def test_patient_email_always_goes_to_the_patient(self):
        resp = self.client.post(f'/api/patients/{self.patient.id}/email', {
            'to': 'attacker@evil.test', 'subject': 'Fees', 'content': 'Fees: 5 < 10 & more',
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        sent = mail.outbox[-1]
        self.assertEqual(sent.to, ['piet@example.com'])
        self.assertIn('Fees: 5 < 10 & more', sent.body)
        self.assertNotIn('&amp;', sent.body)

        silent = Patient.objects.create(
            organization=self.org1, patient_code='2', first_name='Kees', last_name='Pieters',
            date_of_birth=date(2012, 1, 1), gender='MALE', bsn='444555666',
        )
        missing = self.client.post(f'/api/patients/{silent.id}/email', {
            'to': 'attacker@evil.test', 'subject': 'Hi', 'content': 'Hello',
        }, format='json')
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(len(mail.outbox), 1)

    def test_confirmation_text_is_not_html_escaped(self):
        self.org1.name = 'Smile & Co'
        self.org1.save()
        self.patient.last_name = "O'Brien"
        self.patient.save()
        Appointment.objects.create(
            organization=self.org1, patient=self.patient, practitioner=self.dentist,
            start_time=self._tomorrow_at(9), end_time=self._tomorrow_at(9) + timedelta(minutes=15), duration=15,
        )
        resp = self.client.post('/api/appointments/send-confirmation', {'patientId': self.patient.id}, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        body = mail.outbox[0].body
        self.assertIn("Dear Piet O'Brien,", body)
        self.assertIn('Smile & Co', body)
        self.assertNotIn('&#x27;', body)
        self.assertNotIn('&amp;', body)

    # ------------------------------------------------------------------
    # Billing edge cases
    # ------------------------------------------------------------------
    def test_treatment_plan_rejects_non_finite_vat(self):
        for raw in ('NaN', 'Infinity', 'abc'):
            resp = self.client.get(f'/api/patients/{self.patient.id}/treatment-plan?vatRate={raw}')
            self.assertEqual(resp.status_code, 400, raw)
            self.assertFalse(resp.data['ok'])

    def test_point_only_code_has_no_billed_price(self):
        u35 = DentalCode.objects.create(
            code='U35', description='Time unit', category='Long term care', section='U',
            sub_section='Time', patient_type='ALL', points=Decimal('1'),
        )
        a = self._create_procedure()
        b = self._create_procedure(code=u35)
        resp = self.client.post(f'/api/patients/{self.patient.id}/dental-procedures/pay', {
            'procedureIds': [a['id'], b['id']], 'paymentMethod': 'CARD',
        }, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        invoice = resp.data['data']
        self.assertEqual(invoice['subtotal'], 24.47)
        lines = {line['code']: line for line in invoice['lines']}
        self.assertEqual(lines['U35']['amount'], 0.0)
        self.assertFalse(ActivityLog.objects.filter(action='GENERATE_INVOICE').exists())

    # ------------------------------------------------------------------
    # Procedure tools and undo/redo variants
    # ------------------------------------------------------------------
    def test_scaling_tool_adds_anesthesia(self):
        for code in ('T021', 'T022', 'A10'):
            DentalCode.objects.create(
                code=code, description=code, category='Periodontal', section=code[0],
                sub_section='-', patient_type='ALL', rate=Decimal('20.00'),
            )
        resp = self.client.post(f'/api/patients/{self.patient.id}/scaling', {
            'treatments': [{'toothNumber': 16, 'code': 't021'}, {'toothNumber': 26, 'code': 'T022'}],
            'anesthesiaCount': 2,
        }, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        codes = [p['code']['code'] for p in resp.data['data']]
        self.assertEqual(codes, ['T021', 'T022', 'A10', 'A10'])
        self.assertEqual(len({p['date'] for p in resp.data['data']}), 1)

    def test_sealing_tool_bills_first_element_once_per_day(self):
        v30 = DentalCode.objects.create(
            code='V30', description='Sealing first element', category='Preventive', section='V',
            sub_section='Sealing', patient_type='ALL', rate=Decimal('34.26'),
        )
        DentalCode.objects.create(
            code='V35', description='Sealing next element', category='Preventive', section='V',
            sub_section='Sealing', patient_type='ALL', rate=Decimal('19.03'),
        )
        url = f'/api/patients/{self.patient.id}/sealings'
        resp = self.client.post(url, {'toothNumbers': [46, 16, 14]}, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        rows = resp.data['data']
        self.assertEqual([(r['toothNumber'], r['code']['code']) for r in rows], [(14, 'V30'), (16, 'V35'), (46, 'V35')])
        self.assertEqual(rows[0]['subSurfaces'], ['occlusal'])
        self.assertEqual(len(rows[1]['subSurfaces']), 4)

        again = self.client.post(url, {'toothNumbers': [36]}, format='json')
        self.assertEqual([r['code']['code'] for r in again.data['data']], ['V35'])
        self.assertEqual(DentalProcedure.objects.filter(code=v30).count(), 1)

    def test_redone_next_sealing_joins_the_first_sealing_date(self):
        v30 = DentalCode.objects.create(
            code='V30', description='Sealing first element', category='Preventive', section='V',
            sub_section='Sealing', patient_type='ALL', rate=Decimal('34.26'),
        )
        v35 = DentalCode.objects.create(
            code='V35', description='Sealing next element', category='Preventive', section='V',
            sub_section='Sealing', patient_type='ALL', rate=Decimal('19.03'),
        )
        today = timezone.localdate()
        tz = timezone.get_current_timezone()
        nine = timezone.make_aware(datetime.combine(today, time(9, 0)), tz)
        ten = timezone.make_aware(datetime.combine(today, time(10, 0)), tz)
        first = self._create_procedure(code=v30, date=nine.isoformat(), toothNumber=14)
        nxt = self._create_procedure(code=v35, date=ten.isoformat(), toothNumber=15)

        self.client.post('/api/dental-procedures/undo', HTTP_X_ENTITY_ID=str(nxt['id']))
        redo = self.client.post('/api/dental-procedures/redo')
        self.assertEqual(redo.status_code, 200, redo.data)
        redone = DentalProcedure.objects.get(code=v35)
        self.assertEqual(redone.date, DentalProcedure.objects.get(id=first['id']).date)

    def test_undo_bridge_removes_all_bridge_members(self):
        a = self._create_procedure(notes='bridge-abc123 abutment', toothNumber=14)
        b = self._create_procedure(notes='bridge-abc123 pontic', toothNumber=15)
        other = self._create_procedure(notes='plain', toothNumber=16)
        undo = self.client.post('/api/dental-procedures/undo', HTTP_X_ENTITY_ID=str(b['id']))
        self.assertEqual(undo.status_code, 200, undo.data)
        self.assertEqual(undo.data['data']['action'], 'UNDO_CREATE_BRIDGE_PROCEDURES')
        self.assertFalse(DentalProcedure.objects.filter(id__in=[a['id'], b['id']]).exists())
        self.assertTrue(DentalProcedure.objects.filter(id=other['id']).exists())

        redo = self.client.post('/api/dental-procedures/redo')
        self.assertEqual(redo.data['data']['action'], 'CREATE_DENTAL_PROCEDURE')
        self.assertEqual(len(redo.data['data']['result']), 2)

    def test_redo_after_undo_update_reapplies_the_edit(self):
        proc = self._create_procedure(notes='first')
        self.client.put(
            f"/api/patients/{self.patient.id}/dental-procedures/{proc['id']}", {'notes': 'second'}, format='json',
        )
        self.client.post('/api/dental-procedures/undo')
        self.assertEqual(DentalProcedure.objects.get(id=proc['id']).notes, 'first')
        redo = self.client.post('/api/dental-procedures/redo')
        self.assertEqual(redo.status_code, 200, redo.data)
        self.assertEqual(redo.data['data']['action'], 'UPDATE_DENTAL_PROCEDURE')
        self.assertEqual(DentalProcedure.objects.get(id=proc['id']).notes, 'second')

    def test_redo_after_undo_delete_deletes_again(self):
        proc = self._create_procedure()
        self.client.delete(f"/api/patients/{self.patient.id}/dental-procedures/{proc['id']}")
        self.client.post('/api/dental-procedures/undo')
        self.assertTrue(DentalProcedure.objects.filter(id=proc['id']).exists())
        redo = self.client.post('/api/dental-procedures/redo')
        self.assertEqual(redo.status_code, 200, redo.data)
        self.assertEqual(redo.data['data']['action'], 'DELETE_DENTAL_PROCEDURE')
        self.assertFalse(DentalProcedure.objects.filter(id=proc['id']).exists())

    # ------------------------------------------------------------------
    # Clinical records
    # ------------------------------------------------------------------
    def test_clinical_records_and_care_plan(self):
        base = f'/api/patients/{self.patient.id}'
        asa = self.client.post(f'{base}/asa', {'score': 2, 'notes': '<div>Mild</div> asthma'}, format='json')
        self.assertEqual(asa.status_code, 201, asa.data)
        self.assertEqual(asa.data['data']['notes'], 'Mild asthma')
        self.assertEqual(self.client.post(f'{base}/asa', {'score': 9}, format='json').status_code, 400)

        pps = self.client.post(f'{base}/pps', {
            'quadrant1': 0, 'quadrant2': 1, 'quadrant3': 2, 'quadrant4': 3, 'treatment': 'Scaling',
        }, format='json')
        self.assertEqual(pps.status_code, 201, pps.data)
        self.assertEqual(pps.data['data']['quadrant4'], 3)

        recall = self.client.post(f'{base}/recall', {
            'screeningMonths': 6, 'notes': 'Routine', 'useCustomText': True, 'customText': 'See you in spring',
        }, format='json')
        self.assertEqual(recall.status_code, 201, recall.data)
        notes = json.loads(recall.data['data']['notes'])
        self.assertEqual(notes, {'useCustomText': True, 'customText': 'See you in spring', 'originalNotes': 'Routine'})

        self.assertIsNone(self.client.get(f'{base}/care-plan').data['data'])
        plan = self.client.post(f'{base}/care-plan', {'careGoal': 'Stable gums'}, format='json')
        self.assertEqual(plan.status_code, 200, plan.data)
        self.client.post(f'{base}/care-plan', {'policy': 'Recall every 6 months'}, format='json')
        current = self.client.get(f'{base}/care-plan').data['data']
        self.assertEqual(current['careGoal'], 'Stable gums')
        self.assertEqual(current['policy'], 'Recall every 6 months')

    def test_checkup_records_everything_at_once(self):
        resp = self.client.post(f'/api/patients/{self.patient.id}/c002-checkup', {
            'hasComplaints': True, 'complaints': 'Sensitive 36',
            'asaScore': 2, 'asaNotes': 'Controlled hypertension',
            'hygieneLevel': 'MODERATE', 'recallTerm': 6,
            'carePlanNotes': 'Floss daily', 'additionalAppointments': 'Hygienist',
        }, format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        data = resp.data['data']
        proc = data['dentalProcedure']
        self.assertEqual(proc['code']['code'], 'C002')
        self.assertEqual(proc['status'], 'IN_PROGRESS')
        self.assertEqual(proc['cost'], 24.47)
        self.assertIn('Complaints: Sensitive 36', proc['notes'])
        self.assertEqual(data['asaRecord']['score'], 2)
        recall_notes = json.loads(data['recallRecord']['notes'])
        self.assertTrue(recall_notes['c002Checkup'])
        self.assertEqual(recall_notes['additionalAppointments'], 'Hygienist')
        plan = CarePlan.objects.get(patient=self.patient)
        self.assertEqual(plan.policy, 'Floss daily')
        self.assertEqual(plan.care_request, 'C002 Checkup')

        bare = self.client.post(f'/api/patients/{self.patient.id}/c002-checkup', {}, format='json')
        self.assertEqual(bare.status_code, 201, bare.data)
        self.assertIsNone(bare.data['data']['asaRecord'])
        self.assertIsNone(bare.data['data']['recallRecord'])

    # ------------------------------------------------------------------
    # Patients, families and appointments
    # ------------------------------------------------------------------
    def test_patient_update_is_logged(self):
        resp = self.client.patch(f'/api/patients/{self.patient.id}', {'phone': '06-12345678'}, format='json')
        self.assertEqual(resp.status_code, 200, resp.data)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.phone, '06-12345678')
        self.assertTrue(ActivityLog.objects.filter(action='UPDATE_PATIENT', entity_id=str(self.patient.id)).exists())

    def test_family_lifecycle_renumbers_codes(self):
        for code, name in (('2', 'Kees'), ('3', 'Mies')):
            Patient.objects.create(
                organization=self.org1, patient_code=code, first_name=name, last_name='Pieters',
                date_of_birth=date(2012, 1, 1), gender='OTHER', bsn=f'99988877{code}',
            )
        created = self.client.post('/api/families', {'patientCodes': ['2', '1']}, format='json')
        self.assertEqual(created.status_code, 201, created.data)
        self.assertEqual(created.data['data']['familyHeadCode'], '1')
        self.assertEqual([p['patientCode'] for p in created.data['data']['patients']], ['1-1', '1-2'])

        dup = self.client.post('/api/families', {'patientCodes': ['1-1', '3']}, format='json')
        self.assertEqual(dup.status_code, 400)
        unknown = self.client.post('/api/families', {'patientCodes': ['3', '42']}, format='json')
        self.assertEqual(unknown.status_code, 404)

        added = self.client.put('/api/families/1', {'patientCode': '3'}, format='json')
        self.assertEqual(added.status_code, 200, added.data)
        self.assertEqual(added.data['data']['patientCode'], '1-3')
        listing = self.client.get('/api/families').data['data']
        self.assertEqual(listing['totalFamilies'], 1)
        self.assertEqual(listing['totalIndividuals'], 0)

        dissolved = self.client.delete('/api/families/1')
        self.assertEqual(dissolved.status_code, 200, dissolved.data)
        self.assertEqual(dissolved.data['data']['membersReverted'], 3)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.patient_code, '1')
        self.assertEqual(Patient.objects.filter(organization=self.org1).exclude(family_head_code='').count(), 0)
        codes = list(Patient.objects.filter(organization=self.org1).values_list('patient_code', flat=True))
        self.assertEqual(len(codes), len(set(codes)))
        self.assertTrue(ActivityLog.objects.filter(action='UPDATE_FAMILY').exists())

    def test_batch_appointments_from_list_body(self):
        resp = self.client.post('/api/appointments', [
            {
                'patientId': self.patient.id, 'practitionerId': self.dentist.id,
                'startTime': self._tomorrow_at(9).isoformat(), 'duration': 15,
            },
            {
                'patientId': self.patient.id, 'practitionerId': self.dentist.id,
                'startTime': self._tomorrow_at(14).isoformat(), 'duration': 30,
            },
        ], format='json')
        self.assertEqual(resp.status_code, 201, resp.data)
        self.assertEqual(len(resp.data['data']), 2)
        self.assertEqual(Appointment.objects.filter(patient=self.patient).count(), 2)
        self.assertEqual(ActivityLog.objects.filter(action='CREATE_APPOINTMENT').count(), 2)

    # ------------------------------------------------------------------
    # Notes, logs and codes import
    # ------------------------------------------------------------------
    def test_deleting_folder_keeps_its_notes(self):
        base = f'/api/patients/{self.patient.id}'
        folder = self.client.post(f'{base}/note-folders', {'name': 'Ortho', 'color': '#ff0000'}, format='json')
        self.assertEqual(folder.status_code, 201, folder.data)
        folder_id = folder.data['data']['id']
        note = self.client.post(f'{base}/notes', {'content': 'Braces check', 'folderId': folder_id}, format='json')
        self.assertEqual(note.data['data']['folderId'], folder_id)

        resp = self.client.delete(f'{base}/note-folders?folderId={folder_id}')
        self.assertEqual(resp.status_code, 204)
        kept = Note.objects.get(id=note.data['data']['id'])
        self.assertIsNone(kept.folder_id)
        self.assertEqual(self.client.get(f'{base}/note-folders').data['data'], [])

    def test_logs_download_is_csv_for_managers(self):
        self.client.post('/api/patients', _patient_payload(), format='json')
        resp = self.client.get('/api/logs/download?action=CREATE_PATIENT')
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp['Content-Type'].startswith('text/csv'))
        self.assertIn('attachment; filename="activity-logs-', resp['Content-Disposition'])
        rows = list(csv.reader(io.StringIO(resp.content.decode('utf-8'))))
        self.assertEqual(rows[0][:5], ['Date', 'Time', 'User', 'User Role', 'Action'])
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][4], 'CREATE_PATIENT')
        self.assertTrue(ActivityLog.objects.filter(action='EXPORT_LOGS').exists())

        self.client.force_authenticate(self.dentist)
        self.assertEqual(self.client.get('/api/logs/download').status_code, 403)

    def test_import_dental_codes_command(self):
        items = [
            {'code': 'C002', 'description': 'Periodic check-up', 'category': 'Consultation', 'rate': '25.00'},
            {'code': 'V30', 'description': 'Sealing', 'category': 'Preventive', 'subSection': 'Sealing',
             'patientType': 'ALL', 'rate': '34.26'},
        ]
        fd, path = tempfile.mkstemp(suffix='.json')
        with os.fdopen(fd, 'w', encoding='utf-8') as fh:
            json.dump(items, fh)
        self.addCleanup(os.remove, path)
        out = io.StringIO()
        call_command('import_dental_codes', path, stdout=out)
        self.assertIn('Dental codes imported: 1 created, 1 updated', out.getvalue())
        self.c002.refresh_from_db()
        self.assertEqual(self.c002.rate, Decimal('25.00'))
        self.assertEqual(DentalCode.objects.get(code='V30').sub_section, 'Sealing')
