"""
Management command to seed a demo practice: staff, patients, a starter
code table and a few appointments. Safe to run more than once.
"""
from datetime import date, datetime, time, timedelta

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import Appointment, Organization, Patient, User
from clinic.services.dental_codes import upsert_codes
from clinic.services.patients import create_patient

DEMO_PASSWORD = "demo12345"

STARTER_CODES = [
    {"code": "A10", "description": "Local anesthesia (injection)", "category": "Anesthesia",
     "section": "A", "subSection": "Anesthesia", "patientType": "ALL", "rate": "15.68"},
    {"code": "C002", "description": "Periodic check-up", "category": "Consultation",
     "section": "C", "subSection": "Consultation", "patientType": "ALL", "rate": "24.47"},
    {"code": "C003", "description": "Problem-oriented consultation", "category": "Consultation",
     "section": "C", "subSection": "Consultation", "patientType": "ALL", "rate": "24.47"},
    {"code": "T012", "description": "Periodontal screening (DPSI)", "category": "Periodontology",
     "section": "T", "subSection": "Diagnostics", "patientType": "ALL", "rate": "32.30"},
    {"code": "T021", "description": "Complex periodontal treatment per tooth", "category": "Periodontology",
     "section": "T", "subSection": "Treatment", "patientType": "ALL", "rate": "33.76"},
    {"code": "T022", "description": "Standard periodontal treatment per tooth", "category": "Periodontology",
     "section": "T", "subSection": "Treatment", "patientType": "ALL", "rate": "24.47"},
    {"code": "T032", "description": "Periodontal re-evaluation", "category": "Periodontology",
     "section": "T", "subSection": "Evaluation", "patientType": "ALL", "rate": "65.25"},
    {"code": "T042", "description": "Short periodontal aftercare", "category": "Periodontology",
     "section": "T", "subSection": "Aftercare", "patientType": "ALL", "rate": "49.94"},
    {"code": "T043", "description": "Extended periodontal aftercare", "category": "Periodontology",
     "section": "T", "subSection": "Aftercare", "patientType": "ALL", "rate": "73.19"},
    {"code": "U35", "description": "Time spent on care for long-term care patients, per 5 minutes",
     "category": "Special care", "section": "U", "subSection": "Long-term care", "patientType": "WLZ",
     "points": "1.00"},
    {"code": "V30", "description": "Sealing of the first element", "category": "Preventive",
     "section": "V", "subSection": "Sealing", "patientType": "ALL", "rate": "34.26"},
    {"code": "V35", "description": "Sealing of each additional element", "category": "Preventive",
     "section": "V", "subSection": "Sealing", "patientType": "ALL", "rate": "18.89"},
    {"code": "X10", "description": "Small X-ray (bitewing or periapical)", "category": "Imaging",
     "section": "X", "subSection": "X-ray", "patientType": "ALL", "rate": "17.13"},
    {"code": "DISABLED", "description": "Tooth marked as missing or not treatable", "category": "Chart",
     "section": "-", "subSection": "-", "patientType": "ALL", "rate": "0"},
]

STAFF = [
    ("demo_owner", "owner", "Olivia", "de Vries"),
    ("demo_dentist", "dentist", "Daan", "Jansen"),
    ("demo_hygienist", "hygienist", "Sanne", "Bakker"),
    ("demo_reception", "receptionist", "Emma", "Visser"),
]

PATIENTS = [
    ("Lucas", "Smit", date(1985, 4, 12), "MALE", "lucas.smit@example.com", "999990011"),
    ("Julia", "Smit", date(1987, 9, 3), "FEMALE", "julia.smit@example.com", "999990023"),
    ("Noah", "Meijer", date(1972, 1, 28), "MALE", "", "999990035"),
    ("Tess", "Mulder", date(2010, 6, 17), "FEMALE", "tess.mulder@example.com", "999990047"),
]


class Command(BaseCommand):
    help = "Seed a demo organization with staff, patients, dental codes and appointments."

    def handle(self, *args, **options):
        created, updated = upsert_codes(STARTER_CODES)
        self.stdout.write(f"dental codes: {created} created, {updated} updated")

        org, _ = Organization.objects.get_or_create(
            name="Demo Dental Practice",
            defaults={
                "email": "info@demo-dental.example.com",
                "phone": "020-1234567",
                "address": "Tandartsstraat 1, 1011 AB Amsterdam",
                "website": "https://demo-dental.example.com",
            },
        )
        staff = self.create_staff(org)
        patients = self.create_patients(org, staff["demo_owner"])
        self.create_appointments(org, staff["demo_dentist"], patients)
        self.stdout.write(self.style.SUCCESS(f"Demo practice ready (password for all users: {DEMO_PASSWORD})"))

    def create_staff(self, org):
        users = {}
        for username, role, first, last in STAFF:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role, "first_name": first, "last_name": last, "organization": org,
                    "password": make_password(DEMO_PASSWORD), "is_active": True,
                },
            )
            if not created:
                u.password = make_password(DEMO_PASSWORD)
                u.role = role
                u.organization = org
                u.is_disabled = False
                u.save(update_fields=["password", "role", "organization", "is_disabled"])
            users[username] = u
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        return users

    def create_patients(self, org, owner):
        patients = []
        head_code = ""
        for first, last, dob, gender, email, bsn in PATIENTS:
            existing = Patient.objects.filter(organization=org, bsn=bsn).first()
            if existing:
                patients.append(existing)
                continue
            p = create_patient(owner, {
                "firstName": first,
                "lastName": last,
                "dateOfBirth": dob,
                "gender": gender,
                "email": email,
                "bsn": bsn,
                "address": {"display_name": "Amsterdam, Netherlands"},
                # the two Smits share a family
                "familyHeadCode": head_code if last == "Smit" else "",
            })
            if last == "Smit" and not head_code:
                head_code = p.patient_code
                p.family_head_code = head_code
                p.family_position = 1
                p.save(update_fields=["family_head_code", "family_position"])
            patients.append(p)
        self.stdout.write(f"patients: {len(patients)}")
        return patients

    def create_appointments(self, org, dentist, patients):
        if Appointment.objects.filter(organization=org).exists():
            return
        tz = timezone.get_current_timezone()
        day = timezone.localdate() + timedelta(days=1)
        start = timezone.make_aware(datetime.combine(day, time(9, 0)), tz)
        for p in patients:
            Appointment.objects.create(
                organization=org, patient=p, practitioner=dentist,
                start_time=start, end_time=start + timedelta(minutes=30), duration=30,
                type="Check-up", status="SCHEDULED",
            )
            start += timedelta(minutes=30)
        Appointment.objects.create(
            organization=org, practitioner=dentist, start_time=start, end_time=start + timedelta(minutes=60),
            duration=60, type="Reservation", appointment_type="RESERVATION", is_reservation=True,
            notes="Emergency slot", reservation_color="#fde68a",
        )
        self.stdout.write(f"appointments: {len(patients) + 1}")
