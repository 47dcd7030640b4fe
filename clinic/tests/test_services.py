from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import DentalCode, Organization, Patient
from clinic.serializers.communication import plain_text
from clinic.services.appointments import status_display, strip_important_lines, time_slots, validate_status
from clinic.services.billing import cash_round, distribute, unit_price
from clinic.services.calendar import calendar_range
from clinic.services.communication import list_templates, substitute_placeholders, wrap_body
from clinic.services.dental_codes import search_codes
from clinic.services.patients import calculate_asa_score, generate_asa_notes
from clinic.services.periodontal import analyze_periodontal_data_for_scaling, is_multi_rooted, periodontal_summary
from clinic.services.procedures import calculate_procedure_cost, sealing_surfaces, strip_disabled_teeth, tooth_type
from clinic.services.records import checkup_notes
from clinic.services.undo import extract_bridge_id


def _site(depth, **flags):
    return {'pocketDepth': depth, **flags}


# ---------------------------------------------------------------------
# Periodontal analysis
# ---------------------------------------------------------------------
def test_multi_rooted_teeth():
    assert is_multi_rooted(16) and is_multi_rooted(48)
    assert not is_multi_rooted(15)
    assert not is_multi_rooted(21)


def test_scaling_suggestions_follow_depth_thresholds():
    teeth = {
        '16': {'buccal': {'distal': _site(6)}},                 # molar, complex
        '36': {'lingual': {'middle': _site(4, bleeding=True)}},  # molar, standard
        '11': {'buccal': {'mesial': _site(7)}},                  # incisor, standard
        '21': {'buccal': {'mesial': _site(8)}},                  # incisor, complex
        '12': {'buccal': {'mesial': _site(3)}},                  # healthy
        '46': {'buccal': {'mesial': _site(9)}, 'isImplant': True},
        '47': {'buccal': {'mesial': _site(9)}, 'isDisabled': True},
    }
    result = analyze_periodontal_data_for_scaling(teeth)
    assert [(s['toothNumber'], s['code']) for s in result] == [
        (16, 't021'), (21, 't021'), (11, 't022'), (36, 't022'),
    ]
    molar = next(s for s in result if s['toothNumber'] == 36)
    assert molar['hasInflammation'] is True
    assert molar['reason'] == '4mm (multi-rooted)'
    assert result[0]['id'] == 'tooth-16-t021'
    assert result[0]['urgency'] == 'high'


def test_teeth_without_measurements_are_skipped():
    assert analyze_periodontal_data_for_scaling({'17': {'buccal': {'distal': _site(0)}}, '18': {}}) == []


def test_periodontal_summary():
    teeth = {
        '16': {'buccal': {'distal': _site(6, bleeding=True), 'middle': _site(2, plaque=True)}},
        '11': {'lingual': {'mesial': _site(4)}, 'buccal': {'distal': _site(0)}},
    }
    summary = periodontal_summary(teeth)
    assert summary['sitesMeasured'] == 3
    assert summary['teethMeasured'] == 2
    assert summary['bleedingOnProbingPercent'] == 33.3
    assert summary['sitesAtLeast4mm'] == 2
    assert summary['sitesAtLeast6mm'] == 1
    assert summary['meanPocketDepth'] == 4.0


# ---------------------------------------------------------------------
# Patients and charts
# ---------------------------------------------------------------------
@pytest.mark.parametrize('history, score', [
    (None, 1),
    ({}, 1),
    ({'smoking': True}, 2),
    ({'smoking': True, 'asthma': True}, 3),
    ({'diabetes': True, 'heartFailure': True}, 4),
])
def test_asa_score(history, score):
    assert calculate_asa_score(history) == score


def test_asa_notes_list_conditions_in_order():
    assert generate_asa_notes({}) == 'Initial assessment - healthy patient'
    assert generate_asa_notes({'smoking': True, 'chestPain': True}) == 'Initial assessment - Chest pain, Smoker'


def test_disabled_teeth_are_dropped_from_dental_chart():
    chart = strip_disabled_teeth({'teeth': {'11': {'isDisabled': True}, '12': {'zones': {}}}, 'version': 2})
    assert chart == {'teeth': {'12': {'zones': {}}}, 'version': 2}


def test_bridge_id_from_notes():
    assert extract_bridge_id('bridge-abc123 pontic') == 'abc123'
    assert extract_bridge_id('BRIDGE-bridge-xyz') == 'xyz'
    assert extract_bridge_id('regular filling') is None
    assert extract_bridge_id(None) is None


# ---------------------------------------------------------------------
# Money
# ---------------------------------------------------------------------
@pytest.mark.parametrize('amount, expected', [
    ('10.02', '10.00'),
    ('10.03', '10.05'),
    ('10.07', '10.05'),
    ('10.08', '10.10'),
    ('0.00', '0.00'),
])
def test_cash_round(amount, expected):
    assert cash_round(Decimal(amount)) == Decimal(expected)


def test_distribute_keeps_total():
    shares = distribute([Decimal('24.47'), Decimal('17.13'), Decimal('10.01')], Decimal('51.60'))
    assert sum(shares) == Decimal('51.60')
    assert len(shares) == 3


def test_procedure_cost_rules(settings):
    settings.POINT_VALUE_EUR = 10.0
    regular = SimpleNamespace(is_long_term_care_act=False)
    wlz = SimpleNamespace(is_long_term_care_act=True)
    rated = DentalCode(code='C002', rate=Decimal('24.47'))
    pointed = DentalCode(code='X', points=Decimal('1.5'))
    u35 = DentalCode(code='U35', points=Decimal('1'))
    assert calculate_procedure_cost(rated, regular, 2) == Decimal('48.94')
    assert calculate_procedure_cost(pointed, regular, 1) == Decimal('15.00')
    assert calculate_procedure_cost(rated, regular, 1, '99.999') == Decimal('100.00')
    assert calculate_procedure_cost(rated, wlz, 1) == Decimal('0.00')
    assert calculate_procedure_cost(u35, wlz, 3) == Decimal('30.00')
    lower_u35 = DentalCode(code='u35', points=Decimal('1'))
    assert calculate_procedure_cost(lower_u35, wlz, 1) == Decimal('10.00')


def test_payment_unit_price_uses_rate_only(settings):
    settings.POINT_VALUE_EUR = 10.0
    assert unit_price(DentalCode(code='C002', rate=Decimal('24.47'))) == Decimal('24.47')
    assert unit_price(DentalCode(code='U35', points=Decimal('1'))) == Decimal('0')


# ---------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------
def test_validate_status():
    assert validate_status({'type': 'waiting_room'}) == {'type': 'waiting_room'}
    assert validate_status({'type': 'running_late', 'minutesLate': '10'}) == {'type': 'running_late', 'minutesLate': 10}
    with pytest.raises(ValidationError):
        validate_status({'type': 'running_late', 'minutesLate': 0})
    with pytest.raises(ValidationError):
        validate_status({'type': 'important', 'importantNote': '  '})
    with pytest.raises(ValidationError):
        validate_status({'type': 'unknown'})


def test_status_display_shows_minutes_late():
    assert status_display(None) == ''
    assert status_display({'type': 'default'}) == ''
    assert '10' in status_display({'type': 'running_late', 'minutesLate': 10})


def test_strip_important_lines():
    assert strip_important_lines('Bring X-rays\n\n[IMPORTANT] Latex allergy') == 'Bring X-rays'


def test_time_slots_cover_duration():
    start = timezone.make_aware(datetime(2030, 1, 7, 9, 0))
    slots = time_slots(start, 12)
    assert len(slots) == 3
    assert slots[-1]['end'] == (start + timedelta(minutes=15)).isoformat()


def test_calendar_range():
    start, end = calendar_range(date(2030, 1, 9), 'week')
    assert start.date() == date(2030, 1, 7)
    assert end - start == timedelta(days=7)
    start, end = calendar_range(date(2030, 2, 14), 'month')
    assert (start.date(), end.date()) == (date(2030, 2, 1), date(2030, 3, 1))


# ---------------------------------------------------------------------
# Communication
# ---------------------------------------------------------------------
def _org():
    return Organization(name='Smile', phone='010-1', email='hi@smile.example', address='Main 1', website='smile.example')


def _patient():
    return Patient(first_name='Anna', last_name='Jansen')


def test_placeholders_are_substituted():
    text = substitute_placeholders('Hi [Patient First Name], call [Practice Phone] or visit [Website].', _patient(), _org())
    assert text == 'Hi Anna, call 010-1 or visit smile.example.'


def test_body_is_wrapped_once():
    body = wrap_body('See you soon.', _patient(), _org())
    assert body == 'Dear Anna Jansen,\n\nSee you soon.\n\nBest regards,\nSmile\nMain 1\n010-1'
    assert wrap_body(body, _patient(), _org()) == body


@pytest.mark.django_db
def test_template_search_matches_subject_and_content():
    org = Organization.objects.create(name='Smile')
    everything = list_templates(org.id)
    assert 'Welcome & New Patients' in everything
    hits = list_templates(org.id, 'welcome')
    assert 'welcome' in hits['Welcome & New Patients']
    assert list_templates(org.id, 'zzz-nothing-matches') == {}


# ---------------------------------------------------------------------
# Dental codes
# ---------------------------------------------------------------------
@pytest.mark.django_db
def test_code_search_modes():
    for code, desc in [('A10', 'Local anesthesia'), ('C002', 'Periodic check-up'), ('C003', 'Consultation'),
                       ('T021', 'Complex periodontal treatment')]:
        DentalCode.objects.create(code=code, description=desc, category='x', section='x', sub_section='x',
                                  patient_type='ALL')
    assert [c['code'] for c in search_codes('')] == ['A10', 'C002', 'C003', 'T021']
    assert [c['code'] for c in search_codes('c')] == ['C002', 'C003']
    # longer terms also search the description
    assert [c['code'] for c in search_codes('anesth')] == ['A10']
    assert [c['code'] for c in search_codes('c00')] == ['C002', 'C003']


# ---------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------
def test_calendar_broadcast_reaches_organization_group():
    from asgiref.sync import async_to_sync
    from channels.layers import get_channel_layer

    from clinic.realtime.events import broadcast_calendar_change, calendar_group

    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(calendar_group(5), channel)
    broadcast_calendar_change(5, 'created', [1, 2])
    message = async_to_sync(layer.receive)(channel)
    assert message['type'] == 'calendar.changed'
    assert message['action'] == 'created'
    assert message['appointmentIds'] == [1, 2]


def test_plain_text_strips_markup_but_keeps_characters():
    assert plain_text('Fees: 5 < 10 & more') == 'Fees: 5 < 10 & more'
    assert plain_text('<b>Hello</b> there') == 'Hello there'
    assert plain_text("O'Brien & Sons") == "O'Brien & Sons"


@pytest.mark.parametrize('tooth,kind,surfaces', [
    (16, 'molar', 4),
    (38, 'molar', 4),
    (24, 'premolar', 1),
    (11, 'anterior', 1),
])
def test_sealing_surfaces_follow_tooth_type(tooth, kind, surfaces):
    assert tooth_type(tooth) == kind
    assert len(sealing_surfaces(tooth)) == surfaces


def test_checkup_notes_keep_only_findings():
    notes = checkup_notes({
        'hasComplaints': True, 'complaints': 'Sensitive 36',
        'healthChanges': False, 'healthChangesDetails': 'ignored',
        'hygieneLevel': 'GOOD',
        'teethWear': True, 'teethWearDetails': 'Bruxism facets',
    })
    assert notes == 'Complaints: Sensitive 36; Teeth wear: Bruxism facets'
    assert checkup_notes({'hygieneLevel': 'POOR'}) == 'Hygiene level: POOR'
