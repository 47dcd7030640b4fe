"""
Payments, invoices and treatment budgets.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import DentalCode, DentalProcedure, Patient
from clinic.services.activity import Actions, EntityTypes, log_activity

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
NICKEL = Decimal('0.05')
OPEN_EXCLUDED_STATUSES = ('COMPLETED', 'CANCELLED')


def money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def cash_round(amount: Decimal) -> Decimal:
    """Round to the nearest 5 cents, the smallest coin in circulation."""
    steps = (Decimal(amount) / NICKEL).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return (steps * NICKEL).quantize(CENT)


def distribute(amounts: List[Decimal], total: Decimal) -> List[Decimal]:
    """Scale ``amounts`` so they sum to ``total``; the last line absorbs rounding."""
    subtotal = sum(amounts, Decimal('0'))
    if not amounts or subtotal == 0:
        return [money(a) for a in amounts]
    shares = [money(a * total / subtotal) for a in amounts[:-1]]
    shares.append(money(total - sum(shares, Decimal('0'))))
    return shares


def unit_price(code: DentalCode) -> Decimal:
    """Billed price of one unit. Point-only codes have no billed price."""
    return Decimal(code.rate) if code.rate is not None else Decimal('0')


def _organization_context(patient: Patient) -> dict:
    org = patient.organization
    return {
        'name': org.name,
        'address': org.address,
        'phone': org.phone,
        'email': org.email,
        'website': org.website,
        'logoUrl': org.logo_url,
    }


def _send_invoice_email(patient: Patient, invoice: dict, html: str) -> bool:
    subject = f"Invoice {invoice['invoiceNumber']} - {invoice['practice']['name']}"
    text = (
        f"Dear {patient.full_name},\n\n"
        f"Please find your invoice {invoice['invoiceNumber']} for EUR {invoice['finalAmount']:.2f} below.\n\n"
        f"Best regards,\n{invoice['practice']['name']}"
    )
    msg = EmailMultiAlternatives(subject, text, settings.DEFAULT_FROM_EMAIL, [patient.email])
    msg.attach_alternative(html, 'text/html')
    try:
        msg.send()
    except Exception:
        logger.exception('failed to send invoice %s to patient %s', invoice['invoiceNumber'], patient.id)
        return False
    return True


def pay_procedures(user, patient: Patient, data: Dict[str, Any], *, request=None) -> dict:
    method = data['paymentMethod']
    procs = list(
        DentalProcedure.objects.select_related('code')
        .filter(patient=patient, id__in=data['procedureIds'], is_paid=False)
        .order_by('date', 'id')
    )
    if not procs:
        raise ValidationError('No unpaid procedures selected')

    amounts = [money(unit_price(p.code) * p.quantity) for p in procs]
    subtotal = sum(amounts, Decimal('0'))
    final = cash_round(subtotal) if method == 'CASH' else subtotal
    paid_amounts = distribute(amounts, final) if final != subtotal else amounts
    send_email = bool(data.get('sendEmail')) and bool(patient.email)
    print_invoice = bool(data.get('printInvoice'))

    paid_at = timezone.now()
    with transaction.atomic():
        for proc, amount in zip(procs, paid_amounts):
            proc.is_paid = True
            proc.payment_amount = amount
            proc.payment_method = method
            proc.paid_at = paid_at
            proc.invoice_email = send_email
            proc.invoice_printed = print_invoice
            proc.save(update_fields=[
                'is_paid', 'payment_amount', 'payment_method', 'paid_at',
                'invoice_email', 'invoice_printed', 'updated_at',
            ])

    invoice = {
        'invoiceNumber': f'INV-{int(paid_at.timestamp() * 1000)}',
        'patientId': patient.id,
        'patientName': patient.full_name,
        'patientCode': patient.patient_code,
        'practice': _organization_context(patient),
        'lines': [
            {
                'procedureId': p.id,
                'code': p.code.code,
                'description': p.code.description,
                'toothNumber': p.tooth_number,
                'quantity': p.quantity,
                'unitPrice': float(money(unit_price(p.code))),
                'amount': float(a),
                'paidAmount': float(pa),
                'date': p.date.isoformat(),
            }
            for p, a, pa in zip(procs, amounts, paid_amounts)
        ],
        'subtotal': float(subtotal),
        'finalAmount': float(final),
        'cashRounding': float(final - subtotal),
        'paymentMethod': method,
        'paidAt': paid_at.isoformat(),
    }

    html = None
    if print_invoice or send_email:
        html = render_to_string('clinic/invoice.html', {'invoice': invoice})
    if print_invoice:
        invoice['invoiceHtml'] = html
        log_activity(
            user=user, action=Actions.GENERATE_INVOICE, entity_type=EntityTypes.PAYMENT,
            entity_id=invoice['invoiceNumber'], patient=patient, request=request,
            description=f"Invoice {invoice['invoiceNumber']} generated",
            details={'procedureIds': [p.id for p in procs], 'printed': True, 'emailed': send_email},
        )
    invoice['emailSent'] = _send_invoice_email(patient, invoice, html) if send_email else False

    log_activity(
        user=user, action=Actions.ADD_PAYMENT, entity_type=EntityTypes.PAYMENT, entity_id=invoice['invoiceNumber'],
        patient=patient, request=request,
        description=f"Payment of EUR {final:.2f} ({method}) for {len(procs)} procedure(s)",
        details={'procedureIds': [p.id for p in procs], 'finalAmount': float(final), 'method': method},
    )
    return invoice


def treatment_plan(patient: Patient, *, vat_rate: Optional[Decimal] = None, valid_until: Optional[str] = None) -> dict:
    """Budget of the procedures that are still to be performed."""
    rate = Decimal(str(settings.BUDGET_VAT_RATE)) if vat_rate is None else Decimal(str(vat_rate))
    procs = (
        DentalProcedure.objects.select_related('code')
        .filter(patient=patient)
        .exclude(status__in=OPEN_EXCLUDED_STATUSES)
        .order_by('date', 'id')
    )
    lines = []
    subtotal = Decimal('0')
    for p in procs:
        price = money(unit_price(p.code))
        total = money(price * p.quantity)
        subtotal += total
        lines.append({
            'procedureId': p.id,
            'code': p.code.code,
            'description': p.code.description,
            'toothNumber': p.tooth_number,
            'quantity': p.quantity,
            'rate': float(price),
            'total': float(total),
            'status': p.status,
        })
    vat = money(subtotal * rate)
    return {
        'patientId': patient.id,
        'patientName': patient.full_name,
        'patientCode': patient.patient_code,
        'practice': _organization_context(patient),
        'lines': lines,
        'subtotal': float(money(subtotal)),
        'vatRate': float(rate),
        'vat': float(vat),
        'total': float(money(subtotal + vat)),
        'validUntil': valid_until,
        'generatedAt': timezone.now().isoformat(),
    }


def render_treatment_plan(plan: dict) -> str:
    return render_to_string('clinic/budget.html', {'plan': plan})
