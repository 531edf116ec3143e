# fees/utils.py

"""
Fee ledger helpers: document numbers, structure naming and the flat
dict projections returned by the services.
"""

from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.utils import timezone
import logging

from core.conf import ledger_setting
from core.utils import ZERO, PLACEHOLDER, related_name_or_placeholder

logger = logging.getLogger(__name__)

STUDENT_TYPE_LABELS = {
    'internal': 'Internal Students',
    'external': 'External Students',
}


# =============================================================================
# DOCUMENT NUMBER GENERATION
# =============================================================================

def generate_document_number(model, field_name, prefix, year=None):
    """
    Next sequential number for a ledger document.

    Format: {prefix}-{year}-{sequence}, sequence zero-padded to four digits
    (INV-2024-0001, RCT-2024-0012, ...). Numbers restart every year.

    Args:
        model: model class owning the number field
        field_name (str): e.g. 'invoice_number'
        prefix (str): e.g. 'INV'
        year (int): defaults to the current year

    Returns:
        str: unique document number
    """
    year = year or timezone.localdate().year
    search_prefix = f"{prefix}-{year}-"

    with transaction.atomic():
        existing = (
            model.objects
            .select_for_update()
            .filter(**{f"{field_name}__startswith": search_prefix})
            .values_list(field_name, flat=True)
        )

        numbers = []
        for number in existing:
            try:
                numbers.append(int(number.rsplit('-', 1)[-1]))
            except ValueError:
                continue
        next_number = max(numbers) + 1 if numbers else 1

    return f"{search_prefix}{next_number:04d}"


def generate_invoice_number():
    from fees.models import Invoice
    return generate_document_number(Invoice, 'invoice_number', ledger_setting('INVOICE_PREFIX'))


def generate_payment_number():
    from fees.models import Payment
    return generate_document_number(Payment, 'payment_number', ledger_setting('PAYMENT_PREFIX'))


def generate_receipt_number():
    from fees.models import Receipt
    return generate_document_number(Receipt, 'receipt_number', ledger_setting('RECEIPT_PREFIX'))


# =============================================================================
# FEE STRUCTURE NAMING
# =============================================================================

def student_type_label(student_type):
    """'internal' -> 'Internal Students'"""
    return STUDENT_TYPE_LABELS.get(student_type, 'External Students')


def fee_structure_name(student_type, term_name, academic_year_name):
    """
    Derived display name of a fee structure.

    Example:
        >>> fee_structure_name('internal', 'Term 1', '2024')
        'Internal Students - Term 1 2024'
    """
    return f"{student_type_label(student_type)} - {term_name} {academic_year_name}"


# =============================================================================
# PROJECTIONS
# =============================================================================
# One flattening helper per entity. Related rows are expected to be loaded
# with select_related/prefetch_related by the caller; a missing relation is
# reported as "N/A".

def fee_structure_to_dict(structure, items=None):
    items = structure.items.all() if items is None else items
    return {
        'id': str(structure.pk),
        'name': structure.name,
        'academic_year_id': str(structure.academic_year_id),
        'term_id': str(structure.term_id),
        'student_type': structure.student_type,
        'total_amount': structure.total_amount,
        'due_date': structure.due_date,
        'notes': structure.notes,
        'is_active': structure.is_active,
        'items': [
            {
                'id': str(item.pk),
                'item_name': item.item_name,
                'description': item.description,
                'amount': item.amount,
                'is_mandatory': item.is_mandatory,
                'display_order': item.display_order,
            }
            for item in sorted(items, key=lambda item: item.display_order)
        ],
    }


def student_fee_to_dict(fee):
    return {
        'academic_year': related_name_or_placeholder(fee.academic_year),
        'term': related_name_or_placeholder(fee.term),
        'total_amount': fee.total_amount,
        'amount_paid': fee.amount_paid,
        'balance': fee.balance,
    }


def invoice_to_dict(invoice):
    return {
        'id': str(invoice.pk),
        'invoice_number': invoice.invoice_number,
        'invoice_date': invoice.invoice_date,
        'due_date': invoice.due_date,
        'total_amount': invoice.total_amount,
        'amount_paid': invoice.amount_paid,
        'balance': invoice.balance,
        'status': invoice.status,
        'academic_year': related_name_or_placeholder(invoice.academic_year),
        'term': related_name_or_placeholder(invoice.term),
        'items': [
            {
                'item_name': item.item_name,
                'description': item.description,
                'quantity': item.quantity,
                'unit_price': item.unit_price,
                'total_amount': item.total_amount,
            }
            for item in invoice.items.all()
        ],
    }


def receipt_of(payment):
    """The payment's receipt, or None"""
    try:
        return payment.receipt
    except ObjectDoesNotExist:
        return None


def payment_to_dict(payment):
    invoice = payment.invoice
    receipt = receipt_of(payment)
    return {
        'id': str(payment.pk),
        'payment_number': payment.payment_number,
        'payment_date': payment.payment_date,
        'amount': payment.amount,
        'payment_method': payment.payment_method,
        'reference_number': payment.reference_number,
        'invoice_number': invoice.invoice_number if invoice else PLACEHOLDER,
        'receipt_number': receipt.receipt_number if receipt else PLACEHOLDER,
        'receipt_id': str(receipt.pk) if receipt else '',
        'balance_after': invoice.balance if invoice else ZERO,
    }


def receipt_to_dict(receipt):
    """
    Receipt enriched with its payment and invoice numbers.

    The invoice is the payment's invoice, falling back to the invoice
    recorded on the receipt itself. Without a payment both numbers are "N/A".
    """
    payment = receipt.payment
    invoice = None
    if payment is not None:
        invoice = payment.invoice or receipt.invoice
    return {
        'id': str(receipt.pk),
        'receipt_number': receipt.receipt_number,
        'amount': receipt.amount,
        'payment_date': receipt.payment_date,
        'payment_method': receipt.payment_method,
        'payment_number': payment.payment_number if payment else PLACEHOLDER,
        'invoice_number': invoice.invoice_number if invoice else PLACEHOLDER,
    }
