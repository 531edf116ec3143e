# fees/signals.py

"""
Fee Ledger Signal Handlers

- Document number generation for invoices, payments and receipts
- Cache invalidation when fee structures change
"""

from django.core.cache import cache
from django.db.models.signals import pre_save
from django.dispatch import Signal, receiver
import logging

from fees.utils import (
    generate_invoice_number,
    generate_payment_number,
    generate_receipt_number,
)

logger = logging.getLogger(__name__)

# Sent after a fee structure write has committed.
# Arguments: structure_id, academic_year_id
fee_structures_changed = Signal()

FEE_STRUCTURE_CACHE_VERSION_KEY = 'fees:structures:version'


def fee_structure_cache_key(academic_year_id=None):
    """
    Cache key of a fee structure listing.

    Keys embed a version counter so one bump invalidates every listing.
    """
    version = cache.get(FEE_STRUCTURE_CACHE_VERSION_KEY, 1)
    scope = academic_year_id or 'all'
    return f"fees:structures:v{version}:{scope}"


# =============================================================================
# DOCUMENT NUMBERS
# =============================================================================

@receiver(pre_save, sender='fees.Invoice')
def invoice_pre_save(sender, instance, **kwargs):
    if not instance.invoice_number:
        instance.invoice_number = generate_invoice_number()
        logger.info(f"Generated invoice number: {instance.invoice_number}")


@receiver(pre_save, sender='fees.Payment')
def payment_pre_save(sender, instance, **kwargs):
    if not instance.payment_number:
        instance.payment_number = generate_payment_number()
        logger.info(f"Generated payment number: {instance.payment_number}")


@receiver(pre_save, sender='fees.Receipt')
def receipt_pre_save(sender, instance, **kwargs):
    """Number the receipt and copy payment details when created from a payment"""
    if not instance.receipt_number:
        instance.receipt_number = generate_receipt_number()
        logger.info(f"Generated receipt number: {instance.receipt_number}")

    payment = instance.payment
    if payment is not None:
        if instance.invoice_id is None:
            instance.invoice_id = payment.invoice_id
        if not instance.payment_method:
            instance.payment_method = payment.payment_method


# =============================================================================
# CACHE INVALIDATION
# =============================================================================

@receiver(fee_structures_changed)
def invalidate_fee_structure_cache(sender, structure_id=None, academic_year_id=None, **kwargs):
    try:
        cache.incr(FEE_STRUCTURE_CACHE_VERSION_KEY)
    except ValueError:
        # Key missing: start a fresh version above the implicit 1
        cache.set(FEE_STRUCTURE_CACHE_VERSION_KEY, 2, None)
    logger.debug(f"Fee structure listings invalidated after change to {structure_id}")
