# core/utils.py

"""
Central utilities for the fee ledger
Prevents code duplication and ensures consistency across all apps
"""
from django.utils import timezone
from decimal import Decimal, InvalidOperation
import logging

from .conf import ledger_setting

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
PLACEHOLDER = 'N/A'


# =============================================================================
# CURRENCY & MONEY FORMATTING
# =============================================================================

def format_money(amount, include_symbol=True):
    """
    Format a money amount for user-facing messages.

    Example:
        >>> format_money(Decimal('150000'))
        'MK 150,000.00'
        >>> format_money(Decimal('150000'), include_symbol=False)
        '150,000.00'
    """
    try:
        formatted = f"{Decimal(str(amount or 0)):,.2f}"
    except (ValueError, TypeError, InvalidOperation):
        formatted = "0.00"
    if not include_symbol:
        return formatted
    return f"{ledger_setting('CURRENCY_LABEL')} {formatted}"


def calculate_percentage(part, whole, decimal_places=2):
    """
    Calculate percentage with safe division.

    Returns:
        Decimal: part / whole * 100, or 0 when whole is zero
    """
    try:
        part = Decimal(str(part))
        whole = Decimal(str(whole))
        if whole == 0:
            return ZERO
        quantum = Decimal(1).scaleb(-decimal_places)
        return (part / whole * 100).quantize(quantum)
    except (ValueError, TypeError, InvalidOperation):
        return ZERO


# =============================================================================
# DATE UTILITIES
# =============================================================================

def get_school_today():
    """
    Today's date in the school's timezone (settings.TIME_ZONE).

    Always use this instead of date.today() for due dates and overdue
    calculations, otherwise "today" shifts with the server clock.
    """
    return timezone.localdate()


def days_since(earlier_date, today=None):
    """Whole days elapsed from earlier_date to today (floor, never negative)"""
    if earlier_date is None:
        return 0
    today = today or get_school_today()
    return max((today - earlier_date).days, 0)


# =============================================================================
# NAME FORMATTING
# =============================================================================

def format_name_part(name):
    """Proper-case one name part ('jOHN ' -> 'John')"""
    if not name or not name.strip():
        return ""
    trimmed = name.strip()
    return trimmed[0].upper() + trimmed[1:].lower()


def format_title(title):
    """Capitalise a title and make sure it ends with a period ('mr' -> 'Mr.')"""
    formatted = format_name_part(title)
    if not formatted:
        return ""
    return formatted if formatted.endswith('.') else f"{formatted}."


def build_full_name(first_name='', middle_name='', last_name='', title=''):
    parts = [
        format_title(title),
        format_name_part(first_name),
        format_name_part(middle_name),
        format_name_part(last_name),
    ]
    return " ".join(part for part in parts if part)


def related_name_or_placeholder(obj, attribute='name'):
    """Value of a related row's attribute, or 'N/A' when the relation is empty"""
    if obj is None:
        return PLACEHOLDER
    return getattr(obj, attribute, None) or PLACEHOLDER
