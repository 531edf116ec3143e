# core/conf.py

"""
Ledger configuration.

Values come from Django settings and fall back to the documented defaults
below, so every caller reads one source of truth.

    FEE_LEDGER = {
        'CURRENCY_LABEL': 'MK',              # prefix used in user messages
        'RECENT_RECEIPTS_LIMIT': 5,          # receipts shown by the widget
        'FEE_STRUCTURE_CACHE_TIMEOUT': 3600, # seconds
        'ATOMIC_WRITES': True,               # False forces compensating deletes
        'INVOICE_PREFIX': 'INV',             # document numbers look like INV-2024-0001
        'PAYMENT_PREFIX': 'PAY',
        'RECEIPT_PREFIX': 'RCT',
    }

    SCHOOL_REPORTS = {
        'ENABLED': True,     # report generation on/off for the whole school
        'UI': 'default',     # report layout selected by administrators
    }
"""

from django.conf import settings

LEDGER_DEFAULTS = {
    'CURRENCY_LABEL': 'MK',
    'RECENT_RECEIPTS_LIMIT': 5,
    'FEE_STRUCTURE_CACHE_TIMEOUT': 3600,
    'ATOMIC_WRITES': True,
    'INVOICE_PREFIX': 'INV',
    'PAYMENT_PREFIX': 'PAY',
    'RECEIPT_PREFIX': 'RCT',
}

REPORT_DEFAULTS = {
    'ENABLED': True,
    'UI': 'default',
}

REPORT_UI_CHOICES = ('default', 'compact', 'detailed')


def ledger_setting(name):
    """Read one FEE_LEDGER value, falling back to its default"""
    if name not in LEDGER_DEFAULTS:
        raise KeyError(f"Unknown ledger setting: {name}")
    configured = getattr(settings, 'FEE_LEDGER', None) or {}
    return configured.get(name, LEDGER_DEFAULTS[name])


def report_settings():
    """School report settings merged over their defaults"""
    configured = getattr(settings, 'SCHOOL_REPORTS', None) or {}
    merged = dict(REPORT_DEFAULTS)
    merged.update({key: value for key, value in configured.items() if key in REPORT_DEFAULTS})

    if merged['UI'] not in REPORT_UI_CHOICES:
        merged['UI'] = REPORT_DEFAULTS['UI']
    merged['ENABLED'] = bool(merged['ENABLED'])

    return {
        'enabled': merged['ENABLED'],
        'selected_ui': merged['UI'],
    }
