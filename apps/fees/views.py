# fees/views.py

"""
Fee ledger JSON endpoints.

Each view resolves the caller (core.http.ledger_endpoint), delegates to a
service and renders the tagged result with its HTTP status.
"""

from django.views.decorators.http import require_GET, require_POST
import json
import logging

from core.conf import report_settings
from core.exceptions import InvalidInput
from core.http import ledger_endpoint
from core.results import failure, success
from .services import FeeStructureService, LedgerService, ReceiptService

logger = logging.getLogger(__name__)


def _json_body(request):
    """Decoded JSON request body, or None when it is not valid JSON"""
    try:
        return json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        return None


# =============================================================================
# FEE STRUCTURES
# =============================================================================

@require_GET
@ledger_endpoint
def fee_structure_list(request, identity):
    return FeeStructureService.list_fee_structures(
        identity, academic_year_id=request.GET.get('academic_year_id') or None
    )


@require_POST
@ledger_endpoint
def fee_structure_create(request, identity):
    data = _json_body(request)
    if not isinstance(data, dict):
        return failure("Request body must be a JSON object", InvalidInput.code)
    return FeeStructureService.create_fee_structure(identity, data)


@require_GET
@ledger_endpoint
def fee_structure_detail(request, identity, structure_id):
    return FeeStructureService.get_fee_structure(identity, structure_id)


# =============================================================================
# STUDENT LEDGER
# =============================================================================

@require_GET
@ledger_endpoint
def student_fee_summary(request, identity, student_id):
    return LedgerService.student_fee_summary(identity, student_id)


@require_GET
@ledger_endpoint
def student_invoices(request, identity, student_id):
    return LedgerService.student_invoices(identity, student_id)


@require_GET
@ledger_endpoint
def student_payments(request, identity, student_id):
    return LedgerService.student_payments(identity, student_id)


@require_GET
@ledger_endpoint
def recent_receipts(request, identity, student_id):
    return ReceiptService.recent_receipts(identity, student_id)


@require_GET
@ledger_endpoint
def all_receipts(request, identity, student_id):
    filters = {
        key: request.GET[key]
        for key in ('start_date', 'end_date', 'search_term')
        if request.GET.get(key)
    }
    return ReceiptService.all_receipts(identity, student_id, filters)


# =============================================================================
# SCHOOL-WIDE
# =============================================================================

@require_GET
@ledger_endpoint
def outstanding_fees(request, identity):
    return LedgerService.school_wide_outstanding(identity)


@require_GET
@ledger_endpoint
def financial_overview(request, identity):
    return LedgerService.financial_overview(identity)


@require_GET
@ledger_endpoint
def report_configuration(request, identity):
    """Report generation switch and selected layout"""
    return success(data=report_settings())
