# fees/services.py

"""
Fee Ledger Services

Business logic for:
- Fee structure authoring (header + items, all-or-nothing)
- Ledger aggregation (per-student summaries, school-wide arrears, overview)
- Receipt and payment listings

Every public operation takes the resolved caller Identity first and returns
a tagged result dict (see core.results).
"""

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import connection, transaction, DatabaseError, IntegrityError
from django.db.models import Sum, Count
from decimal import Decimal
import logging

from core.conf import ledger_setting, report_settings
from core.exceptions import (
    Forbidden, NotFound, Conflict, InvalidInput, AggregationFailed, PersistenceFailed,
)
from core.permissions import (
    Permission, financial_access, has_permission, require_identity, require_permission,
)
from core.results import service_operation, success
from core.utils import ZERO, PLACEHOLDER, calculate_percentage, days_since, format_money, get_school_today
from academics.models import AcademicYear, Term
from students.models import Student, StudentGuardian
from students.services import RelationshipResolver
from students.utils import student_display_name, student_class_name
from .forms import ReceiptFilterForm, validate_fee_structure_input
from .models import (
    FeeStructure, FeeStructureItem, StudentFee, Invoice, Payment, Receipt,
)
from .signals import fee_structures_changed, fee_structure_cache_key
from .utils import (
    fee_structure_name,
    student_type_label,
    fee_structure_to_dict,
    student_fee_to_dict,
    invoice_to_dict,
    payment_to_dict,
    receipt_to_dict,
)

logger = logging.getLogger(__name__)

STAFF_ONLY_MESSAGE = "Forbidden: Admin or staff access required"


# =============================================================================
# SHARED LOOKUPS
# =============================================================================

def get_visible_student(identity, student_id, records):
    """
    Student whose financial records the caller may see, profile and class loaded.

    Unknown or malformed ids are NotFound only for callers who may see every
    student; anyone else gets the same Forbidden answer as for a real student
    they are not related to.
    """
    require_identity(identity)
    try:
        student = (
            Student.objects
            .select_related('profile', 'student_class')
            .filter(pk=student_id)
            .first()
        )
    except ValidationError:
        student = None
    if student is None:
        if has_permission(identity, Permission.FEES_VIEW_ALL):
            raise NotFound("Student not found")
        raise Forbidden(access_denied_message(records))

    require_financial_access(identity, student, records)
    return student


def access_denied_message(records):
    return f"Forbidden: You do not have permission to view this student's {records}"


def require_financial_access(identity, student, records):
    """
    Gather relationship evidence and ask the policy engine.

    Args:
        identity: resolved caller
        student: Student whose records are requested
        records (str): noun used in the denial message ("fees", "receipts", ...)
    """
    require_identity(identity)
    is_linked_guardian = RelationshipResolver.is_guardian_of(identity, student.pk)
    decision = financial_access(identity, student.profile_id, is_linked_guardian)
    if not decision:
        logger.info(f"Financial access denied to {identity.profile_id} for student {student.pk}: {decision.reason}")
        raise Forbidden(access_denied_message(records))
    return decision


# =============================================================================
# FEE STRUCTURE AUTHORING
# =============================================================================

class FeeStructureService:
    """Create and read fee structures"""

    @staticmethod
    @service_operation
    def create_fee_structure(identity, data):
        """
        Create a fee structure with its line items.

        The name and total are derived here, never taken from the caller.
        Header and items are written together or not at all.

        Args:
            identity: resolved caller (needs fees:manage)
            data (dict): academic_year_id, term_id, student_type, items,
                optional due_date and notes

        Returns:
            dict: {'success': True, 'message': ..., 'data': structure}

        Example:
            >>> FeeStructureService.create_fee_structure(admin, {
            ...     'academic_year_id': year.pk, 'term_id': term.pk,
            ...     'student_type': 'internal',
            ...     'items': [{'item_name': 'Tuition', 'amount': '150000', 'is_mandatory': True}],
            ... })['message']
            'Fee structure created successfully: Internal Students - Term 1 2024 (MK 150,000.00)'
        """
        require_permission(identity, Permission.FEES_MANAGE, "Only admins can create fee structures")

        header, items = validate_fee_structure_input(data)

        academic_year = AcademicYear.objects.filter(pk=header['academic_year_id']).first()
        term = Term.objects.filter(
            pk=header['term_id'],
            academic_year_id=header['academic_year_id'],
        ).first()
        if academic_year is None or term is None:
            raise NotFound("Invalid academic year or term")

        student_type = header['student_type']
        label = student_type_label(student_type)
        name = fee_structure_name(student_type, term.name, academic_year.name)
        total_amount = sum((item['amount'] for item in items), ZERO)
        conflict_message = f"Fee structure for {label} in {term.name} {academic_year.name} already exists"

        existing = FeeStructure.objects.filter(
            academic_year=academic_year,
            term=term,
            student_type=student_type,
        ).first()
        if existing is not None:
            raise Conflict(f"{conflict_message} ({existing.name})")

        structure = FeeStructure(
            name=name,
            academic_year=academic_year,
            term=term,
            student_type=student_type,
            total_amount=total_amount,
            due_date=header.get('due_date'),
            notes=header.get('notes') or '',
            created_by_id=str(identity.user_id),
        )

        if FeeStructureService._atomic_writes_available():
            item_rows = FeeStructureService._write_atomically(structure, items, conflict_message)
        else:
            item_rows = FeeStructureService._write_with_compensation(structure, items, conflict_message)

        transaction.on_commit(lambda: fee_structures_changed.send(
            sender=FeeStructure,
            structure_id=structure.pk,
            academic_year_id=structure.academic_year_id,
        ))

        logger.info(f"Fee structure created: {name} ({len(item_rows)} items, total {total_amount}) by {identity.profile_id}")
        return success(
            message=f"Fee structure created successfully: {name} ({format_money(total_amount)})",
            data=fee_structure_to_dict(structure, item_rows),
        )

    @staticmethod
    def _atomic_writes_available():
        return bool(ledger_setting('ATOMIC_WRITES')) and connection.features.supports_transactions

    @staticmethod
    def _build_items(structure, items):
        return [
            FeeStructureItem(
                fee_structure=structure,
                item_name=item['item_name'],
                description=item.get('description') or '',
                amount=item['amount'],
                is_mandatory=bool(item.get('is_mandatory')),
                display_order=item['display_order'],
                created_by_id=structure.created_by_id,
                updated_by_id=structure.created_by_id,
            )
            for item in items
        ]

    @staticmethod
    def _write_atomically(structure, items, conflict_message):
        """Header and items in one transaction"""
        stage = 'header'
        try:
            with transaction.atomic():
                structure.save()
                stage = 'items'
                return FeeStructureItem.objects.bulk_create(
                    FeeStructureService._build_items(structure, items)
                )
        except IntegrityError as e:
            if stage == 'header':
                raise Conflict(conflict_message) from e
            logger.error(f"Error creating fee structure items: {e.__class__.__name__}: {e}")
            raise PersistenceFailed("Failed to create fee structure items") from e
        except DatabaseError as e:
            logger.error(f"Error creating fee structure ({stage}): {e.__class__.__name__}: {e}")
            if stage == 'header':
                raise PersistenceFailed("Failed to create fee structure") from e
            raise PersistenceFailed("Failed to create fee structure items") from e

    @staticmethod
    def _write_with_compensation(structure, items, conflict_message):
        """
        Header, then items; the header is deleted again if the items fail.

        Used where the connection cannot run a multi-statement transaction.
        """
        try:
            structure.save()
        except IntegrityError as e:
            raise Conflict(conflict_message) from e
        except DatabaseError as e:
            logger.error(f"Error creating fee structure: {e.__class__.__name__}: {e}")
            raise PersistenceFailed("Failed to create fee structure") from e

        try:
            return FeeStructureItem.objects.bulk_create(
                FeeStructureService._build_items(structure, items)
            )
        except DatabaseError as e:
            logger.error(f"Error creating fee structure items: {e.__class__.__name__}: {e}")
            FeeStructureService._compensate(structure)
            raise PersistenceFailed("Failed to create fee structure items") from e

    @staticmethod
    def _compensate(structure):
        try:
            FeeStructure.objects.filter(pk=structure.pk).delete()
            logger.warning(f"Rolled back fee structure header {structure.pk} after item failure")
        except DatabaseError as e:
            logger.critical(
                f"STORE INCONSISTENCY: fee structure {structure.pk} ({structure.name}) persists "
                f"without items and could not be deleted: {e.__class__.__name__}: {e}. "
                f"Manual removal required."
            )

    @staticmethod
    @service_operation
    def list_fee_structures(identity, academic_year_id=None):
        """
        Fee structures with their items, newest first. Cached until the next
        fee structure write.
        """
        require_permission(identity, Permission.FEES_VIEW_ALL, STAFF_ONLY_MESSAGE)

        key = fee_structure_cache_key(academic_year_id)
        data = cache.get(key)
        if data is None:
            structures = FeeStructure.objects.prefetch_related('items').order_by('-created_at')
            if academic_year_id is not None:
                structures = structures.filter(academic_year_id=academic_year_id)
            data = [fee_structure_to_dict(structure) for structure in structures]
            cache.set(key, data, ledger_setting('FEE_STRUCTURE_CACHE_TIMEOUT'))

        return success(data=data)

    @staticmethod
    @service_operation
    def get_fee_structure(identity, structure_id):
        require_permission(identity, Permission.FEES_VIEW_ALL, STAFF_ONLY_MESSAGE)

        try:
            structure = FeeStructure.objects.prefetch_related('items').filter(pk=structure_id).first()
        except ValidationError:
            structure = None
        if structure is None:
            raise NotFound("Fee structure not found")

        return success(data=fee_structure_to_dict(structure))


# =============================================================================
# LEDGER AGGREGATION
# =============================================================================

class LedgerService:
    """
    Read-only folds over StudentFee, Invoice and Payment rows.

    StudentFee is the authoritative source for a student's billed/paid/
    balance figures; Invoice is the authoritative source for debt aging.
    """

    @staticmethod
    @service_operation
    def student_fee_summary(identity, student_id):
        """
        Totals and per-term breakdown of one student's fees.

        Returns:
            dict: data = {total_fees, total_paid, outstanding_balance, fee_breakdown}
            with the breakdown newest first. No fee rows gives zero totals.
        """
        student = get_visible_student(identity, student_id, "fees")

        try:
            fees = list(
                StudentFee.objects
                .filter(student=student)
                .select_related('academic_year', 'term')
                .order_by('-created_at')
            )
        except DatabaseError as e:
            logger.error(f"Error fetching student fees for {student.pk}: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch fee data") from e

        total_fees = ZERO
        total_paid = ZERO
        outstanding_balance = ZERO
        fee_breakdown = []
        for fee in fees:
            total_fees += fee.total_amount
            total_paid += fee.amount_paid
            outstanding_balance += fee.balance
            fee_breakdown.append(student_fee_to_dict(fee))

        return success(data={
            'total_fees': total_fees,
            'total_paid': total_paid,
            'outstanding_balance': outstanding_balance,
            'fee_breakdown': fee_breakdown,
        })

    @staticmethod
    @service_operation
    def school_wide_outstanding(identity):
        """
        Every student with unpaid invoices, highest debtor first.

        Each row carries the summed invoice balance, the oldest unpaid invoice
        date, days since that date and the primary guardian's phone.
        """
        require_permission(identity, Permission.FEES_VIEW_ALL, STAFF_ONLY_MESSAGE)

        try:
            invoices = list(
                Invoice.objects
                .filter(balance__gt=0)
                .select_related('student__profile', 'student__student_class')
                .order_by('invoice_date', 'created_at')
            )

            by_student = {}
            for invoice in invoices:
                row = by_student.get(invoice.student_id)
                if row is None:
                    student = invoice.student
                    by_student[invoice.student_id] = {
                        'student_id': str(student.pk),
                        'student_number': student.student_id,
                        'full_name': student_display_name(student.profile),
                        'class_name': student_class_name(student),
                        'total_outstanding': invoice.balance,
                        'oldest_invoice_date': invoice.invoice_date,
                        'phone_number': student.phone or None,
                    }
                    continue

                row['total_outstanding'] += invoice.balance
                if invoice.invoice_date < row['oldest_invoice_date']:
                    row['oldest_invoice_date'] = invoice.invoice_date

            guardian_phones = {}
            if by_student:
                primary_links = (
                    StudentGuardian.objects
                    .filter(student_id__in=list(by_student), is_primary=True)
                    .select_related('guardian')
                )
                for link in primary_links:
                    if link.guardian.phone:
                        guardian_phones[link.student_id] = link.guardian.phone
        except DatabaseError as e:
            logger.error(f"Error fetching outstanding fees: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch outstanding fees") from e

        today = get_school_today()
        outstanding = []
        for student_pk, row in by_student.items():
            row['days_overdue'] = days_since(row['oldest_invoice_date'], today)
            row['guardian_phone'] = guardian_phones.get(student_pk)
            outstanding.append(row)

        outstanding.sort(key=lambda row: row['total_outstanding'], reverse=True)
        return success(data=outstanding)

    @staticmethod
    @service_operation
    def student_invoices(identity, student_id):
        """A student's invoices with their items, newest first"""
        student = get_visible_student(identity, student_id, "invoices")

        try:
            invoices = [
                invoice_to_dict(invoice)
                for invoice in Invoice.objects
                .filter(student=student)
                .select_related('academic_year', 'term')
                .prefetch_related('items')
                .order_by('-invoice_date', '-created_at')
            ]
        except DatabaseError as e:
            logger.error(f"Error fetching invoices for {student.pk}: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch invoices") from e

        return success(data=invoices)

    @staticmethod
    @service_operation
    def student_payments(identity, student_id):
        """A student's payments with invoice and receipt numbers, newest first"""
        student = get_visible_student(identity, student_id, "payments")

        try:
            payments = [
                payment_to_dict(payment)
                for payment in Payment.objects
                .filter(student=student)
                .select_related('invoice', 'receipt')
                .order_by('-payment_date', '-created_at')
            ]
        except DatabaseError as e:
            logger.error(f"Error fetching payments for {student.pk}: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch payment history") from e

        return success(data=payments)

    @staticmethod
    @service_operation
    def financial_overview(identity):
        """
        School-wide collection figures.

        Billed/collected/outstanding come from StudentFee. The invoice
        balance total is reported alongside, and any difference between the
        two is surfaced as unreconciled_difference rather than hidden.
        """
        require_permission(identity, Permission.FEES_VIEW_ALL, STAFF_ONLY_MESSAGE)

        try:
            totals = StudentFee.objects.aggregate(
                total=Sum('total_amount'),
                paid=Sum('amount_paid'),
                balance=Sum('balance'),
            )
            invoice_outstanding = Invoice.objects.aggregate(balance=Sum('balance'))['balance'] or ZERO

            by_term = (
                StudentFee.objects
                .values('academic_year__name', 'term__name')
                .annotate(total=Sum('total_amount'), paid=Sum('amount_paid'), balance=Sum('balance'))
                .order_by('academic_year__name', 'term__name')
            )
            breakdown_by_term = [
                {
                    'academic_year': row['academic_year__name'] or PLACEHOLDER,
                    'term': row['term__name'] or PLACEHOLDER,
                    'total_fees': row['total'] or ZERO,
                    'collected': row['paid'] or ZERO,
                    'outstanding': row['balance'] or ZERO,
                    'collection_rate': calculate_percentage(row['paid'] or ZERO, row['total'] or ZERO),
                }
                for row in by_term
            ]

            payment_methods = [
                {
                    'method': row['payment_method'],
                    'count': row['count'],
                    'total_amount': row['total'] or ZERO,
                }
                for row in Payment.objects
                .values('payment_method')
                .annotate(count=Count('id'), total=Sum('amount'))
                .order_by('payment_method')
            ]

            total_students = Student.objects.count()
            total_invoices = Invoice.objects.count()
            total_payments = Payment.objects.count()
        except DatabaseError as e:
            logger.error(f"Error building financial overview: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch financial overview") from e

        total_fees_assigned = totals['total'] or ZERO
        total_collected = totals['paid'] or ZERO
        outstanding_balance = totals['balance'] or ZERO
        unreconciled = outstanding_balance - invoice_outstanding
        if unreconciled != Decimal('0'):
            logger.warning(
                f"Student fee balances ({outstanding_balance}) and invoice balances "
                f"({invoice_outstanding}) differ by {unreconciled}"
            )

        return success(data={
            'total_fees_assigned': total_fees_assigned,
            'total_collected': total_collected,
            'outstanding_balance': outstanding_balance,
            'collection_rate': calculate_percentage(total_collected, total_fees_assigned),
            'total_students': total_students,
            'total_invoices': total_invoices,
            'total_payments': total_payments,
            'breakdown_by_term': breakdown_by_term,
            'payment_methods': payment_methods,
            'invoice_outstanding': invoice_outstanding,
            'unreconciled_difference': unreconciled,
            'reports': report_settings(),
        })


# =============================================================================
# RECEIPTS
# =============================================================================

class ReceiptService:

    @staticmethod
    def _enriched(receipts):
        return [receipt_to_dict(receipt) for receipt in receipts]

    @staticmethod
    def _base_queryset(student):
        return (
            Receipt.objects
            .filter(student=student)
            .select_related('payment__invoice', 'invoice')
            .order_by('-payment_date', '-generated_at')
        )

    @staticmethod
    @service_operation
    def recent_receipts(identity, student_id, limit=None):
        """The student's latest receipts (FEE_LEDGER['RECENT_RECEIPTS_LIMIT'] by default)"""
        student = get_visible_student(identity, student_id, "receipts")

        if limit is None:
            limit = ledger_setting('RECENT_RECEIPTS_LIMIT')
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidInput("Limit must be a whole number of at least 1")
        try:
            receipts = ReceiptService._enriched(ReceiptService._base_queryset(student)[:limit])
        except DatabaseError as e:
            logger.error(f"Error fetching recent receipts for {student.pk}: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch recent receipts") from e

        return success(receipts=receipts)

    @staticmethod
    @service_operation
    def all_receipts(identity, student_id, filters=None):
        """
        All of a student's receipts, optionally filtered.

        Args:
            filters (dict): start_date / end_date (inclusive, applied in the
                query) and search_term (case-insensitive substring of the
                receipt number, applied after enrichment)
        """
        student = get_visible_student(identity, student_id, "receipts")

        form = ReceiptFilterForm(filters or {})
        if not form.is_valid():
            raise ValidationError(form.errors.as_data())
        start_date = form.cleaned_data.get('start_date')
        end_date = form.cleaned_data.get('end_date')
        search_term = form.cleaned_data.get('search_term')

        queryset = ReceiptService._base_queryset(student)
        if start_date:
            queryset = queryset.filter(payment_date__gte=start_date)
        if end_date:
            queryset = queryset.filter(payment_date__lte=end_date)

        try:
            receipts = ReceiptService._enriched(queryset)
        except DatabaseError as e:
            logger.error(f"Error fetching receipts for {student.pk}: {e.__class__.__name__}: {e}")
            raise AggregationFailed("Failed to fetch receipts") from e

        if search_term:
            needle = search_term.lower()
            receipts = [r for r in receipts if needle in r['receipt_number'].lower()]

        return success(receipts=receipts)
