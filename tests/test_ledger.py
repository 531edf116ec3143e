# tests/test_ledger.py
import uuid
from datetime import date
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError

from core.permissions import Role
from fees.models import StudentFee, Invoice, InvoiceItem, PaymentMethod
from fees.services import LedgerService

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------------
# Per-student summary
# ---------------------------------------------------------------------------

class TestStudentFeeSummary:

    def test_no_fee_rows_gives_zero_totals(self, admin_identity, make_student):
        student = make_student()

        result = LedgerService.student_fee_summary(admin_identity, student.pk)

        assert result['data'] == {
            'total_fees': Decimal("0.00"),
            'total_paid': Decimal("0.00"),
            'outstanding_balance': Decimal("0.00"),
            'fee_breakdown': [],
        }

    def test_totals_are_sums_of_rows(self, admin_identity, make_student, make_student_fee, second_term):
        student = make_student()
        make_student_fee(student, "100000.00", amount_paid="40000.00")
        make_student_fee(student, "80000.00", amount_paid="80000.00", fee_term=second_term)
        make_student_fee(student, "2500.50", amount_paid="0.50")

        data = LedgerService.student_fee_summary(admin_identity, student.pk)['data']

        assert data['total_fees'] == Decimal("182500.50")
        assert data['total_paid'] == Decimal("120000.50")
        assert data['outstanding_balance'] == Decimal("62500.00")
        assert len(data['fee_breakdown']) == 3
        assert {row['term'] for row in data['fee_breakdown']} == {"Term 1", "Term 2"}

    def test_missing_term_is_reported_as_placeholder(self, admin_identity, make_student):
        student = make_student()
        StudentFee.objects.create(student=student, total_amount=Decimal("10.00"), balance=Decimal("10.00"))

        data = LedgerService.student_fee_summary(admin_identity, student.pk)['data']

        assert data['fee_breakdown'][0]['term'] == "N/A"
        assert data['fee_breakdown'][0]['academic_year'] == "N/A"

    def test_student_sees_own_fees(self, make_student, identity_of, make_student_fee):
        student = make_student()
        make_student_fee(student, "1000.00")

        result = LedgerService.student_fee_summary(identity_of(student.profile), student.pk)

        assert result['success'] is True

    def test_linked_guardian_sees_child_fees(self, make_student, make_guardian, link_guardian, identity_of):
        student = make_student()
        guardian = make_guardian()
        link_guardian(student, guardian)

        result = LedgerService.student_fee_summary(identity_of(guardian.profile), student.pk)

        assert result['success'] is True

    @pytest.mark.parametrize("role", [Role.TEACHER, Role.GUARDIAN, Role.STUDENT])
    def test_unrelated_callers_are_forbidden(self, make_identity, make_student, role):
        student = make_student()

        result = LedgerService.student_fee_summary(make_identity(role), student.pk)

        assert result == {
            'error': "Forbidden: You do not have permission to view this student's fees",
            'code': 'forbidden',
        }

    @pytest.mark.parametrize("student_id", [uuid.uuid4(), "not-a-uuid"])
    def test_unknown_student(self, admin_identity, student_id):
        result = LedgerService.student_fee_summary(admin_identity, student_id)
        assert result == {'error': "Student not found", 'code': 'not_found'}

    @pytest.mark.parametrize("role", [Role.GUARDIAN, Role.STUDENT, Role.TEACHER])
    @pytest.mark.parametrize("student_id", [uuid.uuid4(), "not-a-uuid"])
    def test_unknown_student_looks_forbidden_to_unrelated_callers(self, make_identity, role, student_id):
        result = LedgerService.student_fee_summary(make_identity(role), student_id)

        assert result == {
            'error': "Forbidden: You do not have permission to view this student's fees",
            'code': 'forbidden',
        }

    def test_link_alone_does_not_grant_access_after_role_change(self, make_student, make_guardian,
                                                                link_guardian, identity_of, make_student_fee):
        student = make_student()
        guardian = make_guardian()
        link_guardian(student, guardian, is_primary=True)
        make_student_fee(student, "1000.00")
        guardian.profile.role = Role.TEACHER
        guardian.profile.save()

        result = LedgerService.student_fee_summary(identity_of(guardian.profile), student.pk)

        assert result['code'] == 'forbidden'
        assert 'data' not in result

    def test_store_failure_is_an_aggregation_error(self, admin_identity, make_student):
        student = make_student()

        with mock.patch.object(StudentFee.objects, 'filter', side_effect=DatabaseError("locked")):
            result = LedgerService.student_fee_summary(admin_identity, student.pk)

        assert result == {'error': "Failed to fetch fee data", 'code': 'aggregation_failed'}


# ---------------------------------------------------------------------------
# School-wide arrears
# ---------------------------------------------------------------------------

class TestSchoolWideOutstanding:

    @pytest.fixture
    def debtors(self, make_student, make_invoice, make_guardian, link_guardian, school_class):
        ada = make_student(first_name="Ada", last_name="Banda", student_class=school_class)
        make_invoice(ada, "3000.00", invoice_date=date(2024, 2, 1))
        make_invoice(ada, "2000.00", invoice_date=date(2024, 1, 10))
        make_invoice(ada, "0.00", invoice_date=date(2023, 9, 1), total_amount="7000.00")
        link_guardian(ada, make_guardian(phone="+265999000111"), is_primary=True)
        link_guardian(ada, make_guardian(phone="+265888777666"), is_primary=False)

        kondwani = make_student(first_name="Kondwani", last_name="Mbewe", phone="+265991234567")
        make_invoice(kondwani, "8000.00", invoice_date=date(2024, 3, 1))

        make_student(first_name="Paid", last_name="Up")
        return ada, kondwani

    def test_rows_sorted_by_debt(self, admin_identity, debtors):
        ada, kondwani = debtors

        with mock.patch('fees.services.get_school_today', return_value=date(2024, 3, 11)):
            rows = LedgerService.school_wide_outstanding(admin_identity)['data']

        assert [row['student_id'] for row in rows] == [str(kondwani.pk), str(ada.pk)]

        top, second = rows
        assert top['total_outstanding'] == Decimal("8000.00")
        assert top['days_overdue'] == 10
        assert top['guardian_phone'] is None
        assert top['phone_number'] == "+265991234567"
        assert top['class_name'] == "N/A"

        assert second['total_outstanding'] == Decimal("5000.00")
        assert second['oldest_invoice_date'] == date(2024, 1, 10)
        assert second['days_overdue'] == 61
        assert second['guardian_phone'] == "+265999000111"
        assert second['phone_number'] is None
        assert second['full_name'] == "Ada Banda"
        assert second['class_name'] == "Form 2A"

    def test_invoice_dated_in_the_future_is_not_negative(self, admin_identity, make_student, make_invoice):
        make_invoice(make_student(), "100.00", invoice_date=date(2024, 4, 1))

        with mock.patch('fees.services.get_school_today', return_value=date(2024, 3, 11)):
            rows = LedgerService.school_wide_outstanding(admin_identity)['data']

        assert rows[0]['days_overdue'] == 0

    def test_nothing_outstanding(self, admin_identity):
        assert LedgerService.school_wide_outstanding(admin_identity) == {'success': True, 'data': []}

    def test_teachers_are_forbidden(self, make_identity):
        result = LedgerService.school_wide_outstanding(make_identity(Role.TEACHER))
        assert result == {'error': "Forbidden: Admin or staff access required", 'code': 'forbidden'}

    def test_store_failure(self, admin_identity):
        with mock.patch.object(Invoice.objects, 'filter', side_effect=DatabaseError("locked")):
            result = LedgerService.school_wide_outstanding(admin_identity)

        assert result['error'] == "Failed to fetch outstanding fees"


# ---------------------------------------------------------------------------
# Invoices and payments
# ---------------------------------------------------------------------------

def test_student_invoices_newest_first_with_items(admin_identity, make_student, make_invoice):
    student = make_student()
    older = make_invoice(student, "500.00", invoice_date=date(2024, 1, 10), invoice_number="INV-2024-0001")
    newer = make_invoice(student, "900.00", invoice_date=date(2024, 5, 2), invoice_number="INV-2024-0002")
    InvoiceItem.objects.create(
        invoice=newer, item_name="Tuition", quantity=Decimal("1.00"),
        unit_price=Decimal("900.00"), total_amount=Decimal("900.00"),
    )

    data = LedgerService.student_invoices(admin_identity, student.pk)['data']

    assert [row['invoice_number'] for row in data] == [newer.invoice_number, older.invoice_number]
    assert data[0]['items'][0]['item_name'] == "Tuition"
    assert data[0]['term'] == "Term 1"
    assert data[1]['items'] == []


def test_invoice_numbers_are_generated(make_student, make_invoice):
    student = make_student()
    first = make_invoice(student, "10.00")
    second = make_invoice(student, "20.00")

    year = first.invoice_number.split('-')[1]
    assert first.invoice_number == f"INV-{year}-0001"
    assert second.invoice_number == f"INV-{year}-0002"


def test_student_payments_projection(admin_identity, make_student, make_invoice, make_payment, make_receipt):
    student = make_student()
    invoice = make_invoice(student, "1500.00", total_amount="2500.00", invoice_number="INV-2024-0007")
    paid = make_payment(student, "1000.00", invoice=invoice, payment_date=date(2024, 2, 1))
    receipt = make_receipt(student, payment=paid, receipt_number="RCT-2024-0003")
    make_payment(student, "250.00", payment_date=date(2024, 1, 5), payment_method=PaymentMethod.CASH)

    data = LedgerService.student_payments(admin_identity, student.pk)['data']

    assert data[0]['invoice_number'] == "INV-2024-0007"
    assert data[0]['receipt_number'] == "RCT-2024-0003"
    assert data[0]['receipt_id'] == str(receipt.pk)
    assert data[0]['balance_after'] == Decimal("1500.00")

    assert data[1]['invoice_number'] == "N/A"
    assert data[1]['receipt_number'] == "N/A"
    assert data[1]['receipt_id'] == ''
    assert data[1]['balance_after'] == Decimal("0.00")


def test_payments_of_unrelated_student_are_forbidden(make_identity, make_student):
    result = LedgerService.student_payments(make_identity(Role.GUARDIAN), make_student().pk)
    assert result['error'] == "Forbidden: You do not have permission to view this student's payments"


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------

class TestFinancialOverview:

    def test_overview_figures(self, admin_identity, make_student, make_student_fee, make_invoice, make_payment):
        ada = make_student()
        kondwani = make_student(first_name="Kondwani")
        make_student_fee(ada, "100000.00", amount_paid="40000.00")
        make_student_fee(kondwani, "50000.00", amount_paid="50000.00")
        make_invoice(ada, "5000.00")
        make_invoice(kondwani, "8000.00")
        make_payment(ada, "1000.00")
        make_payment(kondwani, "1000.00")
        make_payment(ada, "500.00", payment_method=PaymentMethod.CASH)

        data = LedgerService.financial_overview(admin_identity)['data']

        assert data['total_fees_assigned'] == Decimal("150000.00")
        assert data['total_collected'] == Decimal("90000.00")
        assert data['outstanding_balance'] == Decimal("60000.00")
        assert data['collection_rate'] == Decimal("60.00")
        assert data['total_students'] == 2
        assert data['total_invoices'] == 2
        assert data['total_payments'] == 3
        assert data['invoice_outstanding'] == Decimal("13000.00")
        assert data['unreconciled_difference'] == Decimal("47000.00")
        assert data['breakdown_by_term'] == [{
            'academic_year': "2024",
            'term': "Term 1",
            'total_fees': Decimal("150000.00"),
            'collected': Decimal("90000.00"),
            'outstanding': Decimal("60000.00"),
            'collection_rate': Decimal("60.00"),
        }]
        assert data['payment_methods'] == [
            {'method': 'cash', 'count': 1, 'total_amount': Decimal("500.00")},
            {'method': 'mobile_money', 'count': 2, 'total_amount': Decimal("2000.00")},
        ]
        assert data['reports'] == {'enabled': True, 'selected_ui': 'default'}

    def test_empty_school(self, admin_identity):
        data = LedgerService.financial_overview(admin_identity)['data']

        assert data['total_fees_assigned'] == Decimal("0.00")
        assert data['collection_rate'] == Decimal("0.00")
        assert data['unreconciled_difference'] == Decimal("0.00")

    @pytest.mark.parametrize("role, allowed", [
        (Role.ADMIN, True),
        (Role.HEADTEACHER, True),
        (Role.DEPUTY_HEADTEACHER, True),
        (Role.TEACHER, False),
        (Role.GUARDIAN, False),
    ])
    def test_access(self, make_identity, role, allowed):
        result = LedgerService.financial_overview(make_identity(role))
        assert ('success' in result) is allowed
