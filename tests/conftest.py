# tests/conftest.py
"""
Shared fixtures for the fee ledger tests.

Factories are exposed as fixtures returning callables, so each test builds
exactly the rows it needs:

    def test_something(make_student, make_invoice):
        student = make_student(first_name="Ada")
        make_invoice(student, balance="5000.00")
"""

from datetime import date
from decimal import Decimal
from itertools import count

import pytest
from django.contrib.auth.models import User
from django.core.cache import cache

from accounts.models import Profile, Teacher, Administrator
from accounts.services import IdentityResolver
from academics.models import AcademicYear, Term, Class
from core.permissions import Role
from fees.models import StudentFee, Invoice, Payment, Receipt, PaymentMethod
from students.models import Student, Guardian, StudentGuardian

_sequence = count(1)


def _next():
    return next(_sequence)


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db):
    def _make_user(first_name="", last_name="", email=None):
        n = _next()
        return User.objects.create_user(
            username=f"user{n}",
            password="not-used",
            first_name=first_name,
            last_name=last_name,
            email=email if email is not None else f"user{n}@school.test",
        )
    return _make_user


@pytest.fixture
def make_profile(make_user):
    def _make_profile(role=Role.STUDENT, first_name="Test", last_name="Person"):
        user = make_user(first_name=first_name, last_name=last_name)
        return Profile.objects.create(
            user=user,
            role=role,
            first_name=first_name,
            last_name=last_name,
            email=user.email,
        )
    return _make_profile


@pytest.fixture
def identity_of():
    def _identity_of(profile):
        return IdentityResolver.resolve_user(profile.user)
    return _identity_of


@pytest.fixture
def make_identity(make_profile, identity_of):
    """Identity of a fresh user holding the given role"""
    def _make_identity(role, first_name="Test", last_name="Person"):
        profile = make_profile(role=role, first_name=first_name, last_name=last_name)
        if role == Role.ADMIN:
            Administrator.objects.create(profile=profile, position="Bursar")
        if role in (Role.TEACHER, Role.HEADTEACHER, Role.DEPUTY_HEADTEACHER):
            Teacher.objects.create(profile=profile, title="Mr")
        if role == Role.GUARDIAN:
            Guardian.objects.create(profile=profile, phone="+265888000111")
        return identity_of(profile)
    return _make_identity


@pytest.fixture
def admin_identity(make_identity):
    return make_identity(Role.ADMIN, "Grace", "Admin")


@pytest.fixture
def make_student(make_profile):
    def _make_student(first_name="Ada", last_name="Banda", student_class=None,
                      student_type=Student.StudentType.INTERNAL, phone=""):
        profile = make_profile(role=Role.STUDENT, first_name=first_name, last_name=last_name)
        return Student.objects.create(
            profile=profile,
            student_id=f"STU{_next():04d}",
            student_class=student_class,
            student_type=student_type,
            phone=phone,
        )
    return _make_student


@pytest.fixture
def make_guardian(make_profile):
    def _make_guardian(phone="+265999000111", first_name="Gift", last_name="Phiri"):
        profile = make_profile(role=Role.GUARDIAN, first_name=first_name, last_name=last_name)
        return Guardian.objects.create(profile=profile, phone=phone)
    return _make_guardian


@pytest.fixture
def link_guardian():
    def _link_guardian(student, guardian, is_primary=False, is_emergency_contact=False,
                       relationship=StudentGuardian.Relationship.MOTHER):
        return StudentGuardian.objects.create(
            student=student,
            guardian=guardian,
            relationship=relationship,
            is_primary=is_primary,
            is_emergency_contact=is_emergency_contact,
        )
    return _link_guardian


# ---------------------------------------------------------------------------
# Calendar & classes
# ---------------------------------------------------------------------------

@pytest.fixture
def academic_year(db):
    return AcademicYear.objects.create(
        name="2024",
        start_date=date(2024, 1, 8),
        end_date=date(2024, 12, 6),
        is_active=True,
    )


@pytest.fixture
def term(academic_year):
    return Term.objects.create(
        academic_year=academic_year,
        name="Term 1",
        start_date=date(2024, 1, 8),
        end_date=date(2024, 4, 5),
    )


@pytest.fixture
def second_term(academic_year):
    return Term.objects.create(
        academic_year=academic_year,
        name="Term 2",
        start_date=date(2024, 4, 29),
        end_date=date(2024, 7, 26),
    )


@pytest.fixture
def school_class(db):
    return Class.objects.create(name="Form 2A", grade_level=2)


# ---------------------------------------------------------------------------
# Ledger rows
# ---------------------------------------------------------------------------

@pytest.fixture
def make_student_fee(academic_year, term):
    def _make_student_fee(student, total_amount, amount_paid="0.00", year=None, fee_term=None):
        total_amount = Decimal(str(total_amount))
        amount_paid = Decimal(str(amount_paid))
        return StudentFee.objects.create(
            student=student,
            academic_year=year if year is not None else academic_year,
            term=fee_term if fee_term is not None else term,
            total_amount=total_amount,
            amount_paid=amount_paid,
            balance=total_amount - amount_paid,
        )
    return _make_student_fee


@pytest.fixture
def make_invoice(academic_year, term):
    def _make_invoice(student, balance, invoice_date=date(2024, 1, 10), total_amount=None,
                      invoice_number=""):
        balance = Decimal(str(balance))
        total_amount = Decimal(str(total_amount)) if total_amount is not None else balance
        return Invoice.objects.create(
            invoice_number=invoice_number,
            student=student,
            academic_year=academic_year,
            term=term,
            invoice_date=invoice_date,
            total_amount=total_amount,
            amount_paid=total_amount - balance,
            balance=balance,
        )
    return _make_invoice


@pytest.fixture
def make_payment():
    def _make_payment(student, amount, invoice=None, payment_date=date(2024, 2, 1),
                      payment_method=PaymentMethod.MOBILE_MONEY, payment_number=""):
        return Payment.objects.create(
            payment_number=payment_number,
            student=student,
            invoice=invoice,
            amount=Decimal(str(amount)),
            payment_date=payment_date,
            payment_method=payment_method,
            status=Payment.Status.VERIFIED,
        )
    return _make_payment


@pytest.fixture
def make_receipt():
    def _make_receipt(student, payment=None, amount=None, payment_date=date(2024, 2, 1),
                      receipt_number=""):
        if amount is None:
            amount = payment.amount if payment is not None else Decimal("1000.00")
        return Receipt.objects.create(
            receipt_number=receipt_number,
            student=student,
            payment=payment,
            amount=Decimal(str(amount)),
            payment_date=payment_date,
        )
    return _make_receipt
