# fees/models.py

"""
Student Fee Ledger Models

- Fee structures and their line items (templates per year/term/student type)
- Student fees (a structure assigned to one student)
- Invoices, payments and receipts

All user tracking handled automatically by BaseModel
"""

from django.db import models
from django.utils import timezone
from django.core.validators import MinValueValidator
from decimal import Decimal
import logging

from utils.models import BaseModel
from academics.models import AcademicYear, Term
from students.models import Student

logger = logging.getLogger(__name__)


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    BANK_TRANSFER = 'bank_transfer', 'Bank Transfer'
    MOBILE_MONEY = 'mobile_money', 'Mobile Money'
    CHEQUE = 'cheque', 'Cheque'
    CARD = 'card', 'Card'


# =============================================================================
# FEE STRUCTURES
# =============================================================================

class FeeStructure(BaseModel):
    """
    Fee template for one (academic year, term, student type).

    The name is derived from its scope and total_amount always equals the
    sum of its items; both are set by FeeStructureService, never by callers.
    """

    name = models.CharField("Structure Name", max_length=200)
    academic_year = models.ForeignKey(
        AcademicYear,
        verbose_name="Academic Year",
        on_delete=models.PROTECT,
        related_name='fee_structures'
    )
    term = models.ForeignKey(
        Term,
        verbose_name="Term",
        on_delete=models.PROTECT,
        related_name='fee_structures'
    )
    student_type = models.CharField(
        "Student Type",
        max_length=10,
        choices=Student.StudentType.choices,
        db_index=True
    )
    total_amount = models.DecimalField(
        "Total Amount",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    due_date = models.DateField("Due Date", null=True, blank=True)
    notes = models.TextField("Notes", blank=True, default="")
    is_active = models.BooleanField("Active", default=True, db_index=True)

    class Meta:
        db_table = 'fee_structures'
        verbose_name = "Fee Structure"
        verbose_name_plural = "Fee Structures"
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['academic_year', 'term', 'student_type'],
                name='unique_fee_structure_per_term_and_type'
            ),
        ]

    def __str__(self):
        return self.name


class FeeStructureItem(BaseModel):
    fee_structure = models.ForeignKey(
        FeeStructure,
        verbose_name="Fee Structure",
        on_delete=models.CASCADE,
        related_name='items'
    )
    item_name = models.CharField("Item Name", max_length=100)
    description = models.CharField("Description", max_length=255, blank=True, default="")
    amount = models.DecimalField(
        "Amount",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    is_mandatory = models.BooleanField("Mandatory", default=True)
    display_order = models.PositiveIntegerField("Display Order", default=1)

    class Meta:
        db_table = 'fee_structure_items'
        verbose_name = "Fee Structure Item"
        verbose_name_plural = "Fee Structure Items"
        ordering = ['display_order', 'item_name']

    def __str__(self):
        return f"{self.item_name} - {self.amount}"


# =============================================================================
# STUDENT FEES
# =============================================================================

class StudentFee(BaseModel):
    """A fee structure assigned to one student; the student's running balance"""

    class Status(models.TextChoices):
        UNPAID = 'unpaid', 'Unpaid'
        PARTIAL = 'partial', 'Partially Paid'
        PAID = 'paid', 'Paid'
        WAIVED = 'waived', 'Waived'
        OVERDUE = 'overdue', 'Overdue'

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='fees'
    )
    fee_structure = models.ForeignKey(
        FeeStructure,
        verbose_name="Fee Structure",
        on_delete=models.SET_NULL,
        related_name='student_fees',
        null=True,
        blank=True
    )
    academic_year = models.ForeignKey(
        AcademicYear,
        verbose_name="Academic Year",
        on_delete=models.SET_NULL,
        related_name='student_fees',
        null=True,
        blank=True
    )
    term = models.ForeignKey(
        Term,
        verbose_name="Term",
        on_delete=models.SET_NULL,
        related_name='student_fees',
        null=True,
        blank=True
    )

    # -------------------------------------------------------------------------
    # AMOUNTS
    # -------------------------------------------------------------------------

    total_amount = models.DecimalField("Total Amount", max_digits=12, decimal_places=2, default=Decimal('0.00'))
    amount_paid = models.DecimalField("Amount Paid", max_digits=12, decimal_places=2, default=Decimal('0.00'))
    balance = models.DecimalField("Balance", max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField("Discount Amount", max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_reason = models.CharField("Discount Reason", max_length=255, blank=True, default="")

    status = models.CharField("Status", max_length=10, choices=Status.choices, default=Status.UNPAID, db_index=True)
    due_date = models.DateField("Due Date", null=True, blank=True)

    class Meta:
        db_table = 'student_fees'
        verbose_name = "Student Fee"
        verbose_name_plural = "Student Fees"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', 'term']),
        ]

    def __str__(self):
        return f"{self.student} - {self.total_amount} (balance {self.balance})"


# =============================================================================
# INVOICES
# =============================================================================

class Invoice(BaseModel):

    class Status(models.TextChoices):
        UNPAID = 'unpaid', 'Unpaid'
        PARTIAL = 'partial', 'Partially Paid'
        PAID = 'paid', 'Paid'
        CANCELLED = 'cancelled', 'Cancelled'
        OVERDUE = 'overdue', 'Overdue'

    invoice_number = models.CharField("Invoice Number", max_length=50, unique=True)
    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='invoices'
    )
    student_fee = models.ForeignKey(
        StudentFee,
        verbose_name="Student Fee",
        on_delete=models.SET_NULL,
        related_name='invoices',
        null=True,
        blank=True
    )
    academic_year = models.ForeignKey(
        AcademicYear,
        verbose_name="Academic Year",
        on_delete=models.SET_NULL,
        related_name='invoices',
        null=True,
        blank=True
    )
    term = models.ForeignKey(
        Term,
        verbose_name="Term",
        on_delete=models.SET_NULL,
        related_name='invoices',
        null=True,
        blank=True
    )

    invoice_date = models.DateField("Invoice Date", default=timezone.localdate, db_index=True)
    due_date = models.DateField("Due Date", null=True, blank=True)

    total_amount = models.DecimalField("Total Amount", max_digits=12, decimal_places=2)
    amount_paid = models.DecimalField("Amount Paid", max_digits=12, decimal_places=2, default=Decimal('0.00'))
    balance = models.DecimalField("Balance", max_digits=12, decimal_places=2)

    status = models.CharField("Status", max_length=10, choices=Status.choices, default=Status.UNPAID, db_index=True)
    notes = models.TextField("Notes", blank=True, default="")

    class Meta:
        db_table = 'invoices'
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        ordering = ['-invoice_date', '-created_at']
        indexes = [
            models.Index(fields=['student', 'invoice_date']),
            models.Index(fields=['balance']),
        ]

    def __str__(self):
        return f"{self.invoice_number} - {self.student}"


class InvoiceItem(BaseModel):
    invoice = models.ForeignKey(
        Invoice,
        verbose_name="Invoice",
        on_delete=models.CASCADE,
        related_name='items'
    )
    item_name = models.CharField("Item Name", max_length=100)
    description = models.CharField("Description", max_length=255, blank=True, default="")
    quantity = models.DecimalField("Quantity", max_digits=8, decimal_places=2, default=Decimal('1.00'))
    unit_price = models.DecimalField("Unit Price", max_digits=12, decimal_places=2)
    total_amount = models.DecimalField("Total Amount", max_digits=12, decimal_places=2)

    class Meta:
        db_table = 'invoice_items'
        verbose_name = "Invoice Item"
        verbose_name_plural = "Invoice Items"
        ordering = ['created_at']

    def __str__(self):
        return f"{self.item_name} x {self.quantity}"


# =============================================================================
# PAYMENTS & RECEIPTS
# =============================================================================

class Payment(BaseModel):

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        VERIFIED = 'verified', 'Verified'
        FAILED = 'failed', 'Failed'
        REVERSED = 'reversed', 'Reversed'

    payment_number = models.CharField("Payment Number", max_length=50, unique=True)
    invoice = models.ForeignKey(
        Invoice,
        verbose_name="Invoice",
        on_delete=models.SET_NULL,
        related_name='payments',
        null=True,
        blank=True
    )
    student_fee = models.ForeignKey(
        StudentFee,
        verbose_name="Student Fee",
        on_delete=models.SET_NULL,
        related_name='payments',
        null=True,
        blank=True
    )
    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='payments'
    )
    academic_year = models.ForeignKey(
        AcademicYear,
        on_delete=models.SET_NULL,
        related_name='payments',
        null=True,
        blank=True
    )
    term = models.ForeignKey(
        Term,
        on_delete=models.SET_NULL,
        related_name='payments',
        null=True,
        blank=True
    )

    amount = models.DecimalField(
        "Amount",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    payment_date = models.DateField("Payment Date", default=timezone.localdate, db_index=True)
    payment_method = models.CharField("Payment Method", max_length=20, choices=PaymentMethod.choices)
    reference_number = models.CharField("Reference Number", max_length=100, blank=True, default="")
    notes = models.TextField("Notes", blank=True, default="")
    status = models.CharField("Status", max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)

    class Meta:
        db_table = 'payments'
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        ordering = ['-payment_date', '-created_at']
        indexes = [
            models.Index(fields=['student', 'payment_date']),
        ]

    def __str__(self):
        return f"{self.payment_number} - {self.amount}"


class Receipt(BaseModel):
    """Proof of one payment. A payment has at most one receipt."""

    receipt_number = models.CharField("Receipt Number", max_length=50, unique=True)
    payment = models.OneToOneField(
        Payment,
        verbose_name="Payment",
        on_delete=models.SET_NULL,
        related_name='receipt',
        null=True,
        blank=True
    )
    invoice = models.ForeignKey(
        Invoice,
        verbose_name="Invoice",
        on_delete=models.SET_NULL,
        related_name='receipts',
        null=True,
        blank=True
    )
    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='receipts'
    )
    amount = models.DecimalField("Amount", max_digits=12, decimal_places=2)
    payment_date = models.DateField("Payment Date", db_index=True)
    payment_method = models.CharField("Payment Method", max_length=20, blank=True, default="")
    generated_at = models.DateTimeField("Generated At", default=timezone.now)

    class Meta:
        db_table = 'receipts'
        verbose_name = "Receipt"
        verbose_name_plural = "Receipts"
        ordering = ['-payment_date', '-generated_at']
        indexes = [
            models.Index(fields=['student', 'payment_date']),
        ]

    def __str__(self):
        return self.receipt_number
