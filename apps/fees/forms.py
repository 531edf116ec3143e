# fees/forms.py

"""
Fee Ledger Forms

Input validation for:
- Fee structure authoring (header + line items)
- Receipt listing filters

The services feed plain dicts through these forms; a failed form surfaces
as a ValidationError carrying the first problem found.
"""

from django import forms
from django.core.exceptions import ValidationError
from decimal import Decimal
import logging

from students.models import Student

logger = logging.getLogger(__name__)


# =============================================================================
# FEE STRUCTURE FORMS
# =============================================================================

class FeeStructureForm(forms.Form):
    """Header of a new fee structure. Name and total are derived, not accepted."""

    academic_year_id = forms.UUIDField(label="Academic Year")
    term_id = forms.UUIDField(label="Term")
    student_type = forms.ChoiceField(
        choices=Student.StudentType.choices,
        label="Student Type"
    )
    due_date = forms.DateField(
        required=False,
        widget=forms.DateInput(attrs={
            'class': 'form-control',
            'type': 'date'
        }),
        label="Due Date"
    )
    notes = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={
            'class': 'form-control',
            'rows': 3
        }),
        label="Notes"
    )


class FeeStructureItemForm(forms.Form):
    """One line item of a fee structure"""

    item_name = forms.CharField(max_length=100, label="Item Name")
    description = forms.CharField(max_length=255, required=False, label="Description")
    amount = forms.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0.00'),
        label="Amount",
        widget=forms.NumberInput(attrs={
            'class': 'form-control',
            'step': '0.01'
        })
    )
    is_mandatory = forms.BooleanField(required=False, initial=True, label="Mandatory")
    display_order = forms.IntegerField(required=False, min_value=1, label="Display Order")

    def clean_item_name(self):
        item_name = self.cleaned_data['item_name'].strip()
        if not item_name:
            raise ValidationError('Item name is required.')
        return item_name


def validate_fee_structure_input(data):
    """
    Validate a fee structure request.

    Args:
        data (dict): header fields plus 'items', a list of item dicts

    Returns:
        tuple: (cleaned header dict, list of cleaned item dicts). Items
        without a display_order get their 1-based position.

    Raises:
        ValidationError: first problem found, items reported as "Item N: ..."
    """
    header_form = FeeStructureForm(data)
    if not header_form.is_valid():
        raise ValidationError(header_form.errors.as_data())

    raw_items = data.get('items') or []
    if not raw_items:
        raise ValidationError('At least one fee item is required.')

    items = []
    for index, raw_item in enumerate(raw_items):
        item_form = FeeStructureItemForm(raw_item)
        if not item_form.is_valid():
            field, errors = next(iter(item_form.errors.as_data().items()))
            label = item_form.fields[field].label if field in item_form.fields else field
            raise ValidationError(f"Item {index + 1}: {label}: {errors[0].messages[0]}")

        item = item_form.cleaned_data
        item['display_order'] = item.get('display_order') or index + 1
        items.append(item)

    return header_form.cleaned_data, items


# =============================================================================
# RECEIPT FILTERS
# =============================================================================

class ReceiptFilterForm(forms.Form):
    """Optional filters for a student's receipt list"""

    start_date = forms.DateField(required=False, label="From")
    end_date = forms.DateField(required=False, label="To")
    search_term = forms.CharField(required=False, label="Receipt Number")

    def clean(self):
        cleaned_data = super().clean()

        start_date = cleaned_data.get('start_date')
        end_date = cleaned_data.get('end_date')

        if start_date and end_date and end_date < start_date:
            raise ValidationError({
                'end_date': 'End date cannot be before start date.'
            })

        return cleaned_data
