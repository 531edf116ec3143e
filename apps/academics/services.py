# academics/services.py

"""
Academic calendar services.

Keeps the "one active term" rule: activating a term deactivates every other
term in the same transaction.
"""

from django.db import transaction
import logging

from core.exceptions import NotFound
from core.permissions import Permission, require_permission
from core.results import service_operation, success
from .models import Term

logger = logging.getLogger(__name__)


class TermService:

    @staticmethod
    @service_operation
    @transaction.atomic
    def set_active_term(identity, term_id):
        """
        Make one term the school's active term.

        Args:
            identity: resolved caller (administrators only)
            term_id: Term primary key

        Returns:
            dict: tagged result with the activated term
        """
        require_permission(
            identity, Permission.FEES_MANAGE,
            "Forbidden: Only admins can change the active term"
        )

        term = Term.objects.select_related('academic_year').filter(pk=term_id).first()
        if term is None:
            raise NotFound("Term not found")

        deactivated = Term.objects.filter(is_active=True).exclude(pk=term.pk).update(is_active=False)
        if not term.is_active:
            term.is_active = True
            term.save(update_fields=['is_active', 'updated_at', 'updated_by_id'])

        logger.info(f"Active term set to {term} ({deactivated} term(s) deactivated) by {identity.profile_id}")
        return success(
            message=f"{term} is now the active term",
            data={
                'id': str(term.pk),
                'name': term.name,
                'academic_year': term.academic_year.name,
            },
        )

    @staticmethod
    def active_term():
        """The current term, or None when no term is active"""
        return Term.objects.select_related('academic_year').filter(is_active=True).first()
