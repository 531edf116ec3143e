# utils/models.py

"""
Base model for school data with a lightweight audit trail.

Every ledger table carries the same identification and audit columns:
- UUID primary key
- created_at / updated_at timestamps
- created_by_id / updated_by_id taken from the thread-local request context
"""

from django.db import models
from django.utils import timezone
import uuid
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# BASE MODEL - SCHOOL-SPECIFIC DATA
# =============================================================================

class BaseModel(models.Model):
    """
    Abstract base with audit fields.

    Timestamps default to timezone.now so rows written with bulk_create
    (which bypasses save()) are still stamped.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField(
        "Created At",
        default=timezone.now,
        db_index=True,
        help_text="When this record was created"
    )
    updated_at = models.DateTimeField(
        "Updated At",
        default=timezone.now,
        db_index=True,
        help_text="When this record was last updated"
    )

    # CharField: the acting user id as recorded at write time
    created_by_id = models.CharField(
        "Created By ID",
        max_length=50,
        null=True,
        blank=True,
        help_text="ID of user who created this record"
    )
    updated_by_id = models.CharField(
        "Updated By ID",
        max_length=50,
        null=True,
        blank=True,
        help_text="ID of user who last updated this record"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Refresh updated_at and fill audit fields from the request context"""
        from utils.context import get_acting_user_id

        is_new = self._state.adding
        if not is_new:
            self.updated_at = timezone.now()

        user_id = get_acting_user_id()
        if user_id:
            if is_new and not self.created_by_id:
                self.created_by_id = user_id
            self.updated_by_id = user_id
        elif is_new:
            logger.debug(
                f"No request context available when creating {self.__class__.__name__}. "
                f"Audit fields will not be populated."
            )

        super().save(*args, **kwargs)
