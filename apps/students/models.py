# students/models.py

from django.db import models, transaction
import logging

from utils.models import BaseModel
from accounts.models import phone_validator

logger = logging.getLogger(__name__)


# =============================================================================
# STUDENT MODEL
# =============================================================================

class Student(BaseModel):
    """A learner; personal details live on the linked accounts.Profile"""

    class StudentType(models.TextChoices):
        INTERNAL = 'internal', 'Internal'
        EXTERNAL = 'external', 'External'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'
        FLAGGED = 'flagged', 'Flagged'
        ARCHIVED = 'archived', 'Archived'

    # -------------------------------------------------------------------------
    # CORE RELATIONSHIPS
    # -------------------------------------------------------------------------

    profile = models.OneToOneField(
        'accounts.Profile',
        on_delete=models.CASCADE,
        related_name='student'
    )
    student_id = models.CharField(
        "Student Number",
        max_length=30,
        unique=True,
        help_text="School-issued student number"
    )
    student_class = models.ForeignKey(
        'academics.Class',
        verbose_name="Current Class",
        on_delete=models.SET_NULL,
        related_name='students',
        null=True,
        blank=True
    )

    # -------------------------------------------------------------------------
    # STATUS
    # -------------------------------------------------------------------------

    student_type = models.CharField(
        "Student Type",
        max_length=10,
        choices=StudentType.choices,
        default=StudentType.INTERNAL,
        db_index=True
    )
    status = models.CharField(
        "Status",
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    phone = models.CharField(
        "Phone Number",
        max_length=20,
        blank=True,
        default="",
        validators=[phone_validator]
    )

    class Meta:
        db_table = 'students'
        verbose_name = 'Student'
        verbose_name_plural = 'Students'
        ordering = ['student_id']
        indexes = [
            models.Index(fields=['status', 'student_type']),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.student_id})"

    def get_full_name(self):
        return self.profile.get_full_name()

    @property
    def class_name(self):
        return self.student_class.name if self.student_class_id else "Unassigned"


# =============================================================================
# GUARDIAN MODEL
# =============================================================================

class Guardian(BaseModel):
    profile = models.OneToOneField(
        'accounts.Profile',
        on_delete=models.CASCADE,
        related_name='guardian'
    )
    phone = models.CharField(
        "Phone Number",
        max_length=20,
        blank=True,
        default="",
        validators=[phone_validator]
    )
    alternative_phone = models.CharField(
        "Alternative Phone",
        max_length=20,
        blank=True,
        default="",
        validators=[phone_validator]
    )
    occupation = models.CharField("Occupation", max_length=100, blank=True, default="")

    class Meta:
        db_table = 'guardians'
        verbose_name = 'Guardian'
        verbose_name_plural = 'Guardians'

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        return self.profile.get_full_name()


# =============================================================================
# STUDENT-GUARDIAN RELATIONSHIP
# =============================================================================

class StudentGuardian(BaseModel):
    """Link between a student and one of their guardians"""

    class Relationship(models.TextChoices):
        FATHER = 'father', 'Father'
        MOTHER = 'mother', 'Mother'
        GRANDFATHER = 'grandfather', 'Grandfather'
        GRANDMOTHER = 'grandmother', 'Grandmother'
        UNCLE = 'uncle', 'Uncle'
        AUNT = 'aunt', 'Aunt'
        SIBLING = 'sibling', 'Sibling'
        GUARDIAN = 'guardian', 'Legal Guardian'
        SPONSOR = 'sponsor', 'Sponsor'
        OTHER = 'other', 'Other'

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='guardian_relationships'
    )
    guardian = models.ForeignKey(
        Guardian,
        verbose_name="Guardian",
        on_delete=models.CASCADE,
        related_name='student_relationships'
    )
    relationship = models.CharField(
        "Relationship",
        max_length=20,
        choices=Relationship.choices,
        default=Relationship.GUARDIAN
    )
    is_primary = models.BooleanField("Primary Guardian", default=False, db_index=True)
    is_emergency_contact = models.BooleanField("Emergency Contact", default=False)

    class Meta:
        db_table = 'student_guardians'
        ordering = ['-is_primary', 'relationship']
        verbose_name = "Student Guardian Relationship"
        verbose_name_plural = "Student Guardian Relationships"
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'guardian'],
                name='unique_student_guardian'
            ),
        ]
        indexes = [
            models.Index(fields=['student', 'is_primary']),
        ]

    def __str__(self):
        return f"{self.student.get_full_name()} - {self.get_relationship_display()}: {self.guardian.get_full_name()}"

    def save(self, *args, **kwargs):
        """Ensure only one primary guardian per student"""
        with transaction.atomic():
            if self.is_primary:
                StudentGuardian.objects.filter(
                    student_id=self.student_id,
                    is_primary=True
                ).exclude(pk=self.pk).update(is_primary=False)

            super().save(*args, **kwargs)
