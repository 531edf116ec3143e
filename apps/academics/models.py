# academics/models.py

from django.core.exceptions import ValidationError
from django.db import models
import logging

from utils.models import BaseModel

logger = logging.getLogger(__name__)


# =============================================================================
# ACADEMIC CALENDAR
# =============================================================================

class AcademicYear(BaseModel):
    """
    An academic year, e.g. "2024" or "2024/2025".

    Fee structures, student fees and invoices are all scoped to a year and
    one of its terms.
    """

    name = models.CharField(
        "Academic Year",
        max_length=20,
        unique=True,
        help_text="E.g., '2024', '2024-2025', '2024/2025'"
    )
    start_date = models.DateField("Start Date", null=True, blank=True)
    end_date = models.DateField("End Date", null=True, blank=True)
    is_active = models.BooleanField("Is Active", default=False, db_index=True)

    class Meta:
        db_table = 'academic_years'
        verbose_name = 'Academic Year'
        verbose_name_plural = 'Academic Years'
        ordering = ['-start_date', '-name']

    def __str__(self):
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({'end_date': "End date must be after start date"})


class Term(BaseModel):
    """A term within an academic year. At most one term is active at a time."""

    academic_year = models.ForeignKey(
        AcademicYear,
        verbose_name="Academic Year",
        on_delete=models.CASCADE,
        related_name="terms"
    )
    name = models.CharField(
        "Term Name",
        max_length=50,
        help_text="E.g., 'Term 1'"
    )
    start_date = models.DateField("Start Date", null=True, blank=True)
    end_date = models.DateField("End Date", null=True, blank=True)
    is_active = models.BooleanField("Is Active", default=False, db_index=True)

    class Meta:
        db_table = 'terms'
        verbose_name = 'Term'
        verbose_name_plural = 'Terms'
        ordering = ['academic_year__name', 'start_date', 'name']
        constraints = [
            models.UniqueConstraint(
                fields=['academic_year', 'name'],
                name='unique_term_name_per_year'
            ),
        ]

    def __str__(self):
        return f"{self.name} {self.academic_year.name}"


# =============================================================================
# CLASSES & SUBJECTS
# =============================================================================

class Class(BaseModel):
    """A teaching group, e.g. "Form 2A" """

    name = models.CharField("Class Name", max_length=50, unique=True)
    grade_level = models.PositiveSmallIntegerField("Grade Level", null=True, blank=True)
    class_teacher = models.ForeignKey(
        'accounts.Teacher',
        verbose_name="Class Teacher",
        on_delete=models.SET_NULL,
        related_name="classes_led",
        null=True,
        blank=True
    )

    class Meta:
        db_table = 'classes'
        verbose_name = 'Class'
        verbose_name_plural = 'Classes'
        ordering = ['grade_level', 'name']

    def __str__(self):
        return self.name


class Subject(BaseModel):
    name = models.CharField("Subject Name", max_length=100)
    code = models.CharField("Subject Code", max_length=20, unique=True)

    class Meta:
        db_table = 'subjects'
        verbose_name = 'Subject'
        verbose_name_plural = 'Subjects'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.code})"


# =============================================================================
# TEACHING ASSIGNMENTS
# =============================================================================

class TeacherClass(BaseModel):
    teacher = models.ForeignKey(
        'accounts.Teacher',
        on_delete=models.CASCADE,
        related_name="class_assignments"
    )
    school_class = models.ForeignKey(
        Class,
        verbose_name="Class",
        on_delete=models.CASCADE,
        related_name="teacher_assignments"
    )

    class Meta:
        db_table = 'teacher_classes'
        verbose_name = 'Teacher Class Assignment'
        verbose_name_plural = 'Teacher Class Assignments'
        constraints = [
            models.UniqueConstraint(
                fields=['teacher', 'school_class'],
                name='unique_teacher_class'
            ),
        ]

    def __str__(self):
        return f"{self.teacher} - {self.school_class}"


class TeacherSubject(BaseModel):
    teacher = models.ForeignKey(
        'accounts.Teacher',
        on_delete=models.CASCADE,
        related_name="subject_assignments"
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name="teacher_assignments"
    )

    class Meta:
        db_table = 'teacher_subjects'
        verbose_name = 'Teacher Subject Assignment'
        verbose_name_plural = 'Teacher Subject Assignments'
        constraints = [
            models.UniqueConstraint(
                fields=['teacher', 'subject'],
                name='unique_teacher_subject'
            ),
        ]

    def __str__(self):
        return f"{self.teacher} - {self.subject}"
