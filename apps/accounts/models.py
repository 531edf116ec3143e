# accounts/models.py

from django.contrib.auth.models import User
from django.db import models
from django.core.validators import RegexValidator
import logging

from utils.models import BaseModel
from core.permissions import Role
from core.utils import build_full_name

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATORS
# =============================================================================

phone_validator = RegexValidator(
    regex=r'^\+?1?\d{9,15}$',
    message="Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed."
)


# =============================================================================
# PROFILE
# =============================================================================

class Profile(BaseModel):
    """One profile per authenticated user; carries the user's single role"""

    # -------------------------------------------------------------------------
    # CORE RELATIONSHIPS
    # -------------------------------------------------------------------------

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    role = models.CharField(
        "Role",
        max_length=30,
        choices=Role.choices,
        default=Role.STUDENT
    )

    # -------------------------------------------------------------------------
    # PERSONAL INFORMATION
    # -------------------------------------------------------------------------

    first_name = models.CharField("First Name", max_length=100, default="New")
    middle_name = models.CharField("Middle Name", max_length=100, blank=True, default="")
    last_name = models.CharField("Last Name", max_length=100, default="User")
    email = models.EmailField("Email", blank=True, default="")

    class Meta:
        db_table = 'profiles'
        verbose_name = 'Profile'
        verbose_name_plural = 'Profiles'
        ordering = ['last_name', 'first_name']
        indexes = [
            models.Index(fields=['role']),
        ]

    def __str__(self):
        return f"{self.get_full_name()} - {self.get_role_display()}"

    def get_full_name(self):
        return build_full_name(self.first_name, self.middle_name, self.last_name)

    @property
    def is_teaching_staff(self):
        """Roles whose display name carries the teacher's title"""
        return self.role in (Role.TEACHER, Role.HEADTEACHER, Role.DEPUTY_HEADTEACHER)


# =============================================================================
# STAFF RECORDS
# =============================================================================

class Teacher(BaseModel):
    profile = models.OneToOneField(
        Profile,
        on_delete=models.CASCADE,
        related_name='teacher'
    )
    title = models.CharField(
        "Title",
        max_length=20,
        blank=True,
        default="",
        help_text="e.g. Mr, Mrs, Dr"
    )
    phone = models.CharField(
        "Phone Number",
        max_length=20,
        blank=True,
        default="",
        validators=[phone_validator]
    )

    class Meta:
        db_table = 'teachers'
        verbose_name = 'Teacher'
        verbose_name_plural = 'Teachers'

    def __str__(self):
        return build_full_name(
            self.profile.first_name, '', self.profile.last_name, self.title
        )


class Administrator(BaseModel):
    profile = models.OneToOneField(
        Profile,
        on_delete=models.CASCADE,
        related_name='administrator'
    )
    position = models.CharField("Position", max_length=100, blank=True, default="")

    class Meta:
        db_table = 'administrators'
        verbose_name = 'Administrator'
        verbose_name_plural = 'Administrators'

    def __str__(self):
        return f"{self.profile.get_full_name()} ({self.position or 'Administrator'})"
