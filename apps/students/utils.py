# students/utils.py

from core.utils import PLACEHOLDER

UNKNOWN_STUDENT = "Unknown"


# =============================================================================
# DISPLAY HELPERS
# =============================================================================

def student_display_name(profile):
    """
    "First Last" as entered on the profile.

    Examples:
        Profile(first_name="Ada", last_name="Banda") → "Ada Banda"
        no profile → "Unknown"
    """
    if profile is None:
        return UNKNOWN_STUDENT
    name = f"{profile.first_name or ''} {profile.last_name or ''}".strip()
    return name or UNKNOWN_STUDENT


def student_class_name(student):
    """Class name of a student, "N/A" when unassigned"""
    if student is None or student.student_class is None:
        return PLACEHOLDER
    return student.student_class.name


def summarize_student(student):
    """Minimal roster entry for one student (expects profile/class preloaded)"""
    return {
        'student_id': str(student.pk),
        'student_number': student.student_id,
        'full_name': student_display_name(student.profile),
        'class_name': student_class_name(student),
        'student_type': student.student_type,
        'status': student.status,
    }
