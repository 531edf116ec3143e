# students/services.py
"""
Relationship resolution: who is linked to whom.

Answers the questions the access policy needs evidence for (is this caller a
guardian of that student?) and the roster questions behind the guardian and
teacher dashboards.
"""

from django.db.models import Sum, Q
import logging

from core.exceptions import Forbidden, NotFound
from core.permissions import Role, Permission, has_permission, require_identity
from core.results import service_operation, success
from core.utils import ZERO
from academics.models import Class, Subject, TeacherSubject
from accounts.models import Teacher
from fees.models import StudentFee
from .models import Student, Guardian, StudentGuardian
from .utils import student_display_name, student_class_name, summarize_student

logger = logging.getLogger(__name__)


class RelationshipResolver:
    """Relationship lookups for guardians and teachers"""

    # -------------------------------------------------------------------------
    # GUARDIANS
    # -------------------------------------------------------------------------

    @staticmethod
    def guardian_record(identity):
        if identity is None:
            return None
        return Guardian.objects.filter(profile_id=identity.profile_id).first()

    @staticmethod
    def is_guardian_of(identity, student_id):
        """
        True iff a StudentGuardian link joins the caller's guardian record to
        the student, whatever its primary/emergency flags.
        """
        if identity is None or student_id is None:
            return False
        return StudentGuardian.objects.filter(
            guardian__profile_id=identity.profile_id,
            student_id=student_id,
        ).exists()

    @staticmethod
    def children_of(identity):
        """
        Students linked to the caller, primary link first.

        Each entry carries outstanding_balance, the sum of the student's
        StudentFee balances, computed in one grouped query.

        Returns:
            list of dicts (empty when the caller has no guardian record)
        """
        links = list(
            StudentGuardian.objects
            .filter(guardian__profile_id=identity.profile_id)
            .select_related('student__profile', 'student__student_class')
            .order_by('-is_primary', 'created_at')
        )
        if not links:
            return []

        student_ids = [link.student_id for link in links]
        balances = {
            row['student_id']: row['outstanding'] or ZERO
            for row in StudentFee.objects
            .filter(student_id__in=student_ids)
            .values('student_id')
            .annotate(outstanding=Sum('balance'))
        }

        children = []
        for link in links:
            student = link.student
            children.append({
                'student_id': str(student.pk),
                'student_number': student.student_id,
                'full_name': student_display_name(student.profile),
                'class_name': student_class_name(student),
                'outstanding_balance': balances.get(student.pk, ZERO),
                'relationship': link.relationship,
                'is_primary': link.is_primary,
            })
        return children

    @staticmethod
    @service_operation
    def guardian_children(identity):
        """
        Tagged variant of children_of for the guardian dashboard.

        Returns:
            {'success': True, 'data': [...]} or an error result
        """
        require_identity(identity)
        if identity.role != Role.GUARDIAN:
            raise Forbidden("Forbidden: Only guardians can access this endpoint")

        if RelationshipResolver.guardian_record(identity) is None:
            raise NotFound("Guardian record not found")

        return success(data=RelationshipResolver.children_of(identity))

    @staticmethod
    def student_guardians(student_id):
        """Guardians of one student, primary first"""
        links = (
            StudentGuardian.objects
            .filter(student_id=student_id)
            .select_related('guardian__profile')
            .order_by('-is_primary', 'created_at')
        )
        return [
            {
                'guardian_id': str(link.guardian_id),
                'full_name': link.guardian.get_full_name(),
                'relationship': link.relationship,
                'phone': link.guardian.phone,
                'alternative_phone': link.guardian.alternative_phone,
                'is_primary': link.is_primary,
                'is_emergency_contact': link.is_emergency_contact,
            }
            for link in links
        ]

    # -------------------------------------------------------------------------
    # TEACHERS
    # -------------------------------------------------------------------------

    @staticmethod
    def classes_and_subjects_of(identity):
        """
        Teaching assignments of the caller.

        Returns:
            tuple: (set of Class, set of Subject); both empty for non-teachers
        """
        teacher = Teacher.objects.filter(profile_id=identity.profile_id).first()
        if teacher is None:
            return set(), set()

        classes = set(
            Class.objects.filter(
                Q(teacher_assignments__teacher=teacher) | Q(class_teacher=teacher)
            ).distinct()
        )
        subjects = set(
            Subject.objects.filter(
                pk__in=TeacherSubject.objects.filter(teacher=teacher).values('subject_id')
            )
        )
        return classes, subjects

    @staticmethod
    @service_operation
    def teacher_roster(identity, class_id=None):
        """
        Students the caller may see on a class roster.

        Administration sees every student; a teacher sees the students of
        the classes they teach, optionally narrowed to one of them.
        """
        require_identity(identity)
        students = Student.objects.select_related('profile', 'student_class')

        if has_permission(identity, Permission.FEES_VIEW_ALL):
            if class_id is not None:
                students = students.filter(student_class_id=class_id)
        elif has_permission(identity, Permission.GRADES_MANAGE):
            classes, _ = RelationshipResolver.classes_and_subjects_of(identity)
            class_ids = {c.pk for c in classes}
            if class_id is not None:
                if not any(str(pk) == str(class_id) for pk in class_ids):
                    raise Forbidden("Forbidden: You do not teach this class")
                class_ids = {pk for pk in class_ids if str(pk) == str(class_id)}
            students = students.filter(student_class_id__in=class_ids)
        else:
            raise Forbidden("Forbidden: Teacher or staff access required")

        return success(data=[summarize_student(s) for s in students.order_by('student_id')])

