# core/permissions.py

"""
Access Policy Engine

Stateless role/permission table plus the financial visibility rule.
Nothing in this module touches the database: every decision is a pure
function of (role, relationship evidence, requested resource), so the
whole table can be checked with table-driven tests.

Financial visibility for one student's fees, invoices, payments and receipts
is granted when ANY of:
    (a) the caller IS the student
    (b) the caller holds FEES_VIEW_ALL (administration roles)
    (c) the caller holds FEES_VIEW_CHILDREN (guardians) and is linked to the student
"""

from django.core.exceptions import ImproperlyConfigured
from django.db import models

from .exceptions import Unauthenticated, Forbidden


class Role(models.TextChoices):
    ADMIN = 'admin', 'Administrator'
    HEADTEACHER = 'headteacher', 'Head Teacher'
    DEPUTY_HEADTEACHER = 'deputy_headteacher', 'Deputy Head Teacher'
    TEACHER = 'teacher', 'Teacher'
    STUDENT = 'student', 'Student'
    GUARDIAN = 'guardian', 'Guardian'


class Permission(models.TextChoices):
    ANNOUNCEMENTS_CREATE = 'announcements:create', 'Create announcements'
    COUNCIL_EDIT = 'council:edit', 'Edit school council'
    GRADES_MANAGE = 'grades:manage', 'Manage grades'
    GRADES_VIEW_CHILDREN = 'grades:view_children', "View children's grades"
    STATS_ADMIN_VIEW = 'stats:admin:view', 'View admin statistics'
    STATS_HEAD_VIEW = 'stats:head:view', 'View head teacher statistics'
    STATS_DEPUTY_VIEW = 'stats:deputy:view', 'View deputy statistics'
    STATS_TEACHER_VIEW = 'stats:teacher:view', 'View teacher statistics'
    STATS_STUDENT_VIEW = 'stats:student:view', 'View student statistics'
    STATS_GUARDIAN_VIEW = 'stats:guardian:view', 'View guardian statistics'
    FEES_MANAGE = 'fees:manage', 'Manage fee structures and terms'
    FEES_VIEW_ALL = 'fees:view_all', "View every student's finances"
    FEES_VIEW_OWN = 'fees:view_own', 'View own finances'
    FEES_VIEW_CHILDREN = 'fees:view_children', "View linked children's finances"
    REPORTS_GENERATE = 'reports:generate', 'Generate school reports'


ROLE_PERMISSIONS = {
    Role.ADMIN: frozenset({
        Permission.ANNOUNCEMENTS_CREATE,
        Permission.COUNCIL_EDIT,
        Permission.STATS_ADMIN_VIEW,
        Permission.FEES_MANAGE,
        Permission.FEES_VIEW_ALL,
        Permission.REPORTS_GENERATE,
    }),
    Role.HEADTEACHER: frozenset({
        Permission.ANNOUNCEMENTS_CREATE,
        Permission.COUNCIL_EDIT,
        Permission.STATS_HEAD_VIEW,
        Permission.FEES_VIEW_ALL,
        Permission.REPORTS_GENERATE,
    }),
    Role.DEPUTY_HEADTEACHER: frozenset({
        Permission.ANNOUNCEMENTS_CREATE,
        Permission.COUNCIL_EDIT,
        Permission.STATS_DEPUTY_VIEW,
        Permission.FEES_VIEW_ALL,
        Permission.REPORTS_GENERATE,
    }),
    Role.TEACHER: frozenset({
        Permission.ANNOUNCEMENTS_CREATE,
        Permission.GRADES_MANAGE,
        Permission.STATS_TEACHER_VIEW,
    }),
    Role.STUDENT: frozenset({
        Permission.STATS_STUDENT_VIEW,
        Permission.FEES_VIEW_OWN,
    }),
    Role.GUARDIAN: frozenset({
        Permission.GRADES_VIEW_CHILDREN,
        Permission.STATS_GUARDIAN_VIEW,
        Permission.FEES_VIEW_CHILDREN,
    }),
}


def validate_permission_table(table=None):
    """
    Check that every role has an entry and every entry uses known permissions.

    Raises ImproperlyConfigured so a role can never silently end up with
    zero permissions because it was left out of the table.
    """
    table = ROLE_PERMISSIONS if table is None else table

    missing = set(Role.values) - {str(role) for role in table}
    if missing:
        raise ImproperlyConfigured(f"Roles missing from permission table: {sorted(missing)}")

    unknown_roles = {str(role) for role in table} - set(Role.values)
    if unknown_roles:
        raise ImproperlyConfigured(f"Unknown roles in permission table: {sorted(unknown_roles)}")

    known = set(Permission.values)
    for role, permissions in table.items():
        unknown = {str(p) for p in permissions} - known
        if unknown:
            raise ImproperlyConfigured(f"Unknown permissions for role '{role}': {sorted(unknown)}")


validate_permission_table()


def permissions_for(role):
    """Permission set of a role; unknown roles are rejected, never mapped to an empty set"""
    try:
        return ROLE_PERMISSIONS[Role(role)]
    except ValueError:
        raise ValueError(f"Unknown role: {role!r}") from None


def has_permission(identity, permission):
    if identity is None:
        return False
    return Permission(permission) in permissions_for(identity.role)


class AccessDecision:
    """Outcome of a policy check. Denials are values, not exceptions."""

    __slots__ = ('allowed', 'reason')

    def __init__(self, allowed, reason=''):
        self.allowed = allowed
        self.reason = reason

    def __bool__(self):
        return self.allowed

    def __repr__(self):
        state = 'allow' if self.allowed else 'deny'
        return f"<AccessDecision {state}: {self.reason}>"

    @classmethod
    def allow(cls, reason):
        return cls(True, reason)

    @classmethod
    def deny(cls, reason):
        return cls(False, reason)


def financial_access(identity, student_profile_id, is_linked_guardian=False):
    """
    Decide whether the caller may see one student's financial records.

    Args:
        identity: resolved caller Identity (or None)
        student_profile_id: profile id of the student whose data is requested
        is_linked_guardian: relationship evidence from the RelationshipResolver

    Returns:
        AccessDecision
    """
    if identity is None:
        return AccessDecision.deny('unauthenticated')

    if student_profile_id is not None and str(identity.profile_id) == str(student_profile_id):
        return AccessDecision.allow('self')

    if has_permission(identity, Permission.FEES_VIEW_ALL):
        return AccessDecision.allow('administration')

    if is_linked_guardian and has_permission(identity, Permission.FEES_VIEW_CHILDREN):
        return AccessDecision.allow('guardian')

    return AccessDecision.deny('no relationship')


# =============================================================================
# GUARDS FOR SERVICE OPERATIONS
# =============================================================================

def require_identity(identity):
    if identity is None:
        raise Unauthenticated()
    return identity


def require_permission(identity, permission, message=None):
    """Raise Unauthenticated/Forbidden unless the caller holds the permission"""
    require_identity(identity)
    if not has_permission(identity, permission):
        raise Forbidden(message)
    return identity
