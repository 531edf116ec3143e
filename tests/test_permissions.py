# tests/test_permissions.py
import pytest
from django.core.exceptions import ImproperlyConfigured

from core.exceptions import Forbidden, Unauthenticated
from core.identity import Identity
from core.permissions import (
    Role, Permission, ROLE_PERMISSIONS, permissions_for, has_permission,
    financial_access, validate_permission_table, require_permission,
)

EXPECTED = {
    Role.ADMIN: {
        'announcements:create', 'council:edit', 'stats:admin:view',
        'fees:manage', 'fees:view_all', 'reports:generate',
    },
    Role.HEADTEACHER: {
        'announcements:create', 'council:edit', 'stats:head:view',
        'fees:view_all', 'reports:generate',
    },
    Role.DEPUTY_HEADTEACHER: {
        'announcements:create', 'council:edit', 'stats:deputy:view',
        'fees:view_all', 'reports:generate',
    },
    Role.TEACHER: {'announcements:create', 'grades:manage', 'stats:teacher:view'},
    Role.STUDENT: {'stats:student:view', 'fees:view_own'},
    Role.GUARDIAN: {'grades:view_children', 'stats:guardian:view', 'fees:view_children'},
}


def _identity(role, profile_id="caller"):
    return Identity(profile_id=profile_id, user_id=1, role=role)


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("permission", list(Permission))
def test_has_permission_matches_table(role, permission):
    assert has_permission(_identity(role), permission) == (permission.value in EXPECTED[role])


@pytest.mark.parametrize("role", list(Role))
def test_every_role_has_permissions(role):
    assert permissions_for(role)
    assert {p.value for p in permissions_for(role)} == EXPECTED[role]


def test_permissions_for_accepts_plain_strings():
    assert permissions_for('guardian') == ROLE_PERMISSIONS[Role.GUARDIAN]


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        permissions_for('janitor')


def test_no_identity_has_no_permission():
    assert has_permission(None, Permission.FEES_VIEW_ALL) is False


def test_table_missing_a_role_is_improperly_configured():
    table = dict(ROLE_PERMISSIONS)
    del table[Role.GUARDIAN]
    with pytest.raises(ImproperlyConfigured):
        validate_permission_table(table)


def test_table_with_unknown_permission_is_improperly_configured():
    table = dict(ROLE_PERMISSIONS)
    table[Role.STUDENT] = frozenset({'fees:delete_everything'})
    with pytest.raises(ImproperlyConfigured):
        validate_permission_table(table)


def test_require_permission():
    with pytest.raises(Unauthenticated):
        require_permission(None, Permission.FEES_MANAGE)
    with pytest.raises(Forbidden):
        require_permission(_identity(Role.HEADTEACHER), Permission.FEES_MANAGE)
    assert require_permission(_identity(Role.ADMIN), Permission.FEES_MANAGE)


# ---------------------------------------------------------------------------
# Financial visibility
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("role, is_self, is_linked, allowed, reason", [
    (Role.STUDENT, True, False, True, 'self'),
    (Role.STUDENT, False, False, False, 'no relationship'),
    (Role.ADMIN, False, False, True, 'administration'),
    (Role.HEADTEACHER, False, False, True, 'administration'),
    (Role.DEPUTY_HEADTEACHER, False, False, True, 'administration'),
    (Role.TEACHER, False, False, False, 'no relationship'),
    (Role.TEACHER, False, True, False, 'no relationship'),
    (Role.STUDENT, False, True, False, 'no relationship'),
    (Role.HEADTEACHER, False, True, True, 'administration'),
    (Role.GUARDIAN, False, True, True, 'guardian'),
    (Role.GUARDIAN, False, False, False, 'no relationship'),
])
def test_financial_access(role, is_self, is_linked, allowed, reason):
    identity = _identity(role, profile_id="student-profile" if is_self else "someone-else")
    decision = financial_access(identity, "student-profile", is_linked_guardian=is_linked)

    assert bool(decision) is allowed
    assert decision.reason == reason


def test_financial_access_without_identity_is_denied():
    decision = financial_access(None, "student-profile", is_linked_guardian=True)
    assert not decision
    assert decision.reason == 'unauthenticated'
