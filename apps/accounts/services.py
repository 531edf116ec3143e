# accounts/services.py
"""
Identity resolution for the fee ledger.

Turns the authenticated Django session into an ``Identity`` that is passed
explicitly into every ledger operation. Users signing in for the first time
get a Profile provisioned on the spot.
"""

from django.db import transaction
import logging

from core.exceptions import Unauthenticated, Forbidden, NotFound, InvalidInput
from core.identity import Identity
from core.permissions import Role, require_identity, permissions_for
from core.results import service_operation, success
from core.utils import build_full_name
from .models import Profile, Teacher

logger = logging.getLogger(__name__)

ROLE_HINT_SESSION_KEY = 'role_hint'


class IdentityResolver:
    """Resolve and manage the caller's identity"""

    @staticmethod
    def resolve(request):
        """
        Resolve the caller of a request.

        Args:
            request: HttpRequest with request.user set by AuthenticationMiddleware

        Returns:
            Identity

        Raises:
            Unauthenticated: no signed-in user on the session
        """
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            raise Unauthenticated()

        session = getattr(request, 'session', None)
        role_hint = session.get(ROLE_HINT_SESSION_KEY) if session is not None else None
        return IdentityResolver.resolve_user(user, role_hint=role_hint)

    @staticmethod
    def resolve_user(user, role_hint=None):
        """
        Resolve an authenticated user, provisioning a Profile when absent.

        Provisioning is insert-if-absent: two concurrent first requests end
        with exactly one profile.

        Example:
            >>> identity = IdentityResolver.resolve_user(user, role_hint='guardian')
            >>> identity.role
            <Role.GUARDIAN: 'guardian'>
        """
        if user is None or not user.is_authenticated:
            raise Unauthenticated()

        profile, created = Profile.objects.get_or_create(
            user=user,
            defaults={
                'role': IdentityResolver._role_from_hint(role_hint),
                'first_name': user.first_name or "New",
                'last_name': user.last_name or "User",
                'email': user.email or "",
            }
        )
        if created:
            logger.info(f"Provisioned profile {profile.pk} for user {user.pk} as {profile.role}")

        return Identity(
            profile_id=profile.pk,
            user_id=user.pk,
            role=profile.role,
            email=profile.email or user.email or "",
            full_name=IdentityResolver.display_name(profile),
        )

    @staticmethod
    def display_name(profile):
        """Proper-cased full name, prefixed with the title for teaching staff"""
        title = ''
        if profile.is_teaching_staff:
            title = Teacher.objects.filter(profile=profile).values_list('title', flat=True).first() or ''
        return build_full_name(profile.first_name, profile.middle_name, profile.last_name, title)

    @staticmethod
    def _role_from_hint(role_hint):
        if role_hint in Role.values:
            return role_hint
        if role_hint:
            logger.warning(f"Ignoring unknown role hint: {role_hint!r}")
        return Role.STUDENT

    @staticmethod
    def describe(identity):
        """Identity plus its effective permissions, for the current-user endpoint"""
        payload = identity.as_dict()
        payload['permissions'] = sorted(str(p) for p in permissions_for(identity.role))
        return payload

    @staticmethod
    @service_operation
    @transaction.atomic
    def update_role(identity, profile_id, role):
        """
        Change a user's role. Administrators only.

        Returns:
            dict: tagged result with the updated profile
        """
        require_identity(identity)
        if identity.role != Role.ADMIN:
            raise Forbidden("Forbidden: Only admins can update user roles")
        if role not in Role.values:
            raise InvalidInput(f"Invalid role: {role}")

        profile = Profile.objects.select_for_update().filter(pk=profile_id).first()
        if profile is None:
            raise NotFound("User not found")

        previous = profile.role
        profile.role = role
        profile.save(update_fields=['role', 'updated_at', 'updated_by_id'])

        logger.info(f"Role of profile {profile.pk} changed from {previous} to {role} by {identity.profile_id}")
        return success(
            message=f"Role updated to {profile.get_role_display()}",
            profile={'id': str(profile.pk), 'role': profile.role},
        )
