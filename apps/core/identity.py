# core/identity.py

from .permissions import Role


class Identity:
    """
    The resolved caller of a request.

    Built by accounts.services.IdentityResolver from the Django session and
    passed explicitly into every ledger operation.
    """

    __slots__ = ('profile_id', 'user_id', 'role', 'email', 'full_name')

    def __init__(self, profile_id, user_id, role, email='', full_name=''):
        self.profile_id = profile_id
        self.user_id = user_id
        self.role = Role(role)
        self.email = email
        self.full_name = full_name

    def __repr__(self):
        return f"<Identity {self.profile_id} ({self.role})>"

    def __eq__(self, other):
        if not isinstance(other, Identity):
            return NotImplemented
        return self.profile_id == other.profile_id and self.role == other.role

    def __hash__(self):
        return hash((self.profile_id, self.role))

    def as_dict(self):
        return {
            'id': str(self.profile_id),
            'user_id': self.user_id,
            'role': str(self.role),
            'email': self.email,
            'full_name': self.full_name,
        }
