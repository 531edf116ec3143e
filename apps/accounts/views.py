# accounts/views.py

from django.views.decorators.http import require_GET, require_POST
import logging

from core.http import ledger_endpoint
from core.results import success
from .services import IdentityResolver

logger = logging.getLogger(__name__)


@require_GET
@ledger_endpoint
def current_user(request, identity):
    """The signed-in user's identity and effective permissions"""
    return success(data=IdentityResolver.describe(identity))


@require_POST
@ledger_endpoint
def update_user_role(request, identity, profile_id):
    return IdentityResolver.update_role(identity, profile_id, request.POST.get('role', ''))
