# students/views.py

from django.views.decorators.http import require_GET

from core.http import ledger_endpoint
from .services import RelationshipResolver


@require_GET
@ledger_endpoint
def guardian_children(request, identity):
    """Children linked to the signed-in guardian, with outstanding balances"""
    return RelationshipResolver.guardian_children(identity)


@require_GET
@ledger_endpoint
def class_roster(request, identity):
    return RelationshipResolver.teacher_roster(identity, class_id=request.GET.get('class_id') or None)
