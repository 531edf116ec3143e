# academics/views.py

from django.views.decorators.http import require_GET, require_POST

from core.http import ledger_endpoint
from core.results import success
from .services import TermService


@require_GET
@ledger_endpoint
def active_term(request, identity):
    term = TermService.active_term()
    if term is None:
        return success(data=None)
    return success(data={
        'id': str(term.pk),
        'name': term.name,
        'academic_year': term.academic_year.name,
    })


@require_POST
@ledger_endpoint
def set_active_term(request, identity, term_id):
    return TermService.set_active_term(identity, term_id)
