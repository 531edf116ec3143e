# core/http.py

"""
JSON plumbing shared by the ledger endpoints.
"""

from functools import wraps
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse

from .exceptions import Unauthenticated
from .results import failure, http_status_for

logger = logging.getLogger(__name__)


def json_result(result):
    """Render a tagged result with the matching HTTP status"""
    return JsonResponse(result, status=http_status_for(result), encoder=DjangoJSONEncoder)


def ledger_endpoint(view_func):
    """
    Resolve the caller and hand the Identity to the view.

    The wrapped view returns a tagged result dict; it is rendered as JSON.
    Anonymous callers get a 401 result without reaching the view.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        from accounts.services import IdentityResolver

        try:
            identity = IdentityResolver.resolve(request)
        except Unauthenticated as e:
            return json_result(failure(e.message, e.code))

        return json_result(view_func(request, identity, *args, **kwargs))
    return wrapper
