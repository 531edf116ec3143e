# utils/middleware.py

import logging

from utils.context import set_request_context, clear_request_context, get_client_ip

logger = logging.getLogger(__name__)


class RequestContextMiddleware:
    """
    Capture the acting user and client address for the duration of a request.
    Must run after AuthenticationMiddleware.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        set_request_context(
            user_id=user.pk if user is not None and user.is_authenticated else None,
            ip_address=get_client_ip(request),
            request_path=request.path,
        )

        try:
            response = self.get_response(request)
        finally:
            # Always clear context after request
            clear_request_context()

        return response
