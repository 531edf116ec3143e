# utils/context.py

"""
Thread-local request context.

The middleware stores who is acting and from where at the start of each
request; BaseModel.save() reads it to stamp created_by_id/updated_by_id on
ledger records without threading the user through every call.
"""

from threading import local
import logging

logger = logging.getLogger(__name__)

_thread_locals = local()


def set_request_context(user_id=None, ip_address=None, request_path=None):
    """Set the current request context for this thread"""
    _thread_locals.request_context = {
        'user_id': str(user_id) if user_id is not None else None,
        'ip_address': ip_address,
        'request_path': request_path or '',
    }
    logger.debug(f"Set request context: user={user_id}, ip={ip_address}")


def get_request_context():
    """
    Get the current request context for this thread.

    Returns:
        dict or None when no context is set (shell, management commands)
    """
    return getattr(_thread_locals, 'request_context', None)


def get_acting_user_id():
    context = get_request_context()
    return context.get('user_id') if context else None


def clear_request_context():
    if hasattr(_thread_locals, 'request_context'):
        delattr(_thread_locals, 'request_context')


def get_client_ip(request):
    """Client IP, honouring the first X-Forwarded-For hop"""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class RequestContext:
    """
    Context manager for temporarily setting request context.

    Example:
        with RequestContext(user_id=admin.pk):
            FeeStructure.objects.create(...)  # created_by_id == admin.pk
    """

    def __init__(self, user_id=None, ip_address=None, request_path=None):
        self.context = {
            'user_id': str(user_id) if user_id is not None else None,
            'ip_address': ip_address,
            'request_path': request_path or '',
        }
        self.previous_context = None

    def __enter__(self):
        self.previous_context = get_request_context()
        _thread_locals.request_context = self.context
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_context:
            _thread_locals.request_context = self.previous_context
        else:
            clear_request_context()
