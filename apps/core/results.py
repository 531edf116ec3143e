# core/results.py

"""
Tagged results returned by every exposed ledger operation.

    {'success': True, 'data': ..., 'message': ...}
    {'error': 'Forbidden: ...'}

Operations raise ``LedgerError`` subclasses internally; the
``service_operation`` decorator turns them into error results so callers can
render an inline message instead of crashing.
"""

from functools import wraps
import logging

from django.core.exceptions import ValidationError

from .exceptions import (
    LedgerError, Unauthenticated, Forbidden, NotFound, Conflict,
    InvalidInput, AggregationFailed, PersistenceFailed,
)

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred"

STATUS_BY_CODE = {
    error_class.code: error_class.status_code
    for error_class in (
        LedgerError, Unauthenticated, Forbidden, NotFound, Conflict,
        InvalidInput, AggregationFailed, PersistenceFailed,
    )
}

# Resource exhaustion is left to the caller's top-level error boundary
FATAL_ERRORS = (MemoryError, RecursionError)


def success(**payload):
    """Build a success result"""
    result = {'success': True}
    result.update(payload)
    return result


def failure(message, code="error"):
    """Build an error result"""
    return {'error': message, 'code': code}


def is_success(result):
    return bool(result.get('success'))


def http_status_for(result):
    """HTTP status code matching a tagged result"""
    if is_success(result):
        return 200
    return STATUS_BY_CODE.get(result.get('code'), 500)


def first_validation_message(error):
    """Flatten a Django ValidationError into one user-facing sentence"""
    if hasattr(error, 'error_dict'):
        for field, errors in error.message_dict.items():
            if errors:
                if field == '__all__':
                    return errors[0]
                return f"{field.replace('_', ' ').capitalize()}: {errors[0]}"
    if error.messages:
        return error.messages[0]
    return InvalidInput.default_message


def service_operation(func):
    """
    Run a ledger operation and convert failures into tagged error results.

    - LedgerError subclasses become {'error': message}
    - Django ValidationError becomes {'error': <first message>}
    - Anything else is logged with its traceback and reported generically
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except FATAL_ERRORS:
            raise
        except LedgerError as e:
            logger.info(f"{func.__qualname__} refused: {e.__class__.__name__}: {e.message}")
            return failure(e.message, e.code)
        except ValidationError as e:
            message = first_validation_message(e)
            logger.info(f"{func.__qualname__} rejected input: {message}")
            return failure(message, InvalidInput.code)
        except Exception:
            logger.exception(f"Error in {func.__qualname__}")
            return failure(UNEXPECTED_ERROR)
    return wrapper
