# core/exceptions.py

"""
Error taxonomy for ledger operations.

Every error carries a message that is safe to show to the caller. Raw
database errors never travel inside these exceptions; they are logged where
they are caught and replaced with one of the classes below.
"""


class LedgerError(Exception):
    """Base class for recoverable ledger errors"""

    default_message = "An unexpected error occurred"
    code = "error"
    status_code = 500

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(LedgerError):
    default_message = "Unauthorized"
    code = "unauthenticated"
    status_code = 401


class Forbidden(LedgerError):
    default_message = "Forbidden: You do not have permission to perform this action"
    code = "forbidden"
    status_code = 403


class NotFound(LedgerError):
    default_message = "Record not found"
    code = "not_found"
    status_code = 404


class Conflict(LedgerError):
    default_message = "Record already exists"
    code = "conflict"
    status_code = 409


class InvalidInput(LedgerError):
    default_message = "Invalid input"
    code = "invalid"
    status_code = 400


class AggregationFailed(LedgerError):
    default_message = "Failed to fetch fee data"
    code = "aggregation_failed"
    status_code = 500


class PersistenceFailed(LedgerError):
    default_message = "Failed to save changes"
    code = "persistence_failed"
    status_code = 500
