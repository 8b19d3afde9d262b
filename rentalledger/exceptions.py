"""
Custom exception classes for the Rental Ledger.

These exceptions provide precise error types that controllers can catch
to render friendly JSON errors instead of generic 500 errors. Every class
carries a ``kind`` (the caller-facing error category) and the HTTP status
the adapters answer with.
"""


class RentalLedgerError(Exception):
    """Base class for every error raised by the ledger and its collaborators."""

    kind = "Error"
    status_code = 500
    default_message = "Error: rental ledger failure"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


# ---------- NotFound ----------
class NotFoundError(RentalLedgerError):
    """Raised when an operation references a record id that does not exist."""

    kind = "NotFound"
    status_code = 404
    default_message = "Error: record not found"


class VehicleNotFoundError(NotFoundError):
    """Raised when a vehicle ID cannot be found in the catalog."""

    default_message = "Error: vehicle not found"


class RentalNotFoundError(NotFoundError):
    """Raised when a rental record cannot be found in the ledger."""

    default_message = "Error: rental not found"


class UserNotFoundError(NotFoundError):
    """Raised when a user profile cannot be found."""

    default_message = "Error: user not found"


# ---------- state machine ----------
class InvalidTransitionError(RentalLedgerError):
    """Raised when a status change starts from a terminal state or skips a step."""

    kind = "InvalidTransition"
    status_code = 409
    default_message = "Error: invalid status transition"


# ---------- input ----------
class ValidationError(RentalLedgerError):
    """Raised on malformed input (missing renter fields, bad status, bad payload)."""

    kind = "ValidationError"
    status_code = 400
    default_message = "Error: invalid input"


class InvalidDateRangeError(ValidationError):
    """Raised when the return date is not after the pickup date or a date is unparseable."""

    default_message = "Error: invalid date range"


class VehicleUnavailableError(RentalLedgerError):
    """Raised when a vehicle already has an open (pending/active) rental."""

    kind = "Conflict"
    status_code = 409
    default_message = "Error: vehicle is not available"


# ---------- identity ----------
class AuthenticationError(RentalLedgerError):
    """Raised when credentials are wrong or no session is present."""

    kind = "Unauthenticated"
    status_code = 401
    default_message = "Error: invalid credentials"


class AccessDeniedError(RentalLedgerError):
    """Raised when the signed-in account may not act on the record."""

    kind = "Forbidden"
    status_code = 403
    default_message = "Error: not allowed"


# ---------- transport ----------
class TransportError(RentalLedgerError):
    """Raised when the document store is unreachable, refuses, or fails to persist."""

    kind = "TransportError"
    status_code = 503
    default_message = "Error: document store unavailable"
    code = "unavailable"


class MissingIndexError(TransportError):
    """Raised when a filtered query is ordered on a field with no composite index."""

    default_message = "Error: the query requires an index"
    code = "failed-precondition"


class PermissionDeniedError(TransportError):
    """Raised when the store refuses to read a collection for the caller (``Store.deny_reads``)."""

    default_message = "Error: missing or insufficient permissions"
    code = "permission-denied"
