class DomainError(Exception):
    """Base exception for business rule violations.

    ``kind`` is the stable error code returned to API callers.
    """

    kind = "INTERNAL"
    http_status = 500


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "INVALID_ARGUMENT"
    http_status = 400


class AuthenticationError(DomainError):
    """Raised when the caller is not logged in or credentials are invalid."""

    kind = "UNAUTHENTICATED"
    http_status = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "PERMISSION_DENIED"
    http_status = 403


class NotFoundError(DomainError):
    kind = "NOT_FOUND"
    http_status = 404


class PreconditionError(DomainError):
    """Raised when the current state of the system does not allow the action."""

    kind = "FAILED_PRECONDITION"
    http_status = 409


class ConcurrencyError(PreconditionError):
    """Raised when a conditional write lost a race against another writer."""


class IllegalTransitionError(PreconditionError):
    """Raised when a reservation is asked to make a transition it cannot make."""


class InfrastructureError(DomainError):
    """Raised when the store is unavailable or a transaction was aborted."""
