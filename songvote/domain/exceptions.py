"""Domain-specific exceptions.

Each subclass is one error kind. The presentation layer maps kinds to HTTP
status codes; nothing below it knows about HTTP.
"""


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class BadRequestError(DomainError):
    """Raised for malformed ids and empty required fields."""

    pass


class NotFoundError(DomainError):
    """Raised when an entity is absent (or a user is inactive)."""

    pass


class ConflictError(DomainError):
    """Raised on uniqueness or idempotency violations."""

    pass


class UnauthorizedError(DomainError):
    """Raised when authentication fails."""

    pass


class ForbiddenError(DomainError):
    """Raised when an authenticated precondition fails."""

    pass


class InternalError(DomainError):
    """Raised when persistence or infrastructure fails at request time."""

    pass
