class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are invalid."""

    status_code = 401


class ExpiredLinkError(AuthenticationError):
    """Raised when an OTP link is unknown, expired or superseded."""


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class TooManyAttemptsError(DomainError):
    """Raised when an OTP has used up its verification attempts."""

    status_code = 429
