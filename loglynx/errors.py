"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400, code="INTERNAL_ERROR"):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed.", code="INVALID_INPUT"):
        """Initialize the error."""
        super().__init__(message, 400, code)


class UnauthorizedError(AppError):
    """Raised when a request carries no usable credentials."""

    def __init__(self, message="Authentication required.", code="NO_TOKEN"):
        """Initialize the error."""
        super().__init__(message, 401, code)


class ForbiddenError(AppError):
    """Raised when the caller may not act on another user's data."""

    def __init__(self, message="Unauthorized.", code="UNAUTHORIZED"):
        """Initialize the error."""
        super().__init__(message, 403, code)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found.", code="NOT_FOUND"):
        """Initialize the error."""
        super().__init__(message, 404, code)


class StoreUnavailableError(AppError):
    """Raised when Firestore cannot be read or written. Safe to retry."""

    def __init__(self, message="Database unavailable.", code="DATABASE_ERROR"):
        """Initialize the error."""
        super().__init__(message, 503, code)


class StatsTimeoutError(AppError):
    """Raised when gathering badge statistics exceeds its deadline."""

    def __init__(self, message="Timed out computing user stats."):
        """Initialize the error."""
        super().__init__(message, 504, "STATS_TIMEOUT")


class ExternalServiceError(AppError):
    """Raised when a third-party API call fails."""

    def __init__(self, message="External service error.", code="EXTERNAL_ERROR"):
        """Initialize the error."""
        super().__init__(message, 502, code)
