"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def to_dict(self):
        """Return the JSON error envelope."""
        return {"error": self.message}


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class FormValidationError(ValidationError):
    """Raised when one or more form fields fail validation."""

    def __init__(self, field_errors):
        """Initialize the error from a WTForms ``errors`` mapping."""
        super().__init__("Validation failed.")
        self.errors = [
            {"field": field, "message": message}
            for field, messages in field_errors.items()
            for message in messages
        ]

    def to_dict(self):
        """Return the per-field error envelope."""
        return {"errors": self.errors}


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 400)


class AuthenticationError(AppError):
    """Raised when a request carries no usable credential."""

    def __init__(self, message="Authentication required."):
        """Initialize the error."""
        super().__init__(message, 401)


class PermissionDeniedError(AppError):
    """Raised when the caller lacks the role or ownership an action needs."""

    def __init__(self, message="Not authorized."):
        """Initialize the error."""
        super().__init__(message, 403)


class PremiumRequiredError(PermissionDeniedError):
    """Raised when a premium-only route is called by a free user."""

    def __init__(self, message="Premium subscription required."):
        """Initialize the error."""
        super().__init__(message)

    def to_dict(self):
        """Point the client at the upgrade page."""
        return {"error": self.message, "upgradeUrl": "/upgrade"}


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class PaymentProviderError(AppError):
    """Raised when the billing provider rejects or fails a request."""

    def __init__(self, message="Payment provider error.", detail=None):
        """Initialize the error."""
        super().__init__(message, 500)
        self.detail = detail


class ServiceUnavailableError(AppError):
    """Raised when the document store is not connected yet."""

    def __init__(self, message="Database unavailable. Please try again later."):
        """Initialize the error."""
        super().__init__(message, 503)
