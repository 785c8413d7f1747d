"""
Custom exception hierarchy for Kolam.

Provides structured error types for the bridge and version control engines.
All exceptions inherit from KolamError for easy catching.

A bridge key that does not match is NOT an error: validation returns a
boolean and import returns an unmatched result.
"""


class KolamError(Exception):
    """
    Base exception for all Kolam errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize Kolam error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(KolamError):
    """
    Persistence errors.
    Raised when the underlying database operation fails unexpectedly.
    """

    pass


class NotFoundError(KolamError):
    """
    Resource not found errors.
    Raised when a referenced stream, entry, version or pending block doesn't exist.
    """

    pass


class ConflictError(KolamError):
    """
    Conflict errors.
    Raised when bridge key generation keeps colliding, or when a caller acts
    on a pending block that has since been replaced.
    """

    pass


class InvariantError(KolamError):
    """
    Broken internal invariant.
    Raised when a version chain has a gap or duplicate, or an entry's
    version head disagrees with its chain. Never patched silently.
    """

    pass


class ValidationError(KolamError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class TokenBudgetExceededError(ValidationError):
    """
    Export too large.
    Raised when the staged entries exceed the token limit of the target model.
    """

    pass


class ConfigurationError(KolamError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass
