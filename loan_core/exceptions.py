"""Custom exception hierarchy for loan-core."""


class LoanCoreError(Exception):
    """Base exception for all loan-core errors."""


class ValidationError(LoanCoreError, ValueError):
    """Raised when numeric or date input is malformed or out of range."""


class OverpaymentError(ValidationError):
    """Raised when a payment exceeds the outstanding loan balance."""


class InvalidAllocationError(ValidationError):
    """Raised when a custom split does not add up to the payment amount."""


class EntityNotFoundError(LoanCoreError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(LoanCoreError):
    """Raised when an entity is in an invalid state for the operation."""


class ConcurrencyConflictError(LoanCoreError):
    """Raised when a balance changed between read and write."""


class AuthenticationError(LoanCoreError):
    """Raised when the caller is not authenticated."""


class AccessDeniedError(LoanCoreError):
    """Raised when an entity belongs to another organization."""


class ConfigurationError(LoanCoreError):
    """Raised when configuration is invalid or missing."""


class SinkError(LoanCoreError):
    """Raised when a sink operation fails."""
