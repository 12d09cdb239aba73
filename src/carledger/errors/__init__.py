"""carledger error handling.

This package defines the exception hierarchy shared by the state store,
the composite index and the asset contract.
"""

from .exceptions import (
    BusinessRuleError,
    ConfigurationError,
    DeserializationError,
    EncodingError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InsufficientFundsError,
    KeyCodecError,
    LedgerError,
    MalformedKeyError,
    NotFoundError,
    RejectedTransferError,
    StorageError,
    StoreError,
    WriteFailureError,
    create_insufficient_funds_error,
    create_not_found_error,
)

__all__ = [
    # Base
    "LedgerError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    # State and serialization
    "NotFoundError",
    "DeserializationError",
    # Composite keys
    "KeyCodecError",
    "EncodingError",
    "MalformedKeyError",
    # Storage
    "StorageError",
    "StoreError",
    "WriteFailureError",
    # Business rules
    "BusinessRuleError",
    "RejectedTransferError",
    "InsufficientFundsError",
    # Configuration
    "ConfigurationError",
    # Helpers
    "create_not_found_error",
    "create_insufficient_funds_error",
]
