"""Exception hierarchy for carledger.

This module defines the structured exceptions raised by the state store,
the composite index and the asset contract. Every error carries a category
and severity so callers on the other side of the transport layer can map it
to a response without inspecting message text.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    STATE = "state"
    SERIALIZATION = "serialization"
    ENCODING = "encoding"
    STORAGE = "storage"
    BUSINESS_RULE = "business_rule"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    transaction_id: Optional[str] = None
    operation: Optional[str] = None
    asset_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "transaction_id": self.transaction_id,
            "operation": self.operation,
            "asset_id": self.asset_id,
            "metadata": self.metadata,
        }


class LedgerError(Exception):
    """Base exception for all carledger errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        return " | ".join(parts)


class NotFoundError(LedgerError):
    """A record that an operation requires is absent from the store."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        asset_type: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "NOT_FOUND")
        super().__init__(message, category=ErrorCategory.STATE, **kwargs)
        self.key = key
        self.asset_type = asset_type

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"key": self.key, "asset_type": self.asset_type})
        return data


class DeserializationError(LedgerError):
    """Stored bytes do not match the expected record shape."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        asset_type: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "DESERIALIZATION_FAILED")
        super().__init__(
            message,
            category=ErrorCategory.SERIALIZATION,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.key = key
        self.asset_type = asset_type

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"key": self.key, "asset_type": self.asset_type})
        return data


class KeyCodecError(LedgerError):
    """Composite key encoding or decoding error."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.ENCODING, **kwargs)


class EncodingError(KeyCodecError):
    """A key part cannot be encoded into a composite key."""

    def __init__(self, message: str, part: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", "ILLEGAL_KEY_PART")
        super().__init__(message, **kwargs)
        self.part = part

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"part": self.part})
        return data


class MalformedKeyError(KeyCodecError):
    """A composite key does not decode to its index's field layout."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", "MALFORMED_KEY")
        super().__init__(message, **kwargs)
        self.key = key

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"key": self.key})
        return data


class StorageError(LedgerError):
    """Storage error."""

    def __init__(
        self,
        message: str,
        storage_type: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, category=ErrorCategory.STORAGE, **kwargs)
        self.storage_type = storage_type
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"storage_type": self.storage_type, "operation": self.operation})
        return data


class StoreError(StorageError):
    """Raised by a state store backend when the underlying engine fails."""

    pass


class WriteFailureError(StorageError):
    """A put or delete against the state store did not complete."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "WRITE_FAILURE")
        super().__init__(message, operation=operation, **kwargs)
        self.key = key

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"key": self.key})
        return data


class BusinessRuleError(LedgerError):
    """An operation was refused by a contract rule."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, category=ErrorCategory.BUSINESS_RULE, **kwargs)


class RejectedTransferError(BusinessRuleError):
    """The buyer refused a car with outstanding malfunctions."""

    def __init__(
        self,
        message: str,
        asset_id: Optional[str] = None,
        new_owner_id: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "TRANSFER_REJECTED")
        super().__init__(message, **kwargs)
        self.asset_id = asset_id
        self.new_owner_id = new_owner_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"asset_id": self.asset_id, "new_owner_id": self.new_owner_id})
        return data


class InsufficientFundsError(BusinessRuleError):
    """A person cannot cover a charge."""

    def __init__(
        self,
        message: str,
        person_id: Optional[str] = None,
        required: Optional[float] = None,
        available: Optional[float] = None,
        malfunction_index: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "INSUFFICIENT_FUNDS")
        super().__init__(message, **kwargs)
        self.person_id = person_id
        self.required = required
        self.available = available
        # Position in the malfunction list at which the running total overran
        # the balance; None for charges that are not itemised.
        self.malfunction_index = malfunction_index

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "person_id": self.person_id,
                "required": self.required,
                "available": self.available,
                "malfunction_index": self.malfunction_index,
            }
        )
        return data


class ConfigurationError(LedgerError):
    """Configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


# Convenience functions for common error patterns
def create_not_found_error(
    asset_type: str, key: str, message: Optional[str] = None
) -> NotFoundError:
    """Create a not-found error for a missing record."""
    if message is None:
        message = f"the {asset_type} asset {key} does not exist"

    return NotFoundError(message=message, key=key, asset_type=asset_type)


def create_insufficient_funds_error(
    person_id: str,
    required: float,
    available: float,
    malfunction_index: Optional[int] = None,
    message: Optional[str] = None,
) -> InsufficientFundsError:
    """Create an insufficient-funds error."""
    if message is None:
        message = (
            f"person {person_id} cannot afford {required:.2f} "
            f"(balance {available:.2f})"
        )

    return InsufficientFundsError(
        message=message,
        person_id=person_id,
        required=required,
        available=available,
        malfunction_index=malfunction_index,
    )
