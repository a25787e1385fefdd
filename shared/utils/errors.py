"""
Custom error classes for the reports cache services.

Provides structured error handling with error codes,
context information, and proper exception chaining.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Error context information."""
    service: str
    operation: str
    app_id: Optional[str] = None
    partner_id: Optional[str] = None
    period: Optional[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class DataProcessingError(Exception):
    """Base exception for reports cache errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        result = {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

        if self.context:
            result["context"] = {
                "service": self.context.service,
                "operation": self.context.operation,
                "app_id": self.context.app_id,
                "partner_id": self.context.partner_id,
                "period": self.context.period,
                "metadata": self.context.metadata,
            }

        return result


class ValidationError(DataProcessingError):
    """Error raised when a stored document does not match its expected shape."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            context=context,
            details=details or {}
        )
        self.field = field
        self.value = value

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class StorageError(DataProcessingError):
    """Error raised when document store operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        database: Optional[str] = None,
        status: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="STORAGE_ERROR",
            context=context,
            details=details or {}
        )
        self.operation = operation
        self.database = database
        self.status = status

        if operation:
            self.details["operation"] = operation
        if database:
            self.details["database"] = database
        if status is not None:
            self.details["status"] = status


class DocumentNotFoundError(StorageError):
    """Error raised when a point lookup finds no document."""

    def __init__(
        self,
        doc_id: str,
        database: Optional[str] = None,
        context: Optional[ErrorContext] = None
    ):
        super().__init__(
            message=f"Document not found: {doc_id}",
            operation="get",
            database=database,
            status=404,
            context=context,
            details={"doc_id": doc_id}
        )
        self.error_code = "NOT_FOUND"
        self.doc_id = doc_id


class ConfigurationError(DataProcessingError):
    """Error raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            context=context,
            details=details or {}
        )
        self.config_key = config_key
        self.config_value = config_value

        if config_key:
            self.details["config_key"] = config_key
        if config_value is not None:
            self.details["config_value"] = str(config_value)


def create_error_context(
    service: str,
    operation: str,
    app_id: Optional[str] = None,
    partner_id: Optional[str] = None,
    period: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> ErrorContext:
    """Create error context."""
    return ErrorContext(
        service=service,
        operation=operation,
        app_id=app_id,
        partner_id=partner_id,
        period=period,
        metadata=metadata or {}
    )
