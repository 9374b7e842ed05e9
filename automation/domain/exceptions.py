"""Domain exceptions for the automation engine.

Represent rule violations and run-level failures independent of
infrastructure. The presentation layer maps them to HTTP responses in
automation.core.exception_handlers; the scheduler records them as per-item
errors.
"""

from typing import Any


class AutomationException(Exception):
    """Base exception for all automation engine errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. workflow_id, operator).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body used by API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(AutomationException):
    """Raised when input validation fails (e.g. unknown attribute on a model)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(AutomationException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'workflow', 'data_model').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class PredicateCompileException(AutomationException):
    """Raised when workflow conditions cannot be compiled into a record filter."""

    def __init__(
        self,
        message: str,
        condition_id: str | None = None,
        operator: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if condition_id:
            details["condition_id"] = condition_id
        if operator:
            details["operator"] = operator
        super().__init__(message, "PREDICATE_COMPILE_ERROR", details)


class ExpressionEvaluationException(AutomationException):
    """Raised when a CALCULATE formula cannot be parsed or evaluated."""

    def __init__(self, formula: str, reason: str) -> None:
        super().__init__(
            f"Cannot evaluate formula {formula!r}: {reason}",
            "EXPRESSION_ERROR",
            {"formula": formula},
        )


class DataSyncException(AutomationException):
    """Raised when the external data-sync service cannot be reached or misbehaves."""

    def __init__(self, schedule_id: str, reason: str) -> None:
        super().__init__(
            f"Data sync {schedule_id} failed: {reason}",
            "DATA_SYNC_ERROR",
            {"schedule_id": schedule_id},
        )


class SqlNotConfiguredException(AutomationException):
    """Raised when the database engine could not be created from settings."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
