# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the Plindo platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Each kind carries the HTTP status it maps to and the numeric code
placed in the response envelope.
"""

from datetime import date
from typing import Any, ClassVar, Dict, Optional

from fastapi import HTTPException, status

from .enums import ErrorCode

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    http_status: ClassVar[int] = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: ClassVar[ErrorCode] = ErrorCode.ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.http_status,
            detail={
                "message": self.message,
                "code": self.code,
                "status": int(self.error_code),
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    http_status = status.HTTP_400_BAD_REQUEST
    error_code = ErrorCode.VALIDATION_FAILED


class FormatValidationException(ValidationException):
    """Raised when a value is syntactically malformed (time, date, identifier)."""

    error_code = ErrorCode.INVALID_FORMAT


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    http_status = status.HTTP_404_NOT_FOUND
    error_code = ErrorCode.NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    http_status = status.HTTP_409_CONFLICT
    error_code = ErrorCode.CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    http_status = HTTP_422_UNPROCESSABLE
    error_code = ErrorCode.INVALID_STATE


class InvalidStateException(BusinessRuleException):
    """Raised when an entity is not in a state that allows the operation."""


class UnauthorizedException(DomainException):
    """Raised when the caller is not identified."""

    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = ErrorCode.UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    http_status = status.HTTP_403_FORBIDDEN
    error_code = ErrorCode.FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.http_status,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "status": int(self.error_code),
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class CapacityExceededException(ConflictException):
    """Raised when a window has no remaining capacity for the category."""

    error_code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(
        self,
        partner_id: str,
        slot_date: date,
        start_time: str,
        category: str,
        capacity: int,
    ):
        super().__init__(
            message=f"No {category} capacity left at {start_time} on {slot_date.isoformat()}",
            code="CAPACITY_EXCEEDED",
            details={
                "partner_id": partner_id,
                "date": slot_date.isoformat(),
                "start_time": start_time,
                "service_category": category,
                "capacity": capacity,
            },
        )


class InvalidTransitionException(InvalidStateException):
    """Raised when a status change is not an edge of the booking state machine."""

    def __init__(self, current: str, target: str, service_type: Optional[str] = None):
        message = f"Cannot change booking status from {current} to {target}"
        if service_type:
            message = f"{message} for {service_type} bookings"
        super().__init__(
            message=message,
            code="INVALID_TRANSITION",
            details={"current_status": current, "target_status": target},
        )


class SlotUnavailableException(ValidationException):
    """Raised when a requested window is outside the partner's working hours."""

    def __init__(self, slot_date: date, start_time: str, reason: str):
        super().__init__(
            message=reason,
            code="SLOT_UNAVAILABLE",
            details={"date": slot_date.isoformat(), "start_time": start_time},
        )


class InsufficientStockException(ConflictException):
    """Raised when a product order asks for more units than are in stock."""

    def __init__(self, product_id: str, requested: int, available: int):
        super().__init__(
            message=f"Only {available} unit(s) in stock",
            code="INSUFFICIENT_STOCK",
            details={
                "product_id": product_id,
                "requested": requested,
                "available": available,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
