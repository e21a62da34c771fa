"""
Base response schemas for standardized API responses.

Every endpoint answers with the same envelope:

    {"status": 0, "message": "", "data": ...}

``status`` is 0 on success and a numeric error code otherwise (see
app.core.enums.ErrorCode). List endpoints put a ``PaginatedResponse`` in
``data``.
"""

import math
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import Field

from ..core.enums import ErrorCode
from .base import StandardizedModel

T = TypeVar("T")


class ApiResponse(StandardizedModel, Generic[T]):
    """Success envelope."""

    status: int = Field(default=int(ErrorCode.SUCCESS), description="0 on success")
    message: str = Field(default="", description="Human-readable message")
    data: Optional[T] = Field(default=None, description="Payload")


class ErrorResponse(StandardizedModel):
    """Error envelope rendered by app.errors."""

    status: int = Field(description="Numeric error code")
    message: str = Field(description="Human-readable error message")
    data: None = None
    code: Optional[str] = Field(default=None, description="Error code for programmatic handling")
    details: Optional[Dict[str, Any]] = None


class PaginatedResponse(StandardizedModel, Generic[T]):
    """
    Standard paginated payload for all list endpoints.
    """

    items: List[T] = Field(description="List of items")
    total: int = Field(description="Total number of items")
    page: int = Field(default=1, description="Current page number", ge=1)
    limit: int = Field(default=10, description="Items per page", ge=1, le=100)
    total_pages: int = Field(description="Number of pages")

    @classmethod
    def build(cls, items: List[Any], total: int, page: int, limit: int) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


def ok(data: Any = None, message: str = "") -> Dict[str, Any]:
    """Build a success envelope for routes declaring ``ApiResponse[...]``."""
    return {"status": int(ErrorCode.SUCCESS), "message": message, "data": data}
