"""
Bus Pass Backend — Shared Response Schemas
==========================================

What:  The response envelope, pagination metadata, error and health models.
How:   Every route returns `ApiResponse[T]`; every error handler returns the
       `ErrorResponse` shape. Clients can branch on `success` alone.

Envelope:
    success → {"success": true,  "data": <T>, "message": "..."}
    failure → {"success": false, "message": "...", "statusCode": 409,
               "error": "conflict", "request_id": "a1b2c3d4"}
"""

import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = Field(default=True)
    data: DataT
    message: str = Field(default="OK", description="Human-readable outcome")


class PaginationMeta(BaseModel):
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=0, description="ceil(total / limit)")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))


class Page(BaseModel, Generic[DataT]):
    items: List[DataT]
    pagination: PaginationMeta


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "success": false,
            "message": "You already have a pending application",
            "statusCode": 409,
            "error": "conflict",
            "request_id": "550e8400"
        }
    """
    success: bool = Field(default=False)
    message: str = Field(description="Human-readable error description")
    status_code: int = Field(alias="statusCode", description="HTTP status code")
    error: str = Field(description="Machine-readable error code")
    details: Optional[dict] = Field(default=None)
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")

    model_config = {"populate_by_name": True}


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float
