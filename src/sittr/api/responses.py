# src/sittr/api/responses.py
"""
Standardized API Response Models

Error envelope shared by every route:
{
    "success": false,
    "error": {"code": "AUTH_INVALID", "message": "...", "detail": "..."},
    "meta": {"timestamp": "...", "version": "1.0"}
}

Job routes answer success with the job's own body
({"success": true, "<countKey>": n, ...}).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.errors import (
    AuthorizationError,
    ReconciliationError,
    StoreError,
    UnknownJobError,
)


# -------------------------
# Error Codes
# -------------------------

class ErrorCode(str, Enum):
    """
    Standardized error codes for API responses.
    Format: {CATEGORY}_{SPECIFIC_ERROR}
    """
    # Authentication (401)
    AUTH_INVALID = "AUTH_INVALID"

    # Resource errors (404)
    NOT_FOUND = "NOT_FOUND"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"

    # Domain-specific errors
    RECONCILIATION_ERROR = "RECONCILIATION_ERROR"


# -------------------------
# HTTP Status Mappings
# -------------------------

ERROR_CODE_TO_HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.AUTH_INVALID: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 503,
    ErrorCode.RECONCILIATION_ERROR: 500,
}


def get_http_status(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_HTTP_STATUS.get(error_code, 500)


# -------------------------
# Response Models
# -------------------------

class ResponseMeta(BaseModel):
    """Metadata included in error responses."""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0"


class ErrorDetail(BaseModel):
    """Detailed error information."""
    code: ErrorCode
    message: str
    detail: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class APIErrorResponse(BaseModel):
    """Standard error response envelope."""
    success: bool = False
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


def error_response(
    code: ErrorCode,
    message: str,
    detail: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Create a standard error response dict."""
    return APIErrorResponse(
        error=ErrorDetail(code=code, message=message, detail=detail, context=context)
    ).model_dump(mode="json", exclude_none=True)


# -------------------------
# FastAPI Exception Classes
# -------------------------

class APIException(HTTPException):
    """
    Custom API exception with structured error response.

    Usage:
        raise APIException(
            error_code=ErrorCode.NOT_FOUND,
            message="Unknown job",
            detail="No job registered as 'foo'"
        )
    """
    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.error_detail = detail
        self.context = context

        status_code = get_http_status(error_code)
        super().__init__(status_code=status_code, detail=message, headers=headers)

    def to_response(self) -> JSONResponse:
        """Convert to JSONResponse for exception handlers."""
        return JSONResponse(
            status_code=self.status_code,
            content=error_response(
                code=self.error_code,
                message=self.message,
                detail=self.error_detail,
                context=self.context,
            ),
            headers=self.headers,
        )


def api_exception_for(exc: Exception) -> APIException:
    """Map a service error to its HTTP envelope."""
    if isinstance(exc, APIException):
        return exc
    if isinstance(exc, AuthorizationError):
        return APIException(
            ErrorCode.AUTH_INVALID, "Unauthorized", detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, UnknownJobError):
        return APIException(
            ErrorCode.NOT_FOUND, "Unknown job", detail=str(exc),
            context={"availableJobs": exc.available},
        )
    if isinstance(exc, StoreError):
        return APIException(ErrorCode.DATABASE_ERROR, "Entity store unavailable", detail=str(exc))
    if isinstance(exc, ReconciliationError):
        return APIException(
            ErrorCode.RECONCILIATION_ERROR,
            "Images need manual reconciliation",
            detail=str(exc),
            context={"imageIds": exc.image_ids, "summary": exc.summary},
        )
    return APIException(ErrorCode.INTERNAL_ERROR, "Internal server error")
