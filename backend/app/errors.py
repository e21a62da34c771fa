"""
Exception handlers rendering every error as the response envelope:

    {"status": <code>, "message": "...", "data": null, "code": "...", "details": {...}}

``status`` is the numeric envelope code from ErrorCode; the HTTP status of
the response carries the transport-level meaning.
"""

import logging
from typing import Any, Dict, NoReturn, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.enums import ErrorCode
from .core.exceptions import HTTP_422_UNPROCESSABLE, DomainException
from .core.request_context import get_request_id
from .monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_CODE_FOR_HTTP_STATUS = {
    400: ErrorCode.VALIDATION_FAILED,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.VALIDATION_FAILED,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.INVALID_FORMAT,
}


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _envelope(
    *,
    code_number: int,
    message: str,
    code: Optional[str] = None,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "status": code_number,
        "message": message,
        "data": None,
    }
    if code:
        body["code"] = code
    if details:
        body["details"] = jsonable_encoder(details)
    request_id = get_request_id()
    if request_id:
        body["requestId"] = request_id
    return body


def _from_http_detail(status_code: int, detail: Any) -> Dict[str, Any]:
    fallback = int(_CODE_FOR_HTTP_STATUS.get(status_code, ErrorCode.ERROR))
    if isinstance(detail, dict):
        number = detail.get("status")
        return _envelope(
            code_number=number if isinstance(number, int) else fallback,
            message=str(detail.get("message") or detail.get("detail") or ""),
            code=detail.get("code") if isinstance(detail.get("code"), str) else None,
            details=detail.get("details"),
        )
    return _envelope(code_number=fallback, message=str(detail) if detail is not None else "")


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        prometheus_metrics.record_error(type(exc).__name__, _route_path(request))
        body = _envelope(
            code_number=int(exc.error_code),
            message=exc.message,
            code=exc.code,
            details=exc.details,
        )
        return JSONResponse(body, status_code=exc.http_status)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            _from_http_detail(exc.status_code, exc.detail),
            status_code=exc.status_code,
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            _from_http_detail(exc.status_code, exc.detail),
            status_code=exc.status_code,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        first = errors[0] if errors else None
        message = (
            f"{first['field']}: {first['message']}" if first and first["field"] else "Invalid request"
        )
        body = _envelope(
            code_number=int(ErrorCode.INVALID_FORMAT),
            message=message,
            code="REQUEST_VALIDATION_FAILED",
            details={"errors": errors},
        )
        return JSONResponse(body, status_code=HTTP_422_UNPROCESSABLE)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", extra={"path": request.url.path})
        prometheus_metrics.record_error(type(exc).__name__, _route_path(request))
        body = _envelope(
            code_number=int(ErrorCode.ERROR),
            message="Internal server error",
            code="INTERNAL_ERROR",
        )
        return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
