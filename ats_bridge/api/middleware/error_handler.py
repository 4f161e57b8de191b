"""
Global error handlers

Every error response has the same body:
    {"success": false, "error": ..., "error_type": ..., "details": {...}}
"""
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ats_bridge.utils.exceptions import ATSBridgeException
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)


def _error_body(error: str, error_type: str, details: dict = None) -> dict:
    return {
        "success": False,
        "error": error,
        "error_type": error_type,
        "details": details or {}
    }


async def ats_bridge_exception_handler(request: Request, exc: ATSBridgeException):
    """Handle custom ATS Bridge exceptions (delegate, intake and workflow errors)"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{exc.__class__.__name__}: {exc.message}", extra={
        "status_code": exc.status_code,
        "details": exc.details,
        "path": request.url.path
    })

    headers = None
    if exc.details.get("retry_after"):
        headers = {"Retry-After": str(exc.details["retry_after"])}

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.__class__.__name__, exc.details),
        headers=headers
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"Validation error on {request.url.path}: {len(errors)} error(s)", extra={
        "path": request.url.path,
        "errors": errors
    })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("Validation error", "ValidationError", {"errors": errors})
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    logger.warning(f"HTTP exception: {exc.detail}", extra={
        "status_code": exc.status_code,
        "path": request.url.path
    })

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "HTTPException")
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(f"Unexpected exception: {str(exc)}", exc_info=True, extra={
        "path": request.url.path
    })

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "Internal server error",
            "InternalServerError",
            {"message": str(exc)} if logger.isEnabledFor(10) else {}
        )
    )
