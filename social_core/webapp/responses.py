"""
Response envelopes and exception handlers.

Success: {"success": true, "data": ..., "meta": {...}}
Failure: {"success": false, "error": {"code", "message", "details"?}}
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from db.postgres_db import utc_now_iso
from services.errors import RateLimitExceededError, SocialError
from utils.logger import get_logger

logger = get_logger(__name__)

HTTP_STATUS_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "VALIDATION_ERROR",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMIT_EXCEEDED",
}


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, mode="json")
    if isinstance(data, list):
        return [_dump(item) for item in data]
    if isinstance(data, dict):
        return {key: _dump(value) for key, value in data.items()}
    return jsonable_encoder(data)


def success_response(
    data: Any,
    meta: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body_meta = {"timestamp": utc_now_iso()}
    if meta:
        body_meta.update(_dump(meta))
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": _dump(data), "meta": body_meta},
        headers=headers,
    )


def error_response(
    code: str,
    message: str,
    status_code: int,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


async def _social_error_handler(request: Request, exc: SocialError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = exc.result.headers()
    return error_response(exc.code, exc.message, exc.status_code, exc.details, headers)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, "UNKNOWN_ERROR")
    return error_response(code, str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        "VALIDATION_ERROR",
        "Request validation failed",
        400,
        details={
            "errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ]
        },
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response("UNKNOWN_ERROR", "An unexpected error occurred", 500)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SocialError, _social_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
