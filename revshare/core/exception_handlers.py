"""
API 예외 핸들러

모든 에러 응답은 {"success": false, "error": {"code", "message", "details"}} 형태입니다.
도메인 예외 details에 담긴 정산/지급 식별자는 로그 한 줄에 함께 남깁니다.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("revshare.errors")

# 로그에 남길 details 키 (순서 유지)
CONTEXT_KEYS = ("settlement_id", "payout_id", "unit_id", "year", "quarter", "paid_count", "reason")


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }


def describe_context(details: Any) -> str:
    """details에서 도메인 식별자만 골라 'k=v, ...' 형태로"""
    if not isinstance(details, dict):
        return ""
    pairs = [f"{key}={details[key]}" for key in CONTEXT_KEYS if details.get(key) is not None]
    return f" [{', '.join(pairs)}]" if pairs else ""


def _label(request: Request) -> str:
    request_id = getattr(request.state, "request_id", "-")
    return f"[{request_id}] {request.method} {request.url.path}"


def _log_by_status(status_code: int, line: str) -> None:
    if status_code >= 500:
        logger.error(line)
    else:
        logger.warning(line)


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    _log_by_status(
        exc.status_code,
        f"{_label(request)} -> {exc.status_code} {exc.error_code}: {exc.message}"
        f"{describe_context(exc.details)}",
    )
    return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)


async def handle_http_exception(request: Request, exc):
    # 라우팅 404/405 등 프레임워크가 던지는 예외도 같은 envelope으로 맞춤
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = error_body("HTTP_ERROR", str(exc.detail))
    _log_by_status(
        exc.status_code,
        f"{_label(request)} -> {exc.status_code} {content['error']['code']}: {content['error']['message']}",
    )
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def handle_validation_error(request: Request, exc):
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in errors)
    logger.warning(f"{_label(request)} -> 422 VALIDATION_001: {fields}")
    return JSONResponse(
        status_code=422,
        content=error_body("VALIDATION_001", "Validation failed", {"errors": errors}),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        f"{_label(request)} -> 500 unhandled {type(exc).__name__}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)
