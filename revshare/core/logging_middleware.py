"""
요청 로깅 미들웨어

요청마다 X-Request-ID를 부여해 응답 헤더와 에러 로그에 같이 남깁니다.
정산/지급/매출 갱신처럼 상태를 바꾸는 관리자 요청이 성공하면 audit 로그를 남깁니다.
헬스 체크는 DEBUG 레벨로만 기록합니다.
"""

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("revshare.http")
audit_logger = logging.getLogger("revshare.audit")

REQUEST_ID_HEADER = "X-Request-ID"
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
AUDITED_PATHS = ("/admin/settlements", "/admin/payouts", "/admin/revenue/refresh")


def is_audited(method: str, path: str) -> bool:
    return method in MUTATING_METHODS and any(p in path for p in AUDITED_PATHS)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        path = request.url.path
        label = f"[{request_id}] {request.method} {path}"

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{label} -> unhandled error")
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        line = f"{label} -> {response.status_code} ({elapsed_ms:.1f}ms)"
        if response.status_code >= 500:
            logger.error(line)
        elif response.status_code >= 400:
            logger.warning(line)
        elif path.endswith("/health"):
            logger.debug(line)
        else:
            logger.info(line)

        if response.status_code < 400 and is_audited(request.method, path):
            client = request.client.host if request.client else "-"
            audit_logger.info(f"{label} from {client} applied")
        return response
