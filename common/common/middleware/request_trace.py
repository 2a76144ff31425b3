import logging
import time
import uuid
from urllib.parse import parse_qs

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-Id"
SPAN_ID_HEADER = "X-Span-Id"

# 헬스체크처럼 호출 빈도만 높은 경로는 로그에서 제외한다.
IGNORED_LOG_PATHS: set[str] = {"/health"}

# 다운로드 토큰이 path 에 그대로 실리는 경로. 로그에는 토큰 앞부분만 남긴다.
MASKED_PATH_PREFIXES: tuple[str, ...] = ("/api/v1/download/",)


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """Request/Span ID 를 전파하고 요청 단위 로그를 남기는 미들웨어.

    - X-Request-Id, X-Span-Id 를 읽고, 없으면 request_id 를 새로 생성한다.
    - request.state 에 request_id, span_id 를 저장하고 응답 헤더에도 실어 보낸다.
    - 웹훅 본문에는 고객 이메일 등 개인정보가 들어 있으므로 body 는 로그에 남기지 않는다.
    """

    def __init__(self, app, logger: logging.Logger | None = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self._logger = logger or logging.getLogger("request_trace")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id, span_id = self._extract_trace_ids(request)
        request.state.request_id = request_id
        request.state.span_id = span_id

        should_log = request.url.path not in IGNORED_LOG_PATHS
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception:
            if should_log:
                self._logger.exception(
                    "request failed",
                    extra=self._build_log_extra(
                        request,
                        request_id,
                        span_id,
                        duration=time.monotonic() - start,
                    ),
                )
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        response.headers.setdefault(SPAN_ID_HEADER, span_id)

        if should_log:
            self._logger.info(
                "completed request",
                extra=self._build_log_extra(
                    request,
                    request_id,
                    span_id,
                    status=response.status_code,
                    duration=time.monotonic() - start,
                ),
            )

        return response

    def _extract_trace_ids(self, request: Request) -> tuple[str, str]:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        span_id = request.headers.get(SPAN_ID_HEADER) or "0"
        return request_id, span_id

    def _build_log_extra(
        self,
        request: Request,
        request_id: str,
        span_id: str,
        status: int | None = None,
        duration: float | None = None,
    ) -> dict[str, object]:
        extra: dict[str, object] = {
            "request_id": request_id,
            "span_id": span_id,
            "method": request.method,
            "path": mask_path(request.url.path),
        }

        query = request.url.query
        if query:
            parsed = parse_qs(query, keep_blank_values=True)
            if parsed:
                extra["query_params"] = {
                    key: values[0] if len(values) == 1 else values
                    for key, values in parsed.items()
                }

        if status is not None:
            extra["status"] = status

        if duration is not None:
            extra["duration"] = f"{duration * 1000:.3f}ms"

        return extra


def mask_path(path: str) -> str:
    """토큰이 포함된 경로는 토큰 앞 8자리만 남기고 가린다."""
    for prefix in MASKED_PATH_PREFIXES:
        if path.startswith(prefix):
            token = path[len(prefix) :]
            return f"{prefix}{token[:8]}..."
    return path
