from __future__ import annotations

from fastapi import HTTPException

from ..exceptions import FulfillmentError


def to_http_exception(exc: FulfillmentError, status_code: int) -> HTTPException:
    """도메인 예외를 {"code", "message"} detail 을 가진 HTTPException 으로 변환한다."""
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": str(exc)},
    )
