"""내부 발급/관리 API 인증."""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, Header, status

from .errors import to_http_exception
from ..config import AppConfig
from ..dependencies import get_config
from ..exceptions import AdminApiDisabledError, AdminAuthError


ADMIN_API_KEY_HEADER = "X-Admin-Api-Key"


def require_admin_key(
    config: Annotated[AppConfig, Depends(get_config)],
    api_key: Annotated[str | None, Header(alias=ADMIN_API_KEY_HEADER)] = None,
) -> None:
    """X-Admin-Api-Key 헤더를 설정된 ADMIN_API_KEY 와 비교한다.

    키가 설정되지 않은 배포에서는 내부 API 전체를 403 으로 막는다.
    """
    if not config.admin_api_key:
        raise to_http_exception(
            AdminApiDisabledError("admin API key is not configured"),
            status.HTTP_403_FORBIDDEN,
        )
    if not api_key or not hmac.compare_digest(
        api_key.encode("utf-8"), config.admin_api_key.encode("utf-8")
    ):
        raise to_http_exception(
            AdminAuthError("missing or invalid admin API key"),
            status.HTTP_401_UNAUTHORIZED,
        )
