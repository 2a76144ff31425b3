"""다운로드 토큰 사용 라우터.

실패 응답은 detail.code 로 invalid(404) / expired(403) / exhausted(403) 중 하나를 돌려준다.
"""

from __future__ import annotations

from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse, RedirectResponse, StreamingResponse
from starlette.responses import Response

from ..errors import to_http_exception
from ...dependencies import get_redemption_service
from ...exceptions import (
    CredentialExhaustedError,
    CredentialExpiredError,
    CredentialNotFoundError,
    UpstreamFailure,
)
from ...models.asset import LocalAsset, RedirectAsset, StreamAsset
from ...services.redemption_service import RedemptionService


router = APIRouter(tags=["downloads"])


@router.get("/download/{token}", summary="다운로드 토큰 사용")
def redeem_download(
    token: str,
    service: Annotated[RedemptionService, Depends(get_redemption_service)],
) -> Response:
    try:
        asset = service.redeem(token)
    except CredentialNotFoundError as exc:
        raise to_http_exception(exc, status.HTTP_404_NOT_FOUND) from exc
    except (CredentialExpiredError, CredentialExhaustedError) as exc:
        raise to_http_exception(exc, status.HTTP_403_FORBIDDEN) from exc
    except UpstreamFailure as exc:
        raise to_http_exception(exc, status.HTTP_502_BAD_GATEWAY) from exc

    if isinstance(asset, RedirectAsset):
        return RedirectResponse(asset.url, status_code=status.HTTP_302_FOUND)

    if isinstance(asset, LocalAsset):
        return FileResponse(asset.path, filename=asset.filename)

    assert isinstance(asset, StreamAsset)
    headers = {
        "Content-Disposition": f"attachment; filename*=utf-8''{quote(asset.filename)}",
        **asset.extra_headers,
    }
    if asset.content_length is not None:
        headers["Content-Length"] = str(asset.content_length)
    return StreamingResponse(
        asset.chunks, media_type=asset.content_type, headers=headers
    )
