"""크리덴셜 발급/정리 내부 API 라우터."""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, status

from common.types.datetime import utc_now

from ..auth import require_admin_key
from ..errors import to_http_exception
from ..schemas.credentials import (
    IssueCredentialRequest,
    IssueCredentialResponse,
    SweepResponse,
)
from ...dependencies import (
    get_credential_issuer,
    get_credential_store,
    get_delivery_service,
)
from ...exceptions import InvalidArgumentError
from ...repositories.interfaces import CredentialStoreInterface
from ...services.credential_issuer import CredentialIssuer
from ...services.delivery_service import DeliveryService


# 발급/정리는 내부 전용이므로 라우터 전체에 관리자 키를 요구한다.
router = APIRouter(tags=["credentials"], dependencies=[Depends(require_admin_key)])


@router.post(
    "/download-credentials",
    status_code=status.HTTP_201_CREATED,
    summary="다운로드 크리덴셜 발급 (내부 전용)",
)
def issue_credential(
    req: IssueCredentialRequest,
    issuer: Annotated[CredentialIssuer, Depends(get_credential_issuer)],
    store: Annotated[CredentialStoreInterface, Depends(get_credential_store)],
    deliveries: Annotated[DeliveryService, Depends(get_delivery_service)],
) -> IssueCredentialResponse:
    ttl = timedelta(seconds=req.ttl_seconds) if req.ttl_seconds is not None else None
    try:
        token = issuer.issue(
            req.order_id,
            req.asset_locator,
            max_uses=req.max_uses,
            ttl=ttl,
            tenant_id=req.tenant_id,
        )
    except InvalidArgumentError as exc:
        raise to_http_exception(exc, status.HTTP_422_UNPROCESSABLE_ENTITY) from exc

    credential = store.get(token)
    return IssueCredentialResponse(
        token=credential.token,
        order_id=credential.order_id,
        expires_at=credential.expires_at,
        uses_remaining=credential.uses_remaining,
        download_url=deliveries.download_url(credential.token),
    )


@router.post(
    "/admin/credentials/sweep",
    summary="만료/소진 크리덴셜 정리",
)
def sweep_credentials(
    store: Annotated[CredentialStoreInterface, Depends(get_credential_store)],
) -> SweepResponse:
    return SweepResponse(evicted=store.sweep(utc_now()))
