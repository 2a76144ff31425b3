"""Shopify 주문 웹훅 라우터."""

from __future__ import annotations

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from ..errors import to_http_exception
from ..schemas.webhooks import OrderWebhookResponse
from ...dependencies import get_order_fulfillment_service
from ...exceptions import (
    InvalidArgumentError,
    TenantNotFoundError,
    WebhookSignatureError,
)
from ...models.order import OrderEvent
from ...services.order_fulfillment_service import OrderFulfillmentService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/orders-create", summary="Shopify orders/create 웹훅")
async def handle_order_created(
    request: Request,
    service: Annotated[
        OrderFulfillmentService, Depends(get_order_fulfillment_service)
    ],
    shop_domain: Annotated[str | None, Header(alias="X-Shopify-Shop-Domain")] = None,
    signature: Annotated[str | None, Header(alias="X-Shopify-Hmac-Sha256")] = None,
) -> OrderWebhookResponse:
    # 서명 검증에는 파싱 전 원본 바이트가 필요하다.
    body = await request.body()

    try:
        tenant = service.authenticate(shop_domain, body, signature)
    except TenantNotFoundError as exc:
        raise to_http_exception(exc, status.HTTP_404_NOT_FOUND) from exc
    except WebhookSignatureError as exc:
        raise to_http_exception(exc, status.HTTP_401_UNAUTHORIZED) from exc

    try:
        order = OrderEvent.model_validate(json.loads(body or b"{}"))
    except (ValueError, ValidationError) as exc:
        raise to_http_exception(
            InvalidArgumentError(f"invalid order payload: {exc}"),
            status.HTTP_400_BAD_REQUEST,
        ) from exc

    logger.info("received order webhook", extra={"order_id": order.id, "tenant_id": tenant.id})

    # 카탈로그/SMTP 호출은 블로킹이므로 스레드풀에서 처리한다.
    summary = await run_in_threadpool(service.handle_order, tenant, order)

    return OrderWebhookResponse(
        order_id=summary.order_id,
        issued=summary.issued,
        skipped=summary.skipped,
        failed=summary.failed,
        notified=summary.notified,
        duplicate=summary.duplicate,
    )
