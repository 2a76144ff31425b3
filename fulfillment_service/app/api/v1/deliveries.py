from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from ..errors import to_http_exception
from ..schemas.deliveries import DeliveryLinkResponse, DeliveryPageResponse
from ...dependencies import get_delivery_service
from ...exceptions import DeliveryNotFoundError
from ...services.delivery_service import DeliveryService


router = APIRouter(tags=["deliveries"])


@router.get("/deliveries/{order_id}", summary="주문 배송 페이지")
def get_delivery_page(
    order_id: str,
    service: Annotated[DeliveryService, Depends(get_delivery_service)],
    key: Annotated[str, Query(description="배송 안내 메일에 포함된 접근 키")] = "",
) -> DeliveryPageResponse:
    try:
        links = service.render_page(order_id, key)
    except DeliveryNotFoundError as exc:
        raise to_http_exception(exc, status.HTTP_404_NOT_FOUND) from exc

    return DeliveryPageResponse(
        order_id=order_id,
        links=[
            DeliveryLinkResponse(
                product_ref=link.product_ref,
                title=link.title,
                download_url=link.download_url,
                uses_remaining=link.uses_remaining,
                expires_at=link.expires_at,
                redeemable=link.redeemable,
            )
            for link in links
        ],
    )
