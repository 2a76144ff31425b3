from __future__ import annotations

from pydantic import BaseModel

from common.types.datetime import UtcDateTime


class DeliveryLinkResponse(BaseModel):
    product_ref: str
    title: str | None = None
    download_url: str
    uses_remaining: int
    expires_at: UtcDateTime | None = None
    redeemable: bool


class DeliveryPageResponse(BaseModel):
    order_id: str
    links: list[DeliveryLinkResponse]
