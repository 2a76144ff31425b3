from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator


class DeliveryItem(BaseModel):
    """주문 배송 페이지에 노출되는 (상품, 토큰) 한 쌍."""

    product_ref: str
    token: str
    title: str | None = None

    @field_validator("product_ref", mode="before")
    @classmethod
    def _product_ref_to_str(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value


class DeliveryRecord(BaseModel):
    """주문별 발급 크리덴셜 인덱스. 추가만 가능하다 (append-only)."""

    order_id: str
    # 배송 페이지 조회용 비밀 키. 주문 ID 는 추측 가능하므로 키 없이는 페이지를 열 수 없다.
    access_key: str
    items: list[DeliveryItem]
    created_at: datetime
    updated_at: datetime
