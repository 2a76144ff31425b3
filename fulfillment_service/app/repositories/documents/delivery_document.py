from __future__ import annotations

from common.mongo.types import BaseDocument

from ...models.delivery import DeliveryItem, DeliveryRecord


class DeliveryDocument(BaseDocument):
    """MongoDB deliveries 컬렉션 도큐먼트 모델."""

    order_id: str
    access_key: str
    items: list[DeliveryItem]

    def to_domain(self) -> DeliveryRecord:
        return DeliveryRecord(
            order_id=self.order_id,
            access_key=self.access_key,
            items=list(self.items),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
