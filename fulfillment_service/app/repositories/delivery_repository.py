from __future__ import annotations

import threading
from datetime import datetime

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from ..models.delivery import DeliveryItem, DeliveryRecord
from .documents.delivery_document import DeliveryDocument
from .interfaces import DeliveryRepositoryInterface


class InMemoryDeliveryRepository(DeliveryRepositoryInterface):
    """주문별 배송 인덱스의 in-memory 구현."""

    def __init__(self) -> None:
        self._records: dict[str, DeliveryRecord] = {}
        self._lock = threading.Lock()

    def append(
        self, order_id: str, item: DeliveryItem, access_key: str, now: datetime
    ) -> str:
        with self._lock:
            record = self._records.get(order_id)
            if record is None:
                record = DeliveryRecord(
                    order_id=order_id,
                    access_key=access_key,
                    items=[],
                    created_at=now,
                    updated_at=now,
                )
                self._records[order_id] = record
            record.items.append(item.model_copy())
            record.updated_at = now
            return record.access_key

    def find(self, order_id: str) -> DeliveryRecord | None:
        with self._lock:
            record = self._records.get(order_id)
            if record is None:
                return None
            # 호출자가 내부 리스트를 건드리지 못하도록 깊은 복사본을 돌려준다.
            return record.model_copy(deep=True)


class MongoDeliveryRepository(DeliveryRepositoryInterface):
    """deliveries 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["deliveries"]

    def append(
        self, order_id: str, item: DeliveryItem, access_key: str, now: datetime
    ) -> str:
        try:
            return self._upsert(order_id, item, access_key, now)
        except DuplicateKeyError:
            # 같은 주문의 첫 항목이 동시에 upsert 되면 한쪽이 uniq_order_id 에 걸린다.
            # 그 시점에는 도큐먼트가 이미 있으므로 한 번 더 시도하면 $push 로 끝난다.
            return self._upsert(order_id, item, access_key, now)

    def _upsert(
        self, order_id: str, item: DeliveryItem, access_key: str, now: datetime
    ) -> str:
        doc = self._col.find_one_and_update(
            {"order_id": order_id},
            {
                "$push": {"items": item.model_dump()},
                "$set": {"updated_at": now},
                # order_id 는 upsert 필터에서 채워진다.
                "$setOnInsert": {
                    "access_key": access_key,
                    "created_at": now,
                },
            },
            projection={"access_key": 1},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return doc["access_key"]

    def find(self, order_id: str) -> DeliveryRecord | None:
        raw = self._col.find_one({"order_id": order_id})
        if not raw:
            return None
        return DeliveryDocument.model_validate(raw).to_domain()
