"""주문 배송 페이지 구성.

웹훅 처리 중 발급된 (상품, 토큰) 쌍을 주문 단위로 모아 두고, 고객이 메일 없이도
다시 찾아올 수 있는 배송 페이지를 만든다.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

from common.types.datetime import Clock, utc_now

from ..exceptions import CredentialNotFoundError, DeliveryNotFoundError
from ..models.delivery import DeliveryItem, DeliveryRecord
from ..repositories.interfaces import (
    CredentialStoreInterface,
    DeliveryRepositoryInterface,
)


ACCESS_KEY_BYTES = 16


@dataclass(slots=True)
class DeliveryLink:
    product_ref: str
    title: str | None
    token: str
    download_url: str
    uses_remaining: int
    expires_at: datetime | None
    redeemable: bool


class DeliveryService:
    def __init__(
        self,
        repo: DeliveryRepositoryInterface,
        store: CredentialStoreInterface,
        *,
        base_url: str,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repo
        self._store = store
        self._base_url = base_url.rstrip("/")
        self._clock = clock

    def record_delivery(
        self,
        order_id: str,
        product_ref: str,
        token: str,
        title: str | None = None,
    ) -> str:
        """주문의 배송 기록에 항목을 추가하고 배송 페이지 access_key 를 반환한다."""
        return self._repo.append(
            order_id,
            DeliveryItem(product_ref=product_ref, token=token, title=title),
            secrets.token_urlsafe(ACCESS_KEY_BYTES),
            self._clock(),
        )

    def render(self, order_id: str) -> list[tuple[str, str]]:
        """주문의 (product_ref, token) 목록을 기록된 순서대로 반환한다."""
        record = self._find(order_id)
        return [(item.product_ref, item.token) for item in record.items]

    def render_page(self, order_id: str, access_key: str) -> list[DeliveryLink]:
        """배송 페이지용 링크 목록. 각 링크의 현재 잔여 횟수/만료 상태를 함께 싣는다.

        access_key 가 맞지 않으면 주문이 없는 것과 똑같이 DeliveryNotFoundError 를 발생시킨다.
        """
        record = self._find(order_id)
        if not secrets.compare_digest(record.access_key, access_key or ""):
            raise DeliveryNotFoundError(f"no delivery for order {order_id}")

        now = self._clock()
        links: list[DeliveryLink] = []
        for item in record.items:
            try:
                credential = self._store.get(item.token)
            except CredentialNotFoundError:
                # sweep 으로 정리된 크리덴셜. 링크는 남기되 사용 불가로 표시한다.
                uses_remaining, expires_at, redeemable = 0, None, False
            else:
                uses_remaining = credential.uses_remaining
                expires_at = credential.expires_at
                redeemable = credential.is_redeemable(now)

            links.append(
                DeliveryLink(
                    product_ref=item.product_ref,
                    title=item.title,
                    token=item.token,
                    download_url=self.download_url(item.token),
                    uses_remaining=uses_remaining,
                    expires_at=expires_at,
                    redeemable=redeemable,
                )
            )
        return links

    def has_delivery(self, order_id: str) -> bool:
        return self._repo.find(order_id) is not None

    def download_url(self, token: str) -> str:
        return f"{self._base_url}/api/v1/download/{token}"

    def page_url(self, order_id: str, access_key: str) -> str:
        return (
            f"{self._base_url}/api/v1/deliveries/{quote(order_id, safe='')}"
            f"?key={access_key}"
        )

    def _find(self, order_id: str) -> DeliveryRecord:
        record = self._repo.find(order_id)
        if record is None:
            raise DeliveryNotFoundError(f"no delivery for order {order_id}")
        return record
