from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ..models.credential import Credential, RedemptionResult
from ..models.delivery import DeliveryItem, DeliveryRecord


class CredentialStoreInterface(Protocol):
    """다운로드 크리덴셜 저장소가 따라야 할 계약.

    - 모든 변경(put, try_redeem, sweep)은 이 인터페이스를 통해서만 일어난다.
    - try_redeem 은 조회, 만료 확인, 잔여 횟수 확인, 차감을 토큰 단위로 원자적으로 수행한다.
    - 서로 다른 토큰의 try_redeem 은 서로를 막지 않는다.
    """

    def put(self, credential: Credential) -> None:  # pragma: no cover - Protocol
        """새 크리덴셜을 저장한다. 한 번이라도 발급된 토큰이면 CredentialConflictError."""
        ...

    def get(self, token: str) -> Credential:  # pragma: no cover - Protocol
        """스냅샷 복사본을 반환한다. 없으면 CredentialNotFoundError."""
        ...

    def try_redeem(
        self, token: str, now: datetime
    ) -> RedemptionResult:  # pragma: no cover - Protocol
        ...

    def sweep(self, now: datetime) -> int:  # pragma: no cover - Protocol
        """만료/소진된 크리덴셜을 정리하고 정리한 개수를 반환한다.

        정리된 토큰은 보존 기간 동안 기억해 put 을 거부하고, 보존 기간이 지난 기록은 함께 지운다.
        """
        ...


class DeliveryRepositoryInterface(Protocol):
    """주문별 (상품, 토큰) 인덱스. 추가만 가능하고 삭제 연산은 없다."""

    def append(
        self, order_id: str, item: DeliveryItem, access_key: str, now: datetime
    ) -> str:  # pragma: no cover - Protocol
        """항목을 추가하고 주문의 access_key 를 반환한다.

        access_key 는 주문의 첫 항목이 기록될 때만 저장되고, 이후에는 기존 값을 돌려준다.
        """
        ...

    def find(
        self, order_id: str
    ) -> DeliveryRecord | None:  # pragma: no cover - Protocol
        ...
