from __future__ import annotations

from typing import Protocol

from ..models.asset import Asset
from ..models.tenant import Tenant


class CatalogResolverInterface(Protocol):
    """구매 상품을 자산 위치(asset locator)로 매핑한다.

    - 디지털 상품이 아니면 None 을 반환한다.
    - 외부 호출이 실패하면 UpstreamFailure 를 발생시킨다.
    """

    def resolve(
        self, tenant: Tenant, product_ref: str
    ) -> str | None:  # pragma: no cover - Protocol
        ...


class NotifierInterface(Protocol):
    """렌더링된 메시지를 수신자에게 보낸다. 실패 시 UpstreamFailure."""

    def notify(
        self,
        recipient: str,
        subject: str,
        body: str,
        html: str | None = None,
    ) -> None:  # pragma: no cover - Protocol
        ...


class TenantDirectoryInterface(Protocol):
    def lookup_by_domain(
        self, domain: str
    ) -> Tenant | None:  # pragma: no cover - Protocol
        ...


class AssetSourceInterface(Protocol):
    """asset locator 를 실제로 내려줄 수 있는 형태(파일/스트림/리다이렉트)로 연다."""

    def open(self, asset_locator: str) -> Asset:  # pragma: no cover - Protocol
        ...
