from __future__ import annotations

from ..models.tenant import Tenant
from .interfaces import CatalogResolverInterface


class StaticCatalogResolver(CatalogResolverInterface):
    """config.yaml 의 catalog.mapping 으로 상품을 자산에 매핑한다.

    매핑에 없는 상품은 default_asset 으로 떨어지며, 그것도 없으면 디지털 상품이 아니다.
    매핑 키는 "상품ID" 또는 "테넌트ID:상품ID" 형식을 쓸 수 있다.
    """

    def __init__(
        self, mapping: dict[str, str], default_asset: str | None = None
    ) -> None:
        self._mapping = dict(mapping)
        self._default_asset = default_asset

    def resolve(self, tenant: Tenant, product_ref: str) -> str | None:
        scoped = self._mapping.get(f"{tenant.id}:{product_ref}")
        if scoped:
            return scoped
        return self._mapping.get(product_ref) or self._default_asset
