from __future__ import annotations

from ..models.tenant import Tenant
from .interfaces import TenantDirectoryInterface


class ConfigTenantDirectory(TenantDirectoryInterface):
    """config.yaml 의 tenants 목록으로 스토어 도메인을 테넌트에 매핑한다."""

    def __init__(self, tenants: list[Tenant]) -> None:
        self._by_domain = {t.shop_domain.lower(): t for t in tenants}

    def lookup_by_domain(self, domain: str) -> Tenant | None:
        return self._by_domain.get(domain.strip().lower())
