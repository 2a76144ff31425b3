from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Tenant:
    """웹훅을 보내는 스토어 하나를 소유한 계정."""

    id: str
    shop_domain: str
    api_token: str = ""
    webhook_secret: str = ""
    display_name: str = ""
    # False 로 명시한 테넌트만 서명 없는 웹훅을 받는다 (로컬 개발용).
    verify_webhooks: bool = True

    @property
    def shop_name(self) -> str:
        return self.display_name or self.shop_domain
