"""다운로드 크리덴셜 도메인 모델.

토큰 하나가 하나의 자산(asset_locator)에 대해 시간/횟수 제한이 걸린 접근 권한을 나타낸다.
만료(expires_at) 또는 소진(uses_remaining == 0) 상태가 되면 다시 활성 상태로 돌아가지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator, model_validator

from common.types.datetime import UtcDateTime, ensure_utc


class CredentialState(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


class RedemptionStatus(str, Enum):
    """CredentialStore.try_redeem 의 결과 코드."""

    OK = "ok"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


class Credential(BaseModel):
    """발급된 다운로드 크리덴셜.

    - uses_remaining 은 감소만 하며 0 미만으로 내려가지 않는다.
    - 필드 변경은 CredentialStore 를 통해서만 일어난다. 외부에는 스냅샷 복사본만 노출된다.
    """

    token: str
    order_id: str
    asset_locator: str
    expires_at: UtcDateTime
    uses_remaining: int
    max_uses: int
    tenant_id: str | None = None
    created_at: UtcDateTime

    @field_validator("order_id", mode="before")
    @classmethod
    def _order_id_to_str(cls, value: Any) -> Any:
        # Shopify 주문 ID 는 숫자로 들어오지만 내부에서는 불투명한 문자열로 다룬다.
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("token", "order_id", "asset_locator")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("expires_at", "created_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _validate_uses(self) -> "Credential":
        if self.uses_remaining < 0:
            raise ValueError("uses_remaining must not be negative")
        if self.uses_remaining > self.max_uses:
            raise ValueError("uses_remaining must not exceed max_uses")
        return self

    def is_expired(self, now: datetime) -> bool:
        # now == expires_at 인 순간부터 만료로 본다.
        return now >= self.expires_at

    def state(self, now: datetime) -> CredentialState:
        if self.is_expired(now):
            return CredentialState.EXPIRED
        if self.uses_remaining <= 0:
            return CredentialState.EXHAUSTED
        return CredentialState.ACTIVE

    def is_redeemable(self, now: datetime) -> bool:
        return self.state(now) is CredentialState.ACTIVE


@dataclass(frozen=True, slots=True)
class RedemptionResult:
    status: RedemptionStatus
    asset_locator: str | None = None
    uses_remaining: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is RedemptionStatus.OK
