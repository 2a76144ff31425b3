from __future__ import annotations

from pydantic import BaseModel, Field

from common.types.datetime import UtcDateTime


class IssueCredentialRequest(BaseModel):
    """내부 크리덴셜 발급 요청. max_uses / ttl_seconds 가 없으면 설정 기본값을 쓴다."""

    order_id: str
    asset_locator: str
    max_uses: int | None = None
    ttl_seconds: int | None = None
    tenant_id: str | None = None


class IssueCredentialResponse(BaseModel):
    token: str
    order_id: str
    expires_at: UtcDateTime
    uses_remaining: int
    download_url: str


class SweepResponse(BaseModel):
    evicted: int = Field(description="정리된 만료/소진 크리덴셜 수")
