from __future__ import annotations

from common.mongo.types import BaseDocument, MongoDateTime

from ...models.credential import Credential


class CredentialDocument(BaseDocument):
    """MongoDB credentials 컬렉션 도큐먼트 모델."""

    token: str
    order_id: str
    asset_locator: str
    expires_at: MongoDateTime
    uses_remaining: int
    max_uses: int
    tenant_id: str | None = None

    @classmethod
    def from_domain(cls, credential: Credential) -> "CredentialDocument":
        return cls(
            token=credential.token,
            order_id=credential.order_id,
            asset_locator=credential.asset_locator,
            expires_at=credential.expires_at,
            uses_remaining=credential.uses_remaining,
            max_uses=credential.max_uses,
            tenant_id=credential.tenant_id,
            created_at=credential.created_at,
            updated_at=credential.created_at,
        )

    def to_domain(self) -> Credential:
        return Credential(
            token=self.token,
            order_id=self.order_id,
            asset_locator=self.asset_locator,
            expires_at=self.expires_at,
            uses_remaining=self.uses_remaining,
            max_uses=self.max_uses,
            tenant_id=self.tenant_id,
            created_at=self.created_at,
        )
