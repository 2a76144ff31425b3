from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from common.logger import token_prefix
from common.types.datetime import Clock, utc_now

from ..exceptions import InvalidArgumentError
from ..models.credential import Credential
from ..repositories.interfaces import CredentialStoreInterface


logger = logging.getLogger(__name__)

# 32바이트 엔트로피, base64url 인코딩 (43자)
TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class CredentialIssuer:
    """(주문, 자산) 쌍에 대해 시간/횟수 제한 다운로드 크리덴셜을 발급한다.

    저장소에 넣는 것 외에는 어떤 I/O 도 하지 않는다.
    """

    def __init__(
        self,
        store: CredentialStoreInterface,
        *,
        default_max_uses: int,
        default_ttl: timedelta,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._default_max_uses = default_max_uses
        self._default_ttl = default_ttl
        self._clock = clock

    def issue(
        self,
        order_id: str,
        asset_locator: str,
        max_uses: int | None = None,
        ttl: timedelta | None = None,
        tenant_id: str | None = None,
    ) -> str:
        """크리덴셜을 발급하고 토큰을 반환한다. 잘못된 인자는 InvalidArgumentError."""
        if max_uses is None:
            max_uses = self._default_max_uses
        if ttl is None:
            ttl = self._default_ttl

        if max_uses <= 0:
            raise InvalidArgumentError(f"max_uses must be positive: {max_uses}")
        if ttl <= timedelta(0):
            raise InvalidArgumentError(f"ttl must be positive: {ttl}")
        if not str(order_id).strip():
            raise InvalidArgumentError("order_id must not be blank")
        if not asset_locator or not asset_locator.strip():
            raise InvalidArgumentError("asset_locator must not be blank")

        now = self._clock()
        credential = Credential(
            token=generate_token(),
            order_id=str(order_id),
            asset_locator=asset_locator,
            expires_at=now + ttl,
            uses_remaining=max_uses,
            max_uses=max_uses,
            tenant_id=tenant_id,
            created_at=now,
        )
        self._store.put(credential)

        logger.info(
            "issued download credential",
            extra={
                "order_id": credential.order_id,
                "tenant_id": tenant_id,
                "token_prefix": token_prefix(credential.token),
            },
        )
        return credential.token
