"""다운로드 토큰 사용(redemption) 처리.

사용 횟수 차감은 자산을 열기 전에 일어난다. 스트리밍 도중 연결이 끊겨도 차감은 되돌리지 않는다.
"""

from __future__ import annotations

import logging

from common.logger import token_prefix
from common.types.datetime import Clock, utc_now

from ..exceptions import (
    CredentialExhaustedError,
    CredentialExpiredError,
    CredentialNotFoundError,
)
from ..integrations.interfaces import AssetSourceInterface
from ..models.asset import Asset
from ..models.credential import RedemptionStatus
from ..repositories.interfaces import CredentialStoreInterface


logger = logging.getLogger(__name__)

# 발급 토큰보다 훨씬 긴 입력은 저장소 조회 없이 invalid 로 처리한다.
MAX_TOKEN_LENGTH = 128


class RedemptionService:
    def __init__(
        self,
        store: CredentialStoreInterface,
        asset_source: AssetSourceInterface,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._asset_source = asset_source
        self._clock = clock

    def redeem(self, token: str) -> Asset:
        """토큰 사용 1회를 소비하고 내려줄 자산을 반환한다.

        Raises:
            CredentialNotFoundError: 알 수 없거나 형식이 잘못된 토큰
            CredentialExpiredError: 만료된 토큰
            CredentialExhaustedError: 사용 횟수를 모두 소진한 토큰
            UpstreamFailure: 자산을 열 수 없음 (이미 소비된 횟수는 되돌리지 않는다)
        """
        if not token or len(token) > MAX_TOKEN_LENGTH:
            self._log_outcome(token, "invalid")
            raise CredentialNotFoundError("invalid download link")

        result = self._store.try_redeem(token, self._clock())

        if result.status is RedemptionStatus.NOT_FOUND:
            self._log_outcome(token, "invalid")
            raise CredentialNotFoundError("invalid download link")
        if result.status is RedemptionStatus.EXPIRED:
            self._log_outcome(token, "expired")
            raise CredentialExpiredError("download link expired")
        if result.status is RedemptionStatus.EXHAUSTED:
            self._log_outcome(token, "exhausted")
            raise CredentialExhaustedError("download limit exceeded")

        assert result.asset_locator is not None
        self._log_outcome(token, "ok")
        return self._asset_source.open(result.asset_locator)

    def _log_outcome(self, token: str, outcome: str) -> None:
        logger.info(
            "download token redemption",
            extra={"token_prefix": token_prefix(token or ""), "outcome": outcome},
        )
