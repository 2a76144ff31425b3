"""프로세스 메모리 기반 크리덴셜 저장소.

토큰 맵 자체의 구조 변경(삽입, 정리)은 짧은 맵 락으로, 개별 크리덴셜의 확인-차감은
토큰별 락으로 보호한다. 따라서 같은 토큰에 대한 동시 요청은 직렬화되고,
다른 토큰끼리는 서로를 기다리지 않는다.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from common.logger import token_prefix

from ..exceptions import CredentialConflictError, CredentialNotFoundError
from ..models.credential import (
    Credential,
    CredentialState,
    RedemptionResult,
    RedemptionStatus,
)
from .interfaces import CredentialStoreInterface


logger = logging.getLogger(__name__)

# 정리된 토큰을 기억하는 기간. 이후의 재사용 방지는 토큰 엔트로피(256bit)에 맡긴다.
DEFAULT_RETIRED_RETENTION = timedelta(days=30)


@dataclass(slots=True)
class _Entry:
    credential: Credential
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemoryCredentialStore(CredentialStoreInterface):
    """단일 인스턴스용 in-memory 크리덴셜 저장소. 재시작하면 내용이 사라진다."""

    def __init__(
        self, retired_retention: timedelta = DEFAULT_RETIRED_RETENTION
    ) -> None:
        self._entries: dict[str, _Entry] = {}
        # sweep 으로 정리된 토큰 -> 정리 시각. retired_retention 동안 재발급(put)을 거부한다.
        self._retired: dict[str, datetime] = {}
        self._retired_retention = retired_retention
        self._map_lock = threading.Lock()

    def put(self, credential: Credential) -> None:
        entry = _Entry(credential=credential.model_copy())
        with self._map_lock:
            token = credential.token
            if token in self._entries or token in self._retired:
                raise CredentialConflictError(
                    f"token already issued: {token_prefix(token)}..."
                )
            self._entries[token] = entry

    def get(self, token: str) -> Credential:
        entry = self._lookup(token)
        if entry is None:
            raise CredentialNotFoundError("unknown download token")
        with entry.lock:
            return entry.credential.model_copy()

    def try_redeem(self, token: str, now: datetime) -> RedemptionResult:
        entry = self._lookup(token)
        if entry is None:
            return RedemptionResult(status=RedemptionStatus.NOT_FOUND)

        with entry.lock:
            credential = entry.credential
            if credential.is_expired(now):
                return RedemptionResult(
                    status=RedemptionStatus.EXPIRED,
                    uses_remaining=credential.uses_remaining,
                )
            if credential.uses_remaining <= 0:
                return RedemptionResult(
                    status=RedemptionStatus.EXHAUSTED,
                    uses_remaining=0,
                )

            credential.uses_remaining -= 1
            return RedemptionResult(
                status=RedemptionStatus.OK,
                asset_locator=credential.asset_locator,
                uses_remaining=credential.uses_remaining,
            )

    def sweep(self, now: datetime) -> int:
        with self._map_lock:
            snapshot = list(self._entries.items())

        evicted = 0
        for token, entry in snapshot:
            with entry.lock:
                terminal = entry.credential.state(now) is not CredentialState.ACTIVE
            if not terminal:
                continue
            with self._map_lock:
                # 만료/소진은 되돌릴 수 없는 상태이므로 스냅샷 이후에 다시 확인할 필요가 없다.
                if self._entries.pop(token, None) is not None:
                    self._retired[token] = now
                    evicted += 1

        forgotten = self._trim_retired(now)
        if evicted or forgotten:
            logger.info(
                "swept %d terminal credentials, forgot %d retired tokens",
                evicted,
                forgotten,
            )
        return evicted

    def count(self) -> int:
        """현재 보관 중인(정리되지 않은) 크리덴셜 수."""
        with self._map_lock:
            return len(self._entries)

    def retired_count(self) -> int:
        with self._map_lock:
            return len(self._retired)

    def _trim_retired(self, now: datetime) -> int:
        cutoff = now - self._retired_retention
        with self._map_lock:
            stale = [t for t, at in self._retired.items() if at <= cutoff]
            for token in stale:
                del self._retired[token]
        return len(stale)


    def _lookup(self, token: str) -> _Entry | None:
        with self._map_lock:
            return self._entries.get(token)
