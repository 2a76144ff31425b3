"""MongoDB 기반 크리덴셜 저장소.

try_redeem 은 만료/잔여 횟수 조건을 필터에 넣은 단일 find_one_and_update 로 처리한다.
도큐먼트 단위 갱신은 MongoDB 에서 원자적이므로 같은 토큰의 동시 요청이 초과 차감되지 않는다.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from common.logger import token_prefix

from ..exceptions import CredentialConflictError, CredentialNotFoundError
from ..models.credential import Credential, RedemptionResult, RedemptionStatus
from .credential_store import DEFAULT_RETIRED_RETENTION
from .documents.credential_document import CredentialDocument
from .interfaces import CredentialStoreInterface


logger = logging.getLogger(__name__)


class MongoCredentialStore(CredentialStoreInterface):
    """credentials 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(
        self,
        database: Database,
        retired_retention: timedelta = DEFAULT_RETIRED_RETENTION,
    ) -> None:
        self._db = database
        self._col = database["credentials"]
        self._retired = database["retired_tokens"]
        self._retired_retention = retired_retention

    def put(self, credential: Credential) -> None:
        token = credential.token
        if self._retired.find_one({"token": token}, projection={"_id": 1}):
            raise CredentialConflictError(
                f"token already issued: {token_prefix(token)}..."
            )

        payload = CredentialDocument.from_domain(credential).to_mongo_record()
        try:
            self._col.insert_one(payload)
        except DuplicateKeyError as exc:
            raise CredentialConflictError(
                f"token already issued: {token_prefix(token)}..."
            ) from exc

    def get(self, token: str) -> Credential:
        raw = self._col.find_one({"token": token})
        if not raw:
            raise CredentialNotFoundError("unknown download token")
        return CredentialDocument.model_validate(raw).to_domain()

    def try_redeem(self, token: str, now: datetime) -> RedemptionResult:
        doc = self._col.find_one_and_update(
            {
                "token": token,
                "expires_at": {"$gt": now},
                "uses_remaining": {"$gt": 0},
            },
            {
                "$inc": {"uses_remaining": -1},
                "$set": {"updated_at": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc:
            credential = CredentialDocument.model_validate(doc).to_domain()
            return RedemptionResult(
                status=RedemptionStatus.OK,
                asset_locator=credential.asset_locator,
                uses_remaining=credential.uses_remaining,
            )

        # 조건부 갱신에 실패했다면 실패 사유만 분류한다. 만료/소진은 되돌릴 수 없으므로 재조회해도 안전하다.
        raw = self._col.find_one({"token": token})
        if not raw:
            return RedemptionResult(status=RedemptionStatus.NOT_FOUND)

        credential = CredentialDocument.model_validate(raw).to_domain()
        if credential.is_expired(now):
            return RedemptionResult(
                status=RedemptionStatus.EXPIRED,
                uses_remaining=credential.uses_remaining,
            )
        return RedemptionResult(status=RedemptionStatus.EXHAUSTED, uses_remaining=0)

    def sweep(self, now: datetime) -> int:
        terminal_filter = {
            "$or": [
                {"expires_at": {"$lte": now}},
                {"uses_remaining": {"$lte": 0}},
            ]
        }
        tokens = [
            doc["token"]
            for doc in self._col.find(terminal_filter, projection={"token": 1})
        ]

        for token in tokens:
            self._retired.update_one(
                {"token": token},
                {"$setOnInsert": {"token": token, "retired_at": now}},
                upsert=True,
            )
        evicted = 0
        if tokens:
            result = self._col.delete_many(
                {"token": {"$in": tokens}, **terminal_filter}
            )
            evicted = result.deleted_count

        forgotten = self._retired.delete_many(
            {"retired_at": {"$lte": now - self._retired_retention}}
        ).deleted_count
        if evicted or forgotten:
            logger.info(
                "swept %d terminal credentials, forgot %d retired tokens",
                evicted,
                forgotten,
            )
        return evicted
