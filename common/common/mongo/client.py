from __future__ import annotations

import logging
import threading
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from .config import get_mongo_db_name, get_mongo_uri


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 로 접속하고 ping 으로 연결을 검증한다.
    - 사용할 DB 는 MONGO_DB_NAME, 없으면 URI 의 기본 DB 이다.
    - credentials / deliveries 컬렉션 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        client = MongoClient(get_mongo_uri())

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        db_name = get_mongo_db_name()
        try:
            db = client[db_name] if db_name else client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        try:
            ensure_indexes(db)
        except Exception as exc:  # noqa: BLE001
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            client.close()
            raise

        _client = client
        _db = db
        logger.info("MongoDB connected and indexes ensured (db=%s)", db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    if _db is None:
        get_client()
    assert _db is not None
    return _db


def ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다. 중복 생성은 MongoDB 가 무시하므로 idempotent 하다."""

    credentials = db["credentials"]

    # 토큰은 한 번 발급되면 절대 재사용되지 않아야 한다.
    credentials.create_index(
        [("token", ASCENDING)],
        name="uniq_token",
        unique=True,
    )
    credentials.create_index(
        [("order_id", ASCENDING)],
        name="idx_order_id",
    )
    credentials.create_index(
        [("expires_at", ASCENDING)],
        name="idx_expires_at",
    )

    retired = db["retired_tokens"]
    retired.create_index(
        [("token", ASCENDING)],
        name="uniq_retired_token",
        unique=True,
    )
    retired.create_index(
        [("retired_at", ASCENDING)],
        name="idx_retired_at",
    )

    deliveries = db["deliveries"]
    deliveries.create_index(
        [("order_id", ASCENDING)],
        name="uniq_order_id",
        unique=True,
    )
