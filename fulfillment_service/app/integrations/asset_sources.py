"""asset locator 를 실제 다운로드 대상으로 여는 Asset Source 구현들.

locator 형식:
- ``http://...`` / ``https://...`` : 해당 URL 로 리다이렉트
- ``s3://bucket/key``               : 오브젝트 스토리지에서 스트리밍
- 그 외                             : assets.root 기준 로컬 파일 경로
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterator
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import UpstreamFailure
from ..models.asset import Asset, LocalAsset, RedirectAsset, StreamAsset
from .interfaces import AssetSourceInterface


logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 64 * 1024


def _iter_and_close(body: Any) -> Iterator[bytes]:
    """스트리밍 바디를 청크로 읽고, 중간에 끊기더라도 연결을 닫는다."""
    try:
        yield from body.iter_chunks(chunk_size=STREAM_CHUNK_SIZE)
    finally:
        body.close()


def _original_filename(name: str) -> str:
    """업로드 시 붙인 '<timestamp>-<random>-' 접두사를 떼고 원래 파일명을 돌려준다."""
    parts = name.split("-", 2)
    if len(parts) == 3 and parts[0].isdigit() and parts[1].isdigit():
        return parts[2]
    return name


class LocalAssetSource(AssetSourceInterface):
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    def open(self, asset_locator: str) -> LocalAsset:
        candidate = Path(asset_locator)
        if not candidate.is_absolute():
            # 업로드 경로는 "uploads/..." 처럼 루트 디렉토리 이름을 포함해 저장되기도 한다.
            if candidate.parts and candidate.parts[0] == self._root.name:
                candidate = self._root.parent / candidate
            else:
                candidate = self._root / candidate
        path = candidate.resolve()

        # 루트 밖의 파일을 가리키는 locator 는 거부한다.
        if path != self._root and self._root not in path.parents:
            raise UpstreamFailure(f"asset outside of asset root: {asset_locator}")
        if not path.is_file():
            raise UpstreamFailure(f"asset file not found: {asset_locator}")

        return LocalAsset(path=path, filename=_original_filename(path.name))


class S3AssetSource(AssetSourceInterface):
    """s3://bucket/key 형식의 locator 를 boto3 스트리밍 바디로 연다."""

    def __init__(
        self,
        *,
        endpoint_url: str | None = None,
        region: str | None = None,
        timeout_seconds: float = 10.0,
        client: Any | None = None,
    ) -> None:
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            config=Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 3},
            ),
        )

    def open(self, asset_locator: str) -> StreamAsset:
        parsed = urlparse(asset_locator)
        bucket = parsed.netloc
        key = parsed.path.lstrip("/")
        if parsed.scheme != "s3" or not bucket or not key:
            raise UpstreamFailure(f"invalid object storage locator: {asset_locator}")

        try:
            obj = self._client.get_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailure(
                f"failed to open object s3://{bucket}/{key}: {exc}"
            ) from exc

        filename = _original_filename(PurePosixPath(key).name)
        content_type = obj.get("ContentType") or (
            mimetypes.guess_type(filename)[0] or "application/octet-stream"
        )
        return StreamAsset(
            chunks=_iter_and_close(obj["Body"]),
            filename=filename,
            content_type=content_type,
            content_length=obj.get("ContentLength"),
        )


class CompositeAssetSource(AssetSourceInterface):
    """locator 의 스킴에 따라 알맞은 Asset Source 로 위임한다."""

    def __init__(
        self,
        local: AssetSourceInterface,
        object_storage: AssetSourceInterface | None = None,
    ) -> None:
        self._local = local
        self._object_storage = object_storage

    def open(self, asset_locator: str) -> Asset:
        scheme = urlparse(asset_locator).scheme.lower()
        if scheme in ("http", "https"):
            return RedirectAsset(url=asset_locator)
        if scheme == "s3":
            if self._object_storage is None:
                raise UpstreamFailure("object storage is not configured")
            return self._object_storage.open(asset_locator)
        return self._local.open(asset_locator)
