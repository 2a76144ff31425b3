from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class LocalAsset:
    """로컬 파일로 내려줄 자산."""

    path: Path
    filename: str


@dataclass(frozen=True, slots=True)
class RedirectAsset:
    """절대 URL 로 리다이렉트할 자산."""

    url: str


@dataclass(slots=True)
class StreamAsset:
    """오브젝트 스토리지 등에서 청크 단위로 읽어 내려줄 자산."""

    chunks: Iterator[bytes]
    filename: str
    content_type: str = "application/octet-stream"
    content_length: int | None = None
    extra_headers: dict[str, str] = field(default_factory=dict)


Asset = LocalAsset | RedirectAsset | StreamAsset
