from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models.tenant import Tenant


DEFAULT_CONFIG_FILE_NAME = "config.yaml"
CONFIG_PATH_ENV = "FULFILLMENT_CONFIG_PATH"

STORAGE_BACKENDS = ("memory", "mongo")
CATALOG_KINDS = ("shopify", "static")

# 기본 발급 정책: 24시간 동안 3회
DEFAULT_MAX_USES = 3
DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_RETIRED_RETENTION_SECONDS = 30 * 24 * 60 * 60


@dataclass(slots=True)
class CredentialConfig:
    max_uses: int = DEFAULT_MAX_USES
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    retired_retention_seconds: int = DEFAULT_RETIRED_RETENTION_SECONDS


@dataclass(slots=True)
class AssetConfig:
    root: str = "uploads"
    s3_endpoint_url: str | None = None
    s3_region: str | None = None
    timeout_seconds: float = 10.0


@dataclass(slots=True)
class CatalogConfig:
    kind: str = "shopify"
    api_version: str = "2024-01"
    metafield_namespace: str = "digital_download"
    metafield_key: str = "digital_file"
    mapping: dict[str, str] = field(default_factory=dict)
    default_asset: str | None = None
    timeout_seconds: float = 10.0


@dataclass(slots=True)
class MailConfig:
    host: str = ""
    port: int = 587
    user: str = ""
    password: str = ""
    use_starttls: bool = True
    sender_name: str = "Your Shop"
    subject: str = "Your Digital Download is Ready"
    timeout_seconds: float = 10.0


@dataclass(slots=True)
class AppConfig:
    """fulfillment-service 전체 설정 루트.

    - 비밀값/엔드포인트는 환경 변수, 나머지 동작 설정은 config.yaml 에서 읽는다.
    """

    base_url: str = "http://localhost:8003"
    storage_backend: str = "memory"
    # 내부 발급/관리 API 용 키. 비어 있으면 해당 API 는 항상 거부된다.
    admin_api_key: str = ""
    credentials: CredentialConfig = field(default_factory=CredentialConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    mail: MailConfig = field(default_factory=MailConfig)
    tenants: list[Tenant] = field(default_factory=list)


def _find_config_path() -> Path | None:
    """FULFILLMENT_CONFIG_PATH, 없으면 현재 디렉토리부터 상위로 올라가며 config.yaml 을 찾는다."""

    explicit = os.getenv(CONFIG_PATH_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise RuntimeError(f"{CONFIG_PATH_ENV} points to a missing file: {path}")
        return path

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def _as_int(section: dict[str, Any], key: str, default: int, path: Path | None) -> int:
    raw = section.get(key, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid {key} in {path}: {raw!r}") from exc


def _as_float(
    section: dict[str, Any], key: str, default: float, path: Path | None
) -> float:
    raw = section.get(key, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid {key} in {path}: {raw!r}") from exc


def _load_credentials(data: dict[str, Any], path: Path | None) -> CredentialConfig:
    section = data.get("credentials") or {}
    max_uses = _as_int(section, "max_uses", DEFAULT_MAX_USES, path)
    ttl_seconds = _as_int(section, "ttl_seconds", DEFAULT_TTL_SECONDS, path)
    retention = _as_int(
        section,
        "retired_retention_seconds",
        DEFAULT_RETIRED_RETENTION_SECONDS,
        path,
    )
    if max_uses <= 0:
        raise RuntimeError(f"credentials.max_uses must be positive in {path}")
    if ttl_seconds <= 0:
        raise RuntimeError(f"credentials.ttl_seconds must be positive in {path}")
    # 보존 기간이 크리덴셜 수명보다 짧으면 정리 직후 같은 토큰이 다시 들어올 여지가 커진다.
    if retention < ttl_seconds:
        raise RuntimeError(
            f"credentials.retired_retention_seconds must be >= ttl_seconds in {path}"
        )
    return CredentialConfig(
        max_uses=max_uses,
        ttl_seconds=ttl_seconds,
        retired_retention_seconds=retention,
    )


def _load_assets(data: dict[str, Any], path: Path | None) -> AssetConfig:
    section = data.get("assets") or {}
    return AssetConfig(
        root=str(section.get("root") or "uploads"),
        s3_endpoint_url=section.get("s3_endpoint_url") or os.getenv("S3_ENDPOINT_URL"),
        s3_region=section.get("s3_region") or os.getenv("S3_REGION"),
        timeout_seconds=_as_float(section, "timeout_seconds", 10.0, path),
    )


def _load_catalog(data: dict[str, Any], path: Path | None) -> CatalogConfig:
    section = data.get("catalog") or {}
    kind = str(section.get("kind") or "shopify").strip()
    if kind not in CATALOG_KINDS:
        raise RuntimeError(f"invalid catalog.kind in {path}: {kind!r}")

    mapping_raw = section.get("mapping") or {}
    if not isinstance(mapping_raw, dict):
        raise RuntimeError(f"catalog.mapping must be a mapping in {path}")
    mapping = {str(k): str(v) for k, v in mapping_raw.items() if v}

    return CatalogConfig(
        kind=kind,
        api_version=str(section.get("api_version") or "2024-01"),
        metafield_namespace=str(
            section.get("metafield_namespace") or "digital_download"
        ),
        metafield_key=str(section.get("metafield_key") or "digital_file"),
        mapping=mapping,
        default_asset=section.get("default_asset") or None,
        timeout_seconds=_as_float(section, "timeout_seconds", 10.0, path),
    )


def _load_mail(data: dict[str, Any], path: Path | None) -> MailConfig:
    section = data.get("mail") or {}
    port_raw = os.getenv("SMTP_PORT") or section.get("port") or 587
    try:
        port = int(port_raw)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid SMTP port: {port_raw!r}") from exc

    return MailConfig(
        host=os.getenv("SMTP_HOST", ""),
        port=port,
        user=os.getenv("SMTP_USER", ""),
        password=os.getenv("SMTP_PASS", ""),
        use_starttls=bool(section.get("use_starttls", True)),
        sender_name=str(section.get("sender_name") or "Your Shop"),
        subject=str(section.get("subject") or "Your Digital Download is Ready"),
        timeout_seconds=_as_float(section, "timeout_seconds", 10.0, path),
    )


def _load_tenants(data: dict[str, Any]) -> list[Tenant]:
    tenants: list[Tenant] = []
    for item in data.get("tenants") or []:
        if not isinstance(item, dict):
            continue
        shop_domain = str(item.get("shop_domain", "")).strip().lower()
        if not shop_domain:
            continue
        tenant_id = str(item.get("id") or shop_domain).strip()
        # 토큰/시크릿은 파일에 직접 두지 않고 환경 변수 이름으로 참조할 수 있다.
        api_token = item.get("api_token") or os.getenv(
            str(item.get("api_token_env") or ""), ""
        )
        webhook_secret = item.get("webhook_secret") or os.getenv(
            str(item.get("webhook_secret_env") or ""), ""
        )
        tenants.append(
            Tenant(
                id=tenant_id,
                shop_domain=shop_domain,
                api_token=str(api_token or ""),
                webhook_secret=str(webhook_secret or ""),
                display_name=str(item.get("display_name") or ""),
                verify_webhooks=bool(item.get("verify_webhooks", True)),
            )
        )
    return tenants


def load_config() -> AppConfig:
    """fulfillment-service 설정을 로드하여 AppConfig 로 반환한다.

    config.yaml 이 없으면 기본값과 환경 변수만으로 구성한다.
    """

    path = _find_config_path()
    data: dict[str, Any] = {}
    if path is not None:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    storage = data.get("storage") or {}
    backend = str(storage.get("backend") or "memory").strip()
    if backend not in STORAGE_BACKENDS:
        raise RuntimeError(f"invalid storage.backend in {path}: {backend!r}")

    base_url = os.getenv("APP_BASE_URL") or str(
        data.get("base_url") or "http://localhost:8003"
    )

    return AppConfig(
        base_url=base_url.rstrip("/"),
        storage_backend=backend,
        admin_api_key=os.getenv("ADMIN_API_KEY", ""),
        credentials=_load_credentials(data, path),
        assets=_load_assets(data, path),
        catalog=_load_catalog(data, path),
        mail=_load_mail(data, path),
        tenants=_load_tenants(data),
    )
