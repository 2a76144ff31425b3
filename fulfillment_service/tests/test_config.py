from __future__ import annotations

from pathlib import Path

import pytest

from fulfillment_service.app.config import (
    DEFAULT_MAX_USES,
    DEFAULT_TTL_SECONDS,
    load_config,
)


def _write_config(tmp_path: Path, text: str, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    monkeypatch.setenv("FULFILLMENT_CONFIG_PATH", str(path))


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_BASE_URL",
        "ADMIN_API_KEY",
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USER",
        "SMTP_PASS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_config_reads_yaml_and_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_config(
        tmp_path,
        """
storage:
  backend: memory
credentials:
  max_uses: 5
  ttl_seconds: 3600
catalog:
  kind: static
  mapping:
    "1001": a.png
  default_asset: uploads/sample-file.png
tenants:
  - id: shop-1
    shop_domain: Shop-1.myshopify.com
    api_token_env: SHOP1_TOKEN
    webhook_secret: whsec
  - shop_domain: ""
""",
        monkeypatch,
    )
    monkeypatch.setenv("SHOP1_TOKEN", "shpat_env")
    monkeypatch.setenv("APP_BASE_URL", "https://dl.example.com/")
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "2525")

    config = load_config()

    assert config.base_url == "https://dl.example.com"
    assert config.credentials.max_uses == 5
    assert config.credentials.ttl_seconds == 3600
    assert config.catalog.kind == "static"
    assert config.catalog.mapping == {"1001": "a.png"}
    assert config.catalog.default_asset == "uploads/sample-file.png"
    assert config.mail.host == "smtp.example.com"
    assert config.mail.port == 2525
    assert len(config.tenants) == 1
    tenant = config.tenants[0]
    assert tenant.shop_domain == "shop-1.myshopify.com"
    assert tenant.api_token == "shpat_env"
    assert tenant.webhook_secret == "whsec"


def test_load_config_defaults_for_empty_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_config(tmp_path, "", monkeypatch)

    config = load_config()

    assert config.storage_backend == "memory"
    assert config.credentials.max_uses == DEFAULT_MAX_USES
    assert config.credentials.ttl_seconds == DEFAULT_TTL_SECONDS
    assert config.catalog.kind == "shopify"
    assert config.tenants == []


@pytest.mark.parametrize(
    "text",
    [
        "storage:\n  backend: redis\n",
        "credentials:\n  max_uses: 0\n",
        "credentials:\n  ttl_seconds: abc\n",
        "catalog:\n  kind: csv\n",
        "credentials:\n  ttl_seconds: 100\n  retired_retention_seconds: 10\n",
    ],
)
def test_load_config_rejects_invalid_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, text: str
) -> None:
    _write_config(tmp_path, text, monkeypatch)

    with pytest.raises(RuntimeError):
        load_config()


def test_tenant_without_secret_env_still_requires_signatures(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_config(
        tmp_path,
        """
tenants:
  - id: quickstart
    shop_domain: quickstart.myshopify.com
    webhook_secret_env: UNSET_WEBHOOK_SECRET
  - id: dev
    shop_domain: dev.myshopify.com
    verify_webhooks: false
""",
        monkeypatch,
    )
    monkeypatch.delenv("UNSET_WEBHOOK_SECRET", raising=False)
    monkeypatch.setenv("ADMIN_API_KEY", "admin-secret")

    config = load_config()

    quickstart, dev = config.tenants
    assert quickstart.webhook_secret == ""
    assert quickstart.verify_webhooks is True
    assert dev.verify_webhooks is False
    assert config.admin_api_key == "admin-secret"
    assert config.credentials.retired_retention_seconds == 30 * 24 * 60 * 60
