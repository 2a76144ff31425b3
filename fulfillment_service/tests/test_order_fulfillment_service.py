from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from fulfillment_service.app.exceptions import (
    TenantNotFoundError,
    UpstreamFailure,
    WebhookSignatureError,
)
from fulfillment_service.app.integrations.tenant_directory import ConfigTenantDirectory
from fulfillment_service.app.models.order import OrderEvent
from fulfillment_service.app.models.tenant import Tenant
from fulfillment_service.app.repositories.credential_store import (
    InMemoryCredentialStore,
)
from fulfillment_service.app.repositories.delivery_repository import (
    InMemoryDeliveryRepository,
)
from fulfillment_service.app.services.credential_issuer import CredentialIssuer
from fulfillment_service.app.services.delivery_service import DeliveryService
from fulfillment_service.app.services.order_fulfillment_service import (
    OrderFulfillmentService,
    verify_webhook_signature,
)


NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
TENANT = Tenant(
    id="shop-1",
    shop_domain="shop-1.myshopify.com",
    api_token="shpat_test",
    webhook_secret="whsec",
    display_name="Shop One",
)


class FakeCatalogResolver:
    def __init__(self, mapping: dict[str, str | None]) -> None:
        self.mapping = mapping
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def resolve(self, tenant: Tenant, product_ref: str) -> str | None:
        self.calls.append((tenant.id, product_ref))
        if product_ref in self.failing:
            raise UpstreamFailure(f"catalog timeout for {product_ref}")
        return self.mapping.get(product_ref)


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.raise_error: Exception | None = None

    def notify(
        self, recipient: str, subject: str, body: str, html: str | None = None
    ) -> None:
        if self.raise_error is not None:
            raise self.raise_error
        self.sent.append(
            {"recipient": recipient, "subject": subject, "body": body, "html": html}
        )


@dataclass
class FulfillmentFixture:
    service: OrderFulfillmentService
    catalog: FakeCatalogResolver
    notifier: FakeNotifier
    deliveries: DeliveryService
    store: InMemoryCredentialStore


def _build_fixture(
    mapping: dict[str, str | None], tenants: list[Tenant] | None = None
) -> FulfillmentFixture:
    store = InMemoryCredentialStore()
    catalog = FakeCatalogResolver(mapping)
    notifier = FakeNotifier()
    deliveries = DeliveryService(
        InMemoryDeliveryRepository(),
        store,
        base_url="https://dl.example.com",
        clock=lambda: NOW,
    )
    issuer = CredentialIssuer(
        store,
        default_max_uses=3,
        default_ttl=timedelta(hours=24),
        clock=lambda: NOW,
    )
    service = OrderFulfillmentService(
        tenants=ConfigTenantDirectory(tenants or [TENANT]),
        catalog=catalog,
        issuer=issuer,
        deliveries=deliveries,
        notifier=notifier,
        mail_subject="Your Digital Download is Ready",
    )
    return FulfillmentFixture(service, catalog, notifier, deliveries, store)


def _order(*product_ids: int | None, email: str | None = "buyer@example.com") -> OrderEvent:
    return OrderEvent.model_validate(
        {
            "id": 42,
            "name": "#1042",
            "email": email,
            "line_items": [
                {"id": idx, "product_id": pid, "title": f"Item {pid}", "quantity": 1}
                for idx, pid in enumerate(product_ids, start=1)
            ],
        }
    )


def _sign(body: bytes, secret: str = "whsec") -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def test_two_resolved_items_issue_two_credentials_and_one_email() -> None:
    fx = _build_fixture({"1001": "a.png", "1002": "s3://bucket/b.zip"})

    summary = fx.service.handle_order(TENANT, _order(1001, 1002))

    assert summary.issued == ["1001", "1002"]
    assert summary.notified is True
    pairs = fx.deliveries.render("42")
    assert [ref for ref, _ in pairs] == ["1001", "1002"]
    assert fx.store.get(pairs[0][1]).tenant_id == "shop-1"

    assert len(fx.notifier.sent) == 1
    mail = fx.notifier.sent[0]
    assert mail["recipient"] == "buyer@example.com"
    assert mail["subject"] == "Your Digital Download is Ready"
    assert "https://dl.example.com/api/v1/deliveries/42?key=" in mail["body"]
    assert "Item 1001" in mail["body"]
    assert "Shop One" in mail["html"]


def test_items_without_asset_are_skipped() -> None:
    fx = _build_fixture({"1001": "a.png", "2002": None})

    summary = fx.service.handle_order(TENANT, _order(1001, 2002, None))

    assert summary.issued == ["1001"]
    assert summary.skipped == ["2002"]
    assert fx.catalog.calls == [("shop-1", "1001"), ("shop-1", "2002")]


def test_catalog_failure_for_one_item_does_not_block_others() -> None:
    fx = _build_fixture({"1001": "a.png", "1002": "b.png"})
    fx.catalog.failing.add("1001")

    summary = fx.service.handle_order(TENANT, _order(1001, 1002))

    assert summary.failed == ["1001"]
    assert summary.issued == ["1002"]
    assert summary.notified is True
    assert [ref for ref, _ in fx.deliveries.render("42")] == ["1002"]


def test_notifier_failure_keeps_issued_credentials() -> None:
    fx = _build_fixture({"1001": "a.png"})
    fx.notifier.raise_error = UpstreamFailure("smtp down")

    summary = fx.service.handle_order(TENANT, _order(1001))

    assert summary.issued == ["1001"]
    assert summary.notified is False
    (_, token), = fx.deliveries.render("42")
    assert fx.store.try_redeem(token, NOW).ok


def test_order_without_digital_items_sends_no_email() -> None:
    fx = _build_fixture({})

    summary = fx.service.handle_order(TENANT, _order(1001))

    assert summary.issued == []
    assert summary.notified is False
    assert fx.notifier.sent == []
    assert fx.deliveries.has_delivery("42") is False


def test_order_without_email_is_still_fulfilled() -> None:
    fx = _build_fixture({"1001": "a.png"})

    summary = fx.service.handle_order(TENANT, _order(1001, email=None))

    assert summary.issued == ["1001"]
    assert summary.notified is False
    assert fx.notifier.sent == []


def test_redelivered_webhook_does_not_issue_twice() -> None:
    fx = _build_fixture({"1001": "a.png"})
    fx.service.handle_order(TENANT, _order(1001))

    summary = fx.service.handle_order(TENANT, _order(1001))

    assert summary.duplicate is True
    assert summary.issued == []
    assert len(fx.deliveries.render("42")) == 1
    assert len(fx.notifier.sent) == 1


def test_authenticate_accepts_valid_signature() -> None:
    fx = _build_fixture({})
    body = b'{"id": 42}'

    tenant = fx.service.authenticate("SHOP-1.myshopify.com", body, _sign(body))

    assert tenant.id == "shop-1"


def test_authenticate_rejects_bad_or_missing_signature() -> None:
    fx = _build_fixture({})
    body = b'{"id": 42}'

    with pytest.raises(WebhookSignatureError):
        fx.service.authenticate("shop-1.myshopify.com", body, _sign(body, "other"))
    with pytest.raises(WebhookSignatureError):
        fx.service.authenticate("shop-1.myshopify.com", body, None)


def test_authenticate_unknown_shop() -> None:
    fx = _build_fixture({})

    with pytest.raises(TenantNotFoundError):
        fx.service.authenticate("unknown.myshopify.com", b"{}", None)


def test_verify_webhook_signature_matches_shopify_format() -> None:
    body = b'{"id":1}'

    verify_webhook_signature("whsec", body, _sign(body))


def test_authenticate_rejects_unsigned_webhook_when_secret_missing() -> None:
    tenant = Tenant(id="shop-2", shop_domain="shop-2.myshopify.com")
    fx = _build_fixture({}, tenants=[tenant])

    with pytest.raises(WebhookSignatureError):
        fx.service.authenticate("shop-2.myshopify.com", b'{"id": 1}', None)


def test_authenticate_skips_verification_only_when_tenant_opts_out() -> None:
    tenant = Tenant(
        id="dev", shop_domain="dev.myshopify.com", verify_webhooks=False
    )
    fx = _build_fixture({}, tenants=[tenant])

    assert fx.service.authenticate("dev.myshopify.com", b"{}", None) is tenant
