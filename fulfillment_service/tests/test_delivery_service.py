from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fulfillment_service.app.exceptions import DeliveryNotFoundError
from fulfillment_service.app.repositories.credential_store import (
    InMemoryCredentialStore,
)
from fulfillment_service.app.repositories.delivery_repository import (
    InMemoryDeliveryRepository,
)
from fulfillment_service.app.services.credential_issuer import CredentialIssuer
from fulfillment_service.app.services.delivery_service import DeliveryService


NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _build() -> tuple[DeliveryService, CredentialIssuer, InMemoryCredentialStore]:
    store = InMemoryCredentialStore()
    issuer = CredentialIssuer(
        store,
        default_max_uses=3,
        default_ttl=timedelta(hours=24),
        clock=lambda: NOW,
    )
    service = DeliveryService(
        InMemoryDeliveryRepository(),
        store,
        base_url="https://dl.example.com/",
        clock=lambda: NOW,
    )
    return service, issuer, store


def test_render_returns_pairs_in_recorded_order() -> None:
    service, issuer, store = _build()
    token_a = issuer.issue("O42", "a.png")
    token_b = issuer.issue("O42", "b.pdf")
    service.record_delivery("O42", "1001", token_a, title="Poster")
    service.record_delivery("O42", "1002", token_b, title="Guide")

    pairs = service.render("O42")

    assert pairs == [("1001", token_a), ("1002", token_b)]
    # 각 토큰은 독립적으로 사용 가능하다.
    assert store.try_redeem(token_a, NOW).asset_locator == "a.png"
    assert store.try_redeem(token_b, NOW).asset_locator == "b.pdf"


def test_render_unknown_order_raises_not_found() -> None:
    service, _, _ = _build()

    with pytest.raises(DeliveryNotFoundError):
        service.render("missing")


def test_access_key_is_stable_for_an_order() -> None:
    service, issuer, _ = _build()

    first = service.record_delivery("O42", "1001", issuer.issue("O42", "a.png"))
    second = service.record_delivery("O42", "1002", issuer.issue("O42", "b.png"))

    assert first == second
    assert service.page_url("O42", first) == (
        f"https://dl.example.com/api/v1/deliveries/O42?key={first}"
    )


def test_render_page_includes_live_credential_status() -> None:
    service, issuer, store = _build()
    token = issuer.issue("O42", "a.png", max_uses=2)
    key = service.record_delivery("O42", "1001", token, title="Poster")
    store.try_redeem(token, NOW)

    links = service.render_page("O42", key)

    assert len(links) == 1
    link = links[0]
    assert link.title == "Poster"
    assert link.download_url == f"https://dl.example.com/api/v1/download/{token}"
    assert link.uses_remaining == 1
    assert link.expires_at == NOW + timedelta(hours=24)
    assert link.redeemable is True


def test_render_page_with_wrong_key_looks_like_missing_order() -> None:
    service, issuer, _ = _build()
    service.record_delivery("O42", "1001", issuer.issue("O42", "a.png"))

    with pytest.raises(DeliveryNotFoundError):
        service.render_page("O42", "wrong-key")
    with pytest.raises(DeliveryNotFoundError):
        service.render_page("O42", "")


def test_render_page_marks_swept_credentials_unredeemable() -> None:
    service, issuer, store = _build()
    token = issuer.issue("O42", "a.png", max_uses=1)
    key = service.record_delivery("O42", "1001", token)
    store.try_redeem(token, NOW)
    store.sweep(NOW)

    links = service.render_page("O42", key)

    assert links[0].redeemable is False
    assert links[0].uses_remaining == 0
    assert links[0].expires_at is None
