from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from fulfillment_service.app.exceptions import (
    CredentialExhaustedError,
    CredentialExpiredError,
    CredentialNotFoundError,
    UpstreamFailure,
)
from fulfillment_service.app.models.asset import Asset, LocalAsset
from fulfillment_service.app.repositories.credential_store import (
    InMemoryCredentialStore,
)
from fulfillment_service.app.services.credential_issuer import CredentialIssuer
from fulfillment_service.app.services.redemption_service import RedemptionService


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeAssetSource:
    def __init__(self) -> None:
        self.opened: list[str] = []
        self.raise_error: Exception | None = None

    def open(self, asset_locator: str) -> Asset:
        if self.raise_error is not None:
            raise self.raise_error
        self.opened.append(asset_locator)
        return LocalAsset(path=Path("/srv/uploads") / asset_locator, filename=asset_locator)


class RedemptionFixture:
    def __init__(self) -> None:
        self.clock = FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))
        self.store = InMemoryCredentialStore()
        self.assets = FakeAssetSource()
        self.issuer = CredentialIssuer(
            self.store,
            default_max_uses=3,
            default_ttl=timedelta(hours=24),
            clock=self.clock,
        )
        self.service = RedemptionService(self.store, self.assets, clock=self.clock)


@pytest.fixture
def fx() -> RedemptionFixture:
    return RedemptionFixture()


def test_o42_three_redemptions_succeed_then_exhausted(fx: RedemptionFixture) -> None:
    token = fx.issuer.issue("O42", "a.png", max_uses=3, ttl=timedelta(hours=24))

    assets = [fx.service.redeem(token) for _ in range(3)]

    assert all(isinstance(a, LocalAsset) and a.filename == "a.png" for a in assets)
    assert fx.assets.opened == ["a.png", "a.png", "a.png"]

    with pytest.raises(CredentialExhaustedError):
        fx.service.redeem(token)
    # 이후 재시도도 같은 방식으로 실패한다.
    with pytest.raises(CredentialExhaustedError):
        fx.service.redeem(token)
    assert len(fx.assets.opened) == 3


def test_unknown_token_is_invalid(fx: RedemptionFixture) -> None:
    with pytest.raises(CredentialNotFoundError) as exc_info:
        fx.service.redeem("deadbeef")

    assert exc_info.value.code == "invalid"
    assert fx.assets.opened == []


@pytest.mark.parametrize("token", ["", "x" * 500])
def test_malformed_token_is_reported_as_invalid(
    fx: RedemptionFixture, token: str
) -> None:
    with pytest.raises(CredentialNotFoundError):
        fx.service.redeem(token)


def test_redemption_after_expiry_is_expired(fx: RedemptionFixture) -> None:
    token = fx.issuer.issue("O42", "a.png", max_uses=3, ttl=timedelta(hours=24))
    fx.clock.advance(timedelta(hours=24, seconds=1))

    with pytest.raises(CredentialExpiredError) as exc_info:
        fx.service.redeem(token)

    assert exc_info.value.code == "expired"
    assert fx.store.get(token).uses_remaining == 3


def test_use_is_consumed_even_when_asset_cannot_be_opened(
    fx: RedemptionFixture,
) -> None:
    token = fx.issuer.issue("O42", "missing.png", max_uses=2)
    fx.assets.raise_error = UpstreamFailure("asset file not found: missing.png")

    with pytest.raises(UpstreamFailure):
        fx.service.redeem(token)

    assert fx.store.get(token).uses_remaining == 1
