"""주문 웹훅 처리 (테넌트 확인 → 상품별 자산 조회 → 크리덴셜 발급 → 배송 기록 → 메일 발송).

라인 아이템은 서로 독립적으로 처리한다. 한 상품의 카탈로그 조회가 실패해도 나머지 상품의
크리덴셜은 그대로 발급되고, 메일 발송 실패는 이미 발급된 크리덴셜에 영향을 주지 않는다.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass, field

from ..exceptions import (
    FulfillmentError,
    TenantNotFoundError,
    UpstreamFailure,
    WebhookSignatureError,
)
from ..integrations.interfaces import (
    CatalogResolverInterface,
    NotifierInterface,
    TenantDirectoryInterface,
)
from ..models.order import OrderEvent
from ..models.tenant import Tenant
from .credential_issuer import CredentialIssuer
from .delivery_service import DeliveryService
from .mail_renderer import render_delivery_email


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FulfillmentSummary:
    order_id: str
    issued: list[str] = field(default_factory=list)  # product_ref
    skipped: list[str] = field(default_factory=list)  # 디지털 자산 없음
    failed: list[str] = field(default_factory=list)  # 카탈로그 조회/발급 실패
    notified: bool = False
    duplicate: bool = False


def verify_webhook_signature(secret: str, body: bytes, signature: str | None) -> None:
    """Shopify 웹훅 HMAC-SHA256(base64) 서명을 검증한다. 불일치 시 WebhookSignatureError."""
    if not signature:
        raise WebhookSignatureError("missing webhook signature")
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    if not hmac.compare_digest(expected, signature.strip()):
        raise WebhookSignatureError("webhook signature mismatch")


class OrderFulfillmentService:
    def __init__(
        self,
        *,
        tenants: TenantDirectoryInterface,
        catalog: CatalogResolverInterface,
        issuer: CredentialIssuer,
        deliveries: DeliveryService,
        notifier: NotifierInterface,
        mail_subject: str,
    ) -> None:
        self._tenants = tenants
        self._catalog = catalog
        self._issuer = issuer
        self._deliveries = deliveries
        self._notifier = notifier
        self._mail_subject = mail_subject

    def authenticate(
        self, shop_domain: str | None, body: bytes, signature: str | None
    ) -> Tenant:
        """웹훅을 보낸 스토어의 테넌트를 찾고 서명을 검증한다.

        시크릿이 없는 테넌트의 웹훅은 verify_webhooks=False 로 명시하지 않는 한 거부한다.
        """
        tenant = self._tenants.lookup_by_domain(shop_domain or "")
        if tenant is None:
            raise TenantNotFoundError(f"unknown shop domain: {shop_domain!r}")
        if not tenant.verify_webhooks:
            return tenant
        if not tenant.webhook_secret:
            logger.warning(
                "rejecting webhook: no webhook secret configured",
                extra={"tenant_id": tenant.id},
            )
            raise WebhookSignatureError("webhook secret is not configured")
        verify_webhook_signature(tenant.webhook_secret, body, signature)
        return tenant

    def handle_order(self, tenant: Tenant, order: OrderEvent) -> FulfillmentSummary:
        summary = FulfillmentSummary(order_id=order.id)
        log_extra = {"order_id": order.id, "tenant_id": tenant.id}

        # 웹훅 재전송으로 같은 주문이 다시 들어오면 크리덴셜을 중복 발급하지 않는다.
        if self._deliveries.has_delivery(order.id):
            logger.info("order already fulfilled, skipping", extra=log_extra)
            summary.duplicate = True
            return summary

        access_key: str | None = None
        titles: list[str] = []

        for item in order.line_items:
            product_ref = item.product_ref
            if not product_ref:
                continue

            try:
                locator = self._catalog.resolve(tenant, product_ref)
            except UpstreamFailure:
                logger.exception(
                    "catalog lookup failed for product %s", product_ref, extra=log_extra
                )
                summary.failed.append(product_ref)
                continue

            if not locator:
                summary.skipped.append(product_ref)
                continue

            try:
                token = self._issuer.issue(order.id, locator, tenant_id=tenant.id)
            except FulfillmentError:
                logger.exception(
                    "credential issuance failed for product %s",
                    product_ref,
                    extra=log_extra,
                )
                summary.failed.append(product_ref)
                continue

            access_key = self._deliveries.record_delivery(
                order.id, product_ref, token, title=item.title or None
            )
            summary.issued.append(product_ref)
            titles.append(item.title or product_ref)

        logger.info(
            "processed order: issued=%d skipped=%d failed=%d",
            len(summary.issued),
            len(summary.skipped),
            len(summary.failed),
            extra=log_extra,
        )

        if access_key is None:
            return summary

        if not order.email:
            logger.warning("order has no email, delivery page only", extra=log_extra)
            return summary

        message = render_delivery_email(
            subject=self._mail_subject,
            shop_name=tenant.shop_name,
            order_name=order.name,
            page_url=self._deliveries.page_url(order.id, access_key),
            item_titles=titles,
        )
        try:
            self._notifier.notify(
                order.email, message.subject, message.text, html=message.html
            )
        except UpstreamFailure:
            # 메일이 실패해도 배송 페이지로 복구할 수 있으므로 크리덴셜은 그대로 둔다.
            logger.exception("failed to send delivery email", extra=log_extra)
            return summary

        summary.notified = True
        return summary
