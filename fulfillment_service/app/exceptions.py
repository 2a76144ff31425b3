from __future__ import annotations


class FulfillmentError(Exception):
    """Base exception for all fulfillment-service errors."""

    # 라우터가 HTTP 응답 detail.code 로 그대로 내보내는 안정적인 코드
    code = "fulfillment_error"


class InvalidArgumentError(FulfillmentError):
    """Bad issuance parameters (e.g., max_uses <= 0 or ttl <= 0)."""

    code = "invalid_argument"


class CredentialNotFoundError(FulfillmentError):
    """Unknown or malformed download token."""

    code = "invalid"


class CredentialExpiredError(FulfillmentError):
    """Download token is past its expires_at."""

    code = "expired"


class CredentialExhaustedError(FulfillmentError):
    """Download token has no remaining uses."""

    code = "exhausted"


class CredentialConflictError(FulfillmentError):
    """A token that was already issued was inserted again."""

    code = "conflict"


class DeliveryNotFoundError(FulfillmentError):
    """No delivery record exists for the order."""

    code = "not_found"


class TenantNotFoundError(FulfillmentError):
    """No tenant owns the shop domain of an incoming webhook."""

    code = "unknown_shop"


class WebhookSignatureError(FulfillmentError):
    """Webhook HMAC signature is missing or does not match."""

    code = "invalid_signature"


class UpstreamFailure(FulfillmentError):
    """Failures from collaborators (catalog, asset source, notifier)."""

    code = "upstream_failure"


class AdminAuthError(FulfillmentError):
    """Internal API called without a valid admin API key."""

    code = "unauthorized"


class AdminApiDisabledError(FulfillmentError):
    """Internal API called while no admin API key is configured."""

    code = "admin_disabled"
