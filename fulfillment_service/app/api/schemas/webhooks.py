from __future__ import annotations

from pydantic import BaseModel


class OrderWebhookResponse(BaseModel):
    """orders/create 웹훅 처리 결과."""

    order_id: str
    issued: list[str]
    skipped: list[str]
    failed: list[str]
    notified: bool
    duplicate: bool = False
