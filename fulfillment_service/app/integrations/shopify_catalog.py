"""Shopify Admin API 기반 카탈로그 리졸버.

관리자가 상품에 붙여 둔 metafield(digital_download.digital_file)의 값을 asset locator 로 사용한다.
"""

from __future__ import annotations

import logging

import httpx

from ..exceptions import UpstreamFailure
from ..models.tenant import Tenant
from .interfaces import CatalogResolverInterface


logger = logging.getLogger(__name__)


class ShopifyCatalogResolver(CatalogResolverInterface):
    def __init__(
        self,
        *,
        api_version: str = "2024-01",
        namespace: str = "digital_download",
        key: str = "digital_file",
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_version = api_version
        self._namespace = namespace
        self._key = key
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def resolve(self, tenant: Tenant, product_ref: str) -> str | None:
        url = (
            f"https://{tenant.shop_domain}/admin/api/{self._api_version}"
            f"/products/{product_ref}/metafields.json"
        )
        try:
            resp = self._client.get(
                url,
                params={"namespace": self._namespace, "key": self._key},
                headers={
                    "X-Shopify-Access-Token": tenant.api_token,
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise UpstreamFailure(
                f"failed to fetch metafields for product {product_ref}: {exc}"
            ) from exc

        if resp.status_code == 404:
            # 삭제된 상품 등. 디지털 자산이 없는 것으로 취급한다.
            return None
        if resp.status_code != 200:
            raise UpstreamFailure(
                f"failed to fetch metafields for product {product_ref}: "
                f"status code {resp.status_code}, body: {resp.text[:500]}"
            )

        try:
            metafields = resp.json().get("metafields") or []
        except ValueError as exc:
            raise UpstreamFailure(
                f"invalid metafields response for product {product_ref}"
            ) from exc

        for metafield in metafields:
            if (
                metafield.get("namespace") == self._namespace
                and metafield.get("key") == self._key
            ):
                value = str(metafield.get("value") or "").strip()
                return value or None

        logger.debug(
            "no %s.%s metafield on product %s",
            self._namespace,
            self._key,
            product_ref,
        )
        return None

    def close(self) -> None:
        self._client.close()
