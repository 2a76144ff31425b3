"""FastAPI DI 용 서비스 팩토리.

크리덴셜 저장소와 배송 인덱스는 프로세스 전역에서 하나만 존재해야 하므로
get_client 와 같은 방식(이중 확인 + 락)으로 한 번만 생성한다.
테스트에서는 app.dependency_overrides 로 교체한다.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Optional

from fastapi import Depends

from common.mongo.client import get_database

from .config import AppConfig, load_config
from .integrations.asset_sources import (
    CompositeAssetSource,
    LocalAssetSource,
    S3AssetSource,
)
from .integrations.interfaces import (
    AssetSourceInterface,
    CatalogResolverInterface,
    NotifierInterface,
    TenantDirectoryInterface,
)
from .integrations.shopify_catalog import ShopifyCatalogResolver
from .integrations.smtp_notifier import SmtpNotifier
from .integrations.static_catalog import StaticCatalogResolver
from .integrations.tenant_directory import ConfigTenantDirectory
from .repositories.credential_store import InMemoryCredentialStore
from .repositories.delivery_repository import (
    InMemoryDeliveryRepository,
    MongoDeliveryRepository,
)
from .repositories.interfaces import (
    CredentialStoreInterface,
    DeliveryRepositoryInterface,
)
from .repositories.mongo_credential_store import MongoCredentialStore
from .services.credential_issuer import CredentialIssuer
from .services.delivery_service import DeliveryService
from .services.order_fulfillment_service import OrderFulfillmentService
from .services.redemption_service import RedemptionService


_config: Optional[AppConfig] = None
_store: Optional[CredentialStoreInterface] = None
_delivery_repo: Optional[DeliveryRepositoryInterface] = None
_asset_source: Optional[AssetSourceInterface] = None
_catalog: Optional[CatalogResolverInterface] = None
_lock = threading.RLock()


def get_config() -> AppConfig:
    global _config
    if _config is None:
        with _lock:
            if _config is None:
                _config = load_config()
    return _config


def get_credential_store(
    config: AppConfig = Depends(get_config),
) -> CredentialStoreInterface:
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                retention = timedelta(
                    seconds=config.credentials.retired_retention_seconds
                )
                if config.storage_backend == "mongo":
                    _store = MongoCredentialStore(get_database(), retention)
                else:
                    _store = InMemoryCredentialStore(retention)
    return _store


def get_delivery_repository(
    config: AppConfig = Depends(get_config),
) -> DeliveryRepositoryInterface:
    global _delivery_repo
    if _delivery_repo is None:
        with _lock:
            if _delivery_repo is None:
                if config.storage_backend == "mongo":
                    _delivery_repo = MongoDeliveryRepository(get_database())
                else:
                    _delivery_repo = InMemoryDeliveryRepository()
    return _delivery_repo


def get_asset_source(
    config: AppConfig = Depends(get_config),
) -> AssetSourceInterface:
    global _asset_source
    if _asset_source is None:
        with _lock:
            if _asset_source is None:
                object_storage = S3AssetSource(
                    endpoint_url=config.assets.s3_endpoint_url,
                    region=config.assets.s3_region,
                    timeout_seconds=config.assets.timeout_seconds,
                )
                _asset_source = CompositeAssetSource(
                    local=LocalAssetSource(config.assets.root),
                    object_storage=object_storage,
                )
    return _asset_source


def get_catalog_resolver(
    config: AppConfig = Depends(get_config),
) -> CatalogResolverInterface:
    global _catalog
    if _catalog is None:
        with _lock:
            if _catalog is None:
                if config.catalog.kind == "static":
                    _catalog = StaticCatalogResolver(
                        config.catalog.mapping, config.catalog.default_asset
                    )
                else:
                    _catalog = ShopifyCatalogResolver(
                        api_version=config.catalog.api_version,
                        namespace=config.catalog.metafield_namespace,
                        key=config.catalog.metafield_key,
                        timeout_seconds=config.catalog.timeout_seconds,
                    )
    return _catalog


def get_notifier(config: AppConfig = Depends(get_config)) -> NotifierInterface:
    mail = config.mail
    return SmtpNotifier(
        host=mail.host,
        port=mail.port,
        user=mail.user,
        password=mail.password,
        sender_name=mail.sender_name,
        use_starttls=mail.use_starttls,
        timeout_seconds=mail.timeout_seconds,
    )


def get_tenant_directory(
    config: AppConfig = Depends(get_config),
) -> TenantDirectoryInterface:
    return ConfigTenantDirectory(config.tenants)


def get_credential_issuer(
    config: AppConfig = Depends(get_config),
    store: CredentialStoreInterface = Depends(get_credential_store),
) -> CredentialIssuer:
    return CredentialIssuer(
        store,
        default_max_uses=config.credentials.max_uses,
        default_ttl=timedelta(seconds=config.credentials.ttl_seconds),
    )


def get_redemption_service(
    store: CredentialStoreInterface = Depends(get_credential_store),
    asset_source: AssetSourceInterface = Depends(get_asset_source),
) -> RedemptionService:
    return RedemptionService(store, asset_source)


def get_delivery_service(
    config: AppConfig = Depends(get_config),
    repo: DeliveryRepositoryInterface = Depends(get_delivery_repository),
    store: CredentialStoreInterface = Depends(get_credential_store),
) -> DeliveryService:
    return DeliveryService(repo, store, base_url=config.base_url)


def get_order_fulfillment_service(
    config: AppConfig = Depends(get_config),
    tenants: TenantDirectoryInterface = Depends(get_tenant_directory),
    catalog: CatalogResolverInterface = Depends(get_catalog_resolver),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
    deliveries: DeliveryService = Depends(get_delivery_service),
    notifier: NotifierInterface = Depends(get_notifier),
) -> OrderFulfillmentService:
    return OrderFulfillmentService(
        tenants=tenants,
        catalog=catalog,
        issuer=issuer,
        deliveries=deliveries,
        notifier=notifier,
        mail_subject=config.mail.subject,
    )
