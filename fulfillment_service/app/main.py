from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware

from .api.health import router as health_router
from .api.v1 import api_router
from .dependencies import get_config


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    config = get_config()
    logger.info(
        "fulfillment-service starting (storage=%s, catalog=%s, tenants=%d)",
        config.storage_backend,
        config.catalog.kind,
        len(config.tenants),
    )
    if config.storage_backend == "memory":
        logger.warning("credentials are kept in memory and are lost on restart")
    if not config.admin_api_key:
        logger.warning("ADMIN_API_KEY is not set, internal credential API is disabled")
    for tenant in config.tenants:
        if not tenant.verify_webhooks:
            logger.warning(
                "tenant accepts unsigned webhooks", extra={"tenant_id": tenant.id}
            )
        elif not tenant.webhook_secret:
            logger.warning(
                "tenant has no webhook secret, its webhooks will be rejected",
                extra={"tenant_id": tenant.id},
            )
    yield


def create_app() -> FastAPI:
    setup_logger(name="fulfillment-service")
    app = FastAPI(
        title="Digital Goods Fulfillment Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    port = int(os.getenv("FULFILLMENT_SERVICE_PORT", "8003"))
    uvicorn.run(
        "fulfillment_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
