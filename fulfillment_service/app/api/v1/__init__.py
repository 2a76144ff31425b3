from fastapi import APIRouter

from .credentials import router as credentials_router
from .deliveries import router as deliveries_router
from .downloads import router as downloads_router
from .webhooks import router as webhooks_router

api_router = APIRouter()
api_router.include_router(credentials_router)
api_router.include_router(downloads_router)
api_router.include_router(deliveries_router)
api_router.include_router(
    webhooks_router
)  # prefix는 router 파일 내부에서 정의되어 있음 (/webhooks)
