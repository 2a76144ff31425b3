from __future__ import annotations

from fastapi import APIRouter, Depends

from ..config import AppConfig
from ..dependencies import get_config


router = APIRouter()


@router.get("/health", summary="헬스 체크")
async def health(config: AppConfig = Depends(get_config)) -> dict[str, str]:
    return {"status": "ok", "storage": config.storage_backend}
